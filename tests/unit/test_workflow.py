"""Workflow builder tests."""

import pytest

from conftest import make_activity
from stagewise import InvalidArgumentError, Workflow


@pytest.mark.parametrize("domain", ["", "   ", None])
def test_blank_domain_is_rejected(domain):
    with pytest.raises(InvalidArgumentError) as excinfo:
        Workflow(domain, "Order", "Order processing", "1")
    assert excinfo.value.argument == "domain"


@pytest.mark.parametrize("name", ["", "\t"])
def test_blank_name_is_rejected(name):
    with pytest.raises(InvalidArgumentError) as excinfo:
        Workflow("shop", name, "Order processing", "1")
    assert excinfo.value.argument == "name"


def test_invalid_argument_is_a_value_error():
    with pytest.raises(ValueError):
        Workflow("shop", " ", "Order processing", "1")


def test_task_list_defaults_to_name():
    workflow = Workflow("shop", "Order", "Order processing", "1")
    assert workflow.task_list == "OrderTaskList"
    assert workflow.stages == []


def test_attach_order_matches_declaration_order():
    a, b, c = make_activity("A"), make_activity("B"), make_activity("C")
    workflow = Workflow("shop", "Order", "Order processing", "1").attach(a).attach(b).attach(c)

    assert [stage.id for stage in workflow.stages] == [0, 1, 2]
    assert [stage.activity for stage in workflow.stages] == [a, b, c]
    assert [stage.version for stage in workflow.stages] == ["Order.0", "Order.1", "Order.2"]


def test_attach_does_not_mutate_receiver():
    base = Workflow("shop", "Order", "Order processing", "1") >> make_activity("Validate")
    charged = base >> make_activity("Charge")
    refunded = base >> make_activity("Refund")

    assert [s.activity.name for s in base.stages] == ["Validate"]
    assert [s.activity.name for s in charged.stages] == ["Validate", "Charge"]
    assert [s.activity.name for s in refunded.stages] == ["Validate", "Refund"]


def test_attach_preserves_settings():
    workflow = Workflow(
        "shop",
        "Order",
        "Order processing",
        "2",
        task_list="orders",
        task_start_to_close_timeout=30,
        exec_start_to_close_timeout=3600,
        child_policy="TERMINATE",
    ) >> make_activity("Validate")

    assert workflow.task_list == "orders"
    assert workflow.version == "2"
    assert workflow.task_start_to_close_timeout == 30
    assert workflow.exec_start_to_close_timeout == 3600
    assert workflow.child_policy == "TERMINATE"


def test_reused_activity_gets_distinct_versions():
    validate = make_activity("Validate")
    workflow = Workflow("shop", "Order", "Order processing", "1") >> validate >> validate

    versions = {(s.activity.name, s.version) for s in workflow.stages}
    assert versions == {("Validate", "Order.0"), ("Validate", "Order.1")}


def test_stages_are_materialised_once(order_workflow):
    assert order_workflow.stages is order_workflow.stages
    assert order_workflow.decider.stages == tuple(order_workflow.stages)
