"""Type registration tests."""

import asyncio

import pytest

from conftest import make_activity
from stagewise import InMemoryOrchestrationClient, ServiceError, TypeRegistrar, Workflow
from stagewise.errors import TypeAlreadyExistsError


class CountingClient(InMemoryOrchestrationClient):
    def __init__(self) -> None:
        super().__init__(poll_timeout=0.01)
        self.activity_registrations = []
        self.workflow_registrations = []

    async def register_activity_type(self, domain, name, version, **kwargs):
        self.activity_registrations.append((name, version))
        await super().register_activity_type(domain, name, version, **kwargs)

    async def register_workflow_type(self, domain, name, version, **kwargs):
        self.workflow_registrations.append((name, version))
        await super().register_workflow_type(domain, name, version, **kwargs)


@pytest.mark.asyncio
async def test_register_creates_missing_types(order_workflow):
    client = CountingClient()

    await TypeRegistrar(client).register(order_workflow)

    assert sorted(client.activity_registrations) == [
        ("Charge", "Order.1"),
        ("Ship", "Order.2"),
        ("Validate", "Order.0"),
    ]
    assert client.workflow_registrations == [("Order", "1")]
    assert await client.list_activity_types("shop") == {
        ("Validate", "Order.0"),
        ("Charge", "Order.1"),
        ("Ship", "Order.2"),
    }


@pytest.mark.asyncio
async def test_register_twice_issues_no_new_calls(order_workflow):
    client = CountingClient()
    registrar = TypeRegistrar(client)

    await registrar.register(order_workflow)
    client.activity_registrations.clear()
    client.workflow_registrations.clear()
    await registrar.register(order_workflow)

    assert client.activity_registrations == []
    assert client.workflow_registrations == []


@pytest.mark.asyncio
async def test_only_new_stages_are_registered(order_workflow):
    client = CountingClient()
    registrar = TypeRegistrar(client)
    await registrar.register(order_workflow)
    client.activity_registrations.clear()

    extended = order_workflow >> make_activity("Notify")
    await registrar.register(extended)

    assert client.activity_registrations == [("Notify", "Order.3")]


@pytest.mark.asyncio
async def test_activity_registration_passes_activity_settings(order_workflow):
    client = CountingClient()
    await TypeRegistrar(client).register(order_workflow)

    info = client.activity_type_info("shop", "Charge", "Order.1")
    assert info["description"] == "Charge activity"
    assert info["task_list"] == "ChargeTaskList"
    assert info["heartbeat_timeout"] == 30
    assert info["schedule_to_start_timeout"] == 60
    assert info["start_to_close_timeout"] == 120
    assert info["schedule_to_close_timeout"] == 180


@pytest.mark.asyncio
async def test_workflow_type_skipped_when_any_version_exists():
    client = CountingClient()
    await client.register_workflow_type("shop", "Order", "1", task_list="OrderTaskList")
    client.workflow_registrations.clear()

    newer = Workflow("shop", "Order", "Order processing", "2")
    registered = await TypeRegistrar(client).register_workflow_type(newer)

    assert registered is False
    assert client.workflow_registrations == []


@pytest.mark.asyncio
async def test_workflow_optional_settings_applied_only_when_present():
    client = CountingClient()
    plain = Workflow("shop", "Plain", "No defaults", "1")
    tuned = Workflow(
        "shop",
        "Tuned",
        "With defaults",
        "1",
        task_start_to_close_timeout=30,
        exec_start_to_close_timeout=3600,
        child_policy="ABANDON",
    )

    registrar = TypeRegistrar(client)
    await registrar.register_workflow_type(plain)
    await registrar.register_workflow_type(tuned)

    plain_info = client.workflow_type_info("shop", "Plain", "1")
    assert plain_info["task_list"] == "PlainTaskList"
    assert plain_info["task_start_to_close_timeout"] is None
    assert plain_info["child_policy"] is None
    tuned_info = client.workflow_type_info("shop", "Tuned", "1")
    assert tuned_info["task_start_to_close_timeout"] == 30
    assert tuned_info["execution_start_to_close_timeout"] == 3600
    assert tuned_info["child_policy"] == "ABANDON"


@pytest.mark.asyncio
async def test_concurrent_duplicate_registration_is_ignored(order_workflow):
    class RacingClient(CountingClient):
        async def list_activity_types(self, domain):
            # another process registers right after we looked
            seen = await super().list_activity_types(domain)
            if not seen:
                await InMemoryOrchestrationClient.register_activity_type(
                    self, domain, "Validate", "Order.0"
                )
            return seen

    client = RacingClient()
    registered = await TypeRegistrar(client).register_activity_types(
        "shop", order_workflow.stages
    )

    assert registered == 2
    assert ("Validate", "Order.0") in await client.list_activity_types("shop")


@pytest.mark.asyncio
async def test_service_errors_propagate(order_workflow):
    class BrokenClient(CountingClient):
        async def list_activity_types(self, domain):
            raise ServiceError("service unavailable", code="ServiceUnavailable")

    with pytest.raises(ServiceError):
        await TypeRegistrar(BrokenClient()).register(order_workflow)


@pytest.mark.asyncio
async def test_duplicate_registration_raises_in_client():
    client = InMemoryOrchestrationClient()
    await client.register_activity_type("shop", "Validate", "Order.0")
    with pytest.raises(TypeAlreadyExistsError):
        await client.register_activity_type("shop", "Validate", "Order.0")


@pytest.mark.asyncio
async def test_activity_and_workflow_passes_run_concurrently(order_workflow):
    class RendezvousClient(CountingClient):
        def __init__(self) -> None:
            super().__init__()
            self.activities_listing = asyncio.Event()
            self.workflows_listing = asyncio.Event()

        async def list_activity_types(self, domain):
            self.activities_listing.set()
            await self.workflows_listing.wait()
            return await super().list_activity_types(domain)

        async def list_workflow_types(self, domain, name):
            self.workflows_listing.set()
            await self.activities_listing.wait()
            return await super().list_workflow_types(domain, name)

    client = RendezvousClient()
    await asyncio.wait_for(TypeRegistrar(client).register(order_workflow), timeout=2)

    assert len(client.activity_registrations) == 3
    assert client.workflow_registrations == [("Order", "1")]
