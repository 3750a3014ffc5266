"""Example running a three-stage order pipeline against the in-memory service."""

import asyncio

from stagewise import Activity, InMemoryOrchestrationClient, Workflow


def validate(order: str) -> str:
    return f"{order}:valid"


def charge(order: str) -> str:
    return f"{order}:charged"


def ship(order: str) -> str:
    return f"{order}:shipped"


order_workflow = (
    Workflow("shop", "Order", "Order processing pipeline", "1")
    >> Activity(name="Validate", description="Check the order", task=validate,
                heartbeat_timeout=30, schedule_to_start_timeout=60,
                start_to_close_timeout=60, schedule_to_close_timeout=120)
    >> Activity(name="Charge", description="Charge the customer", task=charge,
                heartbeat_timeout=30, schedule_to_start_timeout=60,
                start_to_close_timeout=60, schedule_to_close_timeout=120)
    >> Activity(name="Ship", description="Hand over to the carrier", task=ship,
                heartbeat_timeout=30, schedule_to_start_timeout=60,
                start_to_close_timeout=60, schedule_to_close_timeout=120)
)


async def main():
    client = InMemoryOrchestrationClient(poll_timeout=0.1)
    order_workflow.on_activity_task_error.subscribe(
        lambda e: print(f"Activity failed: {e}")
    )

    tasks = await order_workflow.start(client, lifespan=2)
    await client.start_workflow_execution(
        "shop", "order-42", order_workflow.name, order_workflow.version, input="order-42"
    )
    await asyncio.gather(*tasks)

    execution = client.get_execution("order-42")
    print(f"Workflow order-42 finished with status {execution.status}: {execution.result}")


if __name__ == "__main__":
    asyncio.run(main())
