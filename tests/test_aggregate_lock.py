# =============================================================================
# File: tests/test_aggregate_lock.py
# Description: Local backend of AggregateLockManager and handler registration
# =============================================================================

import asyncio

import pytest

from app.config.reliability_config import AggregateLockConfig, LockBackend
from app.event.commands import ChangeStatusCommand, CreateEventCommand
from app.event.exceptions import StoreUnavailable
from app.event.queries import GetStatisticsQuery
from app.infra.cqrs.decorators import get_registered_handlers
from app.infra.reliability.aggregate_lock import AggregateLockManager


@pytest.mark.asyncio
async def test_same_key_is_serialized():
    manager = AggregateLockManager(AggregateLockConfig(backend=LockBackend.LOCAL))
    order = []

    async def worker(name: str):
        async with manager.hold("event:1"):
            order.append(f"{name}-in")
            await asyncio.sleep(0.01)
            order.append(f"{name}-out")

    await asyncio.gather(worker("a"), worker("b"))

    assert order in (["a-in", "a-out", "b-in", "b-out"], ["b-in", "b-out", "a-in", "a-out"])
    assert manager.held_keys() == 0


@pytest.mark.asyncio
async def test_different_keys_do_not_block():
    manager = AggregateLockManager(AggregateLockConfig(backend=LockBackend.LOCAL, max_wait_ms=50))
    async with manager.hold("event:1"):
        async with manager.hold("event:2"):
            assert manager.held_keys() == 2


@pytest.mark.asyncio
async def test_bounded_wait_raises_store_unavailable():
    manager = AggregateLockManager(AggregateLockConfig(backend=LockBackend.LOCAL, max_wait_ms=20))

    async with manager.hold("event:1"):
        with pytest.raises(StoreUnavailable) as exc_info:
            async with manager.hold("event:1"):
                pass

    assert exc_info.value.store == "aggregate lock"
    assert manager.held_keys() == 0


def test_every_message_has_a_handler(command_bus, query_bus):
    registered = get_registered_handlers()
    commands = {h["command"] for h in registered["commands"]}
    queries = {h["query"] for h in registered["queries"]}

    assert {CreateEventCommand.__name__, ChangeStatusCommand.__name__} <= commands
    assert GetStatisticsQuery.__name__ in queries
    assert len(commands) == 14
    assert len(queries) == 5
