import asyncio

import pytest

from messaging.utils.typing_store import MemoryTypingBackend, TypingPresenceStore


class TickClock:

    def __init__(self) -> None:
        self.value = 1000.0

    def __call__(self) -> float:
        return self.value


@pytest.fixture
def tick():
    return TickClock()


@pytest.fixture
def store(tick):
    return TypingPresenceStore(ttl_seconds=10, clock=tick)


async def test_set_typing_is_visible_until_ttl_elapses(store, tick):
    await store.set_typing("c1", "u1")
    assert await store.get_typing_users("c1") == ["u1"]

    tick.value += 9.9
    assert await store.get_typing_users("c1") == ["u1"]

    tick.value += 0.2
    assert await store.get_typing_users("c1") == []


async def test_refresh_extends_expiry(store, tick):
    await store.set_typing("c1", "u1")
    tick.value += 8
    await store.set_typing("c1", "u1")
    tick.value += 8
    assert await store.get_typing_users("c1") == ["u1"]


async def test_remove_typing_is_explicit(store):
    await store.set_typing("c1", "u1")
    await store.set_typing("c1", "u2")
    await store.remove_typing("c1", "u1")
    await store.remove_typing("c1", "never-typed")
    assert await store.get_typing_users("c1") == ["u2"]


async def test_conversations_are_isolated(store):
    await store.set_typing("c1", "u1")
    await store.set_typing("c2", "u2")
    assert await store.get_typing_users("c1") == ["u1"]
    assert await store.get_typing_users("c2") == ["u2"]
    assert await store.get_typing_users("c3") == []


async def test_expired_entries_are_evicted_on_read(tick):
    backend = MemoryTypingBackend()
    store = TypingPresenceStore(ttl_seconds=5, backend=backend, clock=tick)
    await store.set_typing("c1", "u1")
    tick.value += 6
    assert await store.get_typing_users("c1") == []
    assert backend.all_entries() == []


async def test_sweep_removes_only_expired(store, tick):
    await store.set_typing("c1", "u1")
    tick.value += 6
    await store.set_typing("c2", "u2")
    tick.value += 5
    assert await store.sweep() == 1
    assert await store.get_typing_users("c2") == ["u2"]


async def test_background_sweeper_runs_and_stops():
    store = TypingPresenceStore(ttl_seconds=0.01)
    await store.set_typing("c1", "u1")
    store.start_sweeper(0.01)
    await asyncio.sleep(0.1)
    await store.stop_sweeper()
    assert store._backend.all_entries() == []


async def test_concurrent_writers(store):
    await asyncio.gather(*(store.set_typing("c1", f"u{i}") for i in range(20)))
    assert sorted(await store.get_typing_users("c1")) == sorted(f"u{i}" for i in range(20))


def test_ttl_must_be_positive():
    with pytest.raises(ValueError):
        TypingPresenceStore(ttl_seconds=0)
