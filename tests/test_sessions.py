import pytest

from camara_ai.assistant.sessions import InMemorySessionStore


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def pair(n):
    return [
        {"role": "user", "content": f"q{n}"},
        {"role": "assistant", "content": f"a{n}"},
    ]


@pytest.mark.asyncio
async def test_unknown_session_is_empty():
    store = InMemorySessionStore()
    assert await store.get("nope") == []
    assert "nope" not in store


@pytest.mark.asyncio
async def test_append_trims_to_max_turns():
    store = InMemorySessionStore(max_turns=4)
    for n in range(5):
        await store.append("s1", pair(n))

    turns = await store.get("s1")
    assert [turn["content"] for turn in turns] == ["q3", "a3", "q4", "a4"]


@pytest.mark.asyncio
async def test_get_returns_a_copy():
    store = InMemorySessionStore()
    await store.append("s1", pair(0))
    turns = await store.get("s1")
    turns.clear()
    assert len(await store.get("s1")) == 2


@pytest.mark.asyncio
async def test_capacity_evicts_least_recently_active():
    store = InMemorySessionStore(max_sessions=2)
    await store.append("a", pair(0))
    await store.append("b", pair(0))
    await store.append("a", pair(1))  # "a" is now the most recent
    await store.append("c", pair(0))

    assert len(store) == 2
    assert "b" not in store
    assert "a" in store and "c" in store


@pytest.mark.asyncio
async def test_evict_stale_uses_ttl():
    clock = FakeClock()
    store = InMemorySessionStore(ttl_seconds=60, clock=clock)
    await store.append("old", pair(0))
    clock.now = 50
    await store.append("fresh", pair(0))

    clock.now = 100
    assert await store.evict_stale() == 1
    assert "old" not in store
    assert "fresh" in store


@pytest.mark.asyncio
async def test_clear_reports_existence():
    store = InMemorySessionStore()
    await store.append("s1", pair(0))

    assert await store.clear("s1") is True
    assert await store.get("s1") == []
    assert await store.clear("s1") is False
