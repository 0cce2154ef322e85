from __future__ import annotations

import asyncio

from contextlib import asynccontextmanager
from datetime import datetime, timedelta

import pytest
from sqlalchemy import func, select

from app.database.beatmaps import BeatmapsTable, SetsTable
from app.database.store import CatalogStore
from app.errors import StorageError
from app.models import Beatmap, RankedStatus, Set

NOW = datetime(2024, 6, 1, 12, 0, 0)


def make_set(set_id: int = 1, modes: tuple[int, ...] = (0,), **kwargs) -> Set:
    kwargs.setdefault("last_checked", NOW)
    kwargs.setdefault("ranked_status", RankedStatus.RANKED)
    children = [
        Beatmap(id=set_id * 100 + i, parent_set_id=set_id, mode=mode, diff_name=f"diff {i}")
        for i, mode in enumerate(modes)
    ]
    return Set(id=set_id, children=children, artist="artist", title="title", **kwargs)


async def _count_children(store: CatalogStore, set_id: int) -> int:
    async with store.session_factory() as session:
        return await session.scalar(
            select(func.count()).select_from(BeatmapsTable).where(BeatmapsTable.parent_set_id == set_id)
        )


async def _set_modes(store: CatalogStore, set_id: int) -> int:
    async with store.session_factory() as session:
        return await session.scalar(select(SetsTable.set_modes).where(SetsTable.id == set_id))


async def test_upsert_and_fetch(store: CatalogStore) -> None:
    await store.upsert(make_set(1, modes=(0, 0, 2), artist_unicode="アーティスト"))

    s = await store.fetch_set(1)
    assert s is not None
    assert s.artist == "artist"
    assert s.artist_unicode == "アーティスト"
    assert s.ranked_status == RankedStatus.RANKED
    assert s.last_checked == NOW
    assert sorted(bm.id for bm in s.children) == [100, 101, 102]

    assert await _set_modes(store, 1) == 0b0101

    bm = await store.fetch_beatmap(102)
    assert bm is not None
    assert bm.parent_set_id == 1
    assert bm.mode == 2


async def test_upsert_replaces_children(store: CatalogStore) -> None:
    await store.upsert(make_set(1, modes=(0, 1, 2)))
    await store.upsert(make_set(1, modes=(3,)))

    assert await _count_children(store, 1) == 1
    assert await store.fetch_beatmap(101) is None
    assert await _set_modes(store, 1) == 0b1000


async def test_upsert_never_moves_last_checked_backwards(store: CatalogStore) -> None:
    await store.upsert(make_set(1, last_checked=NOW))
    await store.upsert(make_set(1, last_checked=NOW - timedelta(hours=1)))

    s = await store.fetch_set(1, with_children=False)
    assert s is not None
    assert s.last_checked == NOW


async def test_failed_upsert_keeps_previous_state(store: CatalogStore) -> None:
    await store.upsert(make_set(1, modes=(0, 1)))

    broken = make_set(1, modes=(2, 3))
    broken.title = "new title"
    # duplicate primary key, the bulk insert of the children fails
    broken.children[1].id = broken.children[0].id

    with pytest.raises(StorageError):
        await store.upsert(broken)

    s = await store.fetch_set(1)
    assert s is not None
    assert s.title == "title"
    assert sorted(bm.mode for bm in s.children) == [0, 1]


async def test_upsert_timeout_rolls_back(store: CatalogStore) -> None:
    class SlowStore(CatalogStore):
        async def _replace(self, session, s):
            await super()._replace(session, s)
            await asyncio.sleep(5)

    await store.upsert(make_set(1, modes=(0,)))

    slow = SlowStore(store.session_factory)
    with pytest.raises(StorageError):
        await slow.upsert(make_set(1, modes=(1, 2)), timeout=0.05)

    assert await _set_modes(store, 1) == 0b0001
    assert await _count_children(store, 1) == 1


async def test_concurrent_upserts_are_serialized(store: CatalogStore) -> None:
    class RecordingStore(CatalogStore):
        def __init__(self, session_factory):
            super().__init__(session_factory)
            self.events: list[tuple[str, str]] = []

        async def _replace(self, session, s):
            self.events.append(("begin", s.title))
            await asyncio.sleep(0.01)
            await super()._replace(session, s)
            await asyncio.sleep(0.01)
            self.events.append(("end", s.title))

    recording = RecordingStore(store.session_factory)
    first = make_set(1, modes=(0, 1))
    first.title = "first"
    second = make_set(1, modes=(2,))
    second.title = "second"

    await asyncio.gather(recording.upsert(first), recording.upsert(second))

    events = recording.events
    assert len(events) == 4
    # every begin is immediately followed by its own end
    assert events[0][0] == "begin" and events[1] == ("end", events[0][1])
    assert events[2][0] == "begin" and events[3] == ("end", events[2][1])

    last_title = events[3][1]
    s = await store.fetch_set(1)
    assert s is not None
    assert s.title == last_title
    expected_modes = [0, 1] if last_title == "first" else [2]
    assert sorted(bm.mode for bm in s.children) == expected_modes


async def test_delete(store: CatalogStore) -> None:
    await store.upsert(make_set(1, modes=(0, 1)))
    await store.delete(1)

    assert await store.fetch_set(1) is None
    assert await _count_children(store, 1) == 0
    assert await store.fetch_beatmaps(1) == []


async def test_delete_unknown_id_is_noop(store: CatalogStore) -> None:
    await store.delete(12345)
    await store.delete(12345)


async def test_delete_timeout(store: CatalogStore) -> None:
    await store.upsert(make_set(1))

    # another writer holds the set
    async with store._set_lock(1):
        with pytest.raises(StorageError):
            await store.delete(1, timeout=0.05)

    assert await store.fetch_set(1) is not None


async def test_mark_checked(store: CatalogStore) -> None:
    await store.upsert(make_set(1, modes=(0, 3)))
    await store.mark_checked(1)

    s = await store.fetch_set(1)
    assert s is not None
    assert s.last_checked > NOW
    assert s.title == "title"
    assert len(s.children) == 2
    assert await _set_modes(store, 1) == 0b1001

    # unknown ids are ignored
    await store.mark_checked(12345)
    assert await store.fetch_set(12345) is None


async def test_biggest_known_id(store: CatalogStore) -> None:
    assert await store.biggest_known_id() == 0

    for set_id in (3, 41, 7):
        await store.upsert(make_set(set_id))

    assert await store.biggest_known_id() == 41


@pytest.mark.parametrize("limit", [0, -1, -50])
async def test_select_due_non_positive_limit(store: CatalogStore, limit: int) -> None:
    await store.upsert(make_set(1, last_checked=NOW - timedelta(days=30)))

    assert await store.select_due(limit, now=NOW) == []


@pytest.mark.parametrize(
    ("status", "age", "due"),
    [
        (RankedStatus.QUALIFIED, timedelta(minutes=29, seconds=59), False),
        (RankedStatus.QUALIFIED, timedelta(minutes=30), True),
        (RankedStatus.PENDING, timedelta(minutes=30), True),
        (RankedStatus.WIP, timedelta(minutes=30), True),
        (RankedStatus.RANKED, timedelta(minutes=30), False),
        (RankedStatus.LOVED, timedelta(days=3, hours=23, minutes=59, seconds=59), False),
        (RankedStatus.LOVED, timedelta(days=4), True),
        (RankedStatus.GRAVEYARD, timedelta(days=4), True),
        (RankedStatus.GRAVEYARD, timedelta(days=1), False),
    ],
)
async def test_select_due_tiers(store: CatalogStore, status: RankedStatus, age: timedelta, due: bool) -> None:
    await store.upsert(make_set(1, ranked_status=status, last_checked=NOW - age))

    result = await store.select_due(10, now=NOW)

    assert [s.id for s in result] == ([1] if due else [])


async def test_select_due_order_and_limit(store: CatalogStore) -> None:
    await store.upsert(make_set(1, last_checked=NOW - timedelta(days=5)))
    await store.upsert(make_set(2, last_checked=NOW - timedelta(days=9)))
    await store.upsert(make_set(3, ranked_status=RankedStatus.PENDING, last_checked=NOW - timedelta(hours=1)))
    await store.upsert(make_set(4, last_checked=NOW - timedelta(days=1)))  # not due
    await store.upsert(make_set(5, last_checked=NOW - timedelta(days=7)))

    result = await store.select_due(10, now=NOW)
    assert [s.id for s in result] == [2, 5, 1, 3]
    assert result[0].last_checked == NOW - timedelta(days=9)
    assert result[0].children == []

    assert [s.id for s in await store.select_due(2, now=NOW)] == [2, 5]


async def test_select_due_timeout(store: CatalogStore) -> None:
    await store.upsert(make_set(1, last_checked=NOW - timedelta(days=9)))

    @asynccontextmanager
    async def slow_sessions():
        await asyncio.sleep(1)
        async with store.session_factory() as session:
            yield session

    slow = CatalogStore(slow_sessions)  # type: ignore[arg-type]
    with pytest.raises(StorageError):
        await slow.select_due(10, now=NOW, timeout=0.05)
