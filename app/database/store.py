"""Transactional access to the mirrored sets and beatmaps.

`CatalogStore` owns every write to the mirror. A set and its children are
always replaced together: `upsert` deletes the previous rows and inserts
the new ones inside a single transaction, so readers observe either the
old or the new version of a set, never a mix of both.
"""

import asyncio
import weakref

from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import AsyncIterator, Sequence

from sqlalchemy import delete, func, insert, or_, and_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.errors import StorageError
from app.logger import store_logger as logger
from app.models import Beatmap, Set, VOLATILE_STATUSES, compute_set_modes
from app.util import utcnow
from .beatmaps import BEATMAP_COLUMNS, SET_COLUMNS, BeatmapsTable, SetsTable

VOLATILE_REFRESH_INTERVAL = timedelta(minutes=30)
STABLE_REFRESH_INTERVAL = timedelta(days=4)

# columns returned by select_due
DUE_COLUMNS = (
    SetsTable.id,
    SetsTable.ranked_status,
    SetsTable.submit_date,
    SetsTable.approved_date,
    SetsTable.last_update,
    SetsTable.last_checked,
)


class CatalogStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory
        # one lock per set id, dropped once nobody holds a reference to it
        self._locks: weakref.WeakValueDictionary[int, asyncio.Lock] = weakref.WeakValueDictionary()

    @asynccontextmanager
    async def _set_lock(self, set_id: int) -> AsyncIterator[None]:
        lock = self._locks.get(set_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[set_id] = lock

        async with lock:
            yield

    # --- writes ----------------------------------------------------

    async def upsert(self, s: Set, timeout: float | None = None) -> None:
        """Replace the stored version of `s` (and all its children).

        Runs as one transaction: on any failure, cancellation or timeout
        the store keeps the previous version of the set.
        """
        try:
            async with asyncio.timeout(timeout):
                async with self._set_lock(s.id):
                    async with self.session_factory() as session:
                        async with session.begin():
                            await self._replace(session, s)
        except SQLAlchemyError as e:
            raise StorageError(f"failed to upsert set {s.id}: {e}") from e
        except TimeoutError as e:
            raise StorageError(f"timed out upserting set {s.id}") from e

        logger.debug(f"Upserted set {s.id} with {len(s.children)} beatmaps")

    async def _replace(self, session: AsyncSession, s: Set) -> None:
        # last_checked must never go backwards for a given set
        previous = await session.scalar(
            select(SetsTable.last_checked).where(SetsTable.id == s.id).with_for_update()
        )
        last_checked = s.last_checked
        if previous is not None and previous > last_checked:
            last_checked = previous

        await session.execute(delete(BeatmapsTable).where(BeatmapsTable.parent_set_id == s.id))
        await session.execute(delete(SetsTable).where(SetsTable.id == s.id))

        values = {name: getattr(s, name) for name in SET_COLUMNS}
        values["ranked_status"] = int(s.ranked_status)
        values["last_checked"] = last_checked
        values["set_modes"] = compute_set_modes(s.children)
        await session.execute(insert(SetsTable).values(**values))

        if s.children:
            rows = []
            for bm in s.children:
                row = {name: getattr(bm, name) for name in BEATMAP_COLUMNS}
                row["mode"] = int(bm.mode)
                row["parent_set_id"] = s.id
                rows.append(row)

            await session.execute(insert(BeatmapsTable), rows)

    async def delete(self, set_id: int, timeout: float | None = None) -> None:
        """Delete a set and its children. Deleting an unknown id is a no-op."""
        try:
            async with asyncio.timeout(timeout):
                async with self._set_lock(set_id):
                    async with self.session_factory() as session:
                        async with session.begin():
                            await session.execute(
                                delete(BeatmapsTable).where(BeatmapsTable.parent_set_id == set_id)
                            )
                            await session.execute(delete(SetsTable).where(SetsTable.id == set_id))
        except SQLAlchemyError as e:
            raise StorageError(f"failed to delete set {set_id}: {e}") from e
        except TimeoutError as e:
            raise StorageError(f"timed out deleting set {set_id}") from e

        logger.debug(f"Deleted set {set_id}")

    async def mark_checked(self, set_id: int, timeout: float | None = None) -> None:
        """Move the last check of a set to now without touching its data.

        Used when a refresh fails, so that the set goes to the back of the
        due queue instead of being retried first on every batch.
        """
        try:
            async with asyncio.timeout(timeout):
                async with self._set_lock(set_id):
                    async with self.session_factory() as session:
                        async with session.begin():
                            await session.execute(
                                update(SetsTable).where(SetsTable.id == set_id).values(last_checked=utcnow())
                            )
        except SQLAlchemyError as e:
            raise StorageError(f"failed to mark set {set_id} as checked: {e}") from e
        except TimeoutError as e:
            raise StorageError(f"timed out marking set {set_id} as checked") from e

        logger.debug(f"Marked set {set_id} as checked")

    # --- reads ----------------------------------------------------

    async def biggest_known_id(self) -> int:
        """The biggest set id in the mirror, or 0 when it is empty."""
        try:
            async with self.session_factory() as session:
                biggest = await session.scalar(select(func.max(SetsTable.id)))
        except SQLAlchemyError as e:
            raise StorageError(f"failed to fetch the biggest set id: {e}") from e

        return biggest or 0

    async def select_due(
        self, limit: int, now: datetime | None = None, timeout: float | None = None
    ) -> list[Set]:
        """Fetch up to `limit` sets that are due for a refresh, oldest first.

        Qualified, pending and WIP sets are due 30 minutes after their last
        check; every other set is due after 4 days. The returned sets only
        carry their id, status and dates.
        """
        if limit <= 0:
            return []

        if now is None:
            now = utcnow()

        stmt = (
            select(*DUE_COLUMNS)
            .where(
                or_(
                    and_(
                        SetsTable.ranked_status.in_([int(s) for s in VOLATILE_STATUSES]),
                        SetsTable.last_checked <= now - VOLATILE_REFRESH_INTERVAL,
                    ),
                    SetsTable.last_checked <= now - STABLE_REFRESH_INTERVAL,
                )
            )
            .order_by(SetsTable.last_checked.asc(), SetsTable.id.asc())
            .limit(limit)
        )

        try:
            async with asyncio.timeout(timeout):
                async with self.session_factory() as session:
                    rows = (await session.execute(stmt)).all()
        except SQLAlchemyError as e:
            raise StorageError(f"failed to select sets due for update: {e}") from e
        except TimeoutError as e:
            raise StorageError("timed out selecting sets due for update") from e

        return [
            Set(
                id=row.id,
                ranked_status=row.ranked_status,
                submit_date=row.submit_date,
                approved_date=row.approved_date,
                last_update=row.last_update,
                last_checked=row.last_checked,
            )
            for row in rows
        ]

    async def fetch_set(self, set_id: int, with_children: bool = True) -> Set | None:
        try:
            async with self.session_factory() as session:
                row = await session.get(SetsTable, set_id)
                if row is None:
                    return None

                s = Set(**{name: getattr(row, name) for name in SET_COLUMNS})
                if with_children:
                    result = await session.execute(
                        select(BeatmapsTable)
                        .where(BeatmapsTable.parent_set_id == set_id)
                        .order_by(BeatmapsTable.difficulty_rating.asc(), BeatmapsTable.id.asc())
                    )
                    s.children = [_to_beatmap(bm) for bm in result.scalars().all()]
        except SQLAlchemyError as e:
            raise StorageError(f"failed to fetch set {set_id}: {e}") from e

        return s

    async def fetch_beatmap(self, beatmap_id: int) -> Beatmap | None:
        try:
            async with self.session_factory() as session:
                row = await session.get(BeatmapsTable, beatmap_id)
        except SQLAlchemyError as e:
            raise StorageError(f"failed to fetch beatmap {beatmap_id}: {e}") from e

        return _to_beatmap(row) if row is not None else None

    async def fetch_beatmaps(self, parent_set_id: int) -> Sequence[Beatmap]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(BeatmapsTable).where(BeatmapsTable.parent_set_id == parent_set_id)
                )
                rows = result.scalars().all()
        except SQLAlchemyError as e:
            raise StorageError(f"failed to fetch beatmaps of set {parent_set_id}: {e}") from e

        return [_to_beatmap(row) for row in rows]


def _to_beatmap(row: BeatmapsTable) -> Beatmap:
    return Beatmap(**{name: getattr(row, name) for name in BEATMAP_COLUMNS})
