import app.settings as settings

from . import Worker, WorkerState
from app.errors import DataFormatError, NotFoundError, StorageError, TransportError
from app.logger import worker_logger as logger
from app.models import Set


class BeatmapWorker(Worker):
    """Keeps the mirrored sets fresh.

    Each batch holds the sets that are due for a refresh, oldest check
    first; every set is re-fetched with its children and replaced in the
    store. A set whose refresh fails is still marked as checked, so it
    waits for its next turn instead of blocking the head of the queue.
    """
    def __init__(self, state: WorkerState, batch_size: int = settings.UPDATE_BATCH_SIZE, **kwargs):
        super().__init__(state, **kwargs)
        self.batch_size = batch_size

    async def next_batch(self) -> list[Set]:
        return await self.state.store.select_due(self.batch_size)

    def describe(self, item: Set) -> str:
        return f"set {item.id}"

    async def process(self, item: Set):
        logger.debug(f"Refreshing set {item.id} (status {item.ranked_status}, last checked {item.last_checked})")

        try:
            beatmapset = await self.state.fetcher.fetch_set(item.id, with_children=True)
        except NotFoundError:
            # the set is gone upstream, stop mirroring it
            logger.info(f"Set {item.id} no longer exists upstream, deleting it")
            await self.state.store.delete(item.id)
            return
        except (DataFormatError, TransportError):
            await self._mark_checked(item.id)
            raise

        await self.state.store.upsert(beatmapset)

        logger.info(
            f"Refreshed set {beatmapset.id} - {beatmapset.artist} - {beatmapset.title} "
            f"({len(beatmapset.children)} beatmaps)"
        )

    async def _mark_checked(self, set_id: int):
        try:
            await self.state.store.mark_checked(set_id)
        except StorageError as e:
            logger.warning(f"Could not mark set {set_id} as checked: {e!r}")
