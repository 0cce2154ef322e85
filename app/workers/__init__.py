import asyncio
import app.settings as settings

from abc import ABC, abstractmethod
from typing import Any, Sequence
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from app.database import init_models, make_engine, make_sessionmaker
from app.database.store import CatalogStore
from app.errors import MirrorError
from app.fetcher import DetailFetcher, OsuTransport
from app.logger import worker_logger as logger


class WorkerState:
    """
    A shared state object for workers to maintain context between tasks.
    """
    transport: OsuTransport
    fetcher: DetailFetcher
    store: CatalogStore

    def __init__(self, dsn: str = settings.DATABASE_URL) -> None:
        self.dsn = dsn
        self._engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None

    async def init(self):
        await init_models(self.get_engine())

        self.transport = OsuTransport()
        self.fetcher = DetailFetcher(self.transport)
        self.store = CatalogStore(self.get_sessionmaker())

    def get_engine(self) -> AsyncEngine:
        if self._engine is None:
            self._engine = make_engine(self.dsn)
        return self._engine

    def get_sessionmaker(self) -> async_sessionmaker[AsyncSession]:
        if self._sessionmaker is None:
            self._sessionmaker = make_sessionmaker(self.get_engine())
        return self._sessionmaker

    async def close(self):
        await self.transport.close()
        if self._engine is not None:
            await self._engine.dispose()

class Worker(ABC):
    """
    Abstract asynchronous worker class processing batches of items.
    All worker implementations must inherit from this class and implement
    the `next_batch` and `process` methods.
    """
    def __init__(self, state: WorkerState, sleep_interval: float = settings.WORKER_SLEEP_INTERVAL):
        self.state = state
        self.sleep_interval = sleep_interval

    async def run(self):
        while True:
            processed, failed = await self.run_once()

            if processed == 0 or failed:
                await asyncio.sleep(self.sleep_interval)  # sleep briefly if nothing could be done

    async def run_once(self) -> tuple[int, int]:
        """Process one batch; returns (processed, failed).

        A failing item is logged and does not stop the rest of the batch.
        """
        batch = await self.next_batch()
        failed = 0

        for item in batch:
            try:
                await self.process(item)
            except MirrorError as e:
                failed += 1
                logger.warning(f"{type(self).__name__} failed to process {self.describe(item)}: {e!r}")

        return len(batch), failed

    def describe(self, item) -> str:
        return repr(item)

    @abstractmethod
    async def next_batch(self) -> Sequence[Any]:
        raise NotImplementedError("Subclasses must implement this method")

    @abstractmethod
    async def process(self, item):
        raise NotImplementedError("Subclasses must implement this method")
