import app.settings as settings

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from app.database import init_models, make_engine, make_sessionmaker
from app.database.store import CatalogStore
from app.fetcher import OsuTransport, SearchIngester, StaticCredentialProvider

class APIState:
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    store: CatalogStore
    transport: OsuTransport
    searcher: SearchIngester

    async def init(self, dsn: str = settings.DATABASE_URL):
        self.engine = make_engine(dsn)
        await init_models(self.engine)

        self.session_factory = make_sessionmaker(self.engine)
        self.store = CatalogStore(self.session_factory)
        self.transport = OsuTransport()
        self.searcher = SearchIngester(
            self.transport,
            StaticCredentialProvider.from_settings()
        )

    async def close(self):
        await self.transport.close()
        await self.engine.dispose()

global_state = None

async def get_state():
    global global_state

    if global_state is None:
        global_state = APIState()
        await global_state.init()

        return global_state
    else:
        return global_state
