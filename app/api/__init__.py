from contextlib import asynccontextmanager
from fastapi import FastAPI
from .beatmaps import router as beatmaps_router
from . import state as api_state

@asynccontextmanager
async def lifespan(app: FastAPI):
    yield

    if api_state.global_state is not None:
        await api_state.global_state.close()
        api_state.global_state = None

def init() -> FastAPI:
    app = FastAPI(lifespan=lifespan)

    app.include_router(beatmaps_router)

    return app

app = init()
