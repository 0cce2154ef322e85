from fastapi import Depends, HTTPException
from app.api.state import APIState, get_state
from app.database.store import CatalogStore
from app.errors import CredentialError, MirrorError, NotFoundError, StorageError, TransportError
from app.fetcher import SearchIngester
from app.logger import api_logger as logger

async def get_store(state: APIState = Depends(get_state)) -> CatalogStore:
    return state.store

async def get_searcher(state: APIState = Depends(get_state)) -> SearchIngester:
    return state.searcher

def to_http_error(e: MirrorError) -> HTTPException:
    """Translate a mirror error into the HTTP error returned to clients."""
    if isinstance(e, NotFoundError):
        return HTTPException(404, str(e))
    if isinstance(e, TransportError):
        logger.warning(f"upstream failure: {e}")
        return HTTPException(502, "upstream request failed")
    if isinstance(e, CredentialError):
        logger.error(f"search unavailable: {e}")
        return HTTPException(503, "search is not configured")
    if isinstance(e, StorageError):
        logger.error(f"storage failure: {e}")

    return HTTPException(500, "internal error")
