from fastapi import APIRouter, Depends, HTTPException, Query
from app.database.store import CatalogStore
from app.errors import MirrorError
from app.fetcher import SearchIngester
from app.models import SearchOptions
from app.util.api import get_searcher, get_store, to_http_error

router = APIRouter(prefix="/api")

@router.get("/b/{beatmap_id}")
async def get_beatmap(
    beatmap_id: int,
    store: CatalogStore = Depends(get_store),
):
    """
    Returns a mirrored beatmap.
    """
    try:
        beatmap = await store.fetch_beatmap(beatmap_id)
    except MirrorError as e:
        raise to_http_error(e)

    if beatmap is None:
        raise HTTPException(404, "beatmap not found")

    return {"success": True, "data": beatmap}

@router.get("/s/{set_id}")
async def get_set(
    set_id: int,
    store: CatalogStore = Depends(get_store),
):
    """
    Returns a mirrored set alongside its beatmaps.
    """
    try:
        beatmapset = await store.fetch_set(set_id, with_children=True)
    except MirrorError as e:
        raise to_http_error(e)

    if beatmapset is None:
        raise HTTPException(404, "set not found")

    return {"success": True, "data": beatmapset}

@router.get("/biggest-id")
async def get_biggest_id(store: CatalogStore = Depends(get_store)):
    try:
        return {"success": True, "data": await store.biggest_known_id()}
    except MirrorError as e:
        raise to_http_error(e)

@router.get("/search")
async def search_sets(
    searcher: SearchIngester = Depends(get_searcher),

    # parameters
    query: str = "",
    status: list[int] = Query([], description="ranked status filter, only a single value is sent upstream"),
    mode: list[int] = Query([], description="mode filter, only a single value is sent upstream"),
    offset: int = Query(0, ge=0),
    amount: int = Query(50, ge=1, le=100),
):
    """
    Searches the upstream catalog. The results are partial sets and are
    not mirrored. Filters given more than one value are sent unfiltered;
    they are listed under `degraded_filters`.
    """
    options = SearchOptions(status=status, mode=mode, query=query, offset=offset, amount=amount)

    try:
        sets = await searcher.search(options)
    except MirrorError as e:
        raise to_http_error(e)

    return {
        "success": True,
        "data": sets,
        "degraded_filters": options.degraded_filters(),
    }
