"""Normalization of the v1 `get_beatmaps` detail records.

Every value of a detail record is a string (or null). Identity fields
(`beatmap_id`, `beatmapset_id`, `mode`, `approved`) must parse, otherwise
the record is rejected with a DataFormatError. Descriptive fields fall
back to their zero value with a warning, and the optional fields
(`approved_date`, `artist_unicode`, `title_unicode`) silently default
when absent.
"""

from typing import Any, Callable, Iterable, TypeVar

from app.errors import DataFormatError, NotFoundError
from app.logger import fetcher_logger as logger
from app.models import Beatmap, RankedStatus, Set, ZERO_TIME
from app.util import parse_bool, parse_float, parse_int, parse_osu_datetime, utcnow
from ._base import OsuTransport

T = TypeVar("T")

Record = dict[str, Any]


def _lenient(parse: Callable[[str, Any], T], record: Record, name: str, default: T) -> T:
    try:
        return parse(name, record.get(name))
    except DataFormatError as e:
        logger.warning(f"Falling back to {default!r}: {e}")
        return default


def _optional_str(record: Record, name: str) -> str:
    value = record.get(name)
    return value if isinstance(value, str) else ""


def _str_or_empty(record: Record, name: str) -> str:
    value = record.get(name)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise DataFormatError(name, value, "expected a string")
    return value


def parse_ranked_status(name: str, value: Any) -> RankedStatus:
    status = parse_int(name, value)
    try:
        return RankedStatus(status)
    except ValueError:
        raise DataFormatError(name, value, "unknown ranked status")


def beatmap_from_record(record: Record) -> Beatmap:
    return Beatmap(
        id=parse_int("beatmap_id", record.get("beatmap_id")),
        parent_set_id=parse_int("beatmapset_id", record.get("beatmapset_id")),
        mode=parse_int("mode", record.get("mode")),
        diff_name=_str_or_empty(record, "version"),
        file_md5=_str_or_empty(record, "file_md5"),
        bpm=_lenient(parse_float, record, "bpm", 0.0),
        ar=_lenient(parse_float, record, "diff_approach", 0.0),
        od=_lenient(parse_float, record, "diff_overall", 0.0),
        cs=_lenient(parse_float, record, "diff_size", 0.0),
        hp=_lenient(parse_float, record, "diff_drain", 0.0),
        total_length=_lenient(parse_int, record, "total_length", 0),
        hit_length=_lenient(parse_int, record, "hit_length", 0),
        count_normal=_lenient(parse_int, record, "count_normal", 0),
        count_slider=_lenient(parse_int, record, "count_slider", 0),
        count_spinner=_lenient(parse_int, record, "count_spinner", 0),
        playcount=_lenient(parse_int, record, "playcount", 0),
        passcount=_lenient(parse_int, record, "passcount", 0),
        max_combo=_lenient(parse_int, record, "max_combo", 0),
        difficulty_rating=_lenient(parse_float, record, "difficultyrating", 0.0),
    )


def set_from_record(record: Record) -> Set:
    """Build a Set (without children) from the set-level fields of a record."""
    approved_date = ZERO_TIME
    if record.get("approved_date") is not None:
        approved_date = _lenient(parse_osu_datetime, record, "approved_date", ZERO_TIME)

    return Set(
        id=parse_int("beatmapset_id", record.get("beatmapset_id")),
        ranked_status=parse_ranked_status("approved", record.get("approved")),
        submit_date=_lenient(parse_osu_datetime, record, "submit_date", ZERO_TIME),
        approved_date=approved_date,
        last_update=_lenient(parse_osu_datetime, record, "last_update", ZERO_TIME),
        last_checked=utcnow(),
        artist=_str_or_empty(record, "artist"),
        artist_unicode=_optional_str(record, "artist_unicode"),
        title=_str_or_empty(record, "title"),
        title_unicode=_optional_str(record, "title_unicode"),
        creator=_str_or_empty(record, "creator"),
        source=_str_or_empty(record, "source"),
        tags=_str_or_empty(record, "tags"),
        has_video=_lenient(parse_bool, record, "video", False),
        has_storyboard=_lenient(parse_bool, record, "storyboard", False),
        download_unavailable=_lenient(parse_bool, record, "download_unavailable", False),
        audio_unavailable=_lenient(parse_bool, record, "audio_unavailable", False),
        genre=_lenient(parse_int, record, "genre_id", 0),
        language=_lenient(parse_int, record, "language_id", 0),
        favourites=_lenient(parse_int, record, "favourite_count", 0),
        rating=_lenient(parse_float, record, "rating", 0.0),
    )


class DetailFetcher:
    """Fetches sets and beatmaps from the v1 detail endpoint."""

    def __init__(self, transport: OsuTransport) -> None:
        self.transport = transport

    async def fetch_beatmap(self, beatmap_id: int, timeout: float | None = None) -> Beatmap:
        data = await self.transport.get_beatmaps(b=beatmap_id, timeout=timeout)
        if not data:
            raise NotFoundError(f"beatmap {beatmap_id} not found")

        return beatmap_from_record(data[0])

    async def fetch_beatmaps(self, ids: Iterable[int], timeout: float | None = None) -> list[Beatmap]:
        """Fetch several beatmaps; missing or malformed ones are skipped."""
        beatmaps = []
        for beatmap_id in ids:
            try:
                beatmaps.append(await self.fetch_beatmap(beatmap_id, timeout=timeout))
            except NotFoundError:
                logger.warning(f"Beatmap {beatmap_id} disappeared upstream, skipping")
            except DataFormatError as e:
                logger.warning(f"Skipping malformed beatmap {beatmap_id}: {e}")

        return beatmaps

    async def fetch_set(self, set_id: int, with_children: bool = False, timeout: float | None = None) -> Set:
        data = await self.transport.get_beatmaps(s=set_id, timeout=timeout)
        if not data:
            raise NotFoundError(f"set {set_id} not found")

        s = set_from_record(data[0])

        if with_children:
            # collect every id before fetching so the batch is complete
            ids = []
            for record in data:
                try:
                    ids.append(parse_int("beatmap_id", record.get("beatmap_id")))
                except DataFormatError as e:
                    logger.warning(f"Skipping a child of set {set_id}: {e}")

            s.children = await self.fetch_beatmaps(ids, timeout=timeout)

        return s
