"""Live search through the osu!direct search endpoint (`osu-search.php`).

The endpoint answers with plain text, one set per line, 14 `|` delimited
fields:

    0  filename        5  rating          10 has storyboard
    1  artist          6  date (ISO-8601) 11 (unused)
    2  title           7  set id          12 (unused)
    3  creator         8  topic id        13 children
    4  ranked status   9  has video

Children are a comma separated list of `<difficulty name> ★<rating>@<mode>`.
The sets built here are partial and are never written to the store.
"""

import re

from app.errors import DataFormatError
from app.logger import fetcher_logger as logger
from app.models import Beatmap, RankedStatus, SearchOptions, Set, ZERO_TIME
from app.util import md5_hex, parse_bool, parse_float, parse_int, parse_iso_datetime
from ._base import OsuTransport
from .beatmap import parse_ranked_status
from .credentials import CredentialProvider

SEARCH_PATH = "/web/osu-search.php"
SEARCH_PAGE_SIZE = 100
SEARCH_FIELDS = 14

DEFAULT_QUERY = "Newest"

# osu!api ranked status -> osu!direct status code
DIRECT_STATUSES = {
    RankedStatus.RANKED: 0,
    RankedStatus.APPROVED: 7,
    RankedStatus.LOVED: 8,
    RankedStatus.QUALIFIED: 3,
    RankedStatus.PENDING: 2,
    RankedStatus.GRAVEYARD: 5,
}
DIRECT_STATUS_ALL = 4
DIRECT_MODE_ALL = -1

STAR = "★"
# the star as it appears when the body was decoded with the wrong charset
MOJIBAKE_STAR = "â˜…"

CHILD_RATING_RE = re.compile(r"^\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)@([-+]?\d+)")


def api_to_direct_status(status: int) -> int:
    return DIRECT_STATUSES.get(status, 0)


def build_search_params(options: SearchOptions, username: str, password: str) -> dict[str, str | int]:
    status = options.status_filter()
    mode = options.mode_filter()

    return {
        "u": username,
        "h": md5_hex(password),
        "p": options.offset // SEARCH_PAGE_SIZE,
        "q": options.query or DEFAULT_QUERY,
        "r": api_to_direct_status(status) if status is not None else DIRECT_STATUS_ALL,
        "m": mode if mode is not None else DIRECT_MODE_ALL,
    }


def parse_children(set_id: int, value: str) -> list[Beatmap]:
    children = []
    for entry in value.replace(MOJIBAKE_STAR, STAR).split(","):
        parts = entry.split(STAR)
        if len(parts) < 2:
            continue

        match = CHILD_RATING_RE.match(parts[1])
        if match is None:
            logger.warning(f"Skipping malformed child {entry!r} of set {set_id}")
            continue

        children.append(
            Beatmap(
                id=0,
                parent_set_id=set_id,
                diff_name=parts[0].strip(),
                mode=int(match.group(2)),
                difficulty_rating=float(match.group(1)),
                # not provided by the search endpoint
                bpm=-1,
            )
        )

    return children


def _lenient(parse, name, value, default):
    try:
        return parse(name, value)
    except DataFormatError as e:
        logger.warning(f"Falling back to {default!r}: {e}")
        return default


def set_from_fields(fields: list[str]) -> Set:
    if len(fields) != SEARCH_FIELDS:
        raise DataFormatError("line", "|".join(fields), f"expected {SEARCH_FIELDS} fields, got {len(fields)}")

    # empty fields are zero, not missing
    fields = [f if f != "" else "0" for f in fields]

    s = Set(
        id=parse_int("set_id", fields[7]),
        ranked_status=parse_ranked_status("status", fields[4]),
        artist=fields[1],
        title=fields[2],
        creator=fields[3],
    )

    s.rating = _lenient(parse_float, "rating", fields[5], 0.0)
    s.topic_id = _lenient(parse_int, "topic_id", fields[8], 0)
    s.has_video = _lenient(parse_bool, "has_video", fields[9], False)
    s.has_storyboard = _lenient(parse_bool, "has_storyboard", fields[10], False)

    date = ZERO_TIME
    if fields[6] != "0":
        try:
            date = parse_iso_datetime("date", fields[6])
        except DataFormatError as e:
            logger.warning(f"Set {s.id}: {e}")

    # ranked, approved, qualified and loved sets carry their approval date
    if s.ranked_status > 0:
        s.approved_date = date
    else:
        s.last_update = date

    s.children = parse_children(s.id, fields[13])
    return s


def parse_search_response(body: str) -> list[Set]:
    sets = []
    for line in body.rstrip("\n").split("\n"):
        fields = line.split("|", SEARCH_FIELDS - 1)
        # the first line only holds the result count
        if len(fields) == 1:
            continue

        try:
            sets.append(set_from_fields(fields))
        except DataFormatError as e:
            logger.warning(f"Skipping malformed search result: {e}")

    return sets


class SearchIngester:
    def __init__(self, transport: OsuTransport, credentials: CredentialProvider) -> None:
        self.transport = transport
        self.credentials = credentials

    async def search(self, options: SearchOptions, timeout: float | None = None) -> list[Set]:
        degraded = options.degraded_filters()
        if degraded:
            logger.info(f"Search endpoint takes a single value per filter, sending {', '.join(degraded)} unfiltered")

        username, password = await self.credentials.get_account_credentials()
        params = build_search_params(options, username, password)

        body = await self.transport.get_text(SEARCH_PATH, params, timeout=timeout)
        sets = parse_search_response(body)

        if options.amount > 0:
            sets = sets[:options.amount]

        return sets
