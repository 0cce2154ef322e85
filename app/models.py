import enum

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

# zero-value timestamp for dates the upstream does not provide
ZERO_TIME = datetime.min


# --- enums ----------------------------------------------------

class Mode(enum.IntEnum):
    STANDARD = 0
    TAIKO = 1
    CATCH = 2
    MANIA = 3

class RankedStatus(enum.IntEnum):
    GRAVEYARD = -2
    WIP = -1
    PENDING = 0
    RANKED = 1
    APPROVED = 2
    QUALIFIED = 3
    LOVED = 4

# statuses that can still change often, refreshed every 30 minutes
VOLATILE_STATUSES = (RankedStatus.QUALIFIED, RankedStatus.PENDING, RankedStatus.WIP)

# --- entities ----------------------------------------------------

@dataclass
class Beatmap:
    """A single playable difficulty of a set."""

    id: int
    parent_set_id: int
    diff_name: str = ""
    file_md5: str = ""
    mode: int = Mode.STANDARD
    bpm: float = 0.0
    ar: float = 0.0
    od: float = 0.0
    cs: float = 0.0
    hp: float = 0.0
    total_length: int = 0
    hit_length: int = 0
    count_normal: int = 0
    count_slider: int = 0
    count_spinner: int = 0
    playcount: int = 0
    passcount: int = 0
    max_combo: int = 0
    difficulty_rating: float = 0.0


@dataclass
class Set:
    """A group of beatmaps sharing the same song.

    Sets built from the search endpoint are partial: most metadata is
    left at its zero value and children carry no BPM (-1).
    """

    id: int
    children: list[Beatmap] = field(default_factory=list)
    topic_id: int = 0
    ranked_status: int = RankedStatus.PENDING
    submit_date: datetime = ZERO_TIME
    approved_date: datetime = ZERO_TIME
    last_update: datetime = ZERO_TIME
    last_checked: datetime = ZERO_TIME
    artist: str = ""
    artist_unicode: str = ""
    title: str = ""
    title_unicode: str = ""
    creator: str = ""
    source: str = ""
    tags: str = ""
    has_video: bool = False
    has_storyboard: bool = False
    download_unavailable: bool = False
    audio_unavailable: bool = False
    genre: int = 0
    language: int = 0
    favourites: int = 0
    rating: float = 0.0


def compute_set_modes(children: Iterable[Beatmap]) -> int:
    """Bitmask of the game modes present among `children`.

    Bit `m` is set when at least one child has mode `m`; modes outside
    0-3 are ignored.
    """
    set_modes = 0
    for bm in children:
        if 0 <= bm.mode < 4:
            set_modes |= 1 << bm.mode

    return set_modes & 0xFF


# --- search ----------------------------------------------------

@dataclass
class SearchOptions:
    """Filters for the upstream search endpoint.

    The endpoint accepts at most one ranked status and one mode per query.
    When more than one value is given for either filter, that filter is
    sent unfiltered instead; `degraded_filters()` names the affected ones.
    """

    status: list[int] = field(default_factory=list)
    mode: list[int] = field(default_factory=list)
    query: str = ""
    offset: int = 0
    amount: int = 100

    def status_filter(self) -> int | None:
        return self.status[0] if len(self.status) == 1 else None

    def mode_filter(self) -> int | None:
        return self.mode[0] if len(self.mode) == 1 else None

    def degraded_filters(self) -> list[str]:
        degraded = []
        if len(self.status) > 1:
            degraded.append("status")
        if len(self.mode) > 1:
            degraded.append("mode")

        return degraded
