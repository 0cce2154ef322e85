from . import Base
from sqlalchemy import (
    Boolean, Column, DateTime, Float, ForeignKey, Index, Integer,
    SmallInteger, String, Text
)
from app.models import ZERO_TIME


# --- tables ----------------------------------------------------

class SetsTable(Base):
    __tablename__ = "sets"

    id = Column(Integer, primary_key=True, autoincrement=False)
    topic_id = Column(Integer, nullable=False, default=0)
    ranked_status = Column(SmallInteger, nullable=False)
    submit_date = Column(DateTime, nullable=False, default=ZERO_TIME)
    approved_date = Column(DateTime, nullable=False, default=ZERO_TIME)
    last_update = Column(DateTime, nullable=False, default=ZERO_TIME)
    last_checked = Column(DateTime, nullable=False)

    artist = Column(String(255), nullable=False, default="")
    artist_unicode = Column(String(255), nullable=False, default="")
    title = Column(String(255), nullable=False, default="")
    title_unicode = Column(String(255), nullable=False, default="")
    creator = Column(String(255), nullable=False, default="")
    source = Column(String(255), nullable=False, default="")
    tags = Column(Text, nullable=False, default="")

    has_video = Column(Boolean, nullable=False, default=False)
    has_storyboard = Column(Boolean, nullable=False, default=False)
    download_unavailable = Column(Boolean, nullable=False, default=False)
    audio_unavailable = Column(Boolean, nullable=False, default=False)

    genre = Column(Integer, nullable=False, default=0)  # osu provides int, keep as-is
    language = Column(Integer, nullable=False, default=0)  # osu provides int, keep as-is
    favourites = Column(Integer, nullable=False, default=0)
    rating = Column(Float, nullable=False, default=0.0)

    # bitmask of the modes found among the children, see compute_set_modes
    set_modes = Column(SmallInteger, nullable=False, default=0)

    __table_args__ = (
        Index("ix_sets_last_checked", "last_checked"),
        Index("ix_sets_ranked_status", "ranked_status"),
    )


class BeatmapsTable(Base):
    __tablename__ = "beatmaps"

    id = Column(Integer, primary_key=True, autoincrement=False)
    # deletes are cascaded by the store, not by the database
    parent_set_id = Column(Integer, ForeignKey("sets.id"), nullable=False)
    diff_name = Column(String(255), nullable=False, default="")
    file_md5 = Column(String(32), nullable=False, default="")
    mode = Column(SmallInteger, nullable=False)
    bpm = Column(Float, nullable=False, default=0.0)
    ar = Column(Float, nullable=False, default=0.0)
    od = Column(Float, nullable=False, default=0.0)
    cs = Column(Float, nullable=False, default=0.0)
    hp = Column(Float, nullable=False, default=0.0)
    total_length = Column(Integer, nullable=False, default=0)  # in seconds
    hit_length = Column(Integer, nullable=False, default=0)  # in seconds
    count_normal = Column(Integer, nullable=False, default=0)
    count_slider = Column(Integer, nullable=False, default=0)
    count_spinner = Column(Integer, nullable=False, default=0)
    playcount = Column(Integer, nullable=False, default=0)
    passcount = Column(Integer, nullable=False, default=0)
    max_combo = Column(Integer, nullable=False, default=0)
    difficulty_rating = Column(Float, nullable=False, default=0.0)

    __table_args__ = (
        Index("ix_beatmaps_parent_set", "parent_set_id"),
        Index("ix_beatmaps_mode", "mode"),
        Index("ix_beatmaps_file_md5", "file_md5"),
    )


SET_COLUMNS = (
    "id", "topic_id", "ranked_status", "submit_date", "approved_date",
    "last_update", "last_checked", "artist", "artist_unicode", "title",
    "title_unicode", "creator", "source", "tags", "has_video",
    "has_storyboard", "download_unavailable", "audio_unavailable", "genre",
    "language", "favourites", "rating",
)

BEATMAP_COLUMNS = (
    "id", "parent_set_id", "diff_name", "file_md5", "mode", "bpm",
    "ar", "od", "cs", "hp", "total_length", "hit_length",
    "count_normal", "count_slider", "count_spinner", "playcount",
    "passcount", "max_combo", "difficulty_rating",
)
