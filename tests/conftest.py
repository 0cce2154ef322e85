from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

import pytest

from app.database import init_models, make_engine, make_sessionmaker
from app.database.store import CatalogStore
from app.fetcher import OsuTransport

OSU_HOST = "osu.test"
OSU_URL = f"https://{OSU_HOST}"


def make_detail_record(**overrides: Any) -> dict[str, Any]:
    """A get_beatmaps record as returned by the v1 API (every value is a string)."""
    record = {
        "beatmap_id": "75",
        "beatmapset_id": "1",
        "version": "Normal",
        "file_md5": "a5b99395a42bd55bc5eb1d2411cbdf8b",
        "mode": "0",
        "bpm": "119.999",
        "diff_approach": "6",
        "diff_overall": "6",
        "diff_size": "4",
        "diff_drain": "6",
        "total_length": "142",
        "hit_length": "109",
        "count_normal": "160",
        "count_slider": "30",
        "count_spinner": "4",
        "playcount": "1000",
        "passcount": "200",
        "max_combo": "314",
        "difficultyrating": "2.4",
        "approved": "1",
        "approved_date": "2007-10-06 17:46:31",
        "submit_date": "2007-10-06 17:46:31",
        "last_update": "2007-10-06 17:46:31",
        "artist": "Kenji Ninuma",
        "artist_unicode": "二沼賢治",
        "title": "DISCOPRINCE",
        "title_unicode": "ディスコプリンス",
        "creator": "peppy",
        "source": "",
        "tags": "katamari",
        "video": "0",
        "storyboard": "1",
        "download_unavailable": "0",
        "audio_unavailable": "0",
        "genre_id": "2",
        "language_id": "3",
        "favourite_count": "500",
        "rating": "8.5",
    }
    record.update(overrides)
    return record


@pytest.fixture
def detail_record():
    return make_detail_record


@pytest.fixture
async def store(tmp_path) -> AsyncIterator[CatalogStore]:
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'mirror.db'}")
    await init_models(engine)

    yield CatalogStore(make_sessionmaker(engine))

    await engine.dispose()


@pytest.fixture
async def transport() -> AsyncIterator[OsuTransport]:
    transport = OsuTransport(base_url=OSU_URL, api_key="test-key", retries=2, backoff=0)
    yield transport
    await transport.close()
