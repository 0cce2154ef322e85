from ._base import OsuTransport
from .beatmap import DetailFetcher
from .credentials import CredentialProvider, StaticCredentialProvider
from .search import SearchIngester

__all__ = [
    "CredentialProvider",
    "DetailFetcher",
    "OsuTransport",
    "SearchIngester",
    "StaticCredentialProvider",
]
