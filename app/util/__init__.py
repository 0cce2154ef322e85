import hashlib

from datetime import datetime, timezone
from typing import Any

from app.errors import DataFormatError

OSU_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"

_TRUE_STRINGS = {"1", "t", "T", "true", "TRUE", "True"}
_FALSE_STRINGS = {"0", "f", "F", "false", "FALSE", "False"}

def utcnow() -> datetime:
    """Current naive UTC time, truncated to the second."""
    return datetime.now(timezone.utc).replace(tzinfo=None, microsecond=0)

def md5_hex(value: str) -> str:
    return hashlib.md5(value.encode()).hexdigest()

def parse_int(name: str, value: Any) -> int:
    if not isinstance(value, str):
        raise DataFormatError(name, value, "expected a string")
    try:
        return int(value)
    except ValueError:
        raise DataFormatError(name, value, "not an integer")

def parse_float(name: str, value: Any) -> float:
    if not isinstance(value, str):
        raise DataFormatError(name, value, "expected a string")
    try:
        return float(value)
    except ValueError:
        raise DataFormatError(name, value, "not a number")

def parse_bool(name: str, value: Any) -> bool:
    if value in _TRUE_STRINGS:
        return True
    if value in _FALSE_STRINGS:
        return False
    raise DataFormatError(name, value, "not a boolean")

def parse_osu_datetime(name: str, value: Any) -> datetime:
    """Parse the `YYYY-MM-DD HH:MM:SS` dates of the v1 API (always UTC)."""
    if not isinstance(value, str):
        raise DataFormatError(name, value, "expected a string")
    try:
        return datetime.strptime(value, OSU_DATETIME_FORMAT)
    except ValueError:
        raise DataFormatError(name, value, "not a datetime")

def parse_iso_datetime(name: str, value: Any) -> datetime:
    """Parse an ISO-8601 date with zone offset into naive UTC."""
    if not isinstance(value, str):
        raise DataFormatError(name, value, "expected a string")
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise DataFormatError(name, value, "not an ISO-8601 datetime")

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)

    return parsed
