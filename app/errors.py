"""Error taxonomy shared by the fetchers, the store and the workers.

Callers are expected to tell "nothing found" apart from "something broke":
a `NotFoundError` should not be retried, a `TransportError` may be retried
with backoff.
"""


class MirrorError(Exception):
    """Base class for every error raised by the mirror."""


class TransportError(MirrorError):
    """The upstream endpoint could not be reached or answered with an error."""


class NotFoundError(MirrorError):
    """The upstream (or local) result was empty."""


class DataFormatError(MirrorError):
    """A required upstream field could not be normalized."""

    def __init__(self, field: str, value: object, reason: str = "") -> None:
        self.field = field
        self.value = value
        message = f"invalid value for {field!r}: {value!r}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class StorageError(MirrorError):
    """The persistence layer failed."""


class CredentialError(MirrorError):
    """The account credentials for the search endpoint are unavailable."""
