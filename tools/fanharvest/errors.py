"""Error taxonomy.

``InputError`` and ``DevError`` abort the whole operation. ``FetchFailure``
subclasses describe a single failed request and are recorded per item.
"""

from __future__ import annotations


class HarvesterError(RuntimeError):
    """Base class for every error raised by fanharvest."""


class InputError(HarvesterError, ValueError):
    """Raised when an identifier or page spec is malformed."""


class DevError(HarvesterError):
    """Raised when a caller breaks an internal contract."""


class FetchFailure(HarvesterError):
    """A single request failed. Recorded, never fatal to a batch."""


class ConnectError(FetchFailure):
    """Transport failure or timeout."""


class ResponseError(FetchFailure):
    """The platform answered with a non-200 status."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class JSONError(FetchFailure):
    """The response body was not JSON or did not have the expected shape."""
