"""Custom exception hierarchy for statsagg."""

from __future__ import annotations


class StatsAggError(Exception):
    """Base exception for all statsagg errors."""


class StatsAggConfigError(StatsAggError):
    """Invalid or missing configuration."""


class MalformedLineError(StatsAggError):
    """An input line has no key/payload delimiter.

    This is fatal: the line cannot be attributed to any key, so the run
    stops at the offending line.
    """

    def __init__(self, message: str, *, line_number: int = 0, line: str = "") -> None:
        self.line_number = line_number
        self.line = line
        super().__init__(message)


class RecordDecodeError(StatsAggError):
    """Record payload is not valid JSON or is not a JSON object.

    Recoverable: the record is skipped and ingestion continues.
    """

    def __init__(self, message: str, *, line_number: int = 0, payload: str = "") -> None:
        self.line_number = line_number
        self.payload = payload
        super().__init__(message)


class MergeConsistencyError(StatsAggError):
    """A value's kind tag disagrees with the data it carries.

    Raised for an ``object`` that does not hold a mapping or an ``array``
    that does not hold a list.  Only the affected field is skipped.
    """

    def __init__(self, message: str, *, field: str = "") -> None:
        self.field = field
        super().__init__(message)
