"""Input records and line parsing.

A record line is ``<key><delimiter><JSON object>``.  Only the first
delimiter splits, so the payload may contain the delimiter but the key
may not.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, InstanceOf, ValidationError, field_validator

from statsagg._logfmt import truncate_for_log
from statsagg.exceptions import MalformedLineError, RecordDecodeError
from statsagg.values import Value, ValueKind, decode_value

DEFAULT_DELIMITER = "\t"


class Record(BaseModel):
    """One parsed input line."""

    model_config = ConfigDict(frozen=True)

    key: str
    payload: InstanceOf[Value]

    @field_validator("payload")
    @classmethod
    def _require_object(cls, value: Value) -> Value:
        if value.kind is not ValueKind.OBJECT:
            raise ValueError(f"payload must be a JSON object, got {value.kind}")
        return value


def strip_line_terminator(line: str) -> str:
    if line.endswith("\n"):
        line = line[:-1]
        if line.endswith("\r"):
            line = line[:-1]
    return line


def split_line(line: str, delimiter: str = DEFAULT_DELIMITER, *, line_number: int = 0) -> tuple[str, str]:
    """Split a line into ``(key, payload_text)`` at the first *delimiter*.

    Raises :class:`MalformedLineError` when the delimiter is missing.
    """
    key, found, payload = strip_line_terminator(line).partition(delimiter)
    if not found:
        raise MalformedLineError(
            f"wrong number of fields at line {line_number}: {truncate_for_log(line.rstrip())!r}",
            line_number=line_number,
            line=line,
        )
    return key, payload


def parse_payload(text: str, *, line_number: int = 0) -> Value:
    """Decode a record payload.

    Raises :class:`RecordDecodeError` for invalid JSON.  Object-ness is
    checked by :class:`Record`.
    """
    try:
        return decode_value(text)
    except ValueError as exc:
        raise RecordDecodeError(
            f"couldn't parse JSON object {truncate_for_log(text)!r} at line {line_number}: {exc}",
            line_number=line_number,
            payload=text,
        ) from exc


def parse_line(line: str, delimiter: str = DEFAULT_DELIMITER, *, line_number: int = 0) -> Record:
    """Parse one input line into a :class:`Record`.

    Raises :class:`MalformedLineError` (fatal) or :class:`RecordDecodeError`
    (skip this record).
    """
    key, text = split_line(line, delimiter, line_number=line_number)
    payload = parse_payload(text, line_number=line_number)
    try:
        return Record(key=key, payload=payload)
    except ValidationError as exc:
        raise RecordDecodeError(
            f"couldn't parse JSON object {truncate_for_log(text)!r} at line {line_number}: "
            f"payload is a JSON {payload.kind}, not an object",
            line_number=line_number,
            payload=text,
        ) from exc
