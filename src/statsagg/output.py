"""Line serialization of aggregated entries.

Each key becomes one ``<key>\\t<json>\\n`` line.  The output separator is
always a tab, whatever delimiter the input used.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from typing import TextIO

from statsagg.values import Value, encode_value

_logger = logging.getLogger(__name__)

OUTPUT_DELIMITER = "\t"


def iter_output_lines(entries: Mapping[str, Value], *, sort_output: bool = False) -> Iterator[str]:
    """Yield one output line per entry.

    Entries that cannot be serialized (non-finite float sums, strings or
    keys UTF-8 cannot encode) are logged and skipped.
    """
    keys = sorted(entries) if sort_output else list(entries)
    for key in keys:
        try:
            key.encode("utf-8")
            serialized = encode_value(entries[key])
        except ValueError:
            _logger.error("couldn't convert data for key %r to JSON", key, exc_info=True)
            continue
        yield f"{key}{OUTPUT_DELIMITER}{serialized}\n"


def write_entries(entries: Mapping[str, Value], stream: TextIO, *, sort_output: bool = False) -> int:
    """Write *entries* to *stream* and return the number of lines written."""
    written = 0
    for line in iter_output_lines(entries, sort_output=sort_output):
        stream.write(line)
        written += 1
    return written


class LineWriter:
    """Flush sink that writes every batch it receives to a text stream."""

    def __init__(self, stream: TextIO, *, sort_output: bool = False) -> None:
        self._stream = stream
        self._sort_output = sort_output
        self.batches = 0
        self.lines = 0

    def __call__(self, entries: Mapping[str, Value]) -> None:
        self.lines += write_entries(entries, self._stream, sort_output=self._sort_output)
        self.batches += 1
        self._stream.flush()
