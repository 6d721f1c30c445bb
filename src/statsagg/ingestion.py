"""Ingestion loop.

Feeds parsed records into an :class:`~statsagg.store.AggregationStore`
and applies the unique-key flush policy.  Processing is single threaded:
one line is read, parsed and ingested before the next.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from statsagg.config import AggregatorConfig
from statsagg.exceptions import MergeConsistencyError, RecordDecodeError, StatsAggConfigError
from statsagg.records import Record, parse_line
from statsagg.store import AggregationStore
from statsagg.values import Value

_logger = logging.getLogger(__name__)

FlushSink = Callable[[Mapping[str, Value]], None]


@dataclass
class IngestStats:
    """Counters for a single aggregation run."""

    lines: int = 0
    inserted: int = 0
    merged: int = 0
    skipped: int = 0
    field_errors: int = 0
    flushes: int = 0


class Aggregator:
    """Owns the store for one run and decides when to flush it.

    Parameters
    ----------
    sink
        Receives the full store contents at every flush.  Required when
        ``config.limit`` is non-zero; without a sink the final contents
        are read back with :attr:`store`.
    config
        Run configuration.  Defaults to :class:`AggregatorConfig`.
    """

    def __init__(self, sink: FlushSink | None = None, *, config: AggregatorConfig | None = None) -> None:
        self._config = config or AggregatorConfig()
        if self._config.limit > 0 and sink is None:
            raise StatsAggConfigError("a flush sink is required when a key limit is set")
        self._sink = sink
        self._store = AggregationStore()
        self.stats = IngestStats()

    @property
    def config(self) -> AggregatorConfig:
        return self._config

    @property
    def store(self) -> AggregationStore:
        return self._store

    def ingest_record(self, record: Record) -> bool:
        """Insert or merge one record, flushing first if the key limit is reached.

        Returns ``False`` when the payload is tagged as an object but does
        not hold one; the record is logged and skipped.
        """
        try:
            if record.key not in self._store:
                limit = self._config.limit
                if limit > 0 and len(self._store) >= limit:
                    _logger.debug("Key limit %d reached; flushing before key %r", limit, record.key)
                    self.flush()
                self._store.ingest(record.key, record.payload)
                self.stats.inserted += 1
                return True

            self.stats.field_errors += self._store.ingest(record.key, record.payload)
        except MergeConsistencyError as exc:
            _logger.warning("couldn't aggregate record for key %r: %s", record.key, exc)
            self.stats.skipped += 1
            return False
        self.stats.merged += 1
        return True

    def process_line(self, line: str, line_number: int = 0) -> bool:
        """Parse and ingest one line.

        Returns ``False`` when the record was skipped because its payload
        is not a usable JSON object.  A line without a delimiter raises
        :class:`~statsagg.exceptions.MalformedLineError`.
        """
        self.stats.lines += 1
        try:
            record = parse_line(line, self._config.delimiter, line_number=line_number)
        except RecordDecodeError as exc:
            _logger.warning("%s", exc)
            self.stats.skipped += 1
            return False
        return self.ingest_record(record)

    def process_stream(self, lines: Iterable[str]) -> None:
        """Ingest every line of *lines* (a text stream or any iterable of str)."""
        for line_number, line in enumerate(lines, start=1):
            self.process_line(line, line_number)

    def process_file(self, path: str | os.PathLike[str]) -> None:
        """Open *path* as UTF-8 text and ingest it.

        Invalid UTF-8 sequences are replaced rather than rejected.
        ``OSError`` from opening or reading propagates.
        """
        _logger.debug("Processing %s", path)
        with open(path, encoding="utf-8", errors="replace", newline="\n") as handle:
            self.process_stream(handle)

    def flush(self) -> None:
        """Hand the whole store to the sink and start over with an empty one."""
        if not len(self._store):
            return
        entries = self._store.drain()
        if self._sink is not None:
            self._sink(entries)
        self.stats.flushes += 1
        _logger.debug("Flushed %d key(s)", len(entries))


def aggregate_lines(lines: Iterable[str], delimiter: str = "\t") -> dict[str, dict[str, Any]]:
    """Aggregate *lines* without a key limit and return plain Python data."""
    aggregator = Aggregator(config=AggregatorConfig(delimiter=delimiter))
    aggregator.process_stream(lines)
    return aggregator.store.snapshot()
