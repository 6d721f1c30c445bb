"""statsagg - Roll up keyed JSON records into one aggregated object per key."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("statsagg")
except PackageNotFoundError:
    __version__ = "0+local"
from statsagg.config import AggregatorConfig
from statsagg.exceptions import (
    MalformedLineError,
    MergeConsistencyError,
    RecordDecodeError,
    StatsAggConfigError,
    StatsAggError,
)
from statsagg.ingestion import Aggregator, IngestStats, aggregate_lines
from statsagg.merge import merge, merge_values
from statsagg.output import LineWriter, write_entries
from statsagg.records import Record, parse_line
from statsagg.store import AggregationStore
from statsagg.values import NumericKind, Value, ValueKind, classify, decode_value, encode_value

__all__ = [
    "__version__",
    "AggregationStore",
    "Aggregator",
    "AggregatorConfig",
    "IngestStats",
    "LineWriter",
    "MalformedLineError",
    "MergeConsistencyError",
    "NumericKind",
    "Record",
    "RecordDecodeError",
    "StatsAggConfigError",
    "StatsAggError",
    "Value",
    "ValueKind",
    "aggregate_lines",
    "classify",
    "decode_value",
    "encode_value",
    "merge",
    "merge_values",
    "parse_line",
    "write_entries",
]
