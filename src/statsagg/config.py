"""Aggregator configuration for statsagg."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from statsagg.exceptions import StatsAggConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class AggregatorConfig:
    """Aggregation run configuration.

    Parameters
    ----------
    delimiter : str
        Separator between the key and the JSON object on input lines.
        Only its first occurrence on a line splits.
    limit : int
        Flush threshold in unique keys.  When the store already holds
        ``limit`` keys and a new key arrives, everything aggregated so far
        is written out and aggregation starts over.  ``0`` means no limit.
    outfile : str or None
        Output file path.  ``None`` writes to standard output.
    sort_output : bool
        Emit keys in ascending order at every flush.
    """

    delimiter: str = "\t"
    limit: int = 0
    outfile: str | None = None
    sort_output: bool = False

    def __post_init__(self) -> None:
        if not self.delimiter:
            raise StatsAggConfigError("delimiter must be non-empty")
        if self.limit < 0:
            raise StatsAggConfigError(f"limit must be >= 0, got {self.limit}")

    @classmethod
    def from_env(cls, **overrides: Any) -> AggregatorConfig:
        """Create configuration from environment variables.

        Reads ``STATSAGG_DELIMITER``, ``STATSAGG_LIMIT``,
        ``STATSAGG_OUTFILE`` and ``STATSAGG_SORT``.  Explicit keyword
        arguments override environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        delimiter_env = env.get("STATSAGG_DELIMITER")
        if delimiter_env is not None and "delimiter" not in overrides:
            config_kwargs["delimiter"] = delimiter_env

        limit_env = env.get("STATSAGG_LIMIT")
        if limit_env is not None and "limit" not in overrides:
            try:
                config_kwargs["limit"] = int(limit_env)
            except ValueError as exc:
                raise StatsAggConfigError(f"STATSAGG_LIMIT must be an integer, got {limit_env!r}") from exc

        outfile_env = env.get("STATSAGG_OUTFILE")
        if outfile_env and "outfile" not in overrides:
            config_kwargs["outfile"] = outfile_env

        if "sort_output" not in overrides:
            config_kwargs["sort_output"] = _env_bool(env.get("STATSAGG_SORT"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
