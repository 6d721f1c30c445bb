"""Command-line entry point.

Usage
-----
    statsagg [options] [inputfiles ...]

Reads ``<key><TAB><JSON object>`` lines from the given files (or standard
input), aggregates objects that share a key and writes one
``<key><TAB><JSON object>`` line per key.
"""

from __future__ import annotations

import argparse
import contextlib
import io
import logging
import sys
from collections.abc import Iterator, Sequence
from typing import TextIO

from statsagg.config import AggregatorConfig
from statsagg.exceptions import MalformedLineError, StatsAggConfigError
from statsagg.ingestion import Aggregator
from statsagg.output import LineWriter

_logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="statsagg",
        usage="%(prog)s [options] inputfiles ...",
        description=(
            "Aggregate JSON objects that share a key. Numbers are summed, nested objects are merged, "
            "arrays are appended and the last non-numeric scalar wins."
        ),
    )
    parser.add_argument("inputfiles", nargs="*", help="Input files (defaults to standard input)")
    parser.add_argument(
        "--del",
        dest="delimiter",
        default=None,
        help="Alternate delimiter between key and JSON object (default: tab)",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help=(
            "If more than LIMIT unique keys are found, the data will be flushed to output and "
            "aggregation starts over. A limit of zero means no limit."
        ),
    )
    parser.add_argument("--outfile", default=None, help="Output file (defaults to standard output)")
    parser.add_argument("--sort", dest="sort_output", action="store_true", default=None, help="Sort output")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser


@contextlib.contextmanager
def _open_output(path: str | None) -> Iterator[TextIO]:
    if path is None:
        yield sys.stdout
        return
    with open(path, "w", encoding="utf-8", newline="") as handle:
        yield handle


def _stdin_lines() -> TextIO:
    buffer = getattr(sys.stdin, "buffer", None)
    if buffer is None:
        return sys.stdin
    return io.TextIOWrapper(buffer, encoding="utf-8", errors="replace", newline="\n")


def run(config: AggregatorConfig, inputfiles: Sequence[str]) -> int:
    """Aggregate *inputfiles* (or stdin) per *config* and return an exit status."""
    try:
        with _open_output(config.outfile) as out:
            writer = LineWriter(out, sort_output=config.sort_output)
            aggregator = Aggregator(writer, config=config)
            if not inputfiles:
                aggregator.process_stream(_stdin_lines())
            else:
                for path in inputfiles:
                    aggregator.process_file(path)
            aggregator.flush()
    except MalformedLineError as exc:
        _logger.error("%s", exc)
        return 1
    except OSError as exc:
        _logger.error("%s", exc)
        return 1

    _logger.debug("Run complete: %s", aggregator.stats)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    overrides = {
        name: value
        for name, value in (
            ("delimiter", args.delimiter),
            ("limit", args.limit),
            ("outfile", args.outfile),
            ("sort_output", args.sort_output),
        )
        if value is not None
    }
    try:
        config = AggregatorConfig.from_env(**overrides)
    except StatsAggConfigError as exc:
        parser.error(str(exc))

    return run(config, args.inputfiles)


if __name__ == "__main__":
    raise SystemExit(main())
