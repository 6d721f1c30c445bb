"""Helpers for log-friendly rendering of input lines.

Record payloads can be arbitrarily large; diagnostics only need enough of
them to locate the offending line.
"""

from __future__ import annotations


def truncate_for_log(text: str, *, max_chars: int = 200) -> str:
    """Return *text* cut down to *max_chars* characters for log messages."""
    if len(text) > max_chars:
        return f"{text[:max_chars]}…<truncated>"
    return text
