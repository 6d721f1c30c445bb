"""In-memory aggregation store.

Maps each record key to its accumulated JSON object.  The store owns
every accumulator: payloads are copied on the way in, snapshots are
copied on the way out.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from statsagg.exceptions import MergeConsistencyError, RecordDecodeError
from statsagg.merge import merge
from statsagg.values import Value, ValueKind, to_native


class AggregationStore:
    """Key → accumulated object mapping.

    Entries are created on first sight of a key, merged into on every
    later record and only removed by :meth:`drain` or :meth:`clear`.
    """

    def __init__(self) -> None:
        self._entries: dict[str, Value] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def get(self, key: str) -> Value | None:
        return self._entries.get(key)

    def items(self) -> Iterator[tuple[str, Value]]:
        return iter(self._entries.items())

    def ingest(self, key: str, payload: Value) -> int:
        """Insert or merge *payload* for *key*.

        Returns the number of fields whose merge was aborted (always ``0``
        for a new key).

        Raises :class:`RecordDecodeError` for a non-object payload and
        :class:`MergeConsistencyError` for an object tag without a mapping.
        """
        if payload.kind is not ValueKind.OBJECT:
            raise RecordDecodeError(f"payload for key {key!r} is a JSON {payload.kind}, not an object")
        if not isinstance(payload.data, dict):
            raise MergeConsistencyError(
                f"payload for key {key!r} is tagged as object but holds {type(payload.data).__name__}",
                field=key,
            )

        owned = payload.clone()
        accumulator = self._entries.get(key)
        if accumulator is None:
            self._entries[key] = owned
            return 0
        return merge(accumulator, owned)

    def snapshot(self) -> dict[str, dict[str, Any]]:
        """Return the accumulated data as plain Python dicts."""
        return {key: to_native(value) for key, value in self._entries.items()}

    def drain(self) -> dict[str, Value]:
        """Hand over every entry and leave the store empty."""
        entries = self._entries
        self._entries = {}
        return entries

    def clear(self) -> None:
        self._entries = {}
