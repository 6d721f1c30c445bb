"""Value model for aggregated JSON trees.

Every decoded JSON value is wrapped in a :class:`Value` which carries an
explicit :class:`ValueKind` tag and, for numbers, a :class:`NumericKind`.
The numeric subkind is fixed when the literal is decoded:

* literals with a fraction or exponent part are ``FLOAT``
* integer literals in the signed 64-bit range are ``SIGNED``
* larger integer literals that fit in 64 unsigned bits are ``UNSIGNED``
* anything wider falls back to ``FLOAT``

Keeping the subkind on the value lets the merge engine pick integer or
floating point summation without inspecting Python runtime types again.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

SIGNED_MIN = -(1 << 63)
SIGNED_MAX = (1 << 63) - 1
UNSIGNED_MAX = (1 << 64) - 1

# Deepest container nesting accepted from decoded input. Merge, output and
# snapshots recurse once or twice per level.
MAX_DEPTH = 256


class ValueKind(StrEnum):
    NULL = "null"
    BOOL = "bool"
    STRING = "string"
    NUMBER = "number"
    OBJECT = "object"
    ARRAY = "array"


class NumericKind(StrEnum):
    SIGNED = "signed"
    UNSIGNED = "unsigned"
    FLOAT = "float"


@dataclass(slots=True)
class Value:
    """A tagged JSON value.

    ``data`` holds the Python payload for the kind: ``None``, ``bool``,
    ``str``, ``int``/``float`` for numbers, ``dict[str, Value]`` for
    objects and ``list[Value]`` for arrays.
    """

    kind: ValueKind
    data: Any = None
    numeric: NumericKind | None = None

    @property
    def is_numeric(self) -> bool:
        return self.kind is ValueKind.NUMBER

    @property
    def is_integer(self) -> bool:
        return self.numeric is NumericKind.SIGNED or self.numeric is NumericKind.UNSIGNED

    @classmethod
    def null(cls) -> Value:
        return cls(ValueKind.NULL)

    @classmethod
    def boolean(cls, flag: bool) -> Value:
        return cls(ValueKind.BOOL, flag)

    @classmethod
    def string(cls, text: str) -> Value:
        return cls(ValueKind.STRING, text)

    @classmethod
    def signed(cls, number: int) -> Value:
        return cls(ValueKind.NUMBER, number, NumericKind.SIGNED)

    @classmethod
    def unsigned(cls, number: int) -> Value:
        return cls(ValueKind.NUMBER, number, NumericKind.UNSIGNED)

    @classmethod
    def floating(cls, number: float) -> Value:
        return cls(ValueKind.NUMBER, float(number), NumericKind.FLOAT)

    @classmethod
    def object(cls, members: dict[str, Value] | None = None) -> Value:
        return cls(ValueKind.OBJECT, {} if members is None else members)

    @classmethod
    def array(cls, items: list[Value] | None = None) -> Value:
        return cls(ValueKind.ARRAY, [] if items is None else items)

    def clone(self) -> Value:
        """Return a deep copy that shares no containers with ``self``.

        Walks the tree with an explicit stack so nesting depth is not
        limited by the interpreter recursion limit.
        """
        root = Value(self.kind, self.data, self.numeric)
        pending = [root]
        while pending:
            node = pending.pop()
            if node.kind is ValueKind.OBJECT and isinstance(node.data, dict):
                node.data = {key: Value(item.kind, item.data, item.numeric) for key, item in node.data.items()}
                pending.extend(node.data.values())
            elif node.kind is ValueKind.ARRAY and isinstance(node.data, list):
                node.data = [Value(item.kind, item.data, item.numeric) for item in node.data]
                pending.extend(node.data)
        return root


def _classify_int(number: int) -> NumericKind:
    if SIGNED_MIN <= number <= SIGNED_MAX:
        return NumericKind.SIGNED
    if 0 <= number <= UNSIGNED_MAX:
        return NumericKind.UNSIGNED
    return NumericKind.FLOAT


def classify(obj: Any) -> tuple[ValueKind, NumericKind | None]:
    """Map a decoded Python value to its kind and numeric subkind.

    ``bool`` is checked before ``int`` so JSON booleans are never numeric.
    Raises :class:`TypeError` for objects that have no JSON counterpart.
    """
    if obj is None:
        return ValueKind.NULL, None
    if isinstance(obj, bool):
        return ValueKind.BOOL, None
    if isinstance(obj, str):
        return ValueKind.STRING, None
    if isinstance(obj, int):
        return ValueKind.NUMBER, _classify_int(obj)
    if isinstance(obj, float):
        return ValueKind.NUMBER, NumericKind.FLOAT
    if isinstance(obj, dict):
        return ValueKind.OBJECT, None
    if isinstance(obj, (list, tuple)):
        return ValueKind.ARRAY, None
    raise TypeError(f"unsupported value type: {type(obj).__name__}")


def from_native(obj: Any, *, _depth: int = 0) -> Value:
    """Build a :class:`Value` tree from decoded Python data.

    Raises :class:`ValueError` when containers nest deeper than
    :data:`MAX_DEPTH`.
    """
    kind, numeric = classify(obj)
    if kind in (ValueKind.OBJECT, ValueKind.ARRAY) and _depth >= MAX_DEPTH:
        raise ValueError(f"containers nested deeper than {MAX_DEPTH} levels")
    if kind is ValueKind.NUMBER:
        if numeric is NumericKind.FLOAT:
            try:
                return Value.floating(float(obj))
            except OverflowError as exc:
                raise ValueError(f"number {obj!r} out of range") from exc
        return Value(kind, obj, numeric)
    if kind is ValueKind.OBJECT:
        members: dict[str, Value] = {}
        for key, item in obj.items():
            if not isinstance(key, str):
                raise TypeError(f"object keys must be strings, got {type(key).__name__}")
            members[key] = from_native(item, _depth=_depth + 1)
        return Value.object(members)
    if kind is ValueKind.ARRAY:
        return Value.array([from_native(item, _depth=_depth + 1) for item in obj])
    return Value(kind, obj)


def to_native(value: Value) -> Any:
    """Convert a :class:`Value` tree back into plain Python data."""
    if value.kind is ValueKind.OBJECT:
        return {key: to_native(item) for key, item in value.data.items()}
    if value.kind is ValueKind.ARRAY:
        return [to_native(item) for item in value.data]
    return value.data


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name!r}")


def _parse_float(literal: str) -> float:
    number = float(literal)
    if math.isinf(number):
        raise ValueError(f"number {literal!r} out of range")
    return number


def decode_value(text: str) -> Value:
    """Decode a JSON document into a :class:`Value` tree.

    Raises :class:`ValueError` (including :class:`json.JSONDecodeError`)
    for malformed input, ``NaN``/``Infinity`` literals, floats that
    overflow a double and documents nested deeper than :data:`MAX_DEPTH`.
    """
    try:
        native = json.loads(text, parse_float=_parse_float, parse_constant=_reject_constant)
    except RecursionError as exc:
        raise ValueError(f"containers nested deeper than {MAX_DEPTH} levels") from exc
    return from_native(native)


def encode_value(value: Value) -> str:
    """Serialize a :class:`Value` as compact JSON with sorted object keys.

    Raises :class:`ValueError` when a float is not finite, when the tree is
    too deep to serialize, or when a string holds a lone surrogate that
    UTF-8 cannot represent.
    """
    try:
        serialized = json.dumps(
            to_native(value),
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
    except RecursionError as exc:
        raise ValueError("value nested too deeply to serialize") from exc
    serialized.encode("utf-8")
    return serialized
