"""Type-directed merge of JSON object trees.

This is the only component allowed to combine an incoming object into an
accumulated one.  The combine policy, per field:

- numeric accumulated value, non-numeric incoming: incoming is dropped
- non-numeric accumulated value, different incoming kind: incoming wins
- both objects: merged recursively in place
- both arrays: incoming items are appended
- same scalar kind: incoming wins
- both numeric: summed (integers wrap at 64 bits, floats widen)
"""

from __future__ import annotations

import logging

from statsagg.exceptions import MergeConsistencyError
from statsagg.values import SIGNED_MAX, NumericKind, Value, ValueKind

_logger = logging.getLogger(__name__)

_WIDTH = 1 << 64
_MASK = _WIDTH - 1


def wrap_signed(number: int) -> int:
    """Reduce *number* to a two's complement signed 64-bit integer."""
    number &= _MASK
    if number > SIGNED_MAX:
        number -= _WIDTH
    return number


def wrap_unsigned(number: int) -> int:
    """Reduce *number* modulo 2**64."""
    return number & _MASK


def add_numbers(old: Value, new: Value) -> Value:
    """Sum two numeric values.

    Same-signedness integers keep their subkind.  Mixed signedness
    reinterprets the unsigned operand as signed first, which is lossy
    above ``2**63 - 1``.  Any float operand makes the result a float.
    """
    if old.is_integer and new.is_integer:
        if old.numeric is new.numeric:
            if old.numeric is NumericKind.SIGNED:
                return Value.signed(wrap_signed(old.data + new.data))
            return Value.unsigned(wrap_unsigned(old.data + new.data))
        return Value.signed(wrap_signed(wrap_signed(old.data) + wrap_signed(new.data)))
    return Value.floating(float(old.data) + float(new.data))


def _members(value: Value, path: str) -> dict[str, Value]:
    if not isinstance(value.data, dict):
        raise MergeConsistencyError(
            f"value tagged as object holds {type(value.data).__name__}",
            field=path,
        )
    return value.data


def _items(value: Value, path: str) -> list[Value]:
    if not isinstance(value.data, list):
        raise MergeConsistencyError(
            f"value tagged as array holds {type(value.data).__name__}",
            field=path,
        )
    return value.data


def _combine(old: Value, new: Value, path: str) -> tuple[Value, int]:
    if old.is_numeric:
        if not new.is_numeric:
            return old, 0
        return add_numbers(old, new), 0

    if new.kind is not old.kind:
        return new, 0

    if old.kind is ValueKind.OBJECT:
        # Validate both sides before touching anything so a bad tag leaves old intact.
        target = _members(old, path)
        incoming = _members(new, path)
        return old, _merge_members(target, incoming, path)

    if old.kind is ValueKind.ARRAY:
        target_items = _items(old, path)
        target_items.extend(_items(new, path))
        return old, 0

    return new, 0


def _merge_members(target: dict[str, Value], incoming: dict[str, Value], path: str) -> int:
    errors = 0
    for key, new in incoming.items():
        old = target.get(key)
        if old is None:
            target[key] = new
            continue

        field_path = f"{path}.{key}" if path else key
        try:
            combined, nested_errors = _combine(old, new, field_path)
        except MergeConsistencyError as exc:
            _logger.warning("couldn't aggregate field %r: %s", exc.field, exc)
            errors += 1
            continue
        target[key] = combined
        errors += nested_errors
    return errors


def merge_values(old: Value, new: Value) -> Value:
    """Apply the combine policy to a single pair of values.

    Returns the value that should be stored.  Objects and arrays are
    updated in place and returned.  Raises :class:`MergeConsistencyError`
    when *old* or *new* is a malformed object/array at the top level;
    nested problems are logged and skipped.
    """
    combined, _errors = _combine(old, new, "")
    return combined


def merge(accumulator: Value, incoming: Value) -> int:
    """Merge *incoming* into *accumulator* in place.

    Both values must be objects.  *incoming* is consumed: its sub-trees
    may be moved into *accumulator*, so callers must not reuse it.

    Returns
    -------
    int
        Number of fields (at any depth) whose merge was aborted because
        of a :class:`MergeConsistencyError`.  Those fields keep the value
        they had before this call.
    """
    if accumulator.kind is not ValueKind.OBJECT or incoming.kind is not ValueKind.OBJECT:
        raise MergeConsistencyError(
            f"can only merge objects, got {accumulator.kind} and {incoming.kind}",
        )
    return _merge_members(_members(accumulator, ""), _members(incoming, ""), "")
