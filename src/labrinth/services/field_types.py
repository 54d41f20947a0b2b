"""Field type system: validation and storage mapping for loader field values.

A logical value (``int``, ``str``, ``bool``, enum value string, or a list of
those) maps onto one ``StoredValue`` per storage row.  ``StoredValue`` is a
closed tagged union mirroring the three value columns of ``version_fields``;
the store is the only place that turns it into columns and back.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from labrinth.errors import InvalidFieldValue, SchemaError
from labrinth.models.loader_field import LoaderField, LoaderFieldEnumValue, LoaderFieldType

# ---------------------------------------------------------------------------
# Storage variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class IntValue:
    value: int


@dataclass(frozen=True, slots=True)
class EnumValue:
    id: int
    value: str


@dataclass(frozen=True, slots=True)
class TextValue:
    value: str


StoredValue = IntValue | EnumValue | TextValue


@dataclass(frozen=True, slots=True)
class ValidatedField:
    """A submitted value that passed validation, ready for ``set_fields``.

    An empty ``stored`` list clears the field.
    """

    field: LoaderField
    stored: tuple[StoredValue, ...]

    @property
    def name(self) -> str:
        return self.field.field

    @property
    def value(self) -> Any:
        if not self.stored:
            return None
        return deserialize(self.field.field_type, self.stored)


INT_MIN = -(2**63)
INT_MAX = 2**63 - 1

_KIND_NAMES = {
    LoaderFieldType.integer: "an integer",
    LoaderFieldType.text: "a string",
    LoaderFieldType.boolean: "a boolean",
    LoaderFieldType.enum: "an enum value string",
}


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def _to_stored(
    element: LoaderFieldType,
    item: Any,
    enum_values: Mapping[str, LoaderFieldEnumValue] | None,
) -> StoredValue:
    if element is LoaderFieldType.integer:
        return IntValue(int(item))
    if element is LoaderFieldType.boolean:
        return IntValue(1 if item else 0)
    if element is LoaderFieldType.text:
        return TextValue(str(item))
    enum_value = (enum_values or {}).get(item)
    if enum_value is None or enum_value.id is None:
        raise InvalidFieldValue(f"'{item}' is not a valid value")
    return EnumValue(id=enum_value.id, value=enum_value.value)


def serialize(
    field_type: LoaderFieldType,
    value: Any,
    enum_values: Mapping[str, LoaderFieldEnumValue] | None = None,
) -> tuple[StoredValue, ...]:
    """Map a logical value onto storage rows; enum kinds need the enum's values by name."""
    items = list(value) if field_type.is_array else [value]
    return tuple(_to_stored(field_type.element, item, enum_values) for item in items)


def _from_stored(element: LoaderFieldType, stored: StoredValue) -> Any:
    if element is LoaderFieldType.integer and isinstance(stored, IntValue):
        return stored.value
    if element is LoaderFieldType.boolean and isinstance(stored, IntValue):
        if stored.value not in (0, 1):
            raise SchemaError(f"Boolean stored as {stored.value}, expected 0 or 1")
        return stored.value == 1
    if element is LoaderFieldType.text and isinstance(stored, TextValue):
        return stored.value
    if element is LoaderFieldType.enum and isinstance(stored, EnumValue):
        return stored.value
    raise SchemaError(f"{type(stored).__name__} cannot hold a {element} value")


def deserialize(field_type: LoaderFieldType, stored: Sequence[StoredValue]) -> Any:
    """Rebuild the logical value from one field's rows, in row order."""
    values = [_from_stored(field_type.element, s) for s in stored]
    if field_type.is_array:
        return values
    if len(values) != 1:
        raise SchemaError(f"Expected exactly one {field_type} value, found {len(values)}")
    return values[0]


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _check_element(
    element: LoaderFieldType,
    item: Any,
    enum_values: Mapping[str, LoaderFieldEnumValue],
) -> None:
    # bool is an int subclass, so kinds are checked explicitly
    if element is LoaderFieldType.integer:
        ok = isinstance(item, int) and not isinstance(item, bool)
        if ok and not INT_MIN <= item <= INT_MAX:
            raise InvalidFieldValue(f"{item} is out of the 64-bit integer range")
    elif element is LoaderFieldType.boolean:
        ok = isinstance(item, bool)
    else:
        ok = isinstance(item, str)
    if not ok:
        raise InvalidFieldValue(f"expected {_KIND_NAMES[element]}, got {type(item).__name__}")

    if element is LoaderFieldType.enum:
        enum_value = enum_values.get(item)
        if enum_value is None:
            raise InvalidFieldValue(f"'{item}' is not a valid value")
        if enum_value.deprecated:
            raise InvalidFieldValue(f"'{item}' is deprecated")


def _check_scalar_bounds(field: LoaderField, value: Any) -> None:
    kind = field.field_type
    if kind is LoaderFieldType.integer:
        if field.min_val is not None and value < field.min_val:
            raise InvalidFieldValue(f"{value} is less than the minimum of {field.min_val}")
        if field.max_val is not None and value > field.max_val:
            raise InvalidFieldValue(f"{value} is greater than the maximum of {field.max_val}")
    elif kind is LoaderFieldType.text:
        if field.min_val is not None and len(value) < field.min_val:
            raise InvalidFieldValue(f"must be at least {field.min_val} character(s) long")
        if field.max_val is not None and len(value) > field.max_val:
            raise InvalidFieldValue(f"must be at most {field.max_val} character(s) long")


def _check_items(field: LoaderField, items: list[Any]) -> None:
    if field.min_val is not None and len(items) < field.min_val:
        raise InvalidFieldValue(
            f"must contain at least {field.min_val} item(s), got {len(items)}"
        )
    if field.max_val is not None and len(items) > field.max_val:
        raise InvalidFieldValue(f"must contain at most {field.max_val} item(s), got {len(items)}")
    if field.field_type is LoaderFieldType.array_enum or field.unique_items:
        seen: set[Any] = set()
        for item in items:
            if item in seen:
                raise InvalidFieldValue(f"contains duplicate value '{item}'")
            seen.add(item)


def validate(
    field: LoaderField,
    value: Any,
    enum_values: Mapping[str, LoaderFieldEnumValue] | None = None,
) -> ValidatedField:
    """Check ``value`` against ``field`` and convert it to storage variants.

    ``enum_values`` maps value strings of the field's enum to their rows and
    is only consulted for enum kinds.  ``None`` clears an optional field.

    Raises:
        InvalidFieldValue: with a human-readable reason for this field.
    """
    enum_values = enum_values or {}
    kind = field.field_type

    if value is None:
        if field.optional:
            return ValidatedField(field=field, stored=())
        raise InvalidFieldValue("is required")

    if kind.is_array:
        if not isinstance(value, list | tuple):
            raise InvalidFieldValue(f"expected an array, got {type(value).__name__}")
        items = list(value)
        for item in items:
            _check_element(kind.element, item, enum_values)
        _check_items(field, items)
    else:
        _check_element(kind, value, enum_values)
        _check_scalar_bounds(field, value)

    return ValidatedField(field=field, stored=serialize(kind, value, enum_values))
