import pytest

from labrinth.errors import InvalidFieldValue, SchemaError
from labrinth.models.loader_field import LoaderField, LoaderFieldEnumValue, LoaderFieldType
from labrinth.services.field_types import (
    EnumValue,
    IntValue,
    TextValue,
    deserialize,
    serialize,
    validate,
)


def _field(field_type: LoaderFieldType, **kwargs) -> LoaderField:
    return LoaderField(id=1, field="test_field", field_type=field_type, **kwargs)


@pytest.fixture
def versions() -> dict[str, LoaderFieldEnumValue]:
    return {
        "1.20.1": LoaderFieldEnumValue(id=10, enum_id=1, value="1.20.1"),
        "1.20.2": LoaderFieldEnumValue(id=11, enum_id=1, value="1.20.2"),
        "1.16.5": LoaderFieldEnumValue(id=12, enum_id=1, value="1.16.5", deprecated=True),
    }


class TestFieldType:
    def test_array_flag_and_element(self):
        assert LoaderFieldType.array_enum.is_array
        assert LoaderFieldType.array_enum.element is LoaderFieldType.enum
        assert not LoaderFieldType.integer.is_array
        assert LoaderFieldType.integer.element is LoaderFieldType.integer

    def test_is_enum(self):
        assert LoaderFieldType.enum.is_enum
        assert LoaderFieldType.array_enum.is_enum
        assert not LoaderFieldType.array_text.is_enum


class TestValidateScalars:
    def test_integer_within_bounds(self):
        result = validate(_field(LoaderFieldType.integer, min_val=0, max_val=10), 5)
        assert result.stored == (IntValue(5),)
        assert result.value == 5

    def test_integer_below_minimum(self):
        with pytest.raises(InvalidFieldValue, match="less than the minimum of 0"):
            validate(_field(LoaderFieldType.integer, min_val=0), -1)

    def test_integer_above_maximum(self):
        with pytest.raises(InvalidFieldValue, match="greater than the maximum of 10"):
            validate(_field(LoaderFieldType.integer, max_val=10), 11)

    def test_integer_outside_64_bit_range(self):
        with pytest.raises(InvalidFieldValue, match="out of the 64-bit integer range"):
            validate(_field(LoaderFieldType.integer), 2**63)
        assert validate(_field(LoaderFieldType.integer), 2**63 - 1).value == 2**63 - 1

    def test_integer_array_element_outside_range(self):
        with pytest.raises(InvalidFieldValue, match="out of the 64-bit integer range"):
            validate(_field(LoaderFieldType.array_integer), [1, -(2**63) - 1])

    def test_bool_is_not_an_integer(self):
        with pytest.raises(InvalidFieldValue, match="expected an integer, got bool"):
            validate(_field(LoaderFieldType.integer), True)

    def test_boolean_stored_as_int(self):
        assert validate(_field(LoaderFieldType.boolean), True).stored == (IntValue(1),)
        assert validate(_field(LoaderFieldType.boolean), False).stored == (IntValue(0),)

    def test_boolean_rejects_int(self):
        with pytest.raises(InvalidFieldValue, match="expected a boolean"):
            validate(_field(LoaderFieldType.boolean), 1)

    def test_text_length_bounds(self):
        lf = _field(LoaderFieldType.text, min_val=2, max_val=4)
        assert validate(lf, "abc").stored == (TextValue("abc"),)
        with pytest.raises(InvalidFieldValue, match="at least 2"):
            validate(lf, "a")
        with pytest.raises(InvalidFieldValue, match="at most 4"):
            validate(lf, "abcde")

    def test_enum_resolves_to_id(self, versions):
        result = validate(_field(LoaderFieldType.enum, enum_type=1), "1.20.1", versions)
        assert result.stored == (EnumValue(id=10, value="1.20.1"),)

    def test_enum_unknown_value(self, versions):
        with pytest.raises(InvalidFieldValue, match="'1.99' is not a valid value"):
            validate(_field(LoaderFieldType.enum, enum_type=1), "1.99", versions)

    def test_enum_deprecated_value(self, versions):
        with pytest.raises(InvalidFieldValue, match="deprecated"):
            validate(_field(LoaderFieldType.enum, enum_type=1), "1.16.5", versions)


class TestValidateArrays:
    def test_array_enum_preserves_order(self, versions):
        lf = _field(LoaderFieldType.array_enum, enum_type=1, min_val=1)
        result = validate(lf, ["1.20.2", "1.20.1"], versions)
        assert [s.value for s in result.stored] == ["1.20.2", "1.20.1"]
        assert result.value == ["1.20.2", "1.20.1"]

    def test_empty_array_below_minimum(self, versions):
        lf = _field(LoaderFieldType.array_enum, enum_type=1, min_val=1)
        with pytest.raises(InvalidFieldValue, match="at least 1"):
            validate(lf, [], versions)

    def test_array_max_items(self):
        lf = _field(LoaderFieldType.array_integer, max_val=2)
        with pytest.raises(InvalidFieldValue, match="at most 2 item"):
            validate(lf, [1, 2, 3])

    def test_array_enum_rejects_duplicates(self, versions):
        lf = _field(LoaderFieldType.array_enum, enum_type=1)
        with pytest.raises(InvalidFieldValue, match="duplicate value '1.20.1'"):
            validate(lf, ["1.20.1", "1.20.1"], versions)

    def test_array_text_allows_duplicates_unless_unique(self):
        assert len(validate(_field(LoaderFieldType.array_text), ["a", "a"]).stored) == 2
        with pytest.raises(InvalidFieldValue, match="duplicate"):
            validate(_field(LoaderFieldType.array_text, unique_items=True), ["a", "a"])

    def test_scalar_for_array_field(self):
        with pytest.raises(InvalidFieldValue, match="expected an array, got str"):
            validate(_field(LoaderFieldType.array_text), "a")

    def test_wrong_element_kind(self):
        with pytest.raises(InvalidFieldValue, match="expected an integer, got str"):
            validate(_field(LoaderFieldType.array_integer), [1, "2"])


class TestOptionality:
    def test_none_clears_optional_field(self):
        result = validate(_field(LoaderFieldType.text, optional=True), None)
        assert result.stored == ()
        assert result.value is None

    def test_none_on_required_field(self):
        with pytest.raises(InvalidFieldValue, match="is required"):
            validate(_field(LoaderFieldType.text, optional=False), None)


class TestStorageMapping:
    def test_serialize_array_integer(self):
        assert serialize(LoaderFieldType.array_integer, [3, 1]) == (IntValue(3), IntValue(1))

    def test_serialize_enum_without_values(self):
        with pytest.raises(InvalidFieldValue):
            serialize(LoaderFieldType.enum, "x", {})

    def test_deserialize_boolean(self):
        assert deserialize(LoaderFieldType.array_boolean, [IntValue(1), IntValue(0)]) == [
            True,
            False,
        ]

    def test_deserialize_boolean_out_of_range(self):
        with pytest.raises(SchemaError):
            deserialize(LoaderFieldType.boolean, [IntValue(2)])

    def test_deserialize_kind_mismatch(self):
        with pytest.raises(SchemaError):
            deserialize(LoaderFieldType.text, [IntValue(1)])

    def test_deserialize_scalar_with_many_rows(self):
        with pytest.raises(SchemaError, match="exactly one"):
            deserialize(LoaderFieldType.text, [TextValue("a"), TextValue("b")])
