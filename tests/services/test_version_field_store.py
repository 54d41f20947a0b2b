import pytest
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from labrinth.errors import FieldValidationError, NotFoundError, SchemaError, StorageError
from labrinth.models.loader_field import LoaderFieldType
from labrinth.models.version import VersionField
from labrinth.services.field_types import EnumValue, ValidatedField
from labrinth.services.loader_field_schema import create_field, get_field, get_loader_ids
from labrinth.services.version_field_store import (
    get_fields,
    get_fields_bulk,
    set_fields,
    validate_fields,
)


def _reasons(exc: FieldValidationError) -> dict[str, str]:
    return {i.field: i.reason for i in exc.issues}


class TestValidateFields:
    def test_fabric_without_optional_sides(self, seeded):
        validated = validate_fields(
            seeded, get_loader_ids(seeded, ["fabric"]), {"game_versions": ["1.20.1"]}
        )
        assert [v.name for v in validated] == ["game_versions"]
        assert validated[0].value == ["1.20.1"]

    def test_empty_game_versions_rejected(self, seeded):
        with pytest.raises(FieldValidationError) as exc:
            validate_fields(seeded, get_loader_ids(seeded, ["fabric"]), {"game_versions": []})
        assert "at least 1" in _reasons(exc.value)["game_versions"]

    def test_field_not_applicable_to_loader(self, seeded):
        with pytest.raises(FieldValidationError) as exc:
            validate_fields(
                seeded,
                get_loader_ids(seeded, ["datapack"]),
                {"game_versions": ["1.20.1"], "client_side": "required"},
            )
        assert _reasons(exc.value) == {
            "client_side": "is not a field of the selected loaders"
        }

    def test_missing_required_field(self, seeded):
        with pytest.raises(FieldValidationError) as exc:
            validate_fields(seeded, get_loader_ids(seeded, ["fabric"]), {})
        assert _reasons(exc.value) == {"game_versions": "is required"}

    def test_required_field_already_stored(self, seeded):
        validated = validate_fields(
            seeded,
            get_loader_ids(seeded, ["fabric"]),
            {"client_side": "optional"},
            existing=["game_versions"],
        )
        assert [v.name for v in validated] == ["client_side"]

    def test_all_issues_reported_together(self, seeded):
        with pytest.raises(FieldValidationError) as exc:
            validate_fields(
                seeded,
                get_loader_ids(seeded, ["fabric"]),
                {"client_side": "sometimes", "bogus": 1},
            )
        reasons = _reasons(exc.value)
        assert set(reasons) == {"client_side", "bogus", "game_versions"}
        assert "not a valid value" in reasons["client_side"]


class TestSetFields:
    def test_sequential_writes_last_wins(self, seeded, make_project, make_version):
        version = make_version(make_project())
        loader_ids = get_loader_ids(seeded, ["fabric"])
        for value in (["1.20.2"], ["1.20.3"]):
            set_fields(seeded, version.id, validate_fields(seeded, loader_ids, {"game_versions": value}))
        assert get_fields(seeded, version.id) == {"game_versions": ["1.20.3"]}

    def test_merge_leaves_other_fields(self, seeded, make_project, make_version):
        version = make_version(
            make_project(), fields={"game_versions": ["1.20.1"], "client_side": "required"}
        )
        loader_ids = get_loader_ids(seeded, ["fabric"])
        set_fields(
            seeded,
            version.id,
            validate_fields(seeded, loader_ids, {"server_side": "optional"}, existing=["game_versions"]),
        )
        assert get_fields(seeded, version.id) == {
            "game_versions": ["1.20.1"],
            "client_side": "required",
            "server_side": "optional",
        }

    def test_none_clears_optional_field(self, seeded, make_project, make_version):
        version = make_version(
            make_project(), fields={"game_versions": ["1.20.1"], "client_side": "required"}
        )
        loader_ids = get_loader_ids(seeded, ["fabric"])
        set_fields(
            seeded,
            version.id,
            validate_fields(seeded, loader_ids, {"client_side": None}, existing=["game_versions"]),
        )
        assert "client_side" not in get_fields(seeded, version.id)

    def test_array_order_preserved(self, seeded, make_project, make_version):
        version = make_version(
            make_project(), fields={"game_versions": ["1.20.4", "1.19.4", "1.20.1"]}
        )
        assert get_fields(seeded, version.id)["game_versions"] == ["1.20.4", "1.19.4", "1.20.1"]

    def test_missing_version(self, seeded):
        with pytest.raises(NotFoundError):
            set_fields(seeded, 999, [])

    def test_typed_values_round_trip(self, seeded, make_project, make_version):
        fabric = get_loader_ids(seeded, ["fabric"])
        create_field(seeded, "downloads_cap", LoaderFieldType.integer, loader_ids=fabric)
        create_field(seeded, "experimental", LoaderFieldType.boolean, loader_ids=fabric)
        create_field(seeded, "tags", LoaderFieldType.array_text, loader_ids=fabric)
        version = make_version(
            make_project(),
            fields={
                "game_versions": ["1.20.1"],
                "downloads_cap": 7,
                "experimental": False,
                "tags": ["perf", "perf"],
            },
        )
        fields = get_fields(seeded, version.id)
        assert fields["downloads_cap"] == 7
        assert fields["experimental"] is False
        assert fields["tags"] == ["perf", "perf"]


class TestReads:
    def test_bulk_read_matches_single_reads(self, seeded, make_project, make_version):
        project = make_project()
        a = make_version(project, fields={"game_versions": ["1.20.1"], "client_side": "required"})
        b = make_version(project, version_number="1.1.0", fields={"game_versions": ["1.20.2"]})
        bulk = get_fields_bulk(seeded, [a.id, b.id])
        assert bulk[a.id] == get_fields(seeded, a.id)
        assert bulk[b.id] == get_fields(seeded, b.id)

    def test_bulk_read_unknown_ids_empty(self, seeded):
        assert get_fields_bulk(seeded, [12345]) == {12345: {}}

    def test_bulk_read_no_ids(self, seeded):
        assert get_fields_bulk(seeded, []) == {}

    def test_get_fields_missing_version(self, seeded):
        with pytest.raises(NotFoundError):
            get_fields(seeded, 999)

    def test_two_rows_for_scalar_field(self, seeded, make_project, make_version):
        version = make_version(
            make_project(), fields={"game_versions": ["1.20.1"], "client_side": "required"}
        )
        lf = get_field(seeded, "client_side")
        row = seeded.exec(
            select(VersionField).where(
                VersionField.version_id == version.id, VersionField.field_id == lf.id
            )
        ).one()
        seeded.add(VersionField(version_id=version.id, field_id=lf.id, enum_value=row.enum_value))
        seeded.commit()
        with pytest.raises(SchemaError):
            get_fields(seeded, version.id)


class TestStorageInvariant:
    def test_row_with_two_columns_rejected(self, seeded, make_project, make_version):
        version = make_version(make_project())
        lf = get_field(seeded, "game_versions")
        seeded.add(
            VersionField(version_id=version.id, field_id=lf.id, int_value=1, string_value="x")
        )
        with pytest.raises(IntegrityError):
            seeded.commit()
        seeded.rollback()

    def test_row_without_value_rejected(self, seeded, make_project, make_version):
        version = make_version(make_project())
        lf = get_field(seeded, "game_versions")
        seeded.add(VersionField(version_id=version.id, field_id=lf.id))
        with pytest.raises(IntegrityError):
            seeded.commit()
        seeded.rollback()


class TestWriteFailure:
    def test_failed_insert_keeps_prior_rows(self, seeded, make_project, make_version):
        version = make_version(
            make_project(), fields={"game_versions": ["1.20.1"], "client_side": "required"}
        )
        version_id = version.id
        lf = get_field(seeded, "game_versions")
        dangling = ValidatedField(field=lf, stored=(EnumValue(id=987654, value="ghost"),))

        with pytest.raises(StorageError):
            set_fields(seeded, version_id, [dangling])

        assert get_fields(seeded, version_id) == {
            "game_versions": ["1.20.1"],
            "client_side": "required",
        }
