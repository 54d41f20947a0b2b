import pytest

from labrinth.schemas.version import LegacyVersionCreate, LegacyVersionUpdate
from labrinth.services.legacy import (
    LegacySideType,
    fields_from_legacy,
    legacy_fields,
    legacy_loaders,
    legacy_project_fields,
    legacy_project_type,
)
from labrinth.services.legacy_service import (
    create_legacy_version,
    get_legacy_project,
    update_legacy_version,
)
from labrinth.services.version_service import get_version

UNSUPPORTED = LegacySideType.unsupported


class TestLegacyFields:
    def test_synthesised_from_fields(self):
        lf = legacy_fields(
            {"game_versions": ["1.20.1"], "client_side": "required", "server_side": "optional"},
            ["fabric"],
            UNSUPPORTED,
        )
        assert lf.game_versions == ["1.20.1"]
        assert lf.client_side is LegacySideType.required
        assert lf.server_side is LegacySideType.optional
        assert lf.loaders == ["fabric"]

    def test_missing_sides_use_default(self):
        lf = legacy_fields({"game_versions": ["1.20.1"]}, ["datapack"], UNSUPPORTED)
        assert lf.client_side is UNSUPPORTED
        assert lf.server_side is UNSUPPORTED

    def test_unrecognised_side_is_unknown(self):
        lf = legacy_fields({"client_side": "sometimes"}, [], UNSUPPORTED)
        assert lf.client_side is LegacySideType.unknown

    def test_mrpack_reports_mrpack_loaders(self):
        assert legacy_loaders({"mrpack_loaders": ["fabric", "quilt"]}, ["mrpack"]) == [
            "fabric",
            "quilt",
        ]

    def test_mrpack_without_field_kept(self):
        assert legacy_loaders({}, ["mrpack"]) == ["mrpack"]


class TestLegacyProjectFields:
    def test_union_and_newest_sides(self):
        agg = legacy_project_fields(
            [
                ({"game_versions": ["1.20.2"], "client_side": "optional"}, ["fabric"]),
                (
                    {"game_versions": ["1.20.1", "1.20.2"], "client_side": "required"},
                    ["forge"],
                ),
            ],
            UNSUPPORTED,
        )
        assert agg.game_versions == ["1.20.2", "1.20.1"]
        assert agg.loaders == ["fabric", "forge"]
        assert agg.client_side is LegacySideType.optional
        assert agg.server_side is UNSUPPORTED

    def test_no_versions(self):
        agg = legacy_project_fields([], LegacySideType.unknown)
        assert agg.game_versions == []
        assert agg.client_side is LegacySideType.unknown


class TestLegacyProjectType:
    @pytest.mark.parametrize(
        ("types", "expected"),
        [
            ({"mod", "modpack"}, "modpack"),
            ({"mod", "datapack"}, "mod"),
            ({"datapack"}, "mod"),
            ({"plugin"}, "mod"),
            ({"resourcepack"}, "resourcepack"),
            (set(), "project"),
        ],
    )
    def test_collapse(self, types, expected):
        assert legacy_project_type(types) == expected


class TestFieldsFromLegacy:
    def test_translates_attributes(self):
        payload = fields_from_legacy(
            game_versions=["1.20.1"],
            client_side=LegacySideType.required,
            server_side=LegacySideType.unknown,
        )
        assert payload == {"game_versions": ["1.20.1"], "client_side": "required"}

    def test_drops_non_applicable(self):
        payload = fields_from_legacy(
            game_versions=["1.20.1"],
            client_side=LegacySideType.required,
            applicable={"game_versions"},
        )
        assert payload == {"game_versions": ["1.20.1"]}

    def test_nothing_given(self):
        assert fields_from_legacy() == {}


class TestLegacyService:
    def test_datapack_write_ignores_sides(self, seeded, make_project):
        project = make_project(slug="my-datapack")
        out = create_legacy_version(
            seeded,
            LegacyVersionCreate(
                project_id=project.id,
                name="v1",
                version_number="1.0.0",
                loaders=["datapack"],
                game_versions=["1.20.1"],
                client_side=LegacySideType.required,
                server_side=LegacySideType.required,
            ),
        )
        assert get_version(seeded, out.id).fields == {"game_versions": ["1.20.1"]}
        assert out.client_side is UNSUPPORTED

    def test_legacy_update_merges(self, seeded, make_project, make_version):
        version = make_version(
            make_project(), fields={"game_versions": ["1.20.1"], "client_side": "required"}
        )
        out = update_legacy_version(
            seeded, version.id, LegacyVersionUpdate(server_side=LegacySideType.optional)
        )
        assert out.client_side is LegacySideType.required
        assert out.server_side is LegacySideType.optional
        assert out.game_versions == ["1.20.1"]

    def test_legacy_project_view(self, seeded, make_project, make_version):
        project = make_project()
        make_version(project, fields={"game_versions": ["1.20.1"], "client_side": "required"})
        make_version(project, loaders=["forge"], version_number="2.0.0", fields={"game_versions": ["1.20.2"]})
        view = get_legacy_project(seeded, project.id)
        assert view.title == "Sodium"
        assert view.project_type == "mod"
        assert set(view.game_versions) == {"1.20.1", "1.20.2"}
        assert set(view.loaders) == {"fabric", "forge"}
        assert view.client_side is LegacySideType.required

    def test_modpack_loaders_translated(self, seeded, make_project, make_version):
        project = make_project(slug="pack")
        make_version(project, loaders=["mrpack"], fields={"game_versions": ["1.20.1"]})
        out = create_legacy_version(
            seeded,
            LegacyVersionCreate(
                project_id=project.id,
                name="v2",
                version_number="2.0.0",
                loaders=["fabric", "quilt"],
                game_versions=["1.20.1"],
            ),
        )
        stored = get_version(seeded, out.id)
        assert stored.loaders == ["mrpack"]
        assert stored.fields["mrpack_loaders"] == ["fabric", "quilt"]
        assert out.loaders == ["fabric", "quilt"]
