"""Legacy (v2) view of the dynamic field model.

Old clients expect fixed ``game_versions``, ``client_side``, ``server_side``
and ``loaders`` attributes.  They are synthesised here from version fields
and never stored; legacy writes are translated forward into field values.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from labrinth.models.version import LegacySideType

GAME_VERSIONS_FIELD = "game_versions"
CLIENT_SIDE_FIELD = "client_side"
SERVER_SIDE_FIELD = "server_side"
MRPACK_LOADERS_FIELD = "mrpack_loaders"
MRPACK_LOADER = "mrpack"


@dataclass
class LegacyFields:
    game_versions: list[str] = field(default_factory=list)
    client_side: LegacySideType = LegacySideType.unknown
    server_side: LegacySideType = LegacySideType.unknown
    loaders: list[str] = field(default_factory=list)


def _as_str_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, list):
        return [str(v) for v in value]
    return [str(value)]


def legacy_side(fields: Mapping[str, Any], name: str, default: LegacySideType) -> LegacySideType:
    """Side support from the ``name`` field, or ``default`` when the version lacks it."""
    value = fields.get(name)
    if value is None:
        return default
    return LegacySideType.from_string(value)


def legacy_loaders(fields: Mapping[str, Any], loaders: Iterable[str]) -> list[str]:
    """Loader names as v2 reports them; modpacks list their ``mrpack_loaders`` instead of mrpack."""
    names = list(loaders)
    if MRPACK_LOADER in names and fields.get(MRPACK_LOADERS_FIELD):
        names = [n for n in names if n != MRPACK_LOADER]
        names.extend(_as_str_list(fields[MRPACK_LOADERS_FIELD]))
    return list(dict.fromkeys(names))


def legacy_fields(
    fields: Mapping[str, Any],
    loaders: Iterable[str],
    default_side: LegacySideType,
) -> LegacyFields:
    return LegacyFields(
        game_versions=_as_str_list(fields.get(GAME_VERSIONS_FIELD)),
        client_side=legacy_side(fields, CLIENT_SIDE_FIELD, default_side),
        server_side=legacy_side(fields, SERVER_SIDE_FIELD, default_side),
        loaders=legacy_loaders(fields, loaders),
    )


def legacy_project_fields(
    versions: Iterable[tuple[Mapping[str, Any], Iterable[str]]],
    default_side: LegacySideType,
) -> LegacyFields:
    """Aggregate a project's versions, newest first, into the old project-level attributes.

    Game versions and loaders are unioned; sides come from the newest
    version that carries them.
    """
    game_versions: dict[str, None] = {}
    loaders: dict[str, None] = {}
    client_side: LegacySideType | None = None
    server_side: LegacySideType | None = None
    for fields, version_loaders in versions:
        game_versions.update(dict.fromkeys(_as_str_list(fields.get(GAME_VERSIONS_FIELD))))
        loaders.update(dict.fromkeys(legacy_loaders(fields, version_loaders)))
        if client_side is None and fields.get(CLIENT_SIDE_FIELD) is not None:
            client_side = LegacySideType.from_string(fields[CLIENT_SIDE_FIELD])
        if server_side is None and fields.get(SERVER_SIDE_FIELD) is not None:
            server_side = LegacySideType.from_string(fields[SERVER_SIDE_FIELD])
    return LegacyFields(
        game_versions=list(game_versions),
        client_side=client_side or default_side,
        server_side=server_side or default_side,
        loaders=list(loaders),
    )


def legacy_project_type(project_types: Collection[str]) -> str:
    """The single project type v2 shows: modpack, then mod, else the first one."""
    if "modpack" in project_types:
        return "modpack"
    if "mod" in project_types:
        return "mod"
    first = next(iter(sorted(project_types)), "project")
    # not representable in v2
    if first in ("datapack", "plugin"):
        return "mod"
    return first


def fields_from_legacy(
    *,
    game_versions: list[str] | None = None,
    client_side: LegacySideType | None = None,
    server_side: LegacySideType | None = None,
    applicable: Collection[str] | None = None,
) -> dict[str, Any]:
    """Translate legacy attributes into a ``set_fields`` payload.

    Unknown sides are dropped, as are fields outside ``applicable`` when it
    is given (old clients always sent sides, even for datapacks).
    """
    payload: dict[str, Any] = {}
    if game_versions is not None:
        payload[GAME_VERSIONS_FIELD] = list(game_versions)
    if client_side is not None and client_side is not LegacySideType.unknown:
        payload[CLIENT_SIDE_FIELD] = client_side.value
    if server_side is not None and server_side is not LegacySideType.unknown:
        payload[SERVER_SIDE_FIELD] = server_side.value
    if applicable is not None:
        payload = {k: v for k, v in payload.items() if k in applicable}
    return payload
