"""Version field store: EAV rows of loader field values per version.

Each ``version_fields`` row populates exactly one of ``int_value``,
``enum_value`` or ``string_value``; array fields are several rows sharing a
``(version_id, field_id)`` pair.  Writes are merges: only the fields passed
to ``set_fields`` are replaced, each with delete-then-insert inside the
caller's transaction.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Collection, Iterable, Mapping
from typing import Any

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from labrinth.errors import (
    FieldIssue,
    FieldValidationError,
    InvalidFieldValue,
    NotFoundError,
    SchemaError,
    StorageError,
)
from labrinth.models.loader_field import LoaderField, LoaderFieldEnumValue
from labrinth.models.version import Version, VersionField
from labrinth.services.enum_registry import values_by_enum
from labrinth.services.field_types import (
    EnumValue,
    IntValue,
    StoredValue,
    TextValue,
    ValidatedField,
    deserialize,
    validate,
)
from labrinth.services.loader_field_schema import applicable_fields

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Row mapping
# ---------------------------------------------------------------------------


def _stored_to_row(version_id: int, field_id: int, stored: StoredValue) -> VersionField:
    row = VersionField(version_id=version_id, field_id=field_id)
    if isinstance(stored, IntValue):
        row.int_value = stored.value
    elif isinstance(stored, EnumValue):
        row.enum_value = stored.id
    else:
        row.string_value = stored.value
    return row


def _row_to_stored(row: VersionField, enum_row: LoaderFieldEnumValue | None) -> StoredValue:
    populated = [c for c in (row.int_value, row.enum_value, row.string_value) if c is not None]
    if len(populated) != 1:
        raise SchemaError(
            f"version_fields row {row.id} has {len(populated)} value columns populated"
        )
    if row.int_value is not None:
        return IntValue(row.int_value)
    if row.enum_value is not None:
        if enum_row is None:
            raise SchemaError(f"version_fields row {row.id} references a missing enum value")
        return EnumValue(id=row.enum_value, value=enum_row.value)
    return TextValue(row.string_value)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_fields(
    session: Session,
    loader_ids: Iterable[int],
    submitted: Mapping[str, Any],
    *,
    existing: Collection[str] = (),
) -> list[ValidatedField]:
    """Validate a submitted field set against the fields of ``loader_ids``.

    Every problem is collected before raising, so the client sees all
    invalid fields at once.  Required fields count as present when they
    are submitted or already stored (``existing``).

    Raises:
        FieldValidationError: listing each offending field and why.
    """
    fields = {f.field: f for f in applicable_fields(session, loader_ids)}
    enum_ids = {f.enum_type for f in fields.values() if f.enum_type is not None}
    enum_values = values_by_enum(session, enum_ids)

    issues: list[FieldIssue] = []
    validated: list[ValidatedField] = []
    for name, value in submitted.items():
        lf = fields.get(name)
        if lf is None:
            issues.append(FieldIssue(name, "is not a field of the selected loaders"))
            continue
        try:
            validated.append(validate(lf, value, enum_values.get(lf.enum_type or -1, {})))
        except InvalidFieldValue as e:
            issues.append(FieldIssue(name, e.reason))

    for lf in fields.values():
        if lf.optional or lf.field in submitted or lf.field in existing:
            continue
        issues.append(FieldIssue(lf.field, "is required"))

    if issues:
        raise FieldValidationError(issues)
    return validated


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


def set_fields(
    session: Session,
    version_id: int,
    validated: Iterable[ValidatedField],
    *,
    commit: bool = True,
) -> None:
    """Replace the rows of each given field on a version, leaving other fields untouched.

    The version row is locked first so concurrent writers to the same
    version serialise; either writer's full value set wins, never a mix.
    With ``commit=False`` the caller owns the transaction.
    """
    items = list(validated)
    try:
        version = session.exec(
            select(Version).where(Version.id == version_id).with_for_update()
        ).first()
        if version is None:
            raise NotFoundError(f"Version {version_id} does not exist")
        if not items:
            return

        field_ids = {v.field.id for v in items}
        session.exec(
            delete(VersionField).where(
                VersionField.version_id == version_id,
                VersionField.field_id.in_(field_ids),  # type: ignore[attr-defined]
            )
        )  # type: ignore[call-overload]
        rows = 0
        for v in items:
            for stored in v.stored:
                session.add(_stored_to_row(version_id, v.field.id, stored))  # type: ignore[arg-type]
                rows += 1
        session.flush()
        if commit:
            session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("Failed to write fields for version %d", version_id)
        raise StorageError("Failed to write version fields") from e

    logger.debug(
        "Set %d field(s) as %d row(s) on version %d", len(items), rows, version_id
    )


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


def get_fields_bulk(session: Session, version_ids: Iterable[int]) -> dict[int, dict[str, Any]]:
    """Field name -> logical value for each requested version, from a single query.

    Result order is not tied to input order; index it by version id.
    Ids without any stored field map to an empty dict.
    """
    ids = set(version_ids)
    result: dict[int, dict[str, Any]] = {vid: {} for vid in ids}
    if not ids:
        return result

    stmt = (
        select(VersionField, LoaderField, LoaderFieldEnumValue)
        .join(LoaderField, LoaderField.id == VersionField.field_id)
        .outerjoin(LoaderFieldEnumValue, LoaderFieldEnumValue.id == VersionField.enum_value)
        .where(VersionField.version_id.in_(ids))  # type: ignore[attr-defined]
        .order_by(VersionField.version_id, VersionField.field_id, VersionField.id)
    )

    grouped: dict[tuple[int, int], list[StoredValue]] = defaultdict(list)
    definitions: dict[int, LoaderField] = {}
    for row, lf, enum_row in session.exec(stmt).all():
        definitions[lf.id] = lf  # type: ignore[index]
        grouped[(row.version_id, lf.id)].append(_row_to_stored(row, enum_row))  # type: ignore[index]

    for (vid, field_id), stored in grouped.items():
        lf = definitions[field_id]
        result[vid][lf.field] = deserialize(lf.field_type, stored)
    return result


def get_fields(session: Session, version_id: int) -> dict[str, Any]:
    if session.get(Version, version_id) is None:
        raise NotFoundError(f"Version {version_id} does not exist")
    return get_fields_bulk(session, [version_id])[version_id]
