"""Read and write batch files."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from larder.domain.errors import BatchValidationError
from larder.domain.model import EntityKind, ImportRecord, RecordBatch

from .schema import (
    SUPPORTED_VERSIONS,
    BatchEnvelope,
    FoodRecordModel,
    OrganizerRecordModel,
    RecordModel,
    ToolRecordModel,
    UnitRecordModel,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from larder.domain.model import Entity

log = logging.getLogger(__name__)

CURRENT_VERSION = "1.0"

_RECORD_MODELS: dict[EntityKind, type[RecordModel]] = {
    EntityKind.FOOD: FoodRecordModel,
    EntityKind.UNIT: UnitRecordModel,
    EntityKind.CATEGORY: OrganizerRecordModel,
    EntityKind.TAG: OrganizerRecordModel,
    EntityKind.TOOL: ToolRecordModel,
}


def read_batch(path: Path | str, *, kind: EntityKind | None = None) -> RecordBatch:
    """Load one batch file, validating the envelope and every record.

    Raises ``BatchValidationError`` for unreadable files, invalid JSON, an
    unknown or unexpected ``$type``, an unsupported ``$version`` and records
    that do not fit the schema. All record errors are reported together.
    """

    source = Path(path)
    try:
        raw = json.loads(source.read_text(encoding="utf-8-sig"))
    except OSError as exc:
        raise BatchValidationError(f"Cannot read {source}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise BatchValidationError(f"{source} is not valid JSON: {exc}") from exc
    return parse_batch(raw, name=str(source), kind=kind)


def parse_batch(
    raw: object,
    *,
    name: str,
    kind: EntityKind | None = None,
) -> RecordBatch:
    try:
        envelope = BatchEnvelope.model_validate(raw)
    except ValidationError as exc:
        raise BatchValidationError(f"{name} is not a batch file: {_first_error(exc)}") from exc

    try:
        batch_kind = EntityKind.from_envelope_type(envelope.type)
    except ValueError as exc:
        raise BatchValidationError(f"{name}: {exc}") from exc
    if kind is not None and batch_kind is not kind:
        raise BatchValidationError(
            f"{name} holds {envelope.type!r} records, expected {kind.envelope_type!r}"
        )
    if envelope.version not in SUPPORTED_VERSIONS:
        supported = ", ".join(sorted(SUPPORTED_VERSIONS))
        raise BatchValidationError(
            f"{name} has unsupported version {envelope.version!r} (supported: {supported})"
        )

    model = _RECORD_MODELS[batch_kind]
    records: list[ImportRecord] = []
    problems: list[str] = []
    for position, item in enumerate(envelope.items, start=1):
        try:
            parsed = model.model_validate(item)
        except ValidationError as exc:
            problems.append(f"#{position}: {_first_error(exc)}")
            continue
        records.append(_to_record(batch_kind, parsed, source=name, position=position))

    if problems:
        raise BatchValidationError(f"{name} has invalid records: " + "; ".join(problems))
    log.debug("Read %s %s record(s) from %s", len(records), batch_kind, name)
    return RecordBatch(name=name, kind=batch_kind, records=tuple(records))


def write_batch(path: Path | str, kind: EntityKind, entities: Iterable[Entity]) -> int:
    """Write ``entities`` as a batch file; returns the number of items written."""

    items = [
        _to_item(entity)
        for entity in sorted(entities, key=lambda entity: entity.name.casefold())
    ]
    document = {
        "$type": kind.envelope_type,
        "$version": CURRENT_VERSION,
        "items": items,
    }
    target = Path(path)
    target.write_text(json.dumps(document, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    log.info("Wrote %s %s(s) to %s", len(items), kind, target)
    return len(items)


def _to_record(
    kind: EntityKind,
    parsed: RecordModel,
    *,
    source: str,
    position: int,
) -> ImportRecord:
    record = ImportRecord(
        kind=kind,
        id=parsed.id,
        name=parsed.name,
        source=source,
        position=position,
    )
    if isinstance(parsed, FoodRecordModel):
        record.plural_name = parsed.plural_name
        record.description = parsed.description
        record.aliases = tuple(parsed.aliases)
        record.label = parsed.label
        record.households = tuple(parsed.households)
    elif isinstance(parsed, UnitRecordModel):
        record.plural_name = parsed.plural_name
        record.description = parsed.description
        record.abbreviation = parsed.abbreviation
        record.plural_abbreviation = parsed.plural_abbreviation
        record.use_abbreviation = parsed.use_abbreviation
        record.fraction = parsed.fraction
        record.aliases = tuple(parsed.aliases)
    elif isinstance(parsed, ToolRecordModel):
        record.households = tuple(parsed.households)
    return record


def _to_item(entity: Entity) -> dict[str, object]:
    item: dict[str, object] = {"id": entity.id, "name": entity.name}
    optional: Mapping[str, object | None] = {
        "pluralName": entity.plural_name,
        "description": entity.description,
        "abbreviation": entity.abbreviation if entity.kind.has_abbreviations else None,
        "pluralAbbreviation": entity.plural_abbreviation
        if entity.kind.has_abbreviations
        else None,
        "useAbbreviation": entity.use_abbreviation if entity.kind.has_abbreviations else None,
        "fraction": entity.fraction if entity.kind.has_abbreviations else None,
        "label": entity.label if entity.kind.has_label else None,
    }
    item.update({key: value for key, value in optional.items() if value not in (None, "")})
    if entity.kind.has_aliases and entity.aliases:
        item["aliases"] = [{"name": alias} for alias in entity.aliases]
    if entity.kind.household_scoped and entity.households:
        item["households"] = list(entity.households)
    return item


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    error = errors[0]
    location = ".".join(str(part) for part in error.get("loc", ()))
    message = error.get("msg", "invalid value")
    suffix = f" (+{len(errors) - 1} more)" if len(errors) > 1 else ""
    return f"{location}: {message}{suffix}" if location else f"{message}{suffix}"
