from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from seed_planner.config import SeedingOrderOptions, _parse_bool
from seed_planner.graph_builder import DependencyGraphBuilder
from seed_planner.schema_graph_model import DependencyGraph, ForeignKeyRelationship, SeedingOrderResult, TableMetadata
from seed_planner.table_metadata import ColumnInfo, build_table_metadata

logger = logging.getLogger("schema_graph_io")

_FK_REQUIRED_KEYS: tuple[str, ...] = ("from_table", "from_column", "to_table", "to_column")


def _snapshot_error(field_name: str, issue: str, hint: str) -> str:
    return f"Schema snapshot / {field_name}: {issue}. Fix: {hint}."


@dataclass(frozen=True)
class SchemaSnapshot:
    default_schema: str = "public"
    tables: list[tuple[str, str, TableMetadata]] = field(default_factory=list)
    relationships: list[ForeignKeyRelationship] = field(default_factory=list)


def _require_list(data: dict[str, Any], key: str) -> list[Any]:
    value = data.get(key, [])
    if not isinstance(value, list):
        raise ValueError(
            _snapshot_error(key, "must be a JSON list", f"set '{key}' to a list or remove the key")
        )
    return value


def _parse_flag(raw: dict[str, Any], key: str, default: bool, *, owner: str) -> bool:
    # catalog dumps spell flags as "YES"/"NO" or "true"/"false"; null means unset
    value = raw.get(key)
    if value is None:
        return default
    try:
        return _parse_bool(value, field=key)
    except ValueError as exc:
        raise ValueError(
            _snapshot_error(f"{owner}.{key}", f"unrecognised flag {value!r}", "use true/false, yes/no, on/off or 1/0")
        ) from exc


def _parse_relationship(index: int, raw: Any, default_schema: str) -> ForeignKeyRelationship:
    if not isinstance(raw, dict):
        raise ValueError(
            _snapshot_error(f"foreign_keys[{index}]", "must be an object", "describe each foreign key as a JSON object")
        )
    missing = [key for key in _FK_REQUIRED_KEYS if not str(raw.get(key) or "").strip()]
    if missing:
        raise ValueError(
            _snapshot_error(
                f"foreign_keys[{index}]",
                f"missing {', '.join(missing)}",
                f"provide {', '.join(_FK_REQUIRED_KEYS)} for every foreign key",
            )
        )
    return ForeignKeyRelationship(
        from_table=str(raw["from_table"]),
        from_column=str(raw["from_column"]),
        to_table=str(raw["to_table"]),
        to_column=str(raw["to_column"]),
        on_delete=str(raw.get("on_delete") or "NO ACTION"),
        on_update=str(raw.get("on_update") or "NO ACTION"),
        is_nullable=_parse_flag(raw, "is_nullable", False, owner=f"foreign_keys[{index}]"),
        is_deferrable=_parse_flag(raw, "is_deferrable", False, owner=f"foreign_keys[{index}]"),
        constraint_name=str(raw.get("constraint_name") or ""),
        schema=str(raw.get("schema") or default_schema),
    )


def _parse_column(index: int, raw: Any) -> ColumnInfo:
    if not isinstance(raw, dict) or not raw.get("table_name") or not raw.get("column_name"):
        raise ValueError(
            _snapshot_error(
                f"columns[{index}]",
                "must be an object with table_name and column_name",
                "describe each column as {\"table_name\": ..., \"column_name\": ...}",
            )
        )
    return ColumnInfo(
        table_name=str(raw["table_name"]),
        column_name=str(raw["column_name"]),
        data_type=str(raw.get("data_type") or "text"),
        is_nullable=_parse_flag(raw, "is_nullable", True, owner=f"columns[{index}]"),
        is_primary_key=_parse_flag(raw, "is_primary_key", False, owner=f"columns[{index}]"),
    )


def _parse_table(
    index: int,
    raw: Any,
    default_schema: str,
    columns: list[ColumnInfo],
    relationships: list[ForeignKeyRelationship],
) -> tuple[str, str, TableMetadata]:
    if isinstance(raw, str):
        raw = {"table": raw}
    if not isinstance(raw, dict) or not str(raw.get("table") or "").strip():
        raise ValueError(
            _snapshot_error(
                f"tables[{index}]",
                "table name is required",
                "list tables as names or objects with a 'table' key",
            )
        )
    name = str(raw["table"]).strip()
    schema = str(raw.get("schema") or default_schema)

    metadata_raw = raw.get("metadata")
    if metadata_raw is None:
        return name, schema, build_table_metadata(name, columns, relationships)
    if not isinstance(metadata_raw, dict):
        raise ValueError(
            _snapshot_error(f"tables[{index}].metadata", "must be an object", "remove metadata or make it an object")
        )
    try:
        metadata = TableMetadata(
            **{
                **metadata_raw,
                "primary_key_columns": tuple(metadata_raw.get("primary_key_columns", ())),
            }
        )
    except TypeError as exc:
        raise ValueError(
            _snapshot_error(
                f"tables[{index}].metadata",
                f"unsupported key ({exc})",
                "use only TableMetadata field names",
            )
        ) from exc
    return name, schema, metadata


def parse_schema_snapshot(data: Any) -> SchemaSnapshot:
    if not isinstance(data, dict):
        raise ValueError(
            _snapshot_error("root", "must be a JSON object", "wrap tables, columns and foreign_keys in one object")
        )
    default_schema = str(data.get("default_schema") or "public")
    relationships = [
        _parse_relationship(i, raw, default_schema) for i, raw in enumerate(_require_list(data, "foreign_keys"))
    ]
    columns = [_parse_column(i, raw) for i, raw in enumerate(_require_list(data, "columns"))]
    tables = [
        _parse_table(i, raw, default_schema, columns, relationships)
        for i, raw in enumerate(_require_list(data, "tables"))
    ]
    return SchemaSnapshot(default_schema=default_schema, tables=tables, relationships=relationships)


def load_schema_snapshot_from_json(path: str) -> SchemaSnapshot:
    snapshot_path = Path(path)
    if not snapshot_path.is_file():
        raise ValueError(
            _snapshot_error("path", f"file '{path}' does not exist", "pass the path of a schema snapshot JSON file")
        )
    try:
        with open(snapshot_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as exc:
        raise ValueError(
            _snapshot_error("path", f"'{path}' is not valid JSON ({exc.msg} at line {exc.lineno})", "fix the JSON syntax")
        ) from exc

    snapshot = parse_schema_snapshot(data)
    logger.info(
        "Loaded schema snapshot '%s': tables=%d, foreign_keys=%d",
        path, len(snapshot.tables), len(snapshot.relationships),
    )
    return snapshot


def build_graph_from_snapshot(
    snapshot: SchemaSnapshot,
    options: SeedingOrderOptions | None = None,
    *,
    now: datetime | None = None,
) -> DependencyGraph:
    builder = DependencyGraphBuilder(default_schema=snapshot.default_schema)
    for table, schema, metadata in snapshot.tables:
        builder.add_node(table, schema, metadata)
    for relationship in snapshot.relationships:
        builder.add_relationship(relationship)
    return builder.build(options, now=now)


def graph_to_payload(graph: DependencyGraph, phases: SeedingOrderResult | None = None) -> dict[str, Any]:
    data = asdict(graph)
    if phases is not None:
        data["phases"] = asdict(phases)
    return data


def save_graph_to_json(graph: DependencyGraph, path: str, phases: SeedingOrderResult | None = None) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(graph_to_payload(graph, phases), f, indent=2)
    logger.info("Saved dependency graph to '%s'", path)
