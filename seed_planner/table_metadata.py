from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from seed_planner.schema_graph_model import ForeignKeyRelationship, TableMetadata

TENANT_COLUMNS: frozenset[str] = frozenset({"account_id", "tenant_id", "organization_id", "team_id"})
TIMESTAMP_COLUMNS: frozenset[str] = frozenset({"created_at", "updated_at", "timestamp"})
BOOKKEEPING_COLUMNS: frozenset[str] = frozenset({"id", "created_at", "updated_at"})
COMPLEX_DATA_TYPES: tuple[str, ...] = ("json", "jsonb", "array", "geometry")

SMALL_TABLE_COLUMNS = 5
MEDIUM_TABLE_COLUMNS = 15
SIMPLE_SCORE = 5
MODERATE_SCORE = 15


@dataclass(frozen=True)
class ColumnInfo:
    table_name: str
    column_name: str
    data_type: str = "text"
    is_nullable: bool = True
    is_primary_key: bool = False


def _is_complex_type(data_type: str) -> bool:
    text = str(data_type or "").lower()
    return text.endswith("[]") or any(kind in text for kind in COMPLEX_DATA_TYPES)


def is_junction_table(
    columns: list[ColumnInfo],
    foreign_keys: list[ForeignKeyRelationship],
) -> bool:
    """At least two FKs, a primary key made only of FK columns, and little else."""
    if len(foreign_keys) < 2:
        return False
    fk_columns = {fk.from_column for fk in foreign_keys}
    pk_columns = [c.column_name for c in columns if c.is_primary_key]
    if pk_columns and not all(name in fk_columns for name in pk_columns):
        return False
    extra = [
        c for c in columns
        if c.column_name not in fk_columns and c.column_name not in BOOKKEEPING_COLUMNS
    ]
    return len(extra) <= 2


def estimate_size(column_count: int) -> str:
    if column_count <= SMALL_TABLE_COLUMNS:
        return "small"
    if column_count <= MEDIUM_TABLE_COLUMNS:
        return "medium"
    return "large"


def seeding_complexity(columns: list[ColumnInfo], foreign_key_count: int) -> str:
    score = foreign_key_count * 2
    score += sum(1 for c in columns if not c.is_nullable)
    score += sum(3 for c in columns if _is_complex_type(c.data_type))
    if score <= SIMPLE_SCORE:
        return "simple"
    if score <= MODERATE_SCORE:
        return "moderate"
    return "complex"


def build_table_metadata(
    table: str,
    columns: Iterable[ColumnInfo],
    relationships: Iterable[ForeignKeyRelationship],
) -> TableMetadata:
    """Derive seeding hints for one table from its introspected columns and outgoing foreign keys."""
    own_columns = [c for c in columns if c.table_name == table]
    foreign_keys = [r for r in relationships if r.from_table == table]
    names = {c.column_name for c in own_columns}

    return TableMetadata(
        is_junction_table=is_junction_table(own_columns, foreign_keys),
        is_tenant_scoped=bool(names & TENANT_COLUMNS),
        has_timestamps=bool(names & TIMESTAMP_COLUMNS),
        primary_key_columns=tuple(c.column_name for c in own_columns if c.is_primary_key),
        foreign_key_count=len(foreign_keys),
        estimated_size=estimate_size(len(own_columns)),
        seeding_complexity=seeding_complexity(own_columns, len(foreign_keys)),
    )
