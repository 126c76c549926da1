from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

CONSTRAINT_TYPES: tuple[str, ...] = ("not_null", "primary_key", "foreign_key", "unique", "check")
OPERATION_KINDS: tuple[str, ...] = ("create", "update", "link")

CONSTRAINT_PRIORITY: dict[str, int] = {
    "not_null": 100,
    "primary_key": 90,
    "foreign_key": 80,
    "unique": 70,
    "check": 60,
}
DEFAULT_CONSTRAINT_PRIORITY = 50


def constraint_priority(constraint_type: str) -> int:
    return CONSTRAINT_PRIORITY.get(constraint_type, DEFAULT_CONSTRAINT_PRIORITY)


@dataclass(frozen=True)
class ConstraintSpec:
    constraint_name: str
    constraint_type: str
    table: str = ""
    column_name: str | None = None
    referenced_table: str | None = None
    check_clause: str | None = None
    columns: tuple[str, ...] = ()


@dataclass(frozen=True)
class DependencyOperation:
    operation: str
    target_table: str
    data: dict[str, Any]
    reason: str
    priority: int
    dependencies: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.operation not in OPERATION_KINDS:
            raise ValueError(
                f"Dependency operation / {self.target_table}: unsupported operation '{self.operation}'. "
                f"Fix: use one of: {', '.join(OPERATION_KINDS)}."
            )


@dataclass(frozen=True)
class RecordModification:
    table: str
    record_id: str
    field: str
    old_value: Any
    new_value: Any
    reason: str
    confidence: float


@dataclass(frozen=True)
class OperationOutcome:
    operation: DependencyOperation
    succeeded: bool
    record_id: Any = None
    error: str = ""


@dataclass
class ExecutionMetrics:
    total_execution_time_ms: float = 0.0
    tables_analyzed: int = 0
    constraints_processed: int = 0
    dependencies_created: int = 0


@dataclass
class ResolutionResult:
    success: bool = True
    resolved_constraints: int = 0
    created_dependencies: list[DependencyOperation] = field(default_factory=list)
    modified_records: list[RecordModification] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    execution_metrics: ExecutionMetrics = field(default_factory=ExecutionMetrics)
    outcomes: list[OperationOutcome] = field(default_factory=list)

    @property
    def succeeded_operations(self) -> list[DependencyOperation]:
        return [o.operation for o in self.outcomes if o.succeeded]

    @property
    def failed_operations(self) -> list[DependencyOperation]:
        return [o.operation for o in self.outcomes if not o.succeeded]
