from __future__ import annotations

from dataclasses import dataclass, field

EDGE_TYPES: tuple[str, ...] = ("required", "optional", "conditional")
REFERENTIAL_ACTIONS: tuple[str, ...] = ("CASCADE", "SET NULL", "RESTRICT", "NO ACTION", "SET DEFAULT")
RESOLUTION_STRATEGIES: tuple[str, ...] = (
    "defer_constraints",
    "null_initially",
    "post_insert_update",
    "manual",
)
SIZE_CLASSES: tuple[str, ...] = ("small", "medium", "large")
COMPLEXITY_CLASSES: tuple[str, ...] = ("simple", "moderate", "complex")
GRAPH_COMPLEXITY_CLASSES: tuple[str, ...] = ("simple", "moderate", "complex", "very_complex")


def _model_error(field_name: str, issue: str, hint: str) -> str:
    return f"Dependency graph / {field_name}: {issue}. Fix: {hint}."


def normalize_referential_action(value: object) -> str:
    """Map any ON DELETE / ON UPDATE spelling onto REFERENTIAL_ACTIONS; unknown -> NO ACTION."""
    text = " ".join(str(value or "").upper().replace("_", " ").split())
    if text in REFERENTIAL_ACTIONS:
        return text
    return "NO ACTION"


@dataclass(frozen=True)
class TableMetadata:
    is_junction_table: bool = False
    is_tenant_scoped: bool = False
    has_timestamps: bool = False
    primary_key_columns: tuple[str, ...] = ()
    foreign_key_count: int = 0
    estimated_size: str = "medium"
    seeding_complexity: str = "simple"

    def __post_init__(self) -> None:
        if self.estimated_size not in SIZE_CLASSES:
            raise ValueError(
                _model_error(
                    "Table metadata",
                    f"unsupported estimated_size '{self.estimated_size}'",
                    f"use one of: {', '.join(SIZE_CLASSES)}",
                )
            )
        if self.seeding_complexity not in COMPLEXITY_CLASSES:
            raise ValueError(
                _model_error(
                    "Table metadata",
                    f"unsupported seeding_complexity '{self.seeding_complexity}'",
                    f"use one of: {', '.join(COMPLEXITY_CLASSES)}",
                )
            )


@dataclass(frozen=True)
class ForeignKeyRelationship:
    # referencing side
    from_table: str
    from_column: str

    # referenced side
    to_table: str
    to_column: str

    on_delete: str = "NO ACTION"
    on_update: str = "NO ACTION"
    is_nullable: bool = False
    is_deferrable: bool = False
    constraint_name: str = ""
    schema: str = "public"


@dataclass(frozen=True)
class TableNode:
    table: str
    schema: str
    dependencies: tuple[str, ...] = ()  # tables this table references
    dependents: tuple[str, ...] = ()    # tables referencing this table
    depth: int = 0
    priority: int = 0
    is_circular: bool = False
    metadata: TableMetadata = field(default_factory=TableMetadata)


@dataclass(frozen=True)
class DependencyEdge:
    from_table: str
    to_table: str
    type: str
    weight: int
    constraint: str
    can_be_circular: bool
    from_column: str = ""
    to_column: str = ""

    @property
    def is_self_reference(self) -> bool:
        return self.from_table == self.to_table


@dataclass(frozen=True)
class CircularDependency:
    tables: tuple[str, ...]
    edges: tuple[DependencyEdge, ...]
    resolution_strategy: str
    resolution_order: tuple[str, ...]
    complexity: str
    break_edge: DependencyEdge | None = None


@dataclass(frozen=True)
class GraphMetadata:
    total_tables: int
    total_relationships: int
    circular_dependencies: int
    max_depth: int
    complexity: str
    analysis_timestamp: str
    confidence: float
    warnings: tuple[str, ...] = ()
    recommendations: tuple[str, ...] = ()
    dangling_references: tuple[str, ...] = ()


@dataclass(frozen=True)
class DependencyGraph:
    nodes: tuple[TableNode, ...]
    edges: tuple[DependencyEdge, ...]
    cycles: tuple[CircularDependency, ...]
    seeding_order: tuple[str, ...]
    creation_order: tuple[str, ...]
    deletion_order: tuple[str, ...]
    metadata: GraphMetadata

    def node(self, table: str) -> TableNode:
        for node in self.nodes:
            if node.table == table:
                return node
        raise KeyError(table)

    def table_names(self) -> tuple[str, ...]:
        return tuple(node.table for node in self.nodes)

    def is_cyclic_edge(self, from_table: str, to_table: str) -> bool:
        return (from_table, to_table) in cyclic_edge_pairs(self.cycles)


@dataclass(frozen=True)
class SeedingPhase:
    phase: int
    tables: tuple[str, ...]
    description: str
    can_run_in_parallel: bool
    estimated_time_ms: int
    dependencies: tuple[str, ...] = ()
    requirements: tuple[str, ...] = ()


@dataclass(frozen=True)
class SeedingOrderResult:
    success: bool
    seeding_order: tuple[str, ...]
    phases: tuple[SeedingPhase, ...]
    circular_dependencies_resolved: tuple[CircularDependency, ...]
    warnings: tuple[str, ...]
    errors: tuple[str, ...]
    total_phases: int
    estimated_seeding_time_ms: int
    complexity: str
    recommendations: tuple[str, ...] = ()


def cyclic_edge_pairs(cycles: tuple[CircularDependency, ...] | list[CircularDependency]) -> set[tuple[str, str]]:
    pairs: set[tuple[str, str]] = set()
    for cycle in cycles:
        for edge in cycle.edges:
            pairs.add((edge.from_table, edge.to_table))
    return pairs
