from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from seed_planner.config import SeedingOrderOptions
from seed_planner.cycle_detector import circular_tables, detect_cycles, edges_in_cycle
from seed_planner.cycle_resolver import resolve_cycle
from seed_planner.depth_priority import calculate_depths_and_priorities
from seed_planner.graph_metadata import build_graph_metadata
from seed_planner.schema_graph_model import (
    EDGE_TYPES,
    DependencyEdge,
    DependencyGraph,
    ForeignKeyRelationship,
    SeedingOrderResult,
    TableMetadata,
    TableNode,
    normalize_referential_action,
)
from seed_planner.seeding_order import calculate_seeding_order, calculate_seeding_order_with_phases

logger = logging.getLogger("graph_builder")

_DELETE_ACTION_WEIGHT: dict[str, int] = {
    "CASCADE": 2,
    "RESTRICT": 3,
    "SET NULL": 1,
}
MAX_EDGE_WEIGHT = 10


def _builder_error(field: str, issue: str, hint: str) -> str:
    return f"Dependency graph / {field}: {issue}. Fix: {hint}."


def calculate_relationship_weight(relationship: ForeignKeyRelationship) -> int:
    weight = 5
    if not relationship.is_nullable:
        weight += 3
    weight += _DELETE_ACTION_WEIGHT.get(normalize_referential_action(relationship.on_delete), 0)
    return min(weight, MAX_EDGE_WEIGHT)


@dataclass(frozen=True)
class _NodeEntry:
    table: str
    schema: str
    metadata: TableMetadata


class DependencyGraphBuilder:
    """
    Collects table and foreign-key registrations for one schema snapshot.

    `build()` derives every map (adjacency, depths, cycles, order) from the
    registrations on each call and returns a new immutable graph, so two
    builds never share state.
    """

    def __init__(self, default_schema: str = "public") -> None:
        self._default_schema = default_schema
        self._nodes: dict[str, _NodeEntry] = {}
        self._edges: list[DependencyEdge] = []

    def add_node(self, table: str, schema: str | None = None, metadata: TableMetadata | None = None) -> None:
        name = str(table).strip()
        if name == "":
            raise ValueError(
                _builder_error("Table", "table name is required", "register tables with a non-empty name")
            )
        if name in self._nodes:
            logger.debug("Table '%s' registered again; replacing schema and metadata", name)
        self._nodes[name] = _NodeEntry(
            table=name,
            schema=schema or self._default_schema,
            metadata=metadata or TableMetadata(),
        )

    def add_edge(
        self,
        from_table: str,
        to_table: str,
        relationship: ForeignKeyRelationship,
        edge_type: str | None = None,
    ) -> DependencyEdge:
        if edge_type is not None and edge_type not in EDGE_TYPES:
            raise ValueError(
                _builder_error(
                    f"Edge '{from_table}' -> '{to_table}'",
                    f"unsupported edge type '{edge_type}'",
                    f"use one of: {', '.join(EDGE_TYPES)}",
                )
            )
        edge = DependencyEdge(
            from_table=from_table,
            to_table=to_table,
            type=edge_type or ("optional" if relationship.is_nullable else "required"),
            weight=calculate_relationship_weight(relationship),
            constraint=relationship.constraint_name,
            can_be_circular=relationship.is_nullable or relationship.is_deferrable,
            from_column=relationship.from_column,
            to_column=relationship.to_column,
        )
        self._edges.append(edge)
        return edge

    def add_relationship(self, relationship: ForeignKeyRelationship) -> DependencyEdge:
        return self.add_edge(relationship.from_table, relationship.to_table, relationship)

    def _adjacency(self) -> tuple[dict[str, list[str]], dict[str, list[str]], tuple[str, ...]]:
        dependencies: dict[str, list[str]] = {name: [] for name in self._nodes}
        dependents: dict[str, list[str]] = {name: [] for name in self._nodes}
        dangling: list[str] = []

        for edge in self._edges:
            missing = [name for name in (edge.from_table, edge.to_table) if name not in self._nodes]
            if missing:
                label = edge.constraint or f"{edge.from_table}->{edge.to_table}"
                dangling.append(
                    _builder_error(
                        f"Edge '{label}'",
                        f"references unknown table(s) {', '.join(repr(m) for m in missing)}",
                        "register every referenced table with add_node() or drop the relationship",
                    )
                )
                continue
            if edge.to_table not in dependencies[edge.from_table]:
                dependencies[edge.from_table].append(edge.to_table)
            if edge.from_table not in dependents[edge.to_table]:
                dependents[edge.to_table].append(edge.from_table)

        return dependencies, dependents, tuple(dangling)

    def build(self, options: SeedingOrderOptions | None = None, *, now: datetime | None = None) -> DependencyGraph:
        table_names = list(self._nodes)
        dependencies, dependents, dangling = self._adjacency()
        metadata = {name: entry.metadata for name, entry in self._nodes.items()}

        depths, priorities = calculate_depths_and_priorities(table_names, dependencies, dependents, metadata)

        cycle_tables = detect_cycles(table_names, dependencies)
        cycles = tuple(resolve_cycle(tables, edges_in_cycle(tables, self._edges)) for tables in cycle_tables)
        circular = circular_tables(cycle_tables)

        nodes = tuple(
            TableNode(
                table=name,
                schema=entry.schema,
                dependencies=tuple(dependencies[name]),
                dependents=tuple(dependents[name]),
                depth=depths[name],
                priority=priorities[name],
                is_circular=name in circular,
                metadata=entry.metadata,
            )
            for name, entry in self._nodes.items()
        )
        edges = tuple(self._edges)

        seeding_order = calculate_seeding_order(nodes, edges, cycles, options)
        graph_metadata = build_graph_metadata(nodes, len(edges), cycles, dangling, now=now)

        for warning in dangling:
            logger.warning("%s", warning)
        logger.info(
            "Built dependency graph: tables=%d, relationships=%d, cycles=%d, max_depth=%d",
            len(nodes), len(edges), len(cycles), graph_metadata.max_depth,
        )

        return DependencyGraph(
            nodes=nodes,
            edges=edges,
            cycles=cycles,
            seeding_order=seeding_order,
            creation_order=seeding_order,
            deletion_order=tuple(reversed(seeding_order)),
            metadata=graph_metadata,
        )

    def build_with_phases(self, options: SeedingOrderOptions | None = None) -> SeedingOrderResult:
        return calculate_seeding_order_with_phases(self.build(options), options)


def build_dependency_graph(
    tables: Iterable[tuple[str, str, TableMetadata | None]],
    relationships: Iterable[ForeignKeyRelationship],
    options: SeedingOrderOptions | None = None,
    *,
    now: datetime | None = None,
) -> DependencyGraph:
    """Build a graph from introspected `(table, schema, metadata)` tuples and foreign keys."""
    builder = DependencyGraphBuilder()
    for table, schema, metadata in tables:
        builder.add_node(table, schema, metadata)
    for relationship in relationships:
        builder.add_relationship(relationship)
    return builder.build(options, now=now)
