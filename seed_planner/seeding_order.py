from __future__ import annotations

import logging

from seed_planner.config import SeedingOrderOptions, validate_seeding_order_options
from seed_planner.graph_metadata import calculate_phase_complexity, generate_recommendations
from seed_planner.schema_graph_model import (
    CircularDependency,
    DependencyEdge,
    DependencyGraph,
    SeedingOrderResult,
    SeedingPhase,
    TableNode,
    cyclic_edge_pairs,
)

logger = logging.getLogger("seeding_order")

ESTIMATED_MS_PER_TABLE = 1000


def _optional_only_pairs(edges: tuple[DependencyEdge, ...] | list[DependencyEdge]) -> set[tuple[str, str]]:
    # a pair stays binding when any edge between the two tables is not optional
    optional: set[tuple[str, str]] = set()
    binding: set[tuple[str, str]] = set()
    for edge in edges:
        pair = (edge.from_table, edge.to_table)
        if edge.type == "optional":
            optional.add(pair)
        else:
            binding.add(pair)
    return optional - binding


class _DependencyFilter:
    def __init__(
        self,
        edges: tuple[DependencyEdge, ...] | list[DependencyEdge],
        cycles: tuple[CircularDependency, ...] | list[CircularDependency],
        options: SeedingOrderOptions,
    ) -> None:
        self._cyclic = cyclic_edge_pairs(cycles) if options.respect_circular_dependencies else set()
        if options.handle_optional_relationships == "include":
            self._optional: set[tuple[str, str]] = set()
        else:
            self._optional = _optional_only_pairs(edges)

    def is_exempt(self, table: str, dependency: str) -> bool:
        if table == dependency:
            return True
        pair = (table, dependency)
        return pair in self._cyclic or pair in self._optional


def _presorted(nodes: tuple[TableNode, ...] | list[TableNode]) -> list[TableNode]:
    # circular tables last, then shallow first, then higher priority; ties keep registration order
    return sorted(nodes, key=lambda n: (n.is_circular, n.depth, -n.priority))


def calculate_seeding_order(
    nodes: tuple[TableNode, ...] | list[TableNode],
    edges: tuple[DependencyEdge, ...] | list[DependencyEdge],
    cycles: tuple[CircularDependency, ...] | list[CircularDependency],
    options: SeedingOrderOptions | None = None,
) -> tuple[str, ...]:
    """
    Topological order with deterministic tie-breaking.

    Dependencies are visited before the table itself. Cycle edges (when
    respected) and self references are skipped, and the `visiting` guard
    returns early on any remaining loop, so the walk always terminates and
    lists every table exactly once.
    """
    opts = options or SeedingOrderOptions()
    validate_seeding_order_options(opts)
    node_map = {node.table: node for node in nodes}
    exempt = _DependencyFilter(edges, cycles, opts)

    visited: set[str] = set()
    visiting: set[str] = set()
    order: list[str] = []

    def visit(table: str) -> None:
        if table in visiting or table in visited:
            return
        visiting.add(table)
        node = node_map.get(table)
        if node is not None:
            for dependency in node.dependencies:
                if exempt.is_exempt(table, dependency):
                    continue
                visit(dependency)
        visiting.discard(table)
        visited.add(table)
        order.append(table)

    for node in _presorted(nodes):
        if node.table not in visited:
            visit(node.table)

    return tuple(order)


def _cycle_requirement(cycle: CircularDependency) -> str:
    loop = " -> ".join(cycle.tables + cycle.tables[:1])
    order = ", ".join(cycle.resolution_order)
    return f"Resolve circular dependency {loop} using {cycle.resolution_strategy} (touch order: {order})"


def _deferred_reference_requirements(
    tables: list[str],
    edges: tuple[DependencyEdge, ...],
    exempt_optional: set[tuple[str, str]],
) -> list[str]:
    out: list[str] = []
    members = set(tables)
    for edge in edges:
        if edge.from_table not in members or (edge.from_table, edge.to_table) not in exempt_optional:
            continue
        column = edge.from_column or edge.constraint or "?"
        out.append(f"Patch optional reference {edge.from_table}.{column} -> {edge.to_table} after seeding")
    return out


def calculate_seeding_order_with_phases(
    graph: DependencyGraph,
    options: SeedingOrderOptions | None = None,
) -> SeedingOrderResult:
    """
    Group the seeding order into phases whose tables only depend on earlier phases.

    A scan that finds no eligible table is a deadlock: every remaining table
    is forced into that phase and a warning is recorded, so the phases always
    partition the full table set.
    """
    opts = options or SeedingOrderOptions()
    seeding_order = calculate_seeding_order(graph.nodes, graph.edges, graph.cycles, opts)
    node_map = {node.table: node for node in graph.nodes}
    exempt = _DependencyFilter(graph.edges, graph.cycles, opts)
    exempt_optional = (
        _optional_only_pairs(graph.edges) if opts.handle_optional_relationships == "defer" else set()
    )

    phases: list[SeedingPhase] = []
    warnings: list[str] = []
    placed: set[str] = set()
    announced_cycles: set[int] = set()
    phase_number = 1

    while len(placed) < len(seeding_order):
        phase_tables: list[str] = []
        for table in seeding_order:
            if table in placed:
                continue
            node = node_map[table]
            if all(dep in placed or exempt.is_exempt(table, dep) for dep in node.dependencies):
                phase_tables.append(table)

        if not phase_tables:
            phase_tables = [t for t in seeding_order if t not in placed]
            warnings.append(
                f"Phase {phase_number}: dependency deadlock, forcing {len(phase_tables)} remaining "
                f"table(s) into one phase ({', '.join(phase_tables)})"
            )
            logger.warning("Seeding phase deadlock at phase %d: %s", phase_number, phase_tables)

        requirements: list[str] = []
        for index, cycle in enumerate(graph.cycles):
            if index in announced_cycles:
                continue
            if any(table in cycle.tables for table in phase_tables):
                announced_cycles.add(index)
                requirements.append(_cycle_requirement(cycle))
        requirements.extend(_deferred_reference_requirements(phase_tables, graph.edges, exempt_optional))

        phases.append(
            SeedingPhase(
                phase=phase_number,
                tables=tuple(phase_tables),
                description=f"Phase {phase_number}: {len(phase_tables)} tables",
                can_run_in_parallel=len(phase_tables) > 1,
                estimated_time_ms=len(phase_tables) * ESTIMATED_MS_PER_TABLE,
                dependencies=() if phase_number == 1 else (f"Phase {phase_number - 1}",),
                requirements=tuple(requirements),
            )
        )
        placed.update(phase_tables)
        phase_number += 1

    logger.info(
        "Planned %d seeding phase(s) for %d table(s) (cycles=%d)",
        len(phases), len(seeding_order), len(graph.cycles),
    )

    return SeedingOrderResult(
        success=True,
        seeding_order=seeding_order,
        phases=tuple(phases),
        circular_dependencies_resolved=graph.cycles,
        warnings=tuple(warnings),
        errors=(),
        total_phases=len(phases),
        estimated_seeding_time_ms=sum(phase.estimated_time_ms for phase in phases),
        complexity=calculate_phase_complexity(len(graph.nodes), len(graph.cycles)),
        recommendations=generate_recommendations(graph.nodes, graph.cycles),
    )
