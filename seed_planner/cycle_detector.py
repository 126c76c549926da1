from __future__ import annotations

import logging

from seed_planner.schema_graph_model import DependencyEdge

logger = logging.getLogger("cycle_detector")


def detect_cycles(table_names: list[str], dependencies: dict[str, list[str]]) -> list[tuple[str, ...]]:
    """
    Depth-first search over dependency edges, one search per unvisited table.

    `visiting` holds the current recursion path and `visited` the fully
    processed tables. Reaching a table already on the path reports the path
    slice from its first occurrence. The search keeps going after a report so
    each back edge contributes its loop; a table set already reported is
    skipped. Self references (slices of length 1) are not cycles.
    """
    visited: set[str] = set()
    visiting: set[str] = set()
    path: list[str] = []
    found: list[tuple[str, ...]] = []
    seen_sets: set[frozenset[str]] = set()

    def visit(table: str) -> None:
        visiting.add(table)
        path.append(table)

        for dependency in dependencies.get(table, []):
            if dependency in visiting:
                cycle = tuple(path[path.index(dependency):])
                key = frozenset(cycle)
                if len(cycle) > 1 and key not in seen_sets:
                    seen_sets.add(key)
                    found.append(cycle)
                continue
            if dependency in visited:
                continue
            visit(dependency)

        path.pop()
        visiting.discard(table)
        visited.add(table)

    for table in table_names:
        if table not in visited:
            visit(table)

    if found:
        logger.debug("Detected %d circular dependency chain(s): %s", len(found), found)
    return found


def edges_in_cycle(tables: tuple[str, ...], edges: list[DependencyEdge]) -> tuple[DependencyEdge, ...]:
    members = set(tables)
    return tuple(
        edge
        for edge in edges
        if not edge.is_self_reference and edge.from_table in members and edge.to_table in members
    )


def circular_tables(cycles: list[tuple[str, ...]]) -> set[str]:
    out: set[str] = set()
    for cycle in cycles:
        out.update(cycle)
    return out
