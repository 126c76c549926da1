from __future__ import annotations

import logging

from seed_planner.schema_graph_model import CircularDependency, DependencyEdge

logger = logging.getLogger("cycle_resolver")


def choose_resolution_strategy(
    edges: tuple[DependencyEdge, ...],
    break_edge: DependencyEdge | None = None,
) -> str:
    """
    Precedence applied to the edges that have to give way: the break edge
    when the loop is closed, otherwise every edge of the cycle.

    defer_constraints when they can all be postponed or nulled,
    null_initially when at least one is optional,
    post_insert_update otherwise (always available, most invasive).

    Builder edges are typed optional only when the key is nullable, and a
    nullable key is already breakable, so null_initially is reached only
    through an explicit edge_type="optional" on a NOT NULL, non-deferrable
    key (a relationship the application treats as optional).
    """
    deciding = (break_edge,) if break_edge is not None else edges
    if all(edge.can_be_circular for edge in deciding):
        return "defer_constraints"
    if any(edge.type == "optional" for edge in deciding):
        return "null_initially"
    return "post_insert_update"


def cycle_complexity(edges: tuple[DependencyEdge, ...]) -> str:
    return "complex" if len(edges) > 2 else "simple"


def _break_rank(edge: DependencyEdge) -> tuple[bool, bool, int]:
    return (not edge.can_be_circular, edge.type != "optional", edge.weight)


def _loop_edges(tables: tuple[str, ...], edges: tuple[DependencyEdge, ...]) -> list[DependencyEdge | None]:
    # tables[i] references tables[i + 1]; the last one closes the loop.
    # Parallel keys on one link all have to be satisfied, so the most binding one stands for it.
    out: list[DependencyEdge | None] = []
    for index, table in enumerate(tables):
        target = tables[(index + 1) % len(tables)]
        candidates = [e for e in edges if e.from_table == table and e.to_table == target]
        if not candidates:
            out.append(None)
            continue
        out.append(max(candidates, key=_break_rank))
    return out


def choose_break_edge(tables: tuple[str, ...], edges: tuple[DependencyEdge, ...]) -> tuple[int, DependencyEdge] | None:
    """Pick the loop edge to break: breakable first, then optional, then lowest weight, then loop position."""
    loop = _loop_edges(tables, edges)
    ranked = [
        (*_break_rank(edge), index, edge)
        for index, edge in enumerate(loop)
        if edge is not None
    ]
    if not ranked or len(ranked) != len(tables):
        return None
    *_, index, edge = min(ranked, key=lambda item: item[:4])
    return index, edge


def calculate_resolution_order(
    tables: tuple[str, ...],
    edges: tuple[DependencyEdge, ...],
) -> tuple[tuple[str, ...], DependencyEdge | None]:
    """
    The table owning the break edge is inserted first (its reference left
    deferred, null or placeholder), then the loop is walked backwards so each
    following table references a row that already exists.
    """
    chosen = choose_break_edge(tables, edges)
    if chosen is None:
        return tables, None
    index, edge = chosen
    size = len(tables)
    order = tuple(tables[(index - step) % size] for step in range(size))
    return order, edge


def resolve_cycle(tables: tuple[str, ...], edges: tuple[DependencyEdge, ...]) -> CircularDependency:
    order, break_edge = calculate_resolution_order(tables, edges)
    strategy = choose_resolution_strategy(edges, break_edge)
    cycle = CircularDependency(
        tables=tables,
        edges=edges,
        resolution_strategy=strategy,
        resolution_order=order,
        complexity=cycle_complexity(edges),
        break_edge=break_edge,
    )
    logger.debug(
        "Resolved cycle %s with strategy=%s order=%s break=%s",
        " -> ".join(tables),
        strategy,
        order,
        f"{break_edge.from_table}->{break_edge.to_table}" if break_edge else None,
    )
    return cycle
