from __future__ import annotations

from collections import deque

from seed_planner.schema_graph_model import TableMetadata

BASE_PRIORITY = 100


def calculate_depths(
    table_names: list[str],
    dependencies: dict[str, list[str]],
    dependents: dict[str, list[str]],
) -> dict[str, int]:
    """
    Breadth-first depth from the root tables (no dependencies other than themselves).

    Each table is visited once; its depth is max(existing, parent depth + 1).
    Tables that cannot be reached from a root keep depth 0.
    """
    depths = {name: 0 for name in table_names}
    visited: set[str] = set()
    queue: deque[tuple[str, int]] = deque()

    for name in table_names:
        if all(dep == name for dep in dependencies.get(name, [])):
            queue.append((name, 0))

    while queue:
        table, depth = queue.popleft()
        if table in visited:
            continue
        visited.add(table)
        depths[table] = max(depths[table], depth)

        for dependent in dependents.get(table, []):
            if dependent not in visited:
                queue.append((dependent, depth + 1))

    return depths


def calculate_priority(dependency_count: int, metadata: TableMetadata) -> int:
    # fewer prerequisites seed earlier; pure join tables later
    priority = BASE_PRIORITY - (dependency_count * 10)
    if metadata.is_junction_table:
        priority -= 20
    if metadata.is_tenant_scoped:
        priority += 10
    return max(priority, 0)


def calculate_depths_and_priorities(
    table_names: list[str],
    dependencies: dict[str, list[str]],
    dependents: dict[str, list[str]],
    metadata: dict[str, TableMetadata],
) -> tuple[dict[str, int], dict[str, int]]:
    depths = calculate_depths(table_names, dependencies, dependents)
    priorities = {
        name: calculate_priority(len(dependencies.get(name, [])), metadata.get(name, TableMetadata()))
        for name in table_names
    }
    return depths, priorities
