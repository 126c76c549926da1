from __future__ import annotations

from datetime import datetime, timezone

from seed_planner.schema_graph_model import CircularDependency, GraphMetadata, TableNode

BASE_CONFIDENCE = 0.8
CONFIDENCE_PER_CYCLE = 0.1
MIN_CONFIDENCE = 0.1
DEEP_CHAIN_DEPTH = 5


def _iso_datetime(dt: datetime) -> str:
    return dt.isoformat().replace("+00:00", "Z")


def calculate_graph_complexity(total_tables: int, cycle_count: int, max_depth: int) -> str:
    complexity = "simple"
    if cycle_count > 2 or max_depth > 5:
        complexity = "complex"
    elif cycle_count > 0 or max_depth > 3:
        complexity = "moderate"
    if total_tables > 20 and cycle_count > 3:
        complexity = "very_complex"
    return complexity


def calculate_phase_complexity(total_tables: int, cycle_count: int) -> str:
    if cycle_count > 3 or total_tables > 20:
        return "high"
    if cycle_count > 0 or total_tables > 10:
        return "medium"
    return "low"


def calculate_confidence(cycle_count: int) -> float:
    confidence = BASE_CONFIDENCE - (CONFIDENCE_PER_CYCLE * cycle_count)
    return round(max(confidence, MIN_CONFIDENCE), 2)


def generate_warnings(cycle_count: int, max_depth: int, dangling_references: tuple[str, ...]) -> tuple[str, ...]:
    warnings: list[str] = []
    if cycle_count > 0:
        warnings.append(f"{cycle_count} circular dependencies detected")
    if cycle_count > 3:
        warnings.append("High number of circular dependencies may affect seeding performance")
    if max_depth > DEEP_CHAIN_DEPTH:
        warnings.append("Deep dependency chain detected - consider optimizing schema design")
    warnings.extend(dangling_references)
    return tuple(warnings)


def generate_recommendations(
    nodes: tuple[TableNode, ...] | list[TableNode],
    cycles: tuple[CircularDependency, ...] | list[CircularDependency],
) -> tuple[str, ...]:
    recommendations: list[str] = []
    if cycles:
        recommendations.append(
            "Consider using nullable foreign keys or deferred constraints to reduce circular dependencies"
        )
    junction_tables = [n.table for n in nodes if n.metadata.is_junction_table]
    if junction_tables:
        recommendations.append(
            f"Detected {len(junction_tables)} junction tables - ensure proper many-to-many relationship handling"
        )
    tenant_tables = [n.table for n in nodes if n.metadata.is_tenant_scoped]
    if tenant_tables:
        recommendations.append(
            f"{len(tenant_tables)} tenant-scoped tables detected - seed tenants before their scoped rows"
        )
    return tuple(recommendations)


def build_graph_metadata(
    nodes: tuple[TableNode, ...],
    total_relationships: int,
    cycles: tuple[CircularDependency, ...],
    dangling_references: tuple[str, ...] = (),
    *,
    now: datetime | None = None,
) -> GraphMetadata:
    max_depth = max((n.depth for n in nodes), default=0)
    ts = now or datetime.now(timezone.utc)
    return GraphMetadata(
        total_tables=len(nodes),
        total_relationships=total_relationships,
        circular_dependencies=len(cycles),
        max_depth=max_depth,
        complexity=calculate_graph_complexity(len(nodes), len(cycles), max_depth),
        analysis_timestamp=_iso_datetime(ts),
        confidence=calculate_confidence(len(cycles)),
        warnings=generate_warnings(len(cycles), max_depth, dangling_references),
        recommendations=generate_recommendations(nodes, cycles),
        dangling_references=dangling_references,
    )
