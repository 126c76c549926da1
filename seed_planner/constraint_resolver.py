from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Mapping

from seed_planner.config import ResolverConfig
from seed_planner.constraint_model import (
    ConstraintSpec,
    DependencyOperation,
    OperationOutcome,
    RecordModification,
    ResolutionResult,
    constraint_priority,
)
from seed_planner.constraint_rules import (
    CONSTRAINT_DEPENDENCY_RULES,
    RECORD_PATTERN_RULES,
    ConstraintDependencyRule,
    RecordContext,
    RecordFinder,
    RecordPatternRule,
    apply_record_patterns,
    constraint_dependencies,
    placeholder,
)

logger = logging.getLogger("constraint_resolver")

_PLACEHOLDER = re.compile(r"\$\{([\w.]+)\.(\w+)\}")

RecordWriter = Callable[[str, dict[str, Any]], Any]


class UnresolvedReferenceError(ValueError):
    pass


@dataclass(frozen=True)
class ConstraintNode:
    constraint: ConstraintSpec
    dependencies: tuple[str, ...]
    priority: int


def build_constraint_dependency_map(
    table_name: str,
    constraints: Iterable[ConstraintSpec],
    rules: tuple[ConstraintDependencyRule, ...] = CONSTRAINT_DEPENDENCY_RULES,
) -> list[ConstraintNode]:
    """One node per constraint, in resolution order (highest priority first, input order on ties)."""
    nodes = [
        ConstraintNode(
            constraint=constraint,
            dependencies=constraint_dependencies(constraint, table_name, rules),
            priority=constraint_priority(constraint.constraint_type),
        )
        for constraint in constraints
    ]
    return sorted(nodes, key=lambda node: -node.priority)


def operation_depths(operations: list[DependencyOperation]) -> list[int | None]:
    """
    Length of each operation's dependency chain through the planned creates.
    None marks an operation caught in a loop of planned dependencies.
    """
    creator: dict[str, int] = {}
    for index, op in enumerate(operations):
        if op.operation == "create":
            creator.setdefault(op.target_table, index)

    memo: dict[int, int | None] = {}
    visiting: set[int] = set()

    def depth(index: int) -> int | None:
        if index in memo:
            return memo[index]
        if index in visiting:
            return None
        visiting.add(index)
        best = 0
        for table in operations[index].dependencies:
            parent = creator.get(table)
            if parent is None or parent == index:
                continue
            parent_depth = depth(parent)
            if parent_depth is None:
                best = -1
                break
            best = max(best, parent_depth)
        visiting.discard(index)
        memo[index] = None if best < 0 else best + 1
        return memo[index]

    return [depth(i) for i in range(len(operations))]


def substitute_placeholders(value: Any, created: Mapping[str, Mapping[str, Any]]) -> Any:
    """Replace ${table.column} references with values from records created earlier in the run."""
    if isinstance(value, dict):
        return {key: substitute_placeholders(item, created) for key, item in value.items()}
    if isinstance(value, list):
        return [substitute_placeholders(item, created) for item in value]
    if not isinstance(value, str) or "${" not in value:
        return value

    def lookup(table: str, column: str) -> Any:
        row = created.get(table)
        if row is None or column not in row:
            raise UnresolvedReferenceError(
                f"reference {placeholder(table, column)} has no created record"
            )
        return row[column]

    whole = _PLACEHOLDER.fullmatch(value)
    if whole:
        return lookup(whole.group(1), whole.group(2))
    return _PLACEHOLDER.sub(lambda m: str(lookup(m.group(1), m.group(2))), value)


def _created_row(returned: Any) -> dict[str, Any]:
    if isinstance(returned, Mapping):
        return dict(returned)
    return {"id": returned}


class ConstraintDependencyResolver:
    """
    Infers the records other tables need before one record can be inserted.

    Record writes go through the injected `create_record` / `update_record` /
    `link_record` callables; `find_records` lets pattern rules check for rows
    that already exist. All collaborators are optional. Without writers the
    result only describes the plan.
    """

    def __init__(
        self,
        config: ResolverConfig | None = None,
        *,
        create_record: RecordWriter | None = None,
        update_record: RecordWriter | None = None,
        link_record: RecordWriter | None = None,
        find_records: RecordFinder | None = None,
        is_slug_taken: Callable[[str], bool] | None = None,
        clock: Callable[[], datetime] | None = None,
        dependency_rules: tuple[ConstraintDependencyRule, ...] = CONSTRAINT_DEPENDENCY_RULES,
        pattern_rules: tuple[RecordPatternRule, ...] = RECORD_PATTERN_RULES,
    ) -> None:
        self.config = config or ResolverConfig()
        self._writers: dict[str, RecordWriter | None] = {
            "create": create_record,
            "update": update_record,
            "link": link_record,
        }
        self._find_records = find_records
        self._is_slug_taken = is_slug_taken
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._dependency_rules = dependency_rules
        self._pattern_rules = pattern_rules

    def resolve(
        self,
        table_name: str,
        record: Mapping[str, Any],
        constraints: Iterable[ConstraintSpec],
        resolved_tables: Iterable[str] = (),
    ) -> ResolutionResult:
        started = time.perf_counter()
        result = ResolutionResult()
        analyzed: list[str] = [table_name]

        # Step 1: dependency map + record patterns
        nodes = build_constraint_dependency_map(table_name, constraints, self._dependency_rules)
        for node in nodes:
            analyzed.extend(node.dependencies)

        if self.config.enable_cascade_resolution:
            ctx = RecordContext(
                table_name=table_name,
                record=record,
                now=self._clock(),
                find_records=self._find_records,
                is_slug_taken=self._is_slug_taken,
            )
            outcome, touched = apply_record_patterns(ctx, self._pattern_rules)
            result.created_dependencies.extend(outcome.operations)
            result.modified_records.extend(outcome.modifications)
            result.warnings.extend(outcome.warnings)
            analyzed.extend(touched)

        planned = {op.target_table for op in result.created_dependencies if op.operation == "create"}

        # Step 2: constraints by priority
        resolved = {table_name, *resolved_tables, *planned}
        for node in nodes:
            self._resolve_node(node, record, table_name, resolved, planned, result)

        # Step 3: order, bound and (optionally) execute
        result.created_dependencies = self._bounded_operations(result)
        analyzed.extend(op.target_table for op in result.created_dependencies)

        if self.config.enable_dependency_creation and not self.config.dry_run:
            self._execute(result)

        result.execution_metrics.tables_analyzed = len(dict.fromkeys(analyzed))
        result.execution_metrics.total_execution_time_ms = (time.perf_counter() - started) * 1000.0
        result.success = not result.errors
        logger.info(
            "Resolved constraints for '%s': resolved=%d, operations=%d, modifications=%d, errors=%d (%.1f ms)",
            table_name,
            result.resolved_constraints,
            len(result.created_dependencies),
            len(result.modified_records),
            len(result.errors),
            result.execution_metrics.total_execution_time_ms,
        )
        return result

    def _resolve_node(
        self,
        node: ConstraintNode,
        record: Mapping[str, Any],
        table_name: str,
        resolved: set[str],
        planned: set[str],
        result: ResolutionResult,
    ) -> None:
        constraint = node.constraint
        unresolved = [dep for dep in node.dependencies if dep not in resolved]
        if unresolved:
            if self.config.strict_mode:
                result.warnings.append(
                    f"Skipping constraint {constraint.constraint_name} - unresolved dependencies: {', '.join(unresolved)}"
                )
                return
            result.warnings.append(
                f"Constraint {constraint.constraint_name} has unresolved dependencies: {', '.join(unresolved)}"
            )

        column = constraint.column_name
        if constraint.constraint_type == "foreign_key" and column and record.get(column) in (None, ""):
            referenced = constraint.referenced_table
            if referenced and referenced in planned:
                result.modified_records.append(
                    RecordModification(
                        table=table_name,
                        record_id=str(record.get("id", "new")),
                        field=column,
                        old_value=record.get(column),
                        new_value=placeholder(referenced),
                        reason=f"Reference {referenced} row created as a dependency",
                        confidence=0.7,
                    )
                )
        elif constraint.constraint_type == "not_null" and column and record.get(column) is None:
            result.warnings.append(f"Column '{table_name}.{column}' is NOT NULL but has no value in the record")

        result.resolved_constraints += 1
        result.execution_metrics.constraints_processed += 1
        logger.debug("Resolved constraint %s (%s)", constraint.constraint_name, constraint.constraint_type)

    def _bounded_operations(self, result: ResolutionResult) -> list[DependencyOperation]:
        ordered = sorted(result.created_dependencies, key=lambda op: op.priority)
        depths = operation_depths(ordered)
        kept: list[DependencyOperation] = []
        for op, depth in zip(ordered, depths, strict=True):
            if depth is None:
                result.warnings.append(
                    f"Dropped {op.operation} on {op.target_table}: circular dependency between planned operations"
                )
                continue
            if depth > self.config.max_resolution_depth:
                result.warnings.append(
                    f"Dropped {op.operation} on {op.target_table}: dependency chain depth {depth} "
                    f"exceeds max_resolution_depth={self.config.max_resolution_depth}"
                )
                continue
            kept.append(op)
        return kept

    def _execute(self, result: ResolutionResult) -> None:
        if not result.created_dependencies:
            return
        if all(writer is None for writer in self._writers.values()):
            result.warnings.append(
                f"No record writer configured; {len(result.created_dependencies)} dependency operation(s) left for the caller"
            )
            return

        created: dict[str, dict[str, Any]] = {}
        for op in result.created_dependencies:
            try:
                writer = self._writers[op.operation]
                if writer is None:
                    raise RuntimeError(f"no '{op.operation}' record writer configured")
                data = substitute_placeholders(op.data, created)
                returned = writer(op.target_table, data)
            except Exception as exc:
                message = f"Failed to execute dependency operation {op.operation} on {op.target_table}: {exc}"
                result.errors.append(message)
                result.outcomes.append(OperationOutcome(operation=op, succeeded=False, error=str(exc)))
                logger.error(message)
                continue

            record_id = None
            if op.operation == "create":
                row = _created_row(returned)
                created[op.target_table] = row
                record_id = row.get("id")
            result.outcomes.append(OperationOutcome(operation=op, succeeded=True, record_id=record_id))
            result.execution_metrics.dependencies_created += 1
            logger.debug("Executed dependency operation: %s on %s", op.operation, op.target_table)

        result.modified_records = [self._fill_reference(mod, created) for mod in result.modified_records]

    @staticmethod
    def _fill_reference(modification: RecordModification, created: Mapping[str, Mapping[str, Any]]) -> RecordModification:
        try:
            value = substitute_placeholders(modification.new_value, created)
        except UnresolvedReferenceError:
            return modification
        if value == modification.new_value:
            return modification
        return replace(modification, new_value=value)
