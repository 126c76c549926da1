"""Tagged rule tables for multi-table constraint inference.

Two lists drive the resolver:

- CONSTRAINT_DEPENDENCY_RULES map one constraint to the tables it needs.
- RECORD_PATTERN_RULES inspect the record being inserted and propose the
  records (or field fixes) other tables need first.

Each rule is a named (predicate, handler) pair so it can be tested alone.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Mapping

from seed_planner.constraint_model import ConstraintSpec, DependencyOperation, RecordModification
from seed_planner.slug import generate_unique_slug

logger = logging.getLogger("constraint_rules")

INVITATION_EXPIRY_DAYS = 7
VALID_MEMBER_ROLES: tuple[str, ...] = ("owner", "admin", "member", "viewer")
DEFAULT_MEMBER_ROLE = "member"

_TABLE_REFERENCE = re.compile(
    r"FROM\s+([\w.]+)|JOIN\s+([\w.]+)|EXISTS\s*\([^)]*FROM\s+([\w.]+)",
    re.IGNORECASE,
)

RecordFinder = Callable[[str, dict[str, Any]], list[dict[str, Any]]]


def _iso_datetime(dt: datetime) -> str:
    return dt.isoformat().replace("+00:00", "Z")


def placeholder(table: str, column: str = "id") -> str:
    return "${" + f"{table}.{column}" + "}"


def extract_referenced_tables(check_clause: str) -> tuple[str, ...]:
    out: list[str] = []
    for match in _TABLE_REFERENCE.finditer(check_clause or ""):
        table = match.group(1) or match.group(2) or match.group(3)
        if table and table not in out:
            out.append(table)
    return tuple(out)


# --------- Constraint -> prerequisite tables ---------
@dataclass(frozen=True)
class ConstraintDependencyRule:
    name: str
    applies: Callable[[ConstraintSpec, str], bool]
    dependencies: Callable[[ConstraintSpec, str], tuple[str, ...]]


def _mentions(constraint: ConstraintSpec, word: str) -> bool:
    return word in (constraint.constraint_name or "").lower() or word in (constraint.check_clause or "").lower()


def _is_foreign_key(constraint: ConstraintSpec, table_name: str) -> bool:
    return (
        constraint.constraint_type == "foreign_key"
        and bool(constraint.referenced_table)
        and constraint.referenced_table != table_name
    )


def _is_check_with_clause(constraint: ConstraintSpec, table_name: str) -> bool:
    return constraint.constraint_type == "check" and bool(constraint.check_clause)


def _is_account_constraint(constraint: ConstraintSpec, table_name: str) -> bool:
    if table_name != "accounts":
        return False
    return "account" in (constraint.constraint_name or "").lower() or _mentions(constraint, "is_personal_account")


def _is_organization_constraint(constraint: ConstraintSpec, table_name: str) -> bool:
    return table_name in {"organizations", "organization_members"} and _mentions(constraint, "organization")


CONSTRAINT_DEPENDENCY_RULES: tuple[ConstraintDependencyRule, ...] = (
    ConstraintDependencyRule(
        name="foreign_key_reference",
        applies=_is_foreign_key,
        dependencies=lambda c, t: (str(c.referenced_table),),
    ),
    ConstraintDependencyRule(
        name="check_clause_tables",
        applies=_is_check_with_clause,
        dependencies=lambda c, t: tuple(name for name in extract_referenced_tables(c.check_clause or "") if name != t),
    ),
    ConstraintDependencyRule(
        name="account_requires_auth_profile",
        applies=_is_account_constraint,
        dependencies=lambda c, t: ("auth.users", "profiles"),
    ),
    ConstraintDependencyRule(
        name="organization_requires_owner_membership",
        applies=_is_organization_constraint,
        dependencies=lambda c, t: tuple(name for name in ("accounts", "organization_members") if name != t),
    ),
)


def constraint_dependencies(
    constraint: ConstraintSpec,
    table_name: str,
    rules: tuple[ConstraintDependencyRule, ...] = CONSTRAINT_DEPENDENCY_RULES,
) -> tuple[str, ...]:
    out: list[str] = []
    for rule in rules:
        if not rule.applies(constraint, table_name):
            continue
        for dependency in rule.dependencies(constraint, table_name):
            if dependency not in out:
                out.append(dependency)
    return tuple(out)


# --------- Record -> inferred operations ---------
@dataclass(frozen=True)
class RecordContext:
    table_name: str
    record: Mapping[str, Any]
    now: datetime
    find_records: RecordFinder | None = None
    is_slug_taken: Callable[[str], bool] | None = None

    @property
    def record_id(self) -> str:
        value = self.record.get("id")
        return str(value) if value is not None else "new"


@dataclass
class PatternOutcome:
    operations: list[DependencyOperation] = field(default_factory=list)
    modifications: list[RecordModification] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class RecordPatternRule:
    name: str
    implied_tables: tuple[str, ...]
    applies: Callable[[str, Mapping[str, Any]], bool]
    handle: Callable[[RecordContext], PatternOutcome]


def _team_account_organization(ctx: RecordContext) -> PatternOutcome:
    outcome = PatternOutcome()
    record = ctx.record
    if record.get("organization_id"):
        return outcome

    user_id = record.get("user_id")
    base_name = record.get("name") or record.get("user_name") or "organization"
    outcome.operations.append(
        DependencyOperation(
            operation="create",
            target_table="organizations",
            data={
                "name": record.get("name") or f"{record.get('user_name') or 'User'}'s Organization",
                "slug": generate_unique_slug(str(base_name), is_taken=ctx.is_slug_taken),
                "created_by": user_id,
                "account_id": record.get("id"),
            },
            reason="Team account requires organization",
            priority=1,
        )
    )
    outcome.operations.append(
        DependencyOperation(
            operation="create",
            target_table="organization_members",
            data={
                "organization_id": placeholder("organizations"),
                "user_id": user_id,
                "role": "owner",
                "is_owner": True,
                "invited_by": user_id,
            },
            reason="Create owner membership for new organization",
            priority=2,
            dependencies=("organizations",),
        )
    )
    return outcome


def _user_profile(ctx: RecordContext) -> PatternOutcome:
    outcome = PatternOutcome()
    record = ctx.record
    user_id = record.get("user_id") or record.get("id")
    if not user_id or record.get("profile_id"):
        return outcome

    if ctx.find_records is not None and ctx.find_records("profiles", {"id": user_id}):
        logger.debug("Profile for user '%s' already exists", user_id)
        return outcome

    outcome.operations.append(
        DependencyOperation(
            operation="create",
            target_table="profiles",
            data={
                "id": user_id,
                "email": record.get("email") or record.get("auth_email"),
                "full_name": record.get("full_name") or record.get("name"),
                "avatar_url": record.get("avatar_url"),
                "updated_at": _iso_datetime(ctx.now),
            },
            reason="Create profile for user account",
            priority=1,
        )
    )
    return outcome


def _organization_owner(ctx: RecordContext) -> PatternOutcome:
    outcome = PatternOutcome()
    record = ctx.record
    created_by = record.get("created_by")
    if not created_by or record.get("owner_membership_created"):
        return outcome

    outcome.operations.append(
        DependencyOperation(
            operation="create",
            target_table="organization_members",
            data={
                "organization_id": record.get("id"),
                "user_id": created_by,
                "role": "owner",
                "is_owner": True,
                "invited_by": created_by,
                "joined_at": _iso_datetime(ctx.now),
            },
            reason="Create owner membership for new organization",
            priority=1,
        )
    )
    return outcome


def _subscription_account(ctx: RecordContext) -> PatternOutcome:
    outcome = PatternOutcome()
    record = ctx.record
    if ctx.find_records is None:
        logger.debug("No record finder configured; skipping subscription/account type check")
        return outcome

    accounts = ctx.find_records("accounts", {"id": record.get("account_id")})
    if not accounts:
        return outcome

    is_personal = bool(accounts[0].get("is_personal_account"))
    subscription_type = record.get("subscription_type")
    if subscription_type == "team" and is_personal:
        outcome.warnings.append(
            "Team subscription assigned to personal account - consider subscription type mismatch"
        )
    if subscription_type == "individual" and not is_personal:
        outcome.warnings.append(
            "Individual subscription assigned to team account - consider subscription type mismatch"
        )
    return outcome


def _invitation_workflow(ctx: RecordContext) -> PatternOutcome:
    outcome = PatternOutcome()
    record = ctx.record

    if not record.get("expires_at"):
        outcome.modifications.append(
            RecordModification(
                table="invitations",
                record_id=ctx.record_id,
                field="expires_at",
                old_value=record.get("expires_at"),
                new_value=_iso_datetime(ctx.now + timedelta(days=INVITATION_EXPIRY_DAYS)),
                reason="Set default invitation expiry",
                confidence=0.9,
            )
        )

    role = record.get("role")
    if role and record.get("organization_id") and role not in VALID_MEMBER_ROLES:
        outcome.modifications.append(
            RecordModification(
                table="invitations",
                record_id=ctx.record_id,
                field="role",
                old_value=role,
                new_value=DEFAULT_MEMBER_ROLE,
                reason="Invalid role, defaulting to member",
                confidence=0.8,
            )
        )
    return outcome


RECORD_PATTERN_RULES: tuple[RecordPatternRule, ...] = (
    RecordPatternRule(
        name="team_account_requires_organization",
        implied_tables=("organizations", "organization_members"),
        applies=lambda table, record: table == "accounts" and record.get("is_personal_account") is False,
        handle=_team_account_organization,
    ),
    RecordPatternRule(
        name="auth_principal_requires_profile",
        implied_tables=("profiles",),
        applies=lambda table, record: table == "users" or (table == "accounts" and bool(record.get("user_id"))),
        handle=_user_profile,
    ),
    RecordPatternRule(
        name="organization_requires_owner_membership",
        implied_tables=("organization_members",),
        applies=lambda table, record: table == "organizations",
        handle=_organization_owner,
    ),
    RecordPatternRule(
        name="subscription_matches_account_type",
        implied_tables=("accounts",),
        applies=lambda table, record: table == "subscriptions" and bool(record.get("account_id")),
        handle=_subscription_account,
    ),
    RecordPatternRule(
        name="invitation_expiry_and_role",
        implied_tables=(),
        applies=lambda table, record: table == "invitations",
        handle=_invitation_workflow,
    ),
)


def apply_record_patterns(
    ctx: RecordContext,
    rules: tuple[RecordPatternRule, ...] = RECORD_PATTERN_RULES,
) -> tuple[PatternOutcome, tuple[str, ...]]:
    """Run every matching rule; returns the merged outcome and the tables the rules touched."""
    merged = PatternOutcome()
    touched: list[str] = []
    for rule in rules:
        if not rule.applies(ctx.table_name, ctx.record):
            continue
        outcome = rule.handle(ctx)
        logger.debug(
            "Pattern '%s' on '%s': operations=%d modifications=%d",
            rule.name, ctx.table_name, len(outcome.operations), len(outcome.modifications),
        )
        merged.operations.extend(outcome.operations)
        merged.modifications.extend(outcome.modifications)
        merged.warnings.extend(outcome.warnings)
        for table in rule.implied_tables:
            if table not in touched:
                touched.append(table)
    return merged, tuple(touched)
