from __future__ import annotations

from dataclasses import dataclass
from typing import Any

OPTIONAL_RELATIONSHIP_MODES: tuple[str, ...] = ("include", "defer", "ignore")
LOG_LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class AppConfig:
    debug: bool = False
    log_level: str = "INFO"
    default_schema: str = "public"


@dataclass(frozen=True)
class ResolverConfig:
    enable_cascade_resolution: bool = True
    enable_dependency_creation: bool = True
    max_resolution_depth: int = 5
    dry_run: bool = False
    strict_mode: bool = False


@dataclass(frozen=True)
class SeedingOrderOptions:
    respect_circular_dependencies: bool = True
    handle_optional_relationships: str = OPTIONAL_RELATIONSHIP_MODES[0]


def _config_error(field: str, issue: str, hint: str) -> str:
    return f"Seed Planner config / {field}: {issue}. Fix: {hint}."


def _parse_bool(value: Any, *, field: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        text = value.strip().lower()
        if text in {"1", "true", "yes", "on"}:
            return True
        if text in {"0", "false", "no", "off"}:
            return False
    raise ValueError(
        _config_error(
            field,
            "must be true or false",
            f"set {field.lower()} to true or false",
        )
    )


def _parse_bounded_int(value: Any, *, field: str, minimum: int, maximum: int, hint: str) -> int:
    if isinstance(value, bool):
        raise ValueError(_config_error(field, "must be an integer", hint))
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(_config_error(field, "must be an integer", hint)) from exc
    if parsed < minimum:
        raise ValueError(_config_error(field, f"value {parsed} must be >= {minimum}", hint))
    if parsed > maximum:
        raise ValueError(_config_error(field, f"value {parsed} must be <= {maximum}", hint))
    return parsed


def _parse_choice(value: Any, *, field: str, allowed: tuple[str, ...], upper: bool = False) -> str:
    text = str(value).strip()
    text = text.upper() if upper else text.lower()
    if text not in allowed:
        raise ValueError(
            _config_error(
                field,
                f"unsupported value '{value}'",
                f"choose one of: {', '.join(allowed)}",
            )
        )
    return text


def build_app_config(
    *,
    debug_value: Any = False,
    log_level_value: Any = "INFO",
    default_schema_value: Any = "public",
) -> AppConfig:
    schema = str(default_schema_value).strip()
    if schema == "":
        raise ValueError(
            _config_error(
                "Default schema",
                "value is required",
                "set default_schema to a schema name such as 'public'",
            )
        )
    return AppConfig(
        debug=_parse_bool(debug_value, field="Debug"),
        log_level=_parse_choice(log_level_value, field="Log level", allowed=LOG_LEVELS, upper=True),
        default_schema=schema,
    )


def build_resolver_config(
    *,
    enable_cascade_resolution_value: Any = True,
    enable_dependency_creation_value: Any = True,
    max_resolution_depth_value: Any = 5,
    dry_run_value: Any = False,
    strict_mode_value: Any = False,
) -> ResolverConfig:
    return ResolverConfig(
        enable_cascade_resolution=_parse_bool(
            enable_cascade_resolution_value, field="Enable cascade resolution"
        ),
        enable_dependency_creation=_parse_bool(
            enable_dependency_creation_value, field="Enable dependency creation"
        ),
        max_resolution_depth=_parse_bounded_int(
            max_resolution_depth_value,
            field="Max resolution depth",
            minimum=1,
            maximum=50,
            hint="set max_resolution_depth to a whole number between 1 and 50",
        ),
        dry_run=_parse_bool(dry_run_value, field="Dry run"),
        strict_mode=_parse_bool(strict_mode_value, field="Strict mode"),
    )


def build_seeding_order_options(
    *,
    respect_circular_dependencies_value: Any = True,
    handle_optional_relationships_value: Any = "include",
) -> SeedingOrderOptions:
    return SeedingOrderOptions(
        respect_circular_dependencies=_parse_bool(
            respect_circular_dependencies_value, field="Respect circular dependencies"
        ),
        handle_optional_relationships=_parse_choice(
            handle_optional_relationships_value,
            field="Handle optional relationships",
            allowed=OPTIONAL_RELATIONSHIP_MODES,
        ),
    )


def validate_seeding_order_options(options: SeedingOrderOptions) -> None:
    if options.handle_optional_relationships not in OPTIONAL_RELATIONSHIP_MODES:
        raise ValueError(
            _config_error(
                "Handle optional relationships",
                f"unsupported value '{options.handle_optional_relationships}'",
                f"choose one of: {', '.join(OPTIONAL_RELATIONSHIP_MODES)}",
            )
        )
