# To run:
# python -m seed_planner.main path/to/schema_snapshot.json --phases


import argparse
import json
import logging
import sys
import traceback

from seed_planner.config import build_app_config, build_seeding_order_options
from seed_planner.logging_setup import setup_logging
from seed_planner.schema_graph_io import (
    build_graph_from_snapshot,
    graph_to_payload,
    load_schema_snapshot_from_json,
    save_graph_to_json,
)
from seed_planner.seeding_order import calculate_seeding_order_with_phases

logger = logging.getLogger("main")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="seed_planner",
        description="Plan the order in which a relational schema's tables can be seeded.",
    )
    parser.add_argument("snapshot", help="schema snapshot JSON (tables, columns, foreign_keys)")
    parser.add_argument("--phases", action="store_true", help="group the seeding order into phases")
    parser.add_argument("--output", help="write the plan to this JSON file instead of stdout")
    parser.add_argument("--log-level", default="INFO", help="DEBUG, INFO, WARNING, ERROR or CRITICAL")
    parser.add_argument(
        "--optional-relationships",
        default="include",
        help="include, defer or ignore nullable foreign keys when ordering",
    )
    parser.add_argument("--debug", action="store_true", help="print tracebacks on failure")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    try:
        cfg = build_app_config(debug_value=args.debug, log_level_value=args.log_level)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 2

    setup_logging(cfg.log_level)
    logger.info("Seed planner starting for snapshot '%s'", args.snapshot)

    try:
        options = build_seeding_order_options(handle_optional_relationships_value=args.optional_relationships)
        snapshot = load_schema_snapshot_from_json(args.snapshot)
        graph = build_graph_from_snapshot(snapshot, options)
        phases = calculate_seeding_order_with_phases(graph, options) if args.phases else None

        if args.output:
            save_graph_to_json(graph, args.output, phases)
        else:
            sys.stdout.write(json.dumps(graph_to_payload(graph, phases), indent=2) + "\n")
        return 0
    except Exception as exc:
        logger.error("Seed planning failed: %s", exc)
        if cfg.debug:
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
