from __future__ import annotations

import io
import sys
import unittest
from datetime import datetime
from pathlib import Path

TESTS_DIR = Path("tests")
LOG_DIR = TESTS_DIR / "testlogs"


def _timestamp(now: datetime | None = None) -> str:
    ts = now or datetime.now()
    return ts.strftime("%Y%m%d_%H%M%S")


def _failure_log_path(log_dir: Path, now: datetime | None = None) -> Path:
    return log_dir / f"seed_planner_failures_{_timestamp(now)}.txt"


def _failed_test_ids(result: unittest.result.TestResult) -> list[str]:
    return [str(test) for test, _ in [*result.failures, *result.errors]]


def _build_failure_report(
    result: unittest.result.TestResult,
    test_output: str,
    now: datetime | None = None,
) -> str:
    ts = now or datetime.now()
    lines: list[str] = [
        f"Timestamp: {ts.isoformat(timespec='seconds')}",
        "Summary: "
        f"ran={result.testsRun}, failures={len(result.failures)}, errors={len(result.errors)}, "
        f"skipped={len(result.skipped)}",
    ]
    failed = _failed_test_ids(result)
    if failed:
        lines.append("Failed tests:")
        lines.extend(f"  - {test_id}" for test_id in failed)
    lines.append("Fix hint: read the seed planner assertion messages below (each names a Fix), then rerun this script.")
    lines.append("")
    lines.append(test_output.rstrip())
    lines.append("")
    return "\n".join(lines)


def _write_failure_report(log_dir: Path, content: str, now: datetime | None = None) -> Path:
    log_dir.mkdir(parents=True, exist_ok=True)
    path = _failure_log_path(log_dir, now)
    path.write_text(content, encoding="utf-8")
    return path


def main(argv: list[str] | None = None) -> int:
    pattern = (argv or sys.argv[1:] or ["test_*.py"])[0]
    suite = unittest.TestLoader().discover(start_dir=str(TESTS_DIR), pattern=pattern)

    output = io.StringIO()
    result = unittest.TextTestRunner(stream=output, verbosity=2).run(suite)

    test_output = output.getvalue()
    sys.stdout.write(test_output)

    if result.wasSuccessful():
        print("Seed planner suite passed. No failure log written.")
        return 0

    log_path = _write_failure_report(LOG_DIR, _build_failure_report(result, test_output))
    print(f"Seed planner suite failed. Log written to: {log_path}")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
