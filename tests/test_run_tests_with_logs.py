import tempfile
import unittest
from datetime import datetime
from pathlib import Path

import run_tests_with_logs as runner


class TestRunTestsWithLogs(unittest.TestCase):
    def test_failure_log_path_is_timestamped(self):
        path = runner._failure_log_path(runner.LOG_DIR, datetime(2026, 2, 8, 13, 45, 7))
        self.assertEqual(
            path.name,
            "seed_planner_failures_20260208_134507.txt",
            "Failure log filename format mismatch. "
            "Fix: use seed_planner_failures_YYYYMMDD_HHMMSS.txt naming.",
        )
        self.assertEqual(path.parent, Path("tests") / "testlogs")

    def test_write_failure_report_creates_parent_directory(self):
        with tempfile.TemporaryDirectory() as tmp:
            log_dir = Path(tmp) / "nested" / "testlogs"
            path = runner._write_failure_report(log_dir, "report body", datetime(2026, 2, 8, 13, 45, 7))
            self.assertTrue(path.exists())
            self.assertEqual(path.read_text(encoding="utf-8"), "report body")

    def test_failure_report_lists_failed_tests(self):
        result = unittest.TestResult()
        result.testsRun = 4
        result.failures = [("tests.test_seeding_order.TestSeedingOrder.test_x", "traceback")]
        result.errors = [("tests.test_graph_builder.TestGraphBuilder.test_y", "traceback")]

        report = runner._build_failure_report(result, "unittest output", datetime(2026, 2, 8, 13, 45, 7))
        self.assertIn("Timestamp: 2026-02-08T13:45:07", report)
        self.assertIn("Summary: ran=4, failures=1, errors=1, skipped=0", report)
        self.assertIn("  - tests.test_seeding_order.TestSeedingOrder.test_x", report)
        self.assertIn("Fix hint:", report)
        self.assertTrue(report.rstrip().endswith("unittest output"))


if __name__ == "__main__":
    unittest.main()
