import unittest
from datetime import datetime, timezone

from seed_planner.graph_metadata import (
    build_graph_metadata,
    calculate_confidence,
    calculate_graph_complexity,
    calculate_phase_complexity,
    generate_recommendations,
    generate_warnings,
)
from seed_planner.schema_graph_model import TableMetadata, TableNode


class TestGraphMetadata(unittest.TestCase):
    def test_graph_complexity_thresholds(self):
        self.assertEqual(calculate_graph_complexity(3, 0, 0), "simple")
        self.assertEqual(calculate_graph_complexity(3, 1, 0), "moderate")
        self.assertEqual(calculate_graph_complexity(3, 0, 4), "moderate")
        self.assertEqual(calculate_graph_complexity(3, 3, 0), "complex")
        self.assertEqual(calculate_graph_complexity(3, 0, 6), "complex")
        self.assertEqual(calculate_graph_complexity(21, 4, 0), "very_complex")
        self.assertEqual(calculate_graph_complexity(20, 4, 0), "complex")

    def test_phase_complexity_thresholds(self):
        self.assertEqual(calculate_phase_complexity(5, 0), "low")
        self.assertEqual(calculate_phase_complexity(11, 0), "medium")
        self.assertEqual(calculate_phase_complexity(5, 1), "medium")
        self.assertEqual(calculate_phase_complexity(21, 0), "high")
        self.assertEqual(calculate_phase_complexity(5, 4), "high")

    def test_confidence_drops_per_cycle_with_floor(self):
        self.assertEqual(calculate_confidence(0), 0.8)
        self.assertEqual(calculate_confidence(1), 0.7)
        self.assertEqual(calculate_confidence(3), 0.5)
        self.assertEqual(
            calculate_confidence(10),
            0.1,
            "Confidence must stay above zero. Fix: floor confidence at 0.1.",
        )

    def test_warnings_cover_cycles_depth_and_dangling(self):
        warnings = generate_warnings(4, 6, ("dangling edge",))
        self.assertEqual(
            warnings,
            (
                "4 circular dependencies detected",
                "High number of circular dependencies may affect seeding performance",
                "Deep dependency chain detected - consider optimizing schema design",
                "dangling edge",
            ),
        )
        self.assertEqual(generate_warnings(0, 2, ()), ())

    def test_recommendations_mention_junction_and_tenant_tables(self):
        nodes = (
            TableNode("accounts", "public", metadata=TableMetadata(is_tenant_scoped=True)),
            TableNode("user_tags", "public", metadata=TableMetadata(is_junction_table=True)),
            TableNode("tags", "public"),
        )
        recommendations = generate_recommendations(nodes, ())
        self.assertEqual(
            recommendations,
            (
                "Detected 1 junction tables - ensure proper many-to-many relationship handling",
                "1 tenant-scoped tables detected - seed tenants before their scoped rows",
            ),
        )

    def test_build_graph_metadata_uses_given_clock(self):
        nodes = (TableNode("a", "public"), TableNode("b", "public", depth=4))
        meta = build_graph_metadata(nodes, 1, (), now=datetime(2026, 5, 6, 7, 8, 9, tzinfo=timezone.utc))
        self.assertEqual(meta.analysis_timestamp, "2026-05-06T07:08:09Z")
        self.assertEqual(meta.max_depth, 4)
        self.assertEqual(meta.complexity, "moderate")
        self.assertEqual(meta.total_relationships, 1)


if __name__ == "__main__":
    unittest.main()
