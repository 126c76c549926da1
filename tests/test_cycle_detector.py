import unittest

from seed_planner.cycle_detector import circular_tables, detect_cycles, edges_in_cycle
from seed_planner.graph_builder import build_dependency_graph
from seed_planner.schema_graph_model import DependencyEdge, ForeignKeyRelationship
from seed_planner.seeding_order import calculate_seeding_order_with_phases


def _edge(from_table, to_table):
    return DependencyEdge(from_table, to_table, "required", 8, f"{from_table}_{to_table}_fkey", False)


class TestCycleDetector(unittest.TestCase):
    def test_three_table_loop_is_reported_once(self):
        cycles = detect_cycles(["A", "B", "C"], {"A": ["B"], "B": ["C"], "C": ["A"]})
        self.assertEqual(cycles, [("A", "B", "C")])

    def test_self_reference_is_ignored(self):
        self.assertEqual(detect_cycles(["A"], {"A": ["A"]}), [])

    def test_acyclic_graph_has_no_cycles(self):
        self.assertEqual(detect_cycles(["A", "B", "C"], {"A": [], "B": ["A"], "C": ["A", "B"]}), [])

    def test_search_continues_after_first_cycle(self):
        cycles = detect_cycles(
            ["A", "B", "C"],
            {"A": ["B"], "B": ["A", "C"], "C": ["B"]},
        )
        self.assertEqual(
            cycles,
            [("A", "B"), ("B", "C")],
            "Both loops through B must be reported. Fix: keep searching after a back edge.",
        )

    def test_loop_through_visited_table_is_not_reported(self):
        # A<->B and C<->D, joined into A -> C -> D -> B -> A
        dependencies = {"A": ["B", "C"], "B": ["A"], "C": ["D"], "D": ["C", "B"]}
        cycles = detect_cycles(["A", "B", "C", "D"], dependencies)
        self.assertEqual(
            cycles,
            [("A", "B"), ("C", "D")],
            "B is fully visited before D reaches it, so the outer loop is not reported.",
        )

    def test_unreported_loop_still_yields_phases_for_every_table(self):
        edges = [("A", "B"), ("B", "A"), ("C", "D"), ("D", "C"), ("A", "C"), ("D", "B")]
        graph = build_dependency_graph(
            [(table, "public", None) for table in ("A", "B", "C", "D")],
            [ForeignKeyRelationship(f, f"{t.lower()}_id", t, "id", constraint_name=f"{f}_{t}_fkey") for f, t in edges],
        )
        self.assertEqual(graph.seeding_order, ("B", "C", "A", "D"))

        result = calculate_seeding_order_with_phases(graph)
        self.assertEqual([phase.tables for phase in result.phases], [("B", "C"), ("A", "D")])
        self.assertEqual(
            sorted(t for phase in result.phases for t in phase.tables),
            ["A", "B", "C", "D"],
        )
        self.assertFalse(
            any("deadlock" in warning for warning in result.warnings),
            "A -> C and D -> B are satisfiable after phase 1. Fix: only exempt pairs of reported cycles.",
        )

    def test_same_table_set_is_reported_once(self):
        cycles = detect_cycles(["A", "B"], {"A": ["B", "B"], "B": ["A"]})
        self.assertEqual(cycles, [("A", "B")])

    def test_edges_in_cycle_skips_outside_and_self_edges(self):
        edges = [_edge("A", "B"), _edge("B", "A"), _edge("A", "A"), _edge("A", "Z")]
        picked = edges_in_cycle(("A", "B"), edges)
        self.assertEqual([(e.from_table, e.to_table) for e in picked], [("A", "B"), ("B", "A")])

    def test_circular_tables_flattens_cycles(self):
        self.assertEqual(circular_tables([("A", "B"), ("B", "C")]), {"A", "B", "C"})


if __name__ == "__main__":
    unittest.main()
