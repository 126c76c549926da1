import random
import unittest
from datetime import datetime, timezone

from seed_planner.config import SeedingOrderOptions
from seed_planner.graph_builder import DependencyGraphBuilder
from seed_planner.schema_graph_model import ForeignKeyRelationship
from seed_planner.seeding_order import calculate_seeding_order_with_phases

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)
SEEDS = (3, 11, 42, 77, 2024)


class TestInvariants(unittest.TestCase):
    def _random_builder(self, seed: int, *, acyclic: bool) -> DependencyGraphBuilder:
        rng = random.Random(seed)
        table_count = rng.randint(4, 14)
        tables = [f"t{i}" for i in range(table_count)]
        builder = DependencyGraphBuilder()
        for table in tables:
            builder.add_node(table)

        for index, table in enumerate(tables):
            candidates = tables[:index] if acyclic else tables
            for target in candidates:
                if rng.random() < 0.3:
                    builder.add_relationship(
                        ForeignKeyRelationship(
                            from_table=table,
                            from_column=f"{target}_id",
                            to_table=target,
                            to_column="id",
                            is_nullable=rng.random() < 0.4,
                            constraint_name=f"{table}_{target}_fkey",
                        )
                    )
        return builder

    def test_acyclic_order_is_topologically_valid(self):
        for seed in SEEDS:
            with self.subTest(seed=seed):
                graph = self._random_builder(seed, acyclic=True).build(now=NOW)
                self.assertEqual(graph.cycles, ())
                position = {table: i for i, table in enumerate(graph.seeding_order)}
                for edge in graph.edges:
                    self.assertLess(
                        position[edge.to_table],
                        position[edge.from_table],
                        f"{edge.to_table} must be seeded before {edge.from_table}. "
                        "Fix: visit dependencies before the table itself.",
                    )

    def test_every_table_appears_exactly_once(self):
        for seed in SEEDS:
            for acyclic in (True, False):
                with self.subTest(seed=seed, acyclic=acyclic):
                    graph = self._random_builder(seed, acyclic=acyclic).build(now=NOW)
                    self.assertEqual(len(graph.seeding_order), len(graph.nodes))
                    self.assertEqual(set(graph.seeding_order), set(graph.table_names()))
                    self.assertEqual(graph.deletion_order, tuple(reversed(graph.seeding_order)))

    def test_circular_flags_match_reported_cycles(self):
        for seed in SEEDS:
            with self.subTest(seed=seed):
                graph = self._random_builder(seed, acyclic=False).build(now=NOW)
                in_cycles = {table for cycle in graph.cycles for table in cycle.tables}
                flagged = {node.table for node in graph.nodes if node.is_circular}
                self.assertEqual(flagged, in_cycles)
                for cycle in graph.cycles:
                    self.assertGreaterEqual(len(cycle.tables), 2)
                    self.assertEqual(sorted(cycle.resolution_order), sorted(cycle.tables))

    def test_phases_partition_the_table_set(self):
        for seed in SEEDS:
            for mode in ("include", "defer", "ignore"):
                with self.subTest(seed=seed, mode=mode):
                    options = SeedingOrderOptions(handle_optional_relationships=mode)
                    graph = self._random_builder(seed, acyclic=False).build(options, now=NOW)
                    result = calculate_seeding_order_with_phases(graph, options)

                    seen: list[str] = []
                    for phase in result.phases:
                        self.assertTrue(phase.tables, "Phases must never be empty.")
                        seen.extend(phase.tables)
                    self.assertEqual(len(seen), len(set(seen)), "A table was placed in two phases.")
                    self.assertEqual(set(seen), set(graph.table_names()))
                    self.assertEqual(result.total_phases, len(result.phases))

    def test_acyclic_phases_only_depend_on_earlier_phases(self):
        for seed in SEEDS:
            with self.subTest(seed=seed):
                graph = self._random_builder(seed, acyclic=True).build(now=NOW)
                result = calculate_seeding_order_with_phases(graph)
                phase_of = {table: phase.phase for phase in result.phases for table in phase.tables}
                for edge in graph.edges:
                    self.assertLess(phase_of[edge.to_table], phase_of[edge.from_table])

    def test_builds_are_deterministic(self):
        for seed in SEEDS:
            with self.subTest(seed=seed):
                first = self._random_builder(seed, acyclic=False).build(now=NOW)
                second = self._random_builder(seed, acyclic=False).build(now=NOW)
                self.assertEqual(first, second)
                self.assertEqual(
                    calculate_seeding_order_with_phases(first),
                    calculate_seeding_order_with_phases(second),
                )


if __name__ == "__main__":
    unittest.main()
