import unittest

from seed_planner.schema_graph_model import ForeignKeyRelationship
from seed_planner.table_metadata import (
    ColumnInfo,
    build_table_metadata,
    estimate_size,
    is_junction_table,
    seeding_complexity,
)


def _col(table, name, data_type="text", *, nullable=True, pk=False):
    return ColumnInfo(table, name, data_type, is_nullable=nullable, is_primary_key=pk)


def _fk(from_table, column, to_table):
    return ForeignKeyRelationship(from_table, column, to_table, "id")


class TestTableMetadata(unittest.TestCase):
    def _members_columns(self):
        return [
            _col("organization_members", "organization_id", "uuid", nullable=False, pk=True),
            _col("organization_members", "user_id", "uuid", nullable=False, pk=True),
            _col("organization_members", "role"),
            _col("organization_members", "created_at", "timestamptz"),
            _col("organizations", "id", "uuid", nullable=False, pk=True),
        ]

    def _members_fks(self):
        return [
            _fk("organization_members", "organization_id", "organizations"),
            _fk("organization_members", "user_id", "users"),
            _fk("organizations", "owner_id", "users"),
        ]

    def test_membership_table_is_a_tenant_scoped_junction(self):
        meta = build_table_metadata("organization_members", self._members_columns(), self._members_fks())

        self.assertTrue(meta.is_junction_table)
        self.assertTrue(meta.is_tenant_scoped)
        self.assertTrue(meta.has_timestamps)
        self.assertEqual(meta.primary_key_columns, ("organization_id", "user_id"))
        self.assertEqual(meta.foreign_key_count, 2)
        self.assertEqual(meta.estimated_size, "small")
        self.assertEqual(meta.seeding_complexity, "moderate")

    def test_surrogate_key_table_is_not_a_junction(self):
        columns = [
            _col("orders", "id", "uuid", nullable=False, pk=True),
            _col("orders", "customer_id", "uuid", nullable=False),
            _col("orders", "coupon_id", "uuid"),
        ]
        fks = [_fk("orders", "customer_id", "customers"), _fk("orders", "coupon_id", "coupons")]
        self.assertFalse(is_junction_table(columns, fks))

    def test_junction_requires_two_foreign_keys(self):
        columns = [_col("t", "a_id", nullable=False, pk=True)]
        self.assertFalse(is_junction_table(columns, [_fk("t", "a_id", "a")]))

    def test_size_classes(self):
        self.assertEqual(estimate_size(5), "small")
        self.assertEqual(estimate_size(15), "medium")
        self.assertEqual(estimate_size(16), "large")

    def test_complex_types_raise_seeding_complexity(self):
        columns = [
            _col("events", "payload", "jsonb", nullable=False),
            _col("events", "tags", "text[]"),
            _col("events", "area", "geometry"),
            _col("events", "meta", "json"),
        ]
        self.assertEqual(seeding_complexity(columns, 2), "complex")
        self.assertEqual(seeding_complexity(columns, 1), "moderate")
        self.assertEqual(seeding_complexity(columns[:1], 0), "simple")


if __name__ == "__main__":
    unittest.main()
