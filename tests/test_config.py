import unittest

from seed_planner.config import (
    ResolverConfig,
    SeedingOrderOptions,
    build_app_config,
    build_resolver_config,
    build_seeding_order_options,
)


class TestConfig(unittest.TestCase):
    def test_resolver_config_defaults(self):
        self.assertEqual(build_resolver_config(), ResolverConfig())
        self.assertEqual(ResolverConfig().max_resolution_depth, 5)

    def test_resolver_config_parses_loose_values(self):
        cfg = build_resolver_config(
            enable_cascade_resolution_value="no",
            enable_dependency_creation_value=1,
            max_resolution_depth_value="3",
            dry_run_value="YES",
            strict_mode_value="off",
        )
        self.assertEqual(
            cfg,
            ResolverConfig(
                enable_cascade_resolution=False,
                enable_dependency_creation=True,
                max_resolution_depth=3,
                dry_run=True,
                strict_mode=False,
            ),
        )

    def test_resolution_depth_bounds_are_actionable(self):
        for bad in ("0", 51, "deep", True):
            with self.subTest(value=bad):
                with self.assertRaises(ValueError) as ctx:
                    build_resolver_config(max_resolution_depth_value=bad)
                message = str(ctx.exception)
                self.assertIn("Seed Planner config / Max resolution depth", message)
                self.assertIn(
                    "Fix:",
                    message,
                    "Config errors must name a fix. Fix: route through _config_error().",
                )

    def test_boolean_parser_rejects_unknown_words(self):
        with self.assertRaises(ValueError) as ctx:
            build_resolver_config(dry_run_value="maybe")
        self.assertIn("Dry run", str(ctx.exception))

    def test_seeding_order_options(self):
        self.assertEqual(build_seeding_order_options(), SeedingOrderOptions())
        options = build_seeding_order_options(
            respect_circular_dependencies_value="false",
            handle_optional_relationships_value=" DEFER ",
        )
        self.assertFalse(options.respect_circular_dependencies)
        self.assertEqual(options.handle_optional_relationships, "defer")
        with self.assertRaises(ValueError):
            build_seeding_order_options(handle_optional_relationships_value="later")

    def test_app_config(self):
        cfg = build_app_config(debug_value="1", log_level_value="debug", default_schema_value=" tenant ")
        self.assertTrue(cfg.debug)
        self.assertEqual(cfg.log_level, "DEBUG")
        self.assertEqual(cfg.default_schema, "tenant")
        with self.assertRaises(ValueError):
            build_app_config(default_schema_value="  ")


if __name__ == "__main__":
    unittest.main()
