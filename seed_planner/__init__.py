"""Dependency-aware seeding plans for relational schemas."""
