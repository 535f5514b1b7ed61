"""Dependency resolution and install planning."""
