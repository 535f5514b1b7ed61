"""Per-package validation checks."""
