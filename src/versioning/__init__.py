"""Package metadata models and parsing."""
