"""Per-kind creation, initialization and readiness sub-checks."""
