"""Multi-round table assignment for seated events."""
