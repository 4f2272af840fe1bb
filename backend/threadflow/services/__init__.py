"""Generation, persistence and session services."""
