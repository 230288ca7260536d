"""Domain services: binder layout engine, persistence and lookups."""
