"""Core library for vendorsync (fetch engine, config, lock file)."""
