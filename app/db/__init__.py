"""Database engine, session and initialization helpers."""
