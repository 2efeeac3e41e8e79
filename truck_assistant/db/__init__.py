"""Relational persistence: declarative base, ORM models, engine lifecycle."""
