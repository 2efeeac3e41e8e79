"""Declarative base shared by the ORM models and the Alembic environment."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Every model sets ``__tablename__`` to the table name in the migrations."""
