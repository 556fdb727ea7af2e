"""
Declarative base.

All ORM models inherit from Base so a single MetaData holds the schema.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all models."""
