# backend/app/db/base.py
"""
SQLAlchemy declarative base plus re-exports of the session objects.

Models import Base from here; endpoints import get_db from here as well,
so both only need one import path.
"""
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Base class for all ORM models.

    Usage:
        class Budget(OwnedRecordMixin, Base):
            __tablename__ = "budgets"
            ...
    """
    pass


from backend.app.db.session import (  # noqa: E402
    engine,
    AsyncSessionLocal,
    get_db,
)

__all__ = [
    "Base",
    "engine",
    "AsyncSessionLocal",
    "get_db",
]
