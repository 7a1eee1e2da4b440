"""SQLAlchemy ORM models — single source of truth for the database schema.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Defaults are Python-side (not server_default) so the values are available
right after flush without a refresh round-trip.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 1000

# Range of the 32-bit INTEGER id column
ITEM_ID_MIN = -(2**31)
ITEM_ID_MAX = 2**31 - 1


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TodoItem(Base):
    """A single todo record.

    Invariants: created_at is set once at insert. completed_at is non-null
    only while is_completed is true (see TodoService._apply_completion).
    """

    __tablename__ = "todo_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(TITLE_MAX_LENGTH), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(
        String(DESCRIPTION_MAX_LENGTH), nullable=True
    )
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        return f"<TodoItem id={self.id} title={self.title!r} completed={self.is_completed}>"
