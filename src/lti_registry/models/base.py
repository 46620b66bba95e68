"""
Base SQLAlchemy models and shared column helpers for the LTI tool registry.
"""

from datetime import datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import ColumnElement, DateTime, MetaData, String, and_
from sqlalchemy.ext.hybrid import hybrid_method
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func

# Naming convention for constraints and indexes
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)


class ContextType(StrEnum):
    """Kinds of records a tool can be installed in or bound to."""

    ACCOUNT = "Account"
    COURSE = "Course"


class Base(DeclarativeBase):
    """Base class for all registry tables."""

    metadata = metadata

    __tablename__: str


class TimestampMixin:
    """
    Mixin for tables that track created_at and updated_at.

    Usage:
        class MyModel(Base, TimestampMixin):
            ...
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class PolymorphicContextMixin:
    """
    Mixin for rows that point at an Account or a Course.

    Stored as a (context_type, context_id) pair since the target table
    depends on the type.
    """

    context_type: Mapped[str] = mapped_column(String(20), nullable=False)
    context_id: Mapped[int] = mapped_column(nullable=False)

    @hybrid_method
    def points_at(self, context: Any) -> bool:
        """Whether this row references the given AccountModel/CourseModel."""
        return self.context_type == context.context_type and self.context_id == context.id

    @points_at.expression
    def points_at(cls, context: Any) -> ColumnElement[bool]:
        return and_(cls.context_type == context.context_type, cls.context_id == context.id)
