"""
Account, course and user models.

Accounts form a tree through parent_account_id. Every account below the top
of the tree also records its root account; a root account has
root_account_id NULL. Courses hang off an account and always know their
root account.
"""

from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import JSON, Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, ContextType, TimestampMixin

# Rights that can be listed on an AccountUser row
RIGHT_READ = "read"
RIGHT_READ_MESSAGES = "read_messages"
RIGHT_VIEW_NOTIFICATIONS = "view_notifications"

# Account setting that lets root account admins browse notification history
SETTING_ADMINS_CAN_VIEW_NOTIFICATIONS = "admins_can_view_notifications"


# ============================================================================
# Pydantic Models (for API/validation)
# ============================================================================


class AccountCreate(BaseModel):
    """Schema for creating an account."""

    name: str = Field(..., min_length=1, max_length=255)
    parent_account_id: int | None = Field(
        default=None, description="Parent account; omit to create a root account"
    )
    is_site_admin: bool = False
    settings: dict[str, Any] = Field(default_factory=dict)


class Account(BaseModel):
    """Account as returned from the database."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    parent_account_id: int | None = None
    root_account_id: int | None = None
    is_site_admin: bool = False
    settings: dict[str, Any] = Field(default_factory=dict)


class CourseCreate(BaseModel):
    """Schema for creating a course."""

    name: str = Field(..., min_length=1, max_length=255)
    account_id: int


class Course(BaseModel):
    """Course as returned from the database."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    account_id: int | None = None
    root_account_id: int


# ============================================================================
# SQLAlchemy Models (for database)
# ============================================================================


class AccountModel(Base, TimestampMixin):
    """SQLAlchemy model for accounts table."""

    __tablename__ = "accounts"

    context_type: ClassVar[str] = ContextType.ACCOUNT.value

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    parent_account_id: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.id"), nullable=True, index=True
    )
    root_account_id: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.id"), nullable=True, index=True
    )
    is_site_admin: Mapped[bool] = mapped_column(Boolean, default=False)
    settings: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    workflow_state: Mapped[str] = mapped_column(String(20), default="active")

    @property
    def is_root_account(self) -> bool:
        return self.root_account_id is None

    @property
    def resolved_root_account_id(self) -> int:
        """Id of the root account, which is this account's own id for a root."""
        return self.root_account_id if self.root_account_id is not None else self.id


class CourseModel(Base, TimestampMixin):
    """SQLAlchemy model for courses table."""

    __tablename__ = "courses"

    context_type: ClassVar[str] = ContextType.COURSE.value

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    account_id: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.id"), nullable=True, index=True
    )
    root_account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id"), nullable=False, index=True
    )


class UserModel(Base, TimestampMixin):
    """SQLAlchemy model for users table."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), default="")


class AccountUserModel(Base):
    """
    Grants a user a set of rights on an account.

    Rights granted on an account also apply to its sub-accounts.
    """

    __tablename__ = "account_users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(ForeignKey("accounts.id"), nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    permissions: Mapped[list[str]] = mapped_column(JSON, default=list)


# A place a tool can be installed in or bound to
ContextModel = AccountModel | CourseModel
