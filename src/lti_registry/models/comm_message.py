"""
Communication message models.

A record of one notification (email, SMS, dashboard item) sent to a user.
"""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from .base import Base


class MessageState(StrEnum):
    """Delivery state of a message."""

    CREATED = "created"
    STAGED = "staged"
    SENDING = "sending"
    SENT = "sent"
    BOUNCED = "bounced"
    DASHBOARD = "dashboard"
    CANCELLED = "cancelled"
    CLOSED = "closed"


# ============================================================================
# Pydantic Models (for API/validation)
# ============================================================================


class CommMessage(BaseModel):
    """Serialized message as returned by the comm messages API."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    created_at: datetime
    sent_at: datetime | None = None
    workflow_state: MessageState
    from_address: str | None = Field(default=None, serialization_alias="from")
    from_name: str | None = None
    to: str | None = None
    reply_to: str | None = None
    subject: str | None = None
    body: str | None = None
    html_body: str | None = None


# ============================================================================
# SQLAlchemy Models (for database)
# ============================================================================


class MessageModel(Base):
    """SQLAlchemy model for messages table."""

    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    root_account_id: Mapped[int | None] = mapped_column(ForeignKey("accounts.id"), nullable=True)
    workflow_state: Mapped[str] = mapped_column(
        String(20), nullable=False, default=MessageState.CREATED.value
    )

    from_address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    from_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    to: Mapped[str | None] = mapped_column(String(255), nullable=True)
    reply_to: Mapped[str | None] = mapped_column(String(255), nullable=True)
    subject: Mapped[str | None] = mapped_column(Text, nullable=True)
    body: Mapped[str | None] = mapped_column(Text, nullable=True)
    html_body: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_messages_user_created", "user_id", "created_at"),
        Index("idx_messages_root_account", "root_account_id"),
    )
