"""
Resource handler models.

A resource handler groups the message handlers a tool offers for one kind
of resource, identified by resource_type_code within its tool proxy.
"""

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin
from .tool_proxy import ToolProxyModel

# ============================================================================
# Pydantic Models (for API/validation)
# ============================================================================


class ResourceHandlerBase(BaseModel):
    """Base resource handler fields."""

    resource_type_code: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: str | None = None


class ResourceHandler(ResourceHandlerBase):
    """Resource handler as returned from the database."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    tool_proxy_id: int


# ============================================================================
# SQLAlchemy Models (for database)
# ============================================================================


class ResourceHandlerModel(Base, TimestampMixin):
    """SQLAlchemy model for lti_resource_handlers table."""

    __tablename__ = "lti_resource_handlers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    resource_type_code: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    tool_proxy_id: Mapped[int] = mapped_column(
        ForeignKey("lti_tool_proxies.id", ondelete="CASCADE"), nullable=False, index=True
    )

    tool_proxy: Mapped[ToolProxyModel] = relationship("ToolProxyModel", lazy="selectin")
