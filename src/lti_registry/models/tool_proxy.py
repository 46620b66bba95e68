"""
Tool proxy models.

A tool proxy is one installation of an external LTI 2 tool. Its identity
(vendor_code, product_code) lives on the product family it belongs to. The
proxy is installed in exactly one context, but is only usable where a
binding enables it.
"""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, ContextType, PolymorphicContextMixin, TimestampMixin


class ToolProxyState(StrEnum):
    """Tool proxy workflow state."""

    ACTIVE = "active"
    DISABLED = "disabled"
    DELETED = "deleted"


# ============================================================================
# Pydantic Models (for API/validation)
# ============================================================================


class ProductFamily(BaseModel):
    """Vendor/product identity shared by every install of a tool."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    vendor_code: str
    product_code: str
    vendor_name: str
    root_account_id: int


class ToolProxy(BaseModel):
    """Tool proxy as returned from the database."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    guid: str
    name: str | None = None
    product_version: str
    lti_version: str
    product_family_id: int
    context_type: ContextType
    context_id: int
    workflow_state: ToolProxyState


class ToolProxyBinding(BaseModel):
    """Where a tool proxy is enabled for use."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    tool_proxy_id: int
    context_type: ContextType
    context_id: int
    enabled: bool = Field(default=True)


# ============================================================================
# SQLAlchemy Models (for database)
# ============================================================================


class ProductFamilyModel(Base, TimestampMixin):
    """SQLAlchemy model for lti_product_families table."""

    __tablename__ = "lti_product_families"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    vendor_code: Mapped[str] = mapped_column(String(255), nullable=False)
    product_code: Mapped[str] = mapped_column(String(255), nullable=False)
    vendor_name: Mapped[str] = mapped_column(String(255), default="")
    root_account_id: Mapped[int] = mapped_column(ForeignKey("accounts.id"), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "vendor_code", "product_code", "root_account_id", name="uq_product_family_codes"
        ),
    )


class ToolProxyModel(Base, TimestampMixin, PolymorphicContextMixin):
    """SQLAlchemy model for lti_tool_proxies table."""

    __tablename__ = "lti_tool_proxies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    guid: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    shared_secret: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    product_version: Mapped[str] = mapped_column(String(255), nullable=False)
    lti_version: Mapped[str] = mapped_column(String(255), nullable=False)
    product_family_id: Mapped[int] = mapped_column(
        ForeignKey("lti_product_families.id"), nullable=False, index=True
    )
    workflow_state: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ToolProxyState.ACTIVE.value
    )
    raw_data: Mapped[str | None] = mapped_column(Text, nullable=True)

    product_family: Mapped[ProductFamilyModel] = relationship(
        "ProductFamilyModel", lazy="selectin"
    )

    __table_args__ = (Index("idx_tool_proxy_context", "context_type", "context_id"),)


class ToolProxyBindingModel(Base, TimestampMixin, PolymorphicContextMixin):
    """SQLAlchemy model for lti_tool_proxy_bindings table."""

    __tablename__ = "lti_tool_proxy_bindings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tool_proxy_id: Mapped[int] = mapped_column(
        ForeignKey("lti_tool_proxies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (Index("idx_tool_proxy_binding_context", "context_type", "context_id"),)
