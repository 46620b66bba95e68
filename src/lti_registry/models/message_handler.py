"""
Message handler models.

A message handler is a tool's launch configuration: the message type it
accepts and the URL it is launched at. Placements attach a handler to UI
surfaces such as account or course navigation.
"""

from enum import StrEnum
from typing import Any, TypedDict
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import JSON, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin
from .resource_handler import ResourceHandlerModel


class MessageType(StrEnum):
    """LTI 2 message types a handler can accept."""

    BASIC_LTI_LAUNCH_REQUEST = "basic-lti-launch-request"
    CONTENT_ITEM_SELECTION_REQUEST = "ContentItemSelectionRequest"
    TOOL_PROXY_REGISTRATION_REQUEST = "ToolProxyRegistrationRequest"
    TOOL_PROXY_REREGISTRATION_REQUEST = "ToolProxyReregistrationRequest"


BASIC_LTI_LAUNCH_REQUEST = MessageType.BASIC_LTI_LAUNCH_REQUEST.value

DEFAULT_PORTS = {"http": 80, "https": 443}


class ResourcePlacement(StrEnum):
    """UI surfaces a message handler can be placed on."""

    ACCOUNT_NAVIGATION = "account_navigation"
    COURSE_NAVIGATION = "course_navigation"
    ASSIGNMENT_SELECTION = "assignment_selection"
    LINK_SELECTION = "link_selection"
    POST_GRADES = "post_grades"
    RESOURCE_SELECTION = "resource_selection"
    SIMILARITY_DETECTION = "similarity_detection"
    GLOBAL_NAVIGATION = "global_navigation"


class ResourceCodes(TypedDict):
    """The three codes that identify a handler across installs."""

    vendor_code: str
    product_code: str
    resource_type_code: str


# ============================================================================
# Pydantic Models (for API/validation)
# ============================================================================


class MessageHandlerCreate(BaseModel):
    """
    Schema for a message handler inside an install payload.

    message_type and launch_path are checked by the registry's own
    validation so missing values come back as field errors.
    """

    message_type: str | None = Field(default=BASIC_LTI_LAUNCH_REQUEST)
    launch_path: str | None = None
    capabilities: list[str] = Field(default_factory=list)
    parameters: list[dict[str, Any]] = Field(default_factory=list)
    placements: list[ResourcePlacement] = Field(default_factory=list)


class MessageHandler(BaseModel):
    """Message handler as returned from the database."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    message_type: str
    launch_path: str
    resource_handler_id: int
    capabilities: list[str] = Field(default_factory=list)
    parameters: list[dict[str, Any]] = Field(default_factory=list)


# ============================================================================
# SQLAlchemy Models (for database)
# ============================================================================


class ResourcePlacementModel(Base, TimestampMixin):
    """SQLAlchemy model for lti_resource_placements table."""

    __tablename__ = "lti_resource_placements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    message_handler_id: Mapped[int] = mapped_column(
        ForeignKey("lti_message_handlers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    placement: Mapped[str] = mapped_column(String(50), nullable=False)

    __table_args__ = (
        UniqueConstraint("message_handler_id", "placement", name="uq_placement_per_handler"),
    )


class MessageHandlerModel(Base, TimestampMixin):
    """SQLAlchemy model for lti_message_handlers table."""

    __tablename__ = "lti_message_handlers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    message_type: Mapped[str] = mapped_column(String(255), nullable=False)
    launch_path: Mapped[str] = mapped_column(Text, nullable=False)
    capabilities: Mapped[list[str]] = mapped_column(JSON, default=list)
    parameters: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    resource_handler_id: Mapped[int] = mapped_column(
        ForeignKey("lti_resource_handlers.id", ondelete="CASCADE"), nullable=False, index=True
    )

    resource_handler: Mapped[ResourceHandlerModel] = relationship(
        "ResourceHandlerModel", lazy="selectin"
    )
    placements: Mapped[list[ResourcePlacementModel]] = relationship(
        "ResourcePlacementModel", lazy="selectin", cascade="all, delete-orphan"
    )

    @property
    def asset_string(self) -> str:
        return f"lti/message_handler_{self.id}"

    def resource_codes(self) -> ResourceCodes:
        """
        Codes identifying this handler: vendor and product from the tool
        proxy's product family, resource type from the resource handler.
        """
        resource_handler = self.resource_handler
        product_family = resource_handler.tool_proxy.product_family
        return ResourceCodes(
            vendor_code=product_family.vendor_code,
            product_code=product_family.product_code,
            resource_type_code=resource_handler.resource_type_code,
        )

    def valid_resource_url(self, resource_url: str) -> bool:
        """
        Whether resource_url lives under this handler's launch path.

        Scheme, host and port must be equal, an omitted port counting as
        the scheme default. The URL's path must be the launch path itself
        or sit beneath it.
        """
        try:
            launch = urlsplit(self.launch_path or "")
            candidate = urlsplit(resource_url or "")
            launch_port = launch.port or DEFAULT_PORTS.get(launch.scheme.lower())
            candidate_port = candidate.port or DEFAULT_PORTS.get(candidate.scheme.lower())
        except ValueError:
            return False

        if not launch.scheme or not launch.hostname:
            return False
        if candidate.scheme.lower() != launch.scheme.lower():
            return False
        if (candidate.hostname, candidate_port) != (launch.hostname, launch_port):
            return False

        prefix = launch.path.rstrip("/")
        if not prefix:
            return True
        return candidate.path == prefix or candidate.path.startswith(prefix + "/")
