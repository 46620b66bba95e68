"""
Install payload schemas.

Describes a whole tool installation in one document: the product identity,
the context it goes into, and the resource and message handlers it brings.
"""

from pydantic import BaseModel, Field

from .base import ContextType
from .message_handler import MessageHandlerCreate
from .resource_handler import ResourceHandlerBase


class ResourceHandlerInstall(ResourceHandlerBase):
    """A resource handler and the message handlers grouped under it."""

    message_handlers: list[MessageHandlerCreate] = Field(default_factory=list)


class ToolProxyInstall(BaseModel):
    """Schema for installing a tool proxy into an account or course."""

    vendor_code: str = Field(..., min_length=1)
    product_code: str = Field(..., min_length=1)
    vendor_name: str = Field(default="")

    context_type: ContextType
    context_id: int

    name: str | None = None
    guid: str | None = Field(default=None, description="Generated when omitted")
    shared_secret: str | None = Field(default=None, description="Generated when omitted")
    product_version: str = Field(default="1.0")
    lti_version: str = Field(default="LTI-2p0")
    raw_data: str | None = None

    resource_handlers: list[ResourceHandlerInstall] = Field(default_factory=list)


class InstallResult(BaseModel):
    """Outcome of installing a tool proxy."""

    tool_proxy_id: int
    guid: str
    binding_id: int
    resource_handler_count: int = 0
    message_handler_count: int = 0
    placement_count: int = 0
