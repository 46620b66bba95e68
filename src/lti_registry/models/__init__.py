"""
LTI Tool Registry Models.

Exports all Pydantic and SQLAlchemy models for easy importing.
"""

# Accounts, courses and users
from .account import (
    RIGHT_READ,
    RIGHT_READ_MESSAGES,
    RIGHT_VIEW_NOTIFICATIONS,
    SETTING_ADMINS_CAN_VIEW_NOTIFICATIONS,
    Account,
    AccountCreate,
    AccountModel,
    AccountUserModel,
    ContextModel,
    Course,
    CourseCreate,
    CourseModel,
    UserModel,
)

# Base
from .base import Base, ContextType, PolymorphicContextMixin, TimestampMixin

# Comm messages
from .comm_message import CommMessage, MessageModel, MessageState

# Install payloads
from .install import InstallResult, ResourceHandlerInstall, ToolProxyInstall

# Message handlers
from .message_handler import (
    BASIC_LTI_LAUNCH_REQUEST,
    MessageHandler,
    MessageHandlerCreate,
    MessageHandlerModel,
    MessageType,
    ResourceCodes,
    ResourcePlacement,
    ResourcePlacementModel,
)

# Resource handlers
from .resource_handler import ResourceHandler, ResourceHandlerBase, ResourceHandlerModel

# Tool proxies
from .tool_proxy import (
    ProductFamily,
    ProductFamilyModel,
    ToolProxy,
    ToolProxyBinding,
    ToolProxyBindingModel,
    ToolProxyModel,
    ToolProxyState,
)

__all__ = [
    # Base
    "Base",
    "ContextType",
    "PolymorphicContextMixin",
    "TimestampMixin",
    # Accounts
    "Account",
    "AccountCreate",
    "AccountModel",
    "AccountUserModel",
    "ContextModel",
    "Course",
    "CourseCreate",
    "CourseModel",
    "UserModel",
    "RIGHT_READ",
    "RIGHT_READ_MESSAGES",
    "RIGHT_VIEW_NOTIFICATIONS",
    "SETTING_ADMINS_CAN_VIEW_NOTIFICATIONS",
    # Tool proxies
    "ProductFamily",
    "ProductFamilyModel",
    "ToolProxy",
    "ToolProxyBinding",
    "ToolProxyBindingModel",
    "ToolProxyModel",
    "ToolProxyState",
    # Resource handlers
    "ResourceHandler",
    "ResourceHandlerBase",
    "ResourceHandlerModel",
    # Message handlers
    "BASIC_LTI_LAUNCH_REQUEST",
    "MessageHandler",
    "MessageHandlerCreate",
    "MessageHandlerModel",
    "MessageType",
    "ResourceCodes",
    "ResourcePlacement",
    "ResourcePlacementModel",
    # Install
    "InstallResult",
    "ResourceHandlerInstall",
    "ToolProxyInstall",
    # Comm messages
    "CommMessage",
    "MessageModel",
    "MessageState",
]
