"""API routers."""

from api.routes.comm_messages import router as comm_messages_router

__all__ = ["comm_messages_router"]
