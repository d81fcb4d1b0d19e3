"""Web API routes."""

from .network import router as network_router

__all__ = [
    "network_router",
]
