"""Web interface module.

Provides:
- FastAPI application with the network REST API
- Error to HTTP status mapping
"""

from .app import create_app

__all__ = [
    "create_app",
]
