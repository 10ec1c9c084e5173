"""
Monitor Bridge - HTTP request/response access to Socket.IO monitoring servers.
"""

__version__ = "0.1.0"


def get_app():
    """Get the FastAPI application instance (lazy import to avoid initialization issues)."""
    from .main import app
    return app


__all__ = ["get_app", "__version__"]
