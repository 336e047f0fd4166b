"""FastAPI service for the authentication backend.

This package provides the HTTP entry point: configuration, middleware,
the health check and the authentication routes.
"""

__version__ = "1.0.0"
