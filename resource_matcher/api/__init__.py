"""HTTP layer: FastAPI application and response cache."""

from .app import API_VERSION, create_app
from .cache import ResponseCache

__all__ = ["create_app", "ResponseCache", "API_VERSION"]
