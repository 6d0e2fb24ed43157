"""
Adapters layer - Hosted backend integration.
"""

from .backend_client import BackendClient
from .mock_backend_client import MockBackendClient

__all__ = ["BackendClient", "MockBackendClient"]
