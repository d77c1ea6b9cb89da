"""
Connectors package for remote documents.
"""

from .http import HttpConnector
from .static_connector import StaticConnector, compute_etag

__all__ = [
    "HttpConnector",
    "StaticConnector",
    "compute_etag",
]
