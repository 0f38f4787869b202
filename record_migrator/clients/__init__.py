"""Clients for source and target record stores."""

from .base import BaseRecordClient
from .webapi_client import WebAPIClient

__all__ = [
    "BaseRecordClient",
    "WebAPIClient",
]
