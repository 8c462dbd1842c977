"""Internal implementation modules. Not part of the public API."""

from segment_trends._internal.api_client import MetricsAPIClient
from segment_trends._internal.config import ConfigManager, Credentials
from segment_trends._internal.query_cache import QueryCache
from segment_trends._internal.session import SessionStore

__all__ = [
    "ConfigManager",
    "Credentials",
    "MetricsAPIClient",
    "QueryCache",
    "SessionStore",
]
