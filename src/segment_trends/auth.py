"""Public configuration and session module.

Re-exports profile and session management for public use.

Re-exported classes:
    ConfigManager: TOML-based profile management (~/.segtrend/config.toml).
    Credentials: Immutable backend URL and token, token redacted.
    EngineSettings: Timeout, retry, concurrency and top-N defaults.
    ProfileInfo: Named profile metadata (name, base_url, has_token).
    SessionStore: Persisted merchant/city scope (~/.segtrend/session.toml).
    SessionContext: The scope itself.

Example usage:
    from segment_trends.auth import ConfigManager, SessionStore

    config = ConfigManager()
    creds = config.resolve_credentials()
    SessionStore().switch(merchant_id="m-1", city_name="Bangalore")
"""

from segment_trends._internal.config import (
    ConfigManager,
    Credentials,
    EngineSettings,
    ProfileInfo,
)
from segment_trends._internal.session import SessionContext, SessionStore

__all__ = [
    "ConfigManager",
    "Credentials",
    "EngineSettings",
    "ProfileInfo",
    "SessionContext",
    "SessionStore",
]
