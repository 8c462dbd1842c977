"""Shared fixtures for segment_trends tests."""

from __future__ import annotations

import os
import tempfile
from collections.abc import Callable, Generator
from pathlib import Path
from typing import TYPE_CHECKING

import httpx
import pytest
from hypothesis import Phase, Verbosity, settings
from pydantic import SecretStr

# =============================================================================
# Hypothesis Configuration
# =============================================================================

settings.register_profile(
    "default",
    max_examples=100,
    verbosity=Verbosity.normal,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.target, Phase.shrink],
)

settings.register_profile(
    "ci",
    max_examples=200,
    verbosity=Verbosity.normal,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.target, Phase.shrink],
    derandomize=True,  # Reproducible in CI
)

settings.register_profile(
    "dev",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.target, Phase.shrink],
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.target, Phase.shrink],
    report_multiple_bugs=False,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "default"))

if TYPE_CHECKING:
    from segment_trends._internal.api_client import MetricsAPIClient
    from segment_trends._internal.config import ConfigManager, Credentials
    from segment_trends._internal.session import SessionStore

BASE_URL = "https://dash.example.com"


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def config_path(temp_dir: Path) -> Path:
    """Return path for a temporary config file."""
    return temp_dir / "config.toml"


@pytest.fixture
def session_path(temp_dir: Path) -> Path:
    """Return path for a temporary session file."""
    return temp_dir / "session.toml"


@pytest.fixture
def config_manager(config_path: Path) -> ConfigManager:
    """Create a ConfigManager with a temporary config file."""
    from segment_trends._internal.config import ConfigManager

    return ConfigManager(config_path=config_path)


@pytest.fixture
def session_store(session_path: Path) -> SessionStore:
    """Create a SessionStore with a temporary session file."""
    from segment_trends._internal.session import SessionStore

    return SessionStore(path=session_path)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer environment variables out of credential resolution."""
    for name in (
        "SEGTREND_BASE_URL",
        "SEGTREND_TOKEN",
        "SEGTREND_PROFILE",
        "SEGTREND_CONFIG_PATH",
        "SEGTREND_SESSION_PATH",
    ):
        monkeypatch.delenv(name, raising=False)


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
def mock_credentials() -> Credentials:
    """Create credentials for API client testing."""
    from segment_trends._internal.config import Credentials

    return Credentials(
        name="test",
        base_url=BASE_URL,
        token=SecretStr("test_token"),
    )


@pytest.fixture
def mock_client_factory(
    mock_credentials: Credentials,
) -> Callable[[Callable[[httpx.Request], httpx.Response]], MetricsAPIClient]:
    """Factory for creating mock API clients.

    Usage:
        async def test_something(mock_client_factory):
            def handler(request):
                return httpx.Response(200, json={"data": []})

            async with mock_client_factory(handler) as client:
                payload = await client.time_series(MetricsFilters())
    """
    from segment_trends._internal.api_client import MetricsAPIClient

    def factory(
        handler: Callable[[httpx.Request], httpx.Response],
    ) -> MetricsAPIClient:
        transport = httpx.MockTransport(handler)
        return MetricsAPIClient(mock_credentials, max_retries=0, _transport=transport)

    return factory

