"""Configuration management for segment_trends.

Handles backend profiles (base URL and dashboard token), engine settings,
and credential resolution. Configuration is stored in TOML format at
~/.segtrend/config.toml by default:

    default = "prod"

    [profiles.prod]
    base_url = "https://dashboard.example.com"
    token = "..."

    [settings]
    timeout = 30.0
    max_concurrent = 10
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib  # type: ignore[import-not-found,unused-ignore]
from pathlib import Path
from typing import Any

import tomli_w
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    ValidationError,
    field_validator,
)

from segment_trends.exceptions import (
    ConfigError,
    ProfileExistsError,
    ProfileNotFoundError,
)


class Credentials(BaseModel):
    """Immutable connection details for the metrics backend.

    The token is never exposed in repr/str output.
    """

    model_config = ConfigDict(frozen=True)

    name: str | None = None
    """Profile the credentials came from; None when read from the environment."""

    base_url: str
    """Backend origin, e.g. https://dashboard.example.com (no trailing slash)."""

    token: SecretStr | None = None
    """Dashboard token sent in the `token` header (redacted in output)."""

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Require an http(s) URL and strip any trailing slash."""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"base_url must start with http:// or https://. Got: {v}")
        return v.rstrip("/")

    def __repr__(self) -> str:
        """Return string representation with redacted token."""
        token = "***" if self.token is not None else "None"
        return (
            f"Credentials(name={self.name!r}, base_url={self.base_url!r}, "
            f"token={token})"
        )

    def __str__(self) -> str:
        return self.__repr__()


class EngineSettings(BaseModel):
    """Tunables for the HTTP client and the fetch orchestrator."""

    model_config = ConfigDict(frozen=True)

    timeout: float = Field(default=30.0, gt=0)
    """Per-request timeout in seconds, enforced by the HTTP client."""

    max_retries: int = Field(default=3, ge=0)
    """Retries on HTTP 429 before giving up."""

    max_concurrent: int = Field(default=10, ge=1)
    """Maximum fetches in flight at once."""

    default_top_n: int = Field(default=5, ge=1)
    """Top-N used when a command doesn't specify one."""


@dataclass(frozen=True)
class ProfileInfo:
    """A configured profile, without its token."""

    name: str
    """Profile name."""

    base_url: str
    """Backend origin."""

    has_token: bool
    """Whether a token is stored."""

    is_default: bool
    """Whether this is the default profile."""


class ConfigManager:
    """Manages backend profiles and engine settings.

    Config file location (in priority order):
    1. Explicit config_path parameter
    2. SEGTREND_CONFIG_PATH environment variable
    3. Default: ~/.segtrend/config.toml
    """

    DEFAULT_CONFIG_PATH = Path.home() / ".segtrend" / "config.toml"

    def __init__(self, config_path: Path | None = None) -> None:
        """Initialize ConfigManager.

        Args:
            config_path: Override config file location.
        """
        if config_path is not None:
            self._config_path = config_path
        elif "SEGTREND_CONFIG_PATH" in os.environ:
            self._config_path = Path(os.environ["SEGTREND_CONFIG_PATH"])
        else:
            self._config_path = self.DEFAULT_CONFIG_PATH

    @property
    def config_path(self) -> Path:
        """Return the config file path."""
        return self._config_path

    def _read_config(self) -> dict[str, Any]:
        """Read and parse the config file (empty dict if missing)."""
        if not self._config_path.exists():
            return {}

        try:
            with self._config_path.open("rb") as f:
                return dict(tomllib.load(f))
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(
                f"Invalid TOML in config file: {e}",
                details={"path": str(self._config_path)},
            ) from e

    def _write_config(self, config: dict[str, Any]) -> None:
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        with self._config_path.open("wb") as f:
            tomli_w.dump(config, f)

    def resolve_credentials(self, profile: str | None = None) -> Credentials:
        """Resolve credentials using priority order.

        Resolution order:
        1. Environment variables (SEGTREND_BASE_URL, optional SEGTREND_TOKEN)
        2. Named profile (if profile is given)
        3. Default profile
        4. First configured profile

        Args:
            profile: Optional profile name to use instead of the default.

        Returns:
            Immutable Credentials object.

        Raises:
            ConfigError: If no credentials can be resolved.
            ProfileNotFoundError: If the named profile doesn't exist.
        """
        env_creds = self._resolve_from_env()
        if env_creds is not None:
            return env_creds

        config = self._read_config()
        profiles = config.get("profiles", {})

        if not profiles:
            raise ConfigError(
                "No backend configured. Set SEGTREND_BASE_URL, "
                "or add a profile with 'segtrend config add'."
            )

        name: str
        if profile is not None:
            name = profile
        else:
            default = config.get("default")
            if isinstance(default, str):
                name = default
            else:
                name = next(iter(profiles.keys()))

        if name not in profiles:
            raise ProfileNotFoundError(name, available_profiles=list(profiles.keys()))

        data = profiles[name]
        token = data.get("token")
        try:
            return Credentials(
                name=name,
                base_url=data.get("base_url", ""),
                token=SecretStr(token) if token else None,
            )
        except ValidationError as e:
            raise ConfigError(
                f"Profile '{name}' is invalid: {e.errors()[0]['msg']}",
                details={"profile_name": name, "path": str(self._config_path)},
            ) from e

    def _resolve_from_env(self) -> Credentials | None:
        base_url = os.environ.get("SEGTREND_BASE_URL")
        if not base_url:
            return None
        token = os.environ.get("SEGTREND_TOKEN")
        try:
            return Credentials(
                base_url=base_url,
                token=SecretStr(token) if token else None,
            )
        except ValidationError as e:
            raise ConfigError(f"Invalid SEGTREND_BASE_URL: '{base_url}'") from e

    def resolve_settings(self) -> EngineSettings:
        """Read the [settings] table, applying defaults for missing keys.

        Raises:
            ConfigError: If a setting is out of range or of the wrong type.
        """
        settings = self._read_config().get("settings", {})
        try:
            return EngineSettings(**settings)
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(p) for p in first["loc"])
            raise ConfigError(
                f"Invalid setting '{field}': {first['msg']}",
                details={"path": str(self._config_path)},
            ) from e

    def set_setting(self, key: str, value: Any) -> EngineSettings:
        """Persist one engine setting after validating it.

        Raises:
            ValueError: If key is not a known setting.
            ConfigError: If the value is invalid.
        """
        if key not in EngineSettings.model_fields:
            valid = ", ".join(EngineSettings.model_fields)
            raise ValueError(f"Unknown setting '{key}'. Valid settings: {valid}")

        config = self._read_config()
        settings = dict(config.get("settings", {}))
        settings[key] = value
        try:
            validated = EngineSettings(**settings)
        except ValidationError as e:
            raise ConfigError(
                f"Invalid setting '{key}': {e.errors()[0]['msg']}"
            ) from e
        config["settings"] = validated.model_dump(include=set(settings))
        self._write_config(config)
        return validated

    def list_profiles(self) -> list[ProfileInfo]:
        """List all configured profiles (tokens not included)."""
        config = self._read_config()
        default_name = config.get("default")
        return [
            ProfileInfo(
                name=name,
                base_url=data.get("base_url", ""),
                has_token=bool(data.get("token")),
                is_default=(name == default_name),
            )
            for name, data in config.get("profiles", {}).items()
        ]

    def add_profile(
        self,
        name: str,
        base_url: str,
        token: str | None = None,
    ) -> None:
        """Add a new profile.

        The first profile added becomes the default.

        Raises:
            ProfileExistsError: If the name is already in use.
            ValueError: If base_url is not an http(s) URL.
        """
        creds = Credentials(base_url=base_url)

        config = self._read_config()
        profiles = config.setdefault("profiles", {})

        if name in profiles:
            raise ProfileExistsError(name)

        entry: dict[str, str] = {"base_url": creds.base_url}
        if token:
            entry["token"] = token
        profiles[name] = entry

        if "default" not in config:
            config["default"] = name

        self._write_config(config)

    def remove_profile(self, name: str) -> None:
        """Remove a profile.

        If it was the default, the next remaining profile becomes default.

        Raises:
            ProfileNotFoundError: If the profile doesn't exist.
        """
        config = self._read_config()
        profiles = config.get("profiles", {})

        if name not in profiles:
            raise ProfileNotFoundError(name, available_profiles=list(profiles.keys()))

        del profiles[name]

        if config.get("default") == name:
            if profiles:
                config["default"] = next(iter(profiles.keys()))
            else:
                config.pop("default", None)

        self._write_config(config)

    def set_default(self, name: str) -> None:
        """Set the default profile.

        Raises:
            ProfileNotFoundError: If the profile doesn't exist.
        """
        config = self._read_config()
        profiles = config.get("profiles", {})

        if name not in profiles:
            raise ProfileNotFoundError(name, available_profiles=list(profiles.keys()))

        config["default"] = name
        self._write_config(config)

    def get_profile(self, name: str) -> ProfileInfo:
        """Get one profile (token not included).

        Raises:
            ProfileNotFoundError: If the profile doesn't exist.
        """
        for info in self.list_profiles():
            if info.name == name:
                return info
        raise ProfileNotFoundError(
            name, available_profiles=[p.name for p in self.list_profiles()]
        )
