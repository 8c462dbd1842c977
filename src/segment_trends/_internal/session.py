"""Session context store.

Holds the merchant and city the user is currently operating as, with an
explicit lifecycle: load at startup, switch on an explicit context change,
clear on logout. The store is passed by reference to whatever needs it
(the Workspace, CLI commands); nothing reads session state ambiently.

The context is persisted as TOML at ~/.segtrend/session.toml by default.
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import asdict, dataclass

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib  # type: ignore[import-not-found,unused-ignore]
from pathlib import Path
from typing import Any

import tomli_w

from segment_trends.exceptions import ConfigError
from segment_trends.types import MetricsFilters

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionContext:
    """The merchant/city scope of the current session."""

    merchant_id: str | None = None
    """Merchant identifier used as the BAP merchant filter."""

    merchant_short_id: str | None = None
    """Human-readable merchant short id."""

    city_id: str | None = None

    city_name: str | None = None
    """City name as the backend expects it in the city filter."""

    is_admin: bool = False
    """Admins are never restricted to their current merchant/city."""

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return asdict(self)


class SessionStore:
    """Load, switch, and clear the persisted session context.

    Session file location (in priority order):
    1. Explicit path parameter
    2. SEGTREND_SESSION_PATH environment variable
    3. Default: ~/.segtrend/session.toml

    Example:
        ```python
        store = SessionStore()
        store.load()
        store.switch(merchant_id="m-1", city_name="Bangalore")
        filters = store.apply_to_filters(MetricsFilters())
        store.clear()
        ```
    """

    DEFAULT_SESSION_PATH = Path.home() / ".segtrend" / "session.toml"

    def __init__(self, path: Path | None = None) -> None:
        if path is not None:
            self._path = path
        elif "SEGTREND_SESSION_PATH" in os.environ:
            self._path = Path(os.environ["SEGTREND_SESSION_PATH"])
        else:
            self._path = self.DEFAULT_SESSION_PATH
        self._current: SessionContext | None = None

    @property
    def path(self) -> Path:
        """Return the session file path."""
        return self._path

    @property
    def current(self) -> SessionContext | None:
        """The loaded context, or None when logged out or not yet loaded."""
        return self._current

    def load(self) -> SessionContext | None:
        """Read the persisted context.

        Returns:
            The context, or None if no session file exists.

        Raises:
            ConfigError: If the session file is not valid TOML.
        """
        if not self._path.exists():
            self._current = None
            return None

        try:
            with self._path.open("rb") as f:
                data = dict(tomllib.load(f))
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(
                f"Invalid TOML in session file: {e}",
                details={"path": str(self._path)},
            ) from e

        known = {k: v for k, v in data.items() if k in SessionContext.__annotations__}
        self._current = SessionContext(**known)
        _logger.debug("Loaded session context from %s", self._path)
        return self._current

    def switch(
        self,
        *,
        merchant_id: str | None = None,
        merchant_short_id: str | None = None,
        city_id: str | None = None,
        city_name: str | None = None,
        is_admin: bool | None = None,
    ) -> SessionContext:
        """Replace the current context and persist it.

        Fields not given keep their current value.
        """
        base = self._current or SessionContext()
        context = SessionContext(
            merchant_id=merchant_id if merchant_id is not None else base.merchant_id,
            merchant_short_id=(
                merchant_short_id
                if merchant_short_id is not None
                else base.merchant_short_id
            ),
            city_id=city_id if city_id is not None else base.city_id,
            city_name=city_name if city_name is not None else base.city_name,
            is_admin=is_admin if is_admin is not None else base.is_admin,
        )

        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("wb") as f:
            tomli_w.dump({k: v for k, v in asdict(context).items() if v is not None}, f)

        self._current = context
        _logger.debug("Switched session context: %s", context)
        return context

    def clear(self) -> None:
        """Forget the context and delete the session file (logout)."""
        self._current = None
        if self._path.exists():
            self._path.unlink()
        _logger.debug("Cleared session context")

    def apply_to_filters(self, filters: MetricsFilters) -> MetricsFilters:
        """Default unset merchant/city filters to the session's scope.

        Admin sessions and logged-out stores return filters unchanged.
        Explicitly set filters are never overridden.
        """
        context = self._current
        if context is None or context.is_admin:
            return filters

        changes: dict[str, Any] = {}
        if filters.bap_merchant_id is None and context.merchant_id:
            changes["bap_merchant_id"] = (context.merchant_id,)
        if filters.city is None and context.city_name:
            changes["city"] = (context.city_name,)
        return filters.replace(**changes) if changes else filters
