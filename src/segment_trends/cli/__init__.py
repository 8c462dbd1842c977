"""CLI package for segment_trends.

This module provides the `segtrend` command-line interface. All commands
delegate to the Workspace facade, ConfigManager or SessionStore, adding
only I/O formatting.
"""

from segment_trends.cli.main import app

__all__ = ["app"]
