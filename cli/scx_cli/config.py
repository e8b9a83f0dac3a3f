"""
Configuration management for the scx CLI.

Config lives in ~/.supacortex/config.json:
  {
    "appUrl": "https://supacortex.ai",
    "endpoint": "https://api.supacortex.ai",
    "apiKey": "scx_..."
  }

App URL resolution order:
  1. SCX_APP_URL environment variable
  2. --app-url command line flag
  3. appUrl from config file
  4. Fallback: https://supacortex.ai
"""

from __future__ import annotations

import json
import os
from pathlib import Path

DEFAULT_APP_URL = "https://supacortex.ai"
DEFAULT_ENDPOINT = "https://api.supacortex.ai"


class Config:
    """Config manager for the scx CLI."""

    def __init__(self, app_url_override: str | None = None, config_dir: Path | None = None):
        """
        Initialize config.

        Args:
            app_url_override: Optional --app-url flag value
            config_dir: Directory holding config.json (default ~/.supacortex)
        """
        self.config_dir = config_dir or Path.home() / ".supacortex"
        self.config_file = self.config_dir / "config.json"
        self._data: dict = {}
        self._app_url_override = app_url_override
        self._load()

    def _load(self):
        """Load config from disk. A missing or unreadable file means empty config."""
        if not self.config_file.exists():
            return
        try:
            with open(self.config_file) as f:
                data = json.load(f)
        except (OSError, ValueError):
            return
        if isinstance(data, dict):
            self._data = data

    def _save(self):
        """Save config to disk with owner-only permissions."""
        self.config_dir.mkdir(parents=True, exist_ok=True)

        with open(self.config_file, "w") as f:
            json.dump(self._data, f, indent=2)

        self.config_file.chmod(0o600)

    def _set(self, key: str, value: str | None):
        if value is None:
            self._data.pop(key, None)
        else:
            self._data[key] = value
        self._save()

    @property
    def app_url(self) -> str:
        """Web app URL, used for login and account checks."""
        env_url = os.environ.get("SCX_APP_URL")
        if env_url:
            return env_url.rstrip("/")

        if self._app_url_override:
            return self._app_url_override.rstrip("/")

        return self._data.get("appUrl", DEFAULT_APP_URL).rstrip("/")

    @property
    def endpoint(self) -> str:
        """Data API endpoint."""
        return self._data.get("endpoint", DEFAULT_ENDPOINT).rstrip("/")

    @endpoint.setter
    def endpoint(self, value: str | None):
        self._set("endpoint", value.rstrip("/") if value else None)

    @property
    def custom_endpoint(self) -> str | None:
        """Endpoint explicitly set by the user, if any."""
        return self._data.get("endpoint")

    @property
    def api_key(self) -> str | None:
        return self._data.get("apiKey")

    @api_key.setter
    def api_key(self, value: str | None):
        self._set("apiKey", value)

    @property
    def is_authenticated(self) -> bool:
        return bool(self.api_key)
