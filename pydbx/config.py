"""Configuration management for pydbx.

Settings are read from environment variables first, then from a JSON file at
``~/.config/pydbx/config.json``::

    {
      "access_token": "...",
      "root": "auto",
      "api_url": "https://api.dropbox.com/1",
      "content_url": "https://api-content.dropbox.com/1"
    }
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.dropbox.com/1"
DEFAULT_CONTENT_URL = "https://api-content.dropbox.com/1"
DEFAULT_ROOT = "auto"

ENV_ACCESS_TOKEN = "PYDBX_ACCESS_TOKEN"
ENV_API_URL = "PYDBX_API_URL"
ENV_CONTENT_URL = "PYDBX_CONTENT_URL"
ENV_ROOT = "PYDBX_ROOT"
ENV_CONFIG_DIR = "PYDBX_CONFIG_DIR"


class Config:
    """Lazily loaded pydbx settings."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_dir: Directory holding ``config.json``. Defaults to
                ``$PYDBX_CONFIG_DIR`` or ``~/.config/pydbx``.
        """
        if config_dir is None:
            env_dir = os.environ.get(ENV_CONFIG_DIR)
            config_dir = (
                Path(env_dir) if env_dir else Path.home() / ".config" / "pydbx"
            )
        self.config_dir = config_dir
        self._file_data: Optional[dict[str, Any]] = None

    def get_config_path(self) -> Path:
        """Return the path of the JSON config file."""
        return self.config_dir / "config.json"

    def _load_file(self) -> dict[str, Any]:
        if self._file_data is None:
            path = self.get_config_path()
            data: dict[str, Any] = {}
            if path.exists():
                try:
                    with open(path, encoding="utf-8") as f:
                        loaded = json.load(f)
                    if isinstance(loaded, dict):
                        data = loaded
                    else:
                        logger.warning(f"Ignoring malformed config file {path}")
                except (OSError, json.JSONDecodeError) as e:
                    logger.warning(f"Failed to read config file {path}: {e}")
            self._file_data = data
        return self._file_data

    def _get(self, env_name: str, key: str, default: Optional[str]) -> Optional[str]:
        value = os.environ.get(env_name)
        if value:
            return value
        value = self._load_file().get(key)
        if value:
            return str(value)
        return default

    @property
    def access_token(self) -> Optional[str]:
        """OAuth2 bearer token."""
        return self._get(ENV_ACCESS_TOKEN, "access_token", None)

    @property
    def api_url(self) -> str:
        """Base URL for metadata and file operations."""
        return self._get(ENV_API_URL, "api_url", DEFAULT_API_URL) or DEFAULT_API_URL

    @property
    def content_url(self) -> str:
        """Base URL for file content transfers."""
        return (
            self._get(ENV_CONTENT_URL, "content_url", DEFAULT_CONTENT_URL)
            or DEFAULT_CONTENT_URL
        )

    @property
    def root(self) -> str:
        """Access root (``auto``, ``dropbox`` or ``sandbox``)."""
        return self._get(ENV_ROOT, "root", DEFAULT_ROOT) or DEFAULT_ROOT

    def is_configured(self) -> bool:
        """Check whether an access token is available."""
        return bool(self.access_token)


config = Config()
