"""Connection settings for the FileMaker Data API client."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from omegaconf import OmegaConf
from pydantic import BaseModel, Field, HttpUrl

from .session import DEFAULT_VERSION
from .transport import DEFAULT_TIMEOUT_SECONDS

CONFIG_PATH_ENV = "FMDATA_CONFIG_PATH"
DEFAULT_CONFIG_PATH = "conf/secrets.yml"
REQUIRED_KEYS = ("FILEMAKER_URL", "FILEMAKER_DATABASE")

# Settings field -> config key; absent or empty keys fall back to the field default.
_FIELD_KEYS = {
    "url": "FILEMAKER_URL",
    "database": "FILEMAKER_DATABASE",
    "username": "FILEMAKER_USERNAME",
    "password": "FILEMAKER_PASSWORD",
    "version": "FILEMAKER_VERSION",
    "ssl_verify": "FILEMAKER_SSL_VERIFY",
    "timeout": "FILEMAKER_TIMEOUT",
}
_TEXT_FIELDS = frozenset({"url", "database", "username", "password", "version"})


def _locate(location: Path | str, *, source: str) -> Path:
    """Find ``location`` as given, or relative to the working directory and the project root."""
    raw = Path(location).expanduser()
    if raw.is_absolute():
        candidates = [raw]
    else:
        candidates = [Path.cwd() / raw, Path(__file__).resolve().parents[2] / raw]

    found = list(dict.fromkeys(path.resolve() for path in candidates if path.exists()))
    if not found:
        checked = ", ".join(str(path) for path in candidates)
        raise FileNotFoundError(f"Config file not found for {source}: {raw} (checked {checked})")
    if len(found) > 1:
        joined = ", ".join(str(path) for path in found)
        raise RuntimeError(f"Multiple config files found for {source}: {raw}. Candidates: {joined}")
    return found[0]


def _read_config(location: Path) -> dict[str, Any]:
    config = OmegaConf.to_container(OmegaConf.load(location), resolve=True)
    if not isinstance(config, dict):
        raise ValueError("Config file must contain a mapping of connection keys.")
    normalized = {str(key).upper(): value for key, value in config.items()}

    missing = [key for key in REQUIRED_KEYS if not normalized.get(key)]
    if missing:
        raise ValueError(f"Missing FileMaker settings: {', '.join(missing)}")
    return normalized


class Settings(BaseModel):
    """Validated Data API connection settings."""

    url: HttpUrl = Field(
        description="Data API base URL, up to and excluding the protocol version",
        examples=["https://fms.example.com/fmi/data"],
    )
    database: str = Field(description="Hosted database name", examples=["Inventory"])
    username: str | None = Field(default=None, description="Account name for Basic login")
    password: str | None = Field(default=None, description="Account password for Basic login")
    version: str = Field(
        default=DEFAULT_VERSION,
        description="Protocol version path segment (e.g. v1, v2, vLatest)",
    )
    ssl_verify: bool = Field(
        default=True,
        description="Verify TLS host and peer; False disables both for self-signed servers",
    )
    timeout: float | None = Field(
        default=DEFAULT_TIMEOUT_SECONDS,
        description="Per-request timeout in seconds; None waits indefinitely",
    )

    @property
    def base_url(self) -> str:
        return str(self.url).rstrip("/")

    @classmethod
    def from_file(cls, path: Path | str | None = None) -> Settings:
        """Create settings from a YAML file located under ``conf/`` by default."""
        env_path = os.environ.get(CONFIG_PATH_ENV)
        if env_path:
            location = _locate(env_path, source=CONFIG_PATH_ENV)
        elif path is not None:
            location = _locate(path, source="path")
        else:
            location = _locate(DEFAULT_CONFIG_PATH, source="default")

        normalized = _read_config(location)
        kwargs: dict[str, Any] = {}
        for name, key in _FIELD_KEYS.items():
            value = normalized.get(key)
            if value is None or value == "":
                continue
            kwargs[name] = str(value) if name in _TEXT_FIELDS else value
        return cls(**kwargs)
