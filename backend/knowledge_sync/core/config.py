"""Runtime settings: defaults, then a YAML file, then ``KSYNC_*`` variables."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal, Mapping

import yaml
from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "KSYNC_"
DEFAULT_CONFIG_PATH = Path("~/.config/knowledge-sync/config.yaml")

# YAML section -> key -> Settings field
_SECTIONS: Mapping[str, Mapping[str, str]] = {
    "storage": {"db_path": "db_path"},
    "connector": {
        "kind": "connector",
        "root": "connector_root",
        "url": "connector_url",
        "timeout": "connector_timeout",
    },
    "sync": {
        "document_cap": "document_cap",
        "page_size": "page_size",
        "preserve_subscriptions": "preserve_subscriptions",
    },
    "subscriptions": {"serialize": "serialize_toggles"},
    "api": {"host": "api_host"},
}


class Settings(BaseModel):
    """Knowledge Sync configuration."""

    db_path: Path = Field(default=Path.home() / ".knowledge-sync" / "ks.db")
    connector: Literal["filesystem", "http"] = "filesystem"
    connector_root: Path = Field(default=Path.home() / "Documents")
    connector_url: str = "http://127.0.0.1:8900"
    connector_timeout: float = Field(default=30.0, gt=0)
    document_cap: int = Field(default=1000, ge=1, description="Most documents one sync keeps")
    page_size: int = Field(default=100, ge=1, description="Documents written per batch")
    preserve_subscriptions: bool = Field(default=False, description="Carry subscriptions across a resync")
    serialize_toggles: bool = Field(default=True, description="One toggle at a time per connection")
    api_host: str = "http://127.0.0.1:5173"

    model_config = {
        "validate_assignment": True,
        "extra": "ignore",
    }

    @field_validator("db_path", "connector_root", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        if isinstance(value, (str, Path)):
            return Path(value).expanduser()
        raise TypeError("path settings must be a path or string")

    @field_validator("connector_url", "api_host")
    @classmethod
    def _strip_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @classmethod
    def load(cls, path: Path | None = None, environ: Mapping[str, str] | None = None) -> "Settings":
        environ = os.environ if environ is None else environ
        data: dict[str, Any] = {}
        config_path = resolve_config_path(path, environ)
        if config_path is not None:
            data.update(read_config_file(config_path))
        data.update(env_overrides(environ))
        return cls(**data)


def resolve_config_path(path: Path | None, environ: Mapping[str, str]) -> Path | None:
    """Explicit path, else ``KSYNC_CONFIG``, else the default file if present."""
    if path is not None:
        return path.expanduser()
    if environ.get(f"{ENV_PREFIX}CONFIG"):
        return Path(environ[f"{ENV_PREFIX}CONFIG"]).expanduser()
    default = DEFAULT_CONFIG_PATH.expanduser()
    return default if default.exists() else None


def read_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}
    if not isinstance(raw, Mapping):
        raise ValueError(f"{path}: top level must be a mapping")

    fields: dict[str, Any] = {}
    for section, value in raw.items():
        if isinstance(value, Mapping):
            keys = _SECTIONS.get(section, {})
            for key, item in value.items():
                if key in keys:
                    fields[keys[key]] = item
        elif section in Settings.model_fields:
            fields[section] = value
    return fields


def env_overrides(environ: Mapping[str, str]) -> dict[str, str]:
    """``KSYNC_DOCUMENT_CAP=5`` -> ``{"document_cap": "5"}``; pydantic coerces."""
    overrides: dict[str, str] = {}
    for key, value in environ.items():
        if key.startswith(ENV_PREFIX):
            name = key[len(ENV_PREFIX) :].lower()
            if name in Settings.model_fields:
                overrides[name] = value
    return overrides


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings accessor for dependency injection."""
    return Settings.load()


__all__ = ["Settings", "env_overrides", "get_settings", "read_config_file", "resolve_config_path"]
