"""Configuration loading: optional YAML file + environment variable overrides.

Capture only runs when the server URL, the PAT and the group id are all
set. Anything less is the normal "feature off" state, not an error.
"""

from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Any, Callable, Mapping

import yaml

from .errors import ConfigError
from .utils import DEFAULT_TIMEOUT

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "flowcon"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"

DEFAULTS: dict[str, Any] = {
    "server": {
        "url": "",
        "pat": "",
        "timeout": DEFAULT_TIMEOUT,
    },
    "group_id": "",
    "memory_prompt": "",
}

# env var -> (path in config dict, caster)
ENV_MAP: dict[str, tuple[tuple[str, ...], Callable[[str], Any]]] = {
    "FLOWCON_SERVER": (("server", "url"), str),
    "FLOWCON_PAT": (("server", "pat"), str),
    "FLOWCON_TIMEOUT": (("server", "timeout"), float),
    "FLOWCON_GROUP_ID": (("group_id",), str),
    "FLOWCON_MEMORY_PROMPT": (("memory_prompt",), str),
}

REQUIRED = {
    "server.url": "FLOWCON_SERVER",
    "server.pat": "FLOWCON_PAT",
    "group_id": "FLOWCON_GROUP_ID",
}


class FlowConConfig:
    """Merged configuration from YAML + env vars. Read once, then immutable."""

    def __init__(self, path: str | Path | None = None, env: Mapping[str, str] | None = None):
        self._env = os.environ if env is None else env
        if path is None:
            path = self._env.get("FLOWCON_CONFIG") or DEFAULT_CONFIG_FILE
        self._path = Path(path).expanduser()
        self._data: dict[str, Any] = {}
        self._load()

    @classmethod
    def load(cls, path: str | Path | None = None) -> "FlowConConfig":
        return cls(path)

    def _load(self):
        merged = copy.deepcopy(DEFAULTS)

        if self._path.exists():
            try:
                with open(self._path) as f:
                    file_data = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as exc:
                raise ConfigError(
                    f"cannot read config file {self._path}",
                    component="config",
                    detail=str(exc),
                ) from exc
            if not isinstance(file_data, dict):
                raise ConfigError(
                    f"config file {self._path} must contain a mapping",
                    component="config",
                )
            _deep_merge(merged, file_data)
            if not isinstance(merged["server"], dict):
                raise ConfigError(
                    f"config file {self._path}: 'server' must be a mapping",
                    component="config",
                )

        for env_key, (keys, cast) in ENV_MAP.items():
            val = self._env.get(env_key)
            if val is None:
                continue
            try:
                _set_nested(merged, keys, cast(val))
            except ValueError as exc:
                raise ConfigError(
                    f"{env_key} has an invalid value: {val!r}",
                    component="config",
                ) from exc

        merged["server"]["timeout"] = _coerce_timeout(merged["server"].get("timeout"))
        self._data = merged

    # -- Accessors --

    @property
    def path(self) -> Path:
        return self._path

    @property
    def server_url(self) -> str:
        return str(self._data["server"].get("url") or "")

    @property
    def pat(self) -> str:
        return str(self._data["server"].get("pat") or "")

    @property
    def timeout(self) -> float:
        return self._data["server"]["timeout"]

    @property
    def group_id(self) -> str:
        # Only gates the pipeline; the store request does not carry it.
        return str(self._data.get("group_id") or "")

    @property
    def memory_prompt(self) -> str:
        return str(self._data.get("memory_prompt") or "")

    def missing(self) -> list[str]:
        """Return the env var names of required settings that are unset."""
        values = {
            "server.url": self.server_url,
            "server.pat": self.pat,
            "group_id": self.group_id,
        }
        return [env for key, env in REQUIRED.items() if not values[key]]

    @property
    def enabled(self) -> bool:
        return not self.missing()

    def raw(self) -> dict[str, Any]:
        return copy.deepcopy(self._data)


def _coerce_timeout(value) -> float:
    if value in (None, ""):
        return float(DEFAULT_TIMEOUT)
    try:
        timeout = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"server.timeout must be a number, got {value!r}", component="config") from exc
    if timeout <= 0:
        raise ConfigError(f"server.timeout must be positive, got {value!r}", component="config")
    return timeout


def _deep_merge(base: dict, override: dict):
    for k, v in override.items():
        if k in base and isinstance(base[k], dict) and isinstance(v, dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v


def _set_nested(d: dict, keys: tuple, value):
    for key in keys[:-1]:
        d = d.setdefault(key, {})
    d[keys[-1]] = value
