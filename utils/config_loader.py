"""YAML configuration loader for hash-file.

Configuration is layered: the packaged ``config/default_config.yaml``
provides every key, and the file named by an explicit path, the
``HASH_FILE_CONFIG`` environment variable or ``/etc/hash-file/config.yaml``
(first one that is set) overrides individual keys.
"""

from __future__ import annotations

import os
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, MutableMapping

import yaml

DEFAULT_CONFIG_PATH = Path("/etc/hash-file/config.yaml")
DEFAULT_CONFIG_FILE = Path(__file__).resolve().parent.parent / "config" / "default_config.yaml"
CONFIG_ENV_VAR = "HASH_FILE_CONFIG"

# Used when the packaged YAML is not installed next to the code.
_BUILTIN_DEFAULTS: Dict[str, Any] = {
    "hashing": {"algorithm": "sha256", "workers": 0, "chunk_size": 1024 * 1024, "strict": False},
    "verify": {"base_dir": ""},
    "dedup": {"source_dir": ".", "recursive": True},
    "output": {"format": "plain"},
    "system": {"log_level": "INFO", "port_api": 8080},
}


class ConfigurationError(ValueError):
    """Raised for settings that must stop a run before any work starts."""


def _read_mapping(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        try:
            data = yaml.safe_load(handle)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"{path}: invalid YAML: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path}: configuration must be a mapping at the top level")
    return data


def _load_default_config() -> Dict[str, Any]:
    if DEFAULT_CONFIG_FILE.is_file():
        return _read_mapping(DEFAULT_CONFIG_FILE)
    return deepcopy(_BUILTIN_DEFAULTS)


DEFAULT_CONFIG: Dict[str, Any] = _load_default_config()


def _deep_merge(
    base: MutableMapping[str, Any], override: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    for key, value in override.items():
        current = base.get(key)
        if isinstance(current, MutableMapping) and isinstance(value, MutableMapping):
            _deep_merge(current, value)
        else:
            base[key] = deepcopy(value)
    return base


def resolve_config_path(path: Path | str | None = None) -> Path:
    """Return the explicit *path*, else ``$HASH_FILE_CONFIG``, else the system path."""

    for candidate in (path, os.getenv(CONFIG_ENV_VAR)):
        text = str(candidate).strip() if candidate is not None else ""
        if text:
            return Path(text).expanduser()
    return DEFAULT_CONFIG_PATH


def load_raw_config(path: Path | str | None = None) -> Dict[str, Any]:
    """Read the override file only; a missing file is an empty mapping."""

    candidate = resolve_config_path(path)
    if not candidate.exists():
        return {}
    return _read_mapping(candidate)


def merge_configs(
    base: MutableMapping[str, Any], override: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Return a deep-merged copy of *base* updated with *override*."""

    return _deep_merge(deepcopy(base), override)


def save_config(data: MutableMapping[str, Any], path: Path | str | None = None) -> Path:
    candidate = resolve_config_path(path)
    candidate.parent.mkdir(parents=True, exist_ok=True)
    with candidate.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(dict(data), handle, sort_keys=True, allow_unicode=True)
    return candidate


def load_config(path: Path | str | None = None) -> Dict[str, Any]:
    """Return the defaults overlaid with the resolved configuration file."""

    return dict(merge_configs(DEFAULT_CONFIG, load_raw_config(path)))


def get_config_value(
    *keys: str, default: Any | None = None, config: Dict[str, Any] | None = None
) -> Any:
    """Walk *keys* into *config* (loaded on demand), returning *default* on a miss."""

    current: Any = load_config() if config is None else config
    for key in keys:
        if not isinstance(current, MutableMapping) or key not in current:
            return default
        current = current[key]
    return current


def parse_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


__all__ = [
    "CONFIG_ENV_VAR",
    "ConfigurationError",
    "DEFAULT_CONFIG",
    "DEFAULT_CONFIG_PATH",
    "get_config_value",
    "load_config",
    "load_raw_config",
    "merge_configs",
    "parse_bool",
    "resolve_config_path",
    "save_config",
]
