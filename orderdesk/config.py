"""Application configuration: defaults, loading from disk and writing back."""

from __future__ import annotations

import json
import threading
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

_NO_PASSWORD = ""
_YAML_EXTS = {"yaml", "yml"}
_JSON_EXTS = {"json"}


@dataclass
class NetworkConfig:
    """Remote hosts the service talks to."""

    ximalaya_ip: str = "www.ximalaya.com"


@dataclass
class LogConfig:
    """Log level and log file location."""

    level: str = "info"
    path: str = "app.log"


@dataclass
class DBConfig:
    """Database name and credentials."""

    name: str = ""
    user: str = ""
    password: str = _NO_PASSWORD


@dataclass
class WebConfig:
    """Web server settings."""

    mode: str = "release"


@dataclass
class Config:
    """The whole configuration, one attribute per section."""

    network: NetworkConfig = field(default_factory=NetworkConfig)
    log: LogConfig = field(default_factory=LogConfig)
    db: DBConfig = field(default_factory=DBConfig)
    gin: WebConfig = field(default_factory=WebConfig)

    def to_dict(self) -> dict[str, dict[str, Any]]:
        """Return the configuration as nested plain dictionaries."""
        return asdict(self)


_SECTIONS = {
    "network": NetworkConfig,
    "log": LogConfig,
    "db": DBConfig,
    "gin": WebConfig,
}

_cached: Config | None = None
_lock = threading.Lock()


def _normalise_ext(ext: str) -> str:
    return ext.lstrip(".").lower()


def _config_file(path: str | Path, name: str, ext: str) -> Path:
    return Path(path) / f"{name}.{_normalise_ext(ext)}"


def _lower_keys(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(key).lower(): _lower_keys(item) for key, item in value.items()}
    return value


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _read_settings(file: Path, ext: str) -> dict[str, Any]:
    text = file.read_text(encoding="utf-8")
    try:
        if ext in _YAML_EXTS:
            data = yaml.safe_load(text)
        elif ext in _JSON_EXTS:
            data = json.loads(text) if text.strip() else None
        else:
            raise ValueError(f"unsupported config type: {ext!r}")
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ValueError(f"cannot parse config file {file}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ValueError(f"config file {file} must hold a mapping at the top level")
    return _lower_keys(data)


def _from_settings(settings: Mapping[str, Any]) -> Config:
    sections = {}
    for section, cls in _SECTIONS.items():
        raw = settings.get(section) or {}
        if not isinstance(raw, Mapping):
            raise ValueError(f"config section {section!r} must be a mapping")
        known = {f.name for f in fields(cls)}
        sections[section] = cls(
            **{key: _as_text(value) for key, value in raw.items() if key in known and value is not None}
        )
    return Config(**sections)


def load_config(path: str | Path = ".", name: str = "config", ext: str = "yaml") -> Config:
    """Read ``<path>/<name>.<ext>`` and fill in defaults for anything missing."""
    ext = _normalise_ext(ext)
    if ext not in _YAML_EXTS | _JSON_EXTS:
        raise ValueError(f"unsupported config type: {ext!r}")
    file = _config_file(path, name, ext)
    if not file.is_file():
        raise FileNotFoundError(f"config file not found: {file}")
    return _from_settings(_read_settings(file, ext))


def get_config(path: str | Path = ".", name: str = "config", ext: str = "yaml") -> Config:
    """Return the process-wide configuration, loading it on first use."""
    global _cached
    with _lock:
        if _cached is None:
            _cached = load_config(path, name, ext)
        return _cached


def reset_config() -> None:
    """Forget the cached configuration so the next ``get_config`` reloads it."""
    global _cached
    with _lock:
        _cached = None


def write_config(
    config: Config,
    path: str | Path = ".",
    name: str = "config",
    ext: str = "yaml",
    indent: int = 2,
) -> Path:
    """Write ``config`` to ``<path>/<name>.<ext>`` with the given indent; return the file."""
    ext = _normalise_ext(ext)
    file = _config_file(path, name, ext)
    data = config.to_dict()
    if ext in _YAML_EXTS:
        text = yaml.safe_dump(
            data,
            indent=indent,
            sort_keys=True,
            allow_unicode=True,
            default_flow_style=False,
        )
    elif ext in _JSON_EXTS:
        text = json.dumps(data, indent=indent, sort_keys=True, ensure_ascii=False) + "\n"
    else:
        raise ValueError(f"unsupported config type: {ext!r}")
    file.write_text(text, encoding="utf-8")
    return file