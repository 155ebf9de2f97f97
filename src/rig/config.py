"""Loader configuration: the runtime common config and YAML config files."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError, ValidationError
from .identifiers import ModuleId, is_absolute, is_relative, join_location, validate_id
from .shim import ShimAdapter

LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("rig.yaml")
DEFAULT_BASE_URL = "."
DEFAULT_EXTENSION = ".py"
DEFAULT_LOG_LEVEL = "info"
CONFIG_ENV_VAR = "RIG_CONFIG"

_OPTION_NAMES = {
    "baseUrl": "base_url",
    "base_url": "base_url",
    "root": "root",
    "paths": "paths",
    "shim": "shim",
}


def _working_root() -> str:
    return Path.cwd().as_posix()


@dataclass
class CommonConfig:
    """Base path, alias table and shim table shared by one module graph."""

    root: str = field(default_factory=_working_root)
    base_url: str = DEFAULT_BASE_URL
    paths: dict[str, str] = field(default_factory=dict)
    shim: dict[str, ShimAdapter] = field(default_factory=dict)
    default_extension: str = DEFAULT_EXTENSION
    aliases: dict[str, str] = field(default_factory=dict, repr=False)

    def update(
        self,
        *,
        root: str | None = None,
        base_url: str | None = None,
        paths: Mapping[str, str] | None = None,
        shim: Mapping[str, Any] | None = None,
    ) -> None:
        """Apply ``require.config`` style options; alias and shim tables merge."""

        if root is not None:
            self.root = _parse_location("root", root)
            self.aliases.clear()
        if base_url is not None:
            self.base_url = _parse_location("base_url", base_url)
            self.aliases.clear()
        if paths is not None:
            self.paths.update(_parse_paths(paths))
            self.aliases.clear()
        if shim is not None:
            self.shim.update(_parse_shim(shim))

    @property
    def base_location(self) -> str:
        if is_absolute(self.base_url):
            return join_location("", self.base_url)
        return join_location(self.root, self.base_url)

    def relative_to_base(self, location: str) -> str:
        base = self.base_location
        if not base:
            return location
        prefix = base if base.endswith("/") else f"{base}/"
        if location.startswith(prefix) and len(location) > len(prefix):
            return location[len(prefix):]
        return location

    def match_alias(self, top_level: str) -> tuple[str, str] | None:
        """Return ``(matched prefix, target)`` for the longest alias matching ``top_level``."""

        candidates = sorted(
            self.paths.items(),
            key=lambda item: (len(item[0].rstrip("/")), item[0]),
            reverse=True,
        )
        for key, target in candidates:
            prefix = key.rstrip("/")
            if not prefix:
                continue
            if top_level == prefix or top_level.startswith(f"{prefix}/"):
                return prefix, target
        return None

    def remember_alias(self, canonical: str, original: str) -> None:
        self.aliases[canonical] = original

    def original_id(self, canonical: str) -> str:
        """Return the unaliased id that produced ``canonical``, if any."""

        return self.aliases.get(canonical, canonical)

    def shim_for(self, canonical: str | None) -> ShimAdapter | None:
        if not canonical or not self.shim:
            return None
        adapter = self.shim.get(canonical)
        if adapter is not None:
            return adapter
        for raw, candidate in self.shim.items():
            if ModuleId(raw, self).canonical == canonical:
                return candidate
        return None


@dataclass(frozen=True)
class LoggingConfig:
    """Logging-related configuration."""

    level: str = DEFAULT_LOG_LEVEL
    file: Path | None = None


@dataclass(frozen=True)
class Config:
    """Fully parsed configuration file."""

    root: str | None = None
    base_url: str = DEFAULT_BASE_URL
    paths: dict[str, str] = field(default_factory=dict)
    shim: dict[str, ShimAdapter] = field(default_factory=dict)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def apply(self, common: CommonConfig) -> None:
        """Push loader options into a graph's common config."""

        common.update(
            root=self.root,
            base_url=self.base_url,
            paths=self.paths,
            shim=self.shim,
        )


def normalize_options(options: Mapping[str, Any] | None = None, **kwargs: Any) -> dict[str, Any]:
    """Map ``require.config`` option names onto ``CommonConfig.update`` keywords."""

    merged: dict[str, Any] = dict(options or {})
    merged.update(kwargs)
    normalized: dict[str, Any] = {}
    for name, value in merged.items():
        target = _OPTION_NAMES.get(name)
        if target is None:
            LOGGER.warning("Ignoring unknown loader option '%s'.", name)
            continue
        normalized[target] = value
    return normalized


def load_config(path: Path | str | None = None) -> Config:
    """Load and validate configuration from YAML."""

    config_path, explicit = _resolve_config_path(path)
    if not config_path.exists():
        if explicit:
            raise ConfigError(f"Config file not found: {config_path}")
        LOGGER.debug("No config file at %s; using defaults.", config_path)
        return Config()

    with config_path.open("r", encoding="utf-8") as handle:
        try:
            raw = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Cannot parse {config_path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError("Configuration root must be a mapping.")

    return _parse_config(raw)


def _resolve_config_path(explicit: Path | str | None) -> tuple[Path, bool]:
    if explicit:
        return Path(explicit).expanduser(), True
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser(), True
    return DEFAULT_CONFIG_PATH, False


def _parse_config(raw: dict[str, Any]) -> Config:
    root = raw.get("root")
    if root is not None:
        root = _parse_location("root", str(Path(str(root)).expanduser().as_posix()))
    base_url = raw.get("base_url", raw.get("baseUrl", DEFAULT_BASE_URL))
    return Config(
        root=root,
        base_url=_parse_location("base_url", base_url),
        paths=_parse_paths(raw.get("paths") or {}),
        shim=_parse_shim(raw.get("shim") or {}),
        logging=_parse_logging(raw.get("logging")),
    )


def _parse_location(field_name: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{field_name} must be a non-empty string.")
    return value.strip()


def _parse_paths(value: Any) -> dict[str, str]:
    if not isinstance(value, Mapping):
        raise ConfigError("paths must be a mapping of id prefix to path.")
    paths: dict[str, str] = {}
    for key, target in value.items():
        if not isinstance(key, str) or not key.strip("/"):
            raise ConfigError(f"paths key {key!r} must be a non-empty id prefix.")
        if not isinstance(target, str) or not target:
            raise ConfigError(f"paths['{key}'] must be a path string.")
        paths[key] = target
    return paths


def _parse_shim(value: Any) -> dict[str, ShimAdapter]:
    if not isinstance(value, Mapping):
        raise ConfigError("shim must be a mapping of module id to adapter.")
    shim: dict[str, ShimAdapter] = {}
    for key, entry in value.items():
        try:
            module_id = validate_id(key)
        except ValidationError as exc:
            raise ConfigError(f"shim key {key!r} is not a valid module id.") from exc
        if is_relative(module_id):
            raise ConfigError(f"shim key '{module_id}' cannot be relative.")
        shim[module_id] = ShimAdapter.from_value(module_id, entry)
    return shim


def _parse_logging(value: Any) -> LoggingConfig:
    if value is None:
        return LoggingConfig()
    if not isinstance(value, dict):
        raise ConfigError("logging must be a mapping.")
    level = str(value.get("level", DEFAULT_LOG_LEVEL)).lower()
    file_value = value.get("file")
    log_file = Path(str(file_value)).expanduser() if file_value else None
    return LoggingConfig(level=level, file=log_file)


__all__ = [
    "CommonConfig",
    "Config",
    "ConfigError",
    "LoggingConfig",
    "load_config",
    "normalize_options",
]
