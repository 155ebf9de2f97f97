"""An asynchronous module loader with alias, shim and cycle-breaking support."""

from importlib import metadata

from .backends import FileBackend, LoaderBackend, MemoryBackend
from .config import CommonConfig, Config, load_config
from .errors import (
    ConfigError,
    FactoryError,
    FetchError,
    RigError,
    UnresolvedModuleError,
    ValidationError,
)
from .graph import ModuleGraph
from .identifiers import ModuleId, resolve
from .module import Module
from .shim import ShimAdapter
from .types import ModuleState


def _discover_version() -> str:
    """Return the installed package version, falling back to dev marker."""
    try:
        return metadata.version("rig-loader")
    except metadata.PackageNotFoundError:  # pragma: no cover - occurs in source checkouts
        return "0.0.0"


__all__ = [
    "CommonConfig",
    "Config",
    "ConfigError",
    "FactoryError",
    "FetchError",
    "FileBackend",
    "LoaderBackend",
    "MemoryBackend",
    "Module",
    "ModuleGraph",
    "ModuleId",
    "ModuleState",
    "RigError",
    "ShimAdapter",
    "UnresolvedModuleError",
    "ValidationError",
    "__version__",
    "load_config",
    "resolve",
]
__version__ = _discover_version()
