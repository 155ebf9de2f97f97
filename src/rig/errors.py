"""Exception hierarchy shared by the loader."""

from __future__ import annotations


class RigError(Exception):
    """Base class for loader errors."""


class ValidationError(RigError, TypeError):
    """Raised synchronously for malformed ids, dependency lists or exporters."""


class UnresolvedModuleError(RigError, LookupError, ReferenceError):
    """Raised when a synchronous lookup names a module that is not cached.

    This is the loader's reference error: it can be caught as either
    ``LookupError`` or ``ReferenceError``.
    """

    def __init__(self, module_id: str) -> None:
        super().__init__(f"Module '{module_id}' has not been loaded.")
        self.module_id = module_id


class FetchError(RigError):
    """A backend could not load the source for a module."""

    def __init__(self, module_id: str, cause: BaseException | None = None) -> None:
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Failed to load module '{module_id}'{detail}")
        self.module_id = module_id
        self.cause = cause


class ConfigError(ValueError):
    """Raised when configuration is invalid or missing."""


class FactoryError(RigError):
    """A module factory raised while the module was being defined."""

    def __init__(self, module_id: str | None, cause: BaseException) -> None:
        name = module_id or "<anonymous>"
        super().__init__(f"Factory for module '{name}' failed: {cause}")
        self.module_id = module_id
        self.cause = cause


__all__ = [
    "ConfigError",
    "FactoryError",
    "FetchError",
    "RigError",
    "UnresolvedModuleError",
    "ValidationError",
]
