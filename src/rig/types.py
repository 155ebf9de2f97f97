"""Small shared types used throughout the loader."""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from .module import Module


class ModuleState(str, Enum):
    """Lifecycle states of a module; ``DEFINED`` is terminal."""

    PENDING = "pending"
    DEFINED = "defined"


class FetchCallback(Protocol):
    """Completion signal a backend reports exactly once per fetch."""

    def __call__(
        self,
        error: BaseException | None = None,
        final_id: str | None = None,
        raw_exports: Any = None,
    ) -> None: ...


LoadCallback = Callable[[BaseException | None, "Module | None"], None]
DefineListener = Callable[["Module"], None]
ErrorListener = Callable[[BaseException], None]


__all__ = [
    "DefineListener",
    "ErrorListener",
    "FetchCallback",
    "LoadCallback",
    "ModuleState",
]
