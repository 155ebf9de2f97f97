"""Declarative adapters for scripts that never call ``define`` themselves."""

from __future__ import annotations

import importlib
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from .errors import ConfigError


@dataclass(frozen=True)
class ShimAdapter:
    """Dependencies, initializer and global export path for a legacy script."""

    deps: tuple[str, ...] = ()
    init: Callable[..., Any] | None = None
    exports: str | None = None

    @classmethod
    def from_value(cls, module_id: str, value: Any) -> ShimAdapter:
        """Build an adapter from a config value: a dependency list or a mapping."""

        if isinstance(value, ShimAdapter):
            return value
        if isinstance(value, (list, tuple)):
            return cls(deps=_parse_deps(module_id, value))
        if not isinstance(value, Mapping):
            raise ConfigError(f"shim['{module_id}'] must be a list or a mapping.")

        deps = _parse_deps(module_id, value.get("deps") or [])
        init = value.get("init")
        if isinstance(init, str):
            init = import_reference(init)
        if init is not None and not callable(init):
            raise ConfigError(f"shim['{module_id}'].init must be callable.")
        exports = value.get("exports")
        if exports is not None and (not isinstance(exports, str) or not exports.strip()):
            raise ConfigError(f"shim['{module_id}'].exports must be a dotted name.")
        return cls(deps=deps, init=init, exports=exports)

    def resolve_exports(self, namespace: Mapping[str, Any]) -> Any:
        """Walk the dotted export path from ``namespace``; ``None`` when it breaks off."""

        if not self.exports:
            return None
        return resolve_global(namespace, self.exports)


def resolve_global(namespace: Mapping[str, Any], dotted: str) -> Any:
    node: Any = namespace
    for term in dotted.split("."):
        if node is None:
            return None
        if isinstance(node, Mapping):
            node = node.get(term)
        else:
            node = getattr(node, term, None)
    return node


def import_reference(reference: str) -> Any:
    """Import ``package.module:attribute`` and return the attribute."""

    module_name, _, attribute = reference.partition(":")
    if not module_name or not attribute:
        raise ConfigError(f"Expected 'module:attribute' reference, got '{reference}'.")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigError(f"Cannot import '{module_name}' for '{reference}'.") from exc
    target: Any = module
    for term in attribute.split("."):
        try:
            target = getattr(target, term)
        except AttributeError as exc:
            raise ConfigError(f"'{reference}' does not name an attribute.") from exc
    return target


def _parse_deps(module_id: str, value: Any) -> tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        raise ConfigError(f"shim['{module_id}'].deps must be a list.")
    deps: list[str] = []
    for idx, entry in enumerate(value, start=1):
        if not isinstance(entry, str) or not entry:
            raise ConfigError(f"shim['{module_id}'].deps[{idx}] must be a module id string.")
        deps.append(entry)
    return tuple(deps)


__all__ = ["ShimAdapter", "import_reference", "resolve_global"]
