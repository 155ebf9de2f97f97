"""The public ``define`` and ``require`` entry points."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from .discovery import COMMON_JS_DEPENDENCIES, positional_arity, scan_requires
from .errors import ValidationError
from .identifiers import is_relative, validate_id

if TYPE_CHECKING:
    from .graph import ModuleGraph
    from .module import Module

LOGGER = logging.getLogger(__name__)

_PRIMITIVES = (str, bytes, bytearray, int, float, complex, bool)


class Define:
    """Registers a module: ``define([id], [dependencies], exporter)``."""

    def __init__(self, graph: ModuleGraph) -> None:
        self._graph = graph
        self.amd: dict[str, Any] = {}

    def __call__(self, *args: Any) -> Module:
        module_id, dependencies, exporter = _overload(args)

        if module_id is not None:
            if not isinstance(module_id, str):
                raise ValidationError("define() id must be a module id string.")
            validate_id(module_id)
            if is_relative(module_id):
                raise ValidationError(f"define() id '{module_id}' cannot be relative.")

        if dependencies is not None and not isinstance(dependencies, (list, tuple)):
            raise ValidationError("define() dependencies must be a list of module id strings.")
        declared = list(dependencies or [])
        for dependency in declared:
            if not isinstance(dependency, str):
                raise ValidationError("define() dependencies must be a list of module id strings.")
            validate_id(dependency)

        if exporter is None or isinstance(exporter, _PRIMITIVES):
            raise ValidationError("define() exporter must be a function or an object.")

        factory = exporter if callable(exporter) else _constant(exporter)

        if not declared and callable(exporter):
            arity = positional_arity(exporter)
            if arity > len(COMMON_JS_DEPENDENCIES):
                raise ValidationError(
                    f"define() factory without dependencies takes at most "
                    f"{len(COMMON_JS_DEPENDENCIES)} parameters (require, exports, module); "
                    f"it takes {arity}."
                )
            declared = list(COMMON_JS_DEPENDENCIES[:arity])
        argc = len(declared)

        if "require" in declared:
            declared.extend(_discover(exporter, declared))

        return self._graph.add_module(module_id, declared, factory, argc=argc)


class Require:
    """Loads modules: synchronously by id, or asynchronously for a list of ids.

    A ``Require`` bound to a module resolves relative ids against that
    module's id; the graph-level one has no anchor.
    """

    def __init__(self, graph: ModuleGraph, anchor: Module | None = None) -> None:
        self._graph = graph
        self._anchor = anchor

    @property
    def context_id(self) -> str | None:
        if self._anchor is None:
            return None
        return self._anchor.context_id

    def __call__(
        self,
        dependencies: str | list[str] | tuple[str, ...],
        callback: Callable[..., Any] | None = None,
        errback: Callable[[BaseException], Any] | None = None,
    ) -> Any:
        if isinstance(dependencies, str):
            return self._graph.lookup(dependencies, self.context_id).exports
        if isinstance(dependencies, (list, tuple)):
            if not all(isinstance(dependency, str) for dependency in dependencies):
                raise ValidationError("require() dependencies must be module id strings.")
            return self._graph.request(
                list(dependencies),
                callback,
                errback,
                anchor=self._anchor,
            )
        raise ValidationError("require() called with invalid arguments.")

    def config(self, options: Mapping[str, Any] | None = None, **kwargs: Any) -> None:
        """Apply ``baseUrl``/``base_url``, ``root``, ``paths`` and ``shim`` options."""

        self._graph.configure(options, **kwargs)

    def to_url(self, resource_id: str) -> str:
        return self._graph.identify(resource_id, self.context_id).url

    toUrl = to_url


def _overload(args: tuple[Any, ...]) -> tuple[Any, Any, Any]:
    if len(args) == 1:
        return None, None, args[0]
    if len(args) == 2:
        first, exporter = args
        if first is None or isinstance(first, str):
            return first, None, exporter
        return None, first, exporter
    if len(args) == 3:
        return args
    raise ValidationError(f"define() takes one to three arguments ({len(args)} given).")


def _constant(value: Any) -> Callable[..., Any]:
    def exporter(*_args: Any) -> Any:
        return value

    return exporter


def _discover(exporter: Any, declared: list[str]) -> list[str]:
    found: list[str] = []
    for dependency in scan_requires(exporter):
        if dependency in declared or dependency in found:
            continue
        try:
            validate_id(dependency)
        except ValidationError:
            LOGGER.warning("Ignoring invalid require('%s') found in module source.", dependency)
            continue
        found.append(dependency)
    return found


__all__ = ["Define", "Require"]
