"""The module lifecycle state machine."""

from __future__ import annotations

import logging
from collections.abc import Callable
from types import SimpleNamespace
from typing import TYPE_CHECKING, Any

from .discovery import COMMON_JS_DEPENDENCIES
from .errors import FactoryError, RigError, ValidationError
from .types import DefineListener, ErrorListener, ModuleState

if TYPE_CHECKING:
    from .graph import ModuleGraph

LOGGER = logging.getLogger(__name__)


class Module:
    """A unit with an identity, dependencies, a factory and memoised exports.

    ``modules`` runs parallel to ``dependencies`` and holds each dependency's
    ``Module`` once it is defined (or, when a circular pair is broken, while it
    is still pending). Its order is the argument order handed to the factory.
    """

    def __init__(
        self,
        graph: ModuleGraph,
        module_id: str | None = None,
        dependencies: list[str] | None = None,
        factory: Callable[..., Any] | None = None,
        *,
        argc: int | None = None,
        anchor: Module | None = None,
    ) -> None:
        self.graph = graph
        self.id: str | None = None
        self.names: set[str] = set()
        self.dependencies: list[str] = list(dependencies or [])
        self.factory = factory
        self.argc = len(self.dependencies) if argc is None else argc
        self.anchor = anchor

        self.exports: Any = SimpleNamespace()
        self.modules: list[Module | None] = [None] * len(self.dependencies)
        self.listeners: list[DefineListener] = []
        self.error_listeners: list[ErrorListener] = []

        self.defined = False
        self.error: BaseException | None = None
        self.shimmed = False
        self.script_requested = False

        if module_id:
            self.assign_id(module_id)

    def __repr__(self) -> str:
        return f"Module({self.label!r}, state={self.state.value})"

    @classmethod
    def constant(cls, graph: ModuleGraph, name: str, value: Any) -> Module:
        """A pre-defined module whose exports are ``value``."""

        module = cls(graph, name)
        module.exports = value
        module.defined = True
        return module

    @property
    def label(self) -> str:
        return self.id or "<anonymous>"

    @property
    def state(self) -> ModuleState:
        return ModuleState.DEFINED if self.defined else ModuleState.PENDING

    @property
    def context_id(self) -> str | None:
        """The id relative dependencies resolve against."""

        if self.id:
            return self.id
        if self.anchor is not None:
            return self.anchor.context_id
        return None

    def assign_id(self, module_id: str) -> None:
        if not self.id:
            self.id = module_id
        self.names.add(module_id)

    def actuate(self) -> None:
        """Normalise this module's dependencies and start loading them."""

        if self.defined or self.error is not None:
            return

        if not self.dependencies:
            self.graph.soon(self.define)
            return

        context_id = self.context_id
        try:
            resolved = [
                dependency
                if dependency in COMMON_JS_DEPENDENCIES
                else self.graph.resolve(dependency, context_id)
                for dependency in self.dependencies
            ]
        except RigError as exc:
            LOGGER.error("Module '%s' has an unresolvable dependency: %s", self.label, exc)
            self.fail(exc)
            return
        self.dependencies[:] = resolved

        for dependency in resolved:
            if dependency in COMMON_JS_DEPENDENCIES:
                self.graph.soon(self._provide_free_variable, dependency)
            else:
                self._load(dependency)

    def add_define_listener(self, callback: DefineListener) -> None:
        """Run ``callback`` once this module is defined; immediately if it already is."""

        if not callable(callback):
            raise ValidationError("Define listener must be callable.")
        if self.defined:
            callback(self)
        elif self.error is None:
            self.listeners.append(callback)

    def add_error_listener(self, callback: ErrorListener) -> None:
        if self.error is not None:
            callback(self.error)
        elif not self.defined:
            self.error_listeners.append(callback)

    def is_blocked_by(self, module: Module) -> bool:
        """True when every unmet dependency of this module names ``module``."""

        if self.defined or self.error is not None:
            return False
        for dependency, fulfilled in zip(self.dependencies, self.modules):
            if fulfilled is None and dependency not in module.names:
                return False
        return bool(self.dependencies)

    def remove_dependency(self, module: Module | None = None) -> None:
        """Record ``module`` as met; define once nothing is left unmet.

        With exactly one dependency left unmet, and that dependency waiting on
        nothing but this module, the pair is circular: the dependency is told to
        treat this module as met, seeing its exports object as it stands now.
        """

        if self.defined or self.error is not None:
            return

        unmet = 0
        blocker: Module | None = None
        for index, dependency in enumerate(self.dependencies):
            if self.modules[index] is None and module is not None and dependency in module.names:
                self.modules[index] = module
            if self.modules[index] is None:
                unmet += 1
                blocker = self.graph.cache.get(dependency)

        if unmet == 0:
            if not self.shimmed:
                self.define()
            elif not self.script_requested:
                self.script_requested = True
                self.graph.fetch_script(self)
        elif unmet == 1 and blocker is not None and blocker.is_blocked_by(self):
            LOGGER.debug(
                "Breaking circular dependency between '%s' and '%s'",
                self.label,
                blocker.label,
            )
            blocker.remove_dependency(self)

    def define(self, raw_exports: Any = None) -> None:
        """Run the factory exactly once and notify listeners, newest first."""

        if self.defined or self.error is not None:
            return

        adapter = self.graph.config.shim_for(self.id)
        factory = adapter.init if adapter is not None and adapter.init else self.factory
        args = [dependency.exports for dependency in self.modules[: self.argc]]  # type: ignore[union-attr]

        result = raw_exports
        if factory is not None:
            try:
                result = factory(*args)
            except Exception as exc:
                LOGGER.exception("Factory for module '%s' failed", self.label)
                error = FactoryError(self.id, exc)
                error.__cause__ = exc
                self.fail(error)
                return

        if result is not None:
            self.exports = result
        elif adapter is not None and adapter.exports:
            self.exports = adapter.resolve_exports(self.graph.namespace)

        self.defined = True
        self.error_listeners.clear()
        LOGGER.debug("Defined module '%s'", self.label)

        callbacks = self.listeners
        while callbacks:
            callbacks.pop()(self)

    def fail(self, error: BaseException) -> None:
        """Mark this module as failed; it stays pending and never defines."""

        if self.defined or self.error is not None:
            return
        self.error = error
        self.listeners.clear()
        callbacks = self.error_listeners
        while callbacks:
            callbacks.pop()(error)

    def _load(self, dependency: str) -> None:
        graph = self.graph
        adapter = graph.config.shim_for(dependency)
        if adapter is not None and adapter.deps and dependency not in graph.cache:
            module = Module(graph, dependency, list(adapter.deps))
            module.shimmed = True
            graph.register(module)
            self._await(module)
            module.actuate()
            return
        graph.load(dependency, self._on_dependency_loaded)

    def _on_dependency_loaded(self, error: BaseException | None, module: Module | None) -> None:
        if error is not None or module is None:
            LOGGER.error("Module '%s' is blocked on a dependency that failed to load", self.label)
            self.fail(error or RuntimeError("dependency failed to load"))
            return
        self._await(module)
        if not module.defined:
            self.remove_dependency()

    def _await(self, module: Module) -> None:
        module.add_error_listener(self.fail)
        module.add_define_listener(self.remove_dependency)

    def _provide_free_variable(self, name: str) -> None:
        if name == "require":
            value: Any = self.graph.local_require(self)
        elif name == "exports":
            value = self.exports
        else:
            value = self
        self.remove_dependency(Module.constant(self.graph, name, value))


__all__ = ["Module"]
