"""The module graph: cache, in-flight fetches and fetch listeners."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from typing import Any

from .api import Define, Require
from .backends import FileBackend, LoaderBackend
from .config import CommonConfig, normalize_options
from .discovery import COMMON_JS_DEPENDENCIES
from .errors import FetchError, UnresolvedModuleError, ValidationError
from .identifiers import ModuleId, validate_id
from .module import Module
from .types import LoadCallback

LOGGER = logging.getLogger(__name__)


class ModuleGraph:
    """Owns every module of one program, keyed by canonical id.

    All methods that schedule work expect to run on the thread of a running
    asyncio event loop. Nothing here is thread-safe, and nothing needs to be:
    each mutation runs to completion before the next queued callback.
    """

    def __init__(
        self,
        config: CommonConfig | None = None,
        backend: LoaderBackend | None = None,
        namespace: dict[str, Any] | None = None,
    ) -> None:
        self.config = config if config is not None else CommonConfig()
        self.namespace: dict[str, Any] = {} if namespace is None else namespace
        self.cache: dict[str, Module] = {}
        self.loading: set[str] = set()
        self.listeners: dict[str, list[LoadCallback]] = {}
        self.anonymous: Module | None = None
        self._scheduled = 0

        self.define = Define(self)
        self.require = Require(self)
        self.namespace.setdefault("define", self.define)
        self.namespace.setdefault("require", self.require)
        self.backend: LoaderBackend = backend if backend is not None else FileBackend(self.namespace)

    # ------------------------------------------------------------------
    # Scheduling

    def soon(self, callback: Callable[..., Any], *args: Any) -> None:
        """Run ``callback`` on the next tick of the running loop."""

        loop = asyncio.get_running_loop()
        self._scheduled += 1
        loop.call_soon(self._run_scheduled, callback, args)

    def _run_scheduled(self, callback: Callable[..., Any], args: tuple[Any, ...]) -> None:
        self._scheduled -= 1
        callback(*args)

    @property
    def busy(self) -> bool:
        """True while a fetch is in flight or graph work is queued."""

        return bool(self.loading) or self._scheduled > 0

    async def wait_idle(self, poll_interval: float = 0.01) -> None:
        """Wait until no fetch is in flight and no graph callback is queued."""

        while self.busy:
            await asyncio.sleep(poll_interval if self.loading else 0)

    # ------------------------------------------------------------------
    # Identifiers and configuration

    def identify(self, raw: str, relative_to: str | None = None) -> ModuleId:
        return ModuleId(raw, self.config, relative_to)

    def resolve(self, raw: str, relative_to: str | None = None) -> str:
        return self.identify(raw, relative_to).canonical

    def configure(self, options: Mapping[str, Any] | None = None, **kwargs: Any) -> None:
        self.config.update(**normalize_options(options, **kwargs))

    # ------------------------------------------------------------------
    # Registration and lookup

    def register(self, module: Module) -> None:
        for name in module.names:
            self.cache[name] = module

    def lookup(self, raw: str, relative_to: str | None = None) -> Module:
        """Return the cached module for ``raw``; never fetches."""

        key = self.resolve(raw, relative_to)
        try:
            return self.cache[key]
        except KeyError:
            raise UnresolvedModuleError(key) from None

    def pending(self) -> list[str]:
        """Canonical ids of cached modules that have not been defined."""

        return sorted(key for key, module in self.cache.items() if not module.defined)

    def add_module(
        self,
        module_id: str | None,
        dependencies: list[str],
        factory: Callable[..., Any],
        *,
        argc: int | None = None,
    ) -> Module:
        """Register a module declared through ``define``."""

        key = self.resolve(module_id) if module_id else None
        if key:
            self._check_dependencies(dependencies, key)
        module = Module(self, key, dependencies, factory, argc=argc)

        if key and key not in self.loading:
            if key in self.cache:
                LOGGER.warning("Module '%s' is already defined; ignoring redefinition.", key)
                return self.cache[key]
            self.register(module)
            self.soon(module.actuate)
            return module

        if self.anonymous is not None:
            LOGGER.warning(
                "Discarding unclaimed definition of '%s'; a later define() replaced it.",
                self.anonymous.label,
            )
        self.anonymous = module
        return module

    def request(
        self,
        dependencies: list[str],
        callback: Callable[..., Any] | None = None,
        errback: Callable[[BaseException], Any] | None = None,
        *,
        anchor: Module | None = None,
    ) -> asyncio.Future[list[Any]]:
        """Load ``dependencies`` and resolve to their exports in declaration order."""

        for dependency in dependencies:
            validate_id(dependency)
        self._check_dependencies(dependencies, anchor.context_id if anchor is not None else None)
        if callback is not None and not callable(callback):
            raise ValidationError("require() callback must be callable.")
        if errback is not None and not callable(errback):
            raise ValidationError("require() errback must be callable.")

        future: asyncio.Future[list[Any]] = asyncio.get_running_loop().create_future()

        def complete(*exports: Any) -> None:
            if callback is not None:
                callback(*exports)
            if not future.done():
                future.set_result(list(exports))

        def failed(error: BaseException) -> None:
            if errback is not None:
                errback(error)
            if not future.done():
                future.set_exception(error)

        module = Module(self, None, dependencies, complete, anchor=anchor)
        module.add_error_listener(failed)
        module.actuate()
        return future

    def _check_dependencies(self, dependencies: list[str], context_id: str | None) -> None:
        """Raise now for dependency ids that cannot resolve against ``context_id``."""

        for dependency in dependencies:
            if dependency not in COMMON_JS_DEPENDENCIES:
                self.resolve(dependency, context_id)

    def local_require(self, module: Module) -> Require:
        return Require(self, anchor=module)

    # ------------------------------------------------------------------
    # Fetching

    def load(self, key: str, callback: LoadCallback) -> None:
        """Hand ``callback`` the module for ``key`` once it has been fetched.

        A second request for an id already in flight joins the first one's
        listener queue instead of fetching again.
        """

        cached = self.cache.get(key)
        if cached is not None:
            self.soon(callback, None, cached)
            return

        self.listeners.setdefault(key, []).append(callback)
        if key not in self.loading:
            self.loading.add(key)
            self._fetch(key, self._on_load)

    def fetch_script(self, module: Module) -> None:
        """Fetch the legacy script behind a shimmed module, then define it."""

        key = module.id or ""
        self.loading.add(key)

        def complete(key: str, error: BaseException | None, _final_id: str | None, raw: Any) -> None:
            self.loading.discard(key)
            stray = self.anonymous
            self.anonymous = None
            if stray is not None:
                LOGGER.warning("Shimmed script '%s' called define(); ignoring it.", key)
            if error is not None:
                failure = _fetch_failure(key, error)
                LOGGER.error("%s", failure)
                module.fail(failure)
                return
            module.define(raw)

        self._fetch(key, complete)

    def _fetch(
        self,
        key: str,
        on_complete: Callable[[str, BaseException | None, str | None, Any], None],
    ) -> None:
        module_id = self.identify(key)
        LOGGER.debug("Fetching '%s' from %s", key, module_id.url)
        reported = False

        def done(
            error: BaseException | None = None,
            final_id: str | None = None,
            raw_exports: Any = None,
        ) -> None:
            nonlocal reported
            if reported:
                LOGGER.warning("Backend reported completion of '%s' twice; ignoring.", key)
                return
            reported = True
            on_complete(key, error, final_id, raw_exports)

        try:
            self.backend.fetch(module_id, done)
        except Exception as exc:
            done(exc)

    def _on_load(
        self,
        key: str,
        error: BaseException | None,
        final_id: str | None,
        raw_exports: Any,
    ) -> None:
        self.loading.discard(key)
        module = self.anonymous
        self.anonymous = None

        if error is not None:
            failure = _fetch_failure(key, error)
            LOGGER.error("%s", failure)
            if module is not None:
                LOGGER.warning("Discarding definition from failed script '%s'.", key)
            for callback in self.listeners.pop(key, []):
                self.soon(callback, failure, None)
            return

        reported = self.resolve(final_id) if final_id else key
        if module is not None:
            module.assign_id(reported)
        elif raw_exports is not None:
            module = Module(self, reported, factory=lambda: raw_exports)
        else:
            module = Module(self, reported)
        module.names.update((key, reported))

        self.register(module)
        LOGGER.debug("Loaded '%s' as '%s'", key, module.label)
        module.actuate()

        for callback in self.listeners.pop(key, []):
            self.soon(callback, None, module)


def _fetch_failure(key: str, error: BaseException) -> FetchError:
    if isinstance(error, FetchError):
        return error
    failure = FetchError(key, error)
    failure.__cause__ = error
    return failure


__all__ = ["ModuleGraph"]
