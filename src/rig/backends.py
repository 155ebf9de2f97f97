"""Fetch backends that turn a resolved module id into executed source."""

from __future__ import annotations

import asyncio
import importlib
import linecache
import logging
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from .identifiers import ModuleId, split_scheme
from .types import FetchCallback

LOGGER = logging.getLogger(__name__)

_DOTTED_NAME_RE = re.compile(r"^[A-Za-z_]\w*(?:/[A-Za-z_]\w*)*$")


@runtime_checkable
class LoaderBackend(Protocol):
    """Fetches and executes the source for one module id.

    ``done`` must be called exactly once: ``done(error)`` on failure, or
    ``done(None, final_id, raw_exports)`` once the source has run. The final
    id may differ from the requested one; ``raw_exports`` is only given when
    the unit never registered itself through ``define``.
    """

    def fetch(self, module_id: ModuleId, done: FetchCallback) -> None:
        """Start loading ``module_id``."""


class ScriptBackend:
    """Executes script sources with a shared global namespace."""

    def __init__(self, namespace: dict[str, Any]) -> None:
        self.namespace = namespace

    def execute(self, source: str, filename: str) -> None:
        code = compile(source, filename, "exec")
        exec(code, self.namespace)


class MemoryBackend(ScriptBackend):
    """Serves sources from a mapping keyed by canonical id or URL."""

    def __init__(self, sources: Mapping[str, str], namespace: dict[str, Any]) -> None:
        super().__init__(namespace)
        self.sources = dict(sources)
        self.requests: list[str] = []

    def fetch(self, module_id: ModuleId, done: FetchCallback) -> None:
        self.requests.append(module_id.canonical)
        asyncio.get_running_loop().call_soon(self._complete, module_id, done)

    def _complete(self, module_id: ModuleId, done: FetchCallback) -> None:
        source = self.sources.get(module_id.canonical)
        if source is None:
            source = self.sources.get(module_id.url)
        if source is None:
            done(ModuleNotFoundError(f"No source registered for '{module_id.canonical}'."))
            return

        filename = f"<rig:{module_id.canonical}>"
        linecache.cache[filename] = (len(source), None, source.splitlines(True), filename)
        try:
            self.execute(source, filename)
        except Exception as exc:
            done(exc)
            return
        done(None, module_id.canonical)


class FileBackend(ScriptBackend):
    """Reads module files from disk; falls back to importing Python modules."""

    def __init__(self, namespace: dict[str, Any], *, import_fallback: bool = True) -> None:
        super().__init__(namespace)
        self.import_fallback = import_fallback
        self._tasks: set[asyncio.Task[None]] = set()

    def fetch(self, module_id: ModuleId, done: FetchCallback) -> None:
        task = asyncio.get_running_loop().create_task(self._fetch(module_id, done))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _fetch(self, module_id: ModuleId, done: FetchCallback) -> None:
        loop = asyncio.get_running_loop()
        for candidate in _candidates(module_id):
            try:
                found = await loop.run_in_executor(None, _read_source, candidate)
            except (OSError, UnicodeDecodeError) as exc:
                done(exc)
                return
            if found is None:
                continue
            filename, source = found
            LOGGER.debug("Executing %s for '%s'", filename, module_id.canonical)
            try:
                self.execute(source, filename)
            except Exception as exc:
                done(exc)
                return
            done(None, module_id.canonical)
            return

        dotted = _dotted_name(module_id.canonical)
        if self.import_fallback and dotted:
            try:
                module = importlib.import_module(dotted)
            except ImportError as exc:
                done(exc)
                return
            LOGGER.debug("Imported Python module '%s' for '%s'", dotted, module_id.canonical)
            done(None, module_id.canonical, module)
            return

        done(ModuleNotFoundError(f"No source found for '{module_id.canonical}' at {module_id.url}"))


def _candidates(module_id: ModuleId) -> list[Path]:
    paths: list[Path] = []
    for location in (module_id.url, module_id.location):
        path = _local_path(location)
        if path is not None and path not in paths:
            paths.append(path)
    return paths


def _local_path(location: str) -> Path | None:
    scheme, rest = split_scheme(location)
    if scheme in ("", "/"):
        return Path(location)
    if scheme == "file:///":
        return Path("/" + rest)
    return None


def _read_source(path: Path) -> tuple[str, str] | None:
    if not path.is_file():
        return None
    resolved = path.resolve()
    return str(resolved), resolved.read_text(encoding="utf-8")


def _dotted_name(canonical: str) -> str | None:
    if not _DOTTED_NAME_RE.match(canonical):
        return None
    return canonical.replace("/", ".")


__all__ = ["FileBackend", "LoaderBackend", "MemoryBackend", "ScriptBackend"]
