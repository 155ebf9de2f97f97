"""Module identifier normalisation.

A raw identifier is turned into a *location* (where the unit lives, rooted at
the configured working root) and a *canonical id* (the key the graph caches
the module under). Canonical ids are expressed relative to the base path when
the location lies beneath it, which keeps normalisation idempotent.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from functools import cached_property
from typing import TYPE_CHECKING

from .errors import ValidationError

if TYPE_CHECKING:
    from .config import CommonConfig

ABSOLUTE_PATH_RE = re.compile(r"^(//?|https?://|file:///)(.*)$")
RELATIVE_PATH_RE = re.compile(r"^\.{1,2}(?:/|$)")
VALID_ID_RE = re.compile(r"^[\w$@~+\-.:/]+$")
DOT_RUN_RE = re.compile(r"(?:^|/)\.{3,}(?:/|$)")


def validate_id(raw: object) -> str:
    """Return ``raw`` if it is an acceptable module id, else raise."""

    if not isinstance(raw, str) or not raw:
        raise ValidationError("Module id must be a non-empty string.")
    if not VALID_ID_RE.match(raw):
        raise ValidationError(f"Module id '{raw}' contains invalid characters.")
    if DOT_RUN_RE.search(raw):
        raise ValidationError(f"Module id '{raw}' contains a run of three or more dots.")
    return raw


def is_relative(raw: str) -> bool:
    return bool(RELATIVE_PATH_RE.match(raw))


def is_absolute(raw: str) -> bool:
    return bool(ABSOLUTE_PATH_RE.match(raw))


def split_scheme(path: str) -> tuple[str, str]:
    """Split ``path`` into its absolute prefix (scheme or root marker) and the rest."""

    match = ABSOLUTE_PATH_RE.match(path)
    if match is None:
        return "", path
    return match.group(1), match.group(2)


def collapse_segments(segments: Iterable[str]) -> list[str]:
    """Drop empty and ``.`` segments and fold ``..`` into its predecessor.

    A ``..`` with nothing before it is a no-op rather than an error.
    """

    collapsed: list[str] = []
    for segment in segments:
        if segment in ("", "."):
            continue
        if segment == "..":
            if collapsed:
                collapsed.pop()
            continue
        collapsed.append(segment)
    return collapsed


def collapse(path: str) -> str:
    scheme, rest = split_scheme(path)
    return scheme + "/".join(collapse_segments(rest.split("/")))


def join_location(prefix: str, path: str) -> str:
    """Join ``path`` onto ``prefix`` and collapse dot segments."""

    scheme, rest = split_scheme(prefix)
    return scheme + "/".join(collapse_segments(f"{rest}/{path}".split("/")))


def parent_of(path: str) -> str:
    scheme, rest = split_scheme(path)
    segments = rest.split("/")[:-1]
    if not segments and not scheme:
        return ""
    return scheme + "/".join(segments)


@dataclass(frozen=True, eq=False)
class ModuleId:
    """An identifier as written by a referencing module, plus its resolved forms."""

    raw: str
    config: CommonConfig = field(repr=False)
    relative_to: str | None = None

    def __post_init__(self) -> None:
        validate_id(self.raw)
        if is_relative(self.raw):
            if not self.relative_to:
                raise ValidationError(
                    f"Relative module id '{self.raw}' needs a module to resolve against."
                )
            if is_relative(self.relative_to):
                raise ValidationError(
                    f"Cannot resolve '{self.raw}' against relative id '{self.relative_to}'."
                )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ModuleId):
            return NotImplemented
        return self.canonical == other.canonical

    def __hash__(self) -> int:
        return hash(self.canonical)

    def __str__(self) -> str:
        return self.canonical

    @cached_property
    def top_level(self) -> str:
        """The raw id with any relative prefix resolved against its anchor."""

        if not is_relative(self.raw):
            return self.raw
        anchor = self.config.original_id(self.relative_to or "")
        resolved = join_location(parent_of(anchor), self.raw)
        if not resolved:
            raise ValidationError(f"Module id '{self.raw}' resolves to nothing.")
        return resolved

    @cached_property
    def _resolution(self) -> tuple[str, str | None]:
        top_level = self.top_level
        if is_absolute(top_level):
            return collapse(top_level), None

        matched = self.config.match_alias(top_level)
        if matched is not None:
            prefix, target = matched
            suffix = top_level[len(prefix):]
            if is_absolute(target):
                return collapse(f"{target}/{suffix}"), top_level
            return join_location(self.config.root, f"{target}/{suffix}"), top_level

        return join_location(self.config.base_location, top_level), None

    @property
    def location(self) -> str:
        """Fully qualified location of the unit, without extension."""

        return self._resolution[0]

    @cached_property
    def canonical(self) -> str:
        location, alias_source = self._resolution
        canonical = self.config.relative_to_base(location)
        if alias_source is not None and alias_source != canonical:
            self.config.remember_alias(canonical, alias_source)
        return canonical

    @cached_property
    def dirname(self) -> str:
        return parent_of(self.canonical)

    @cached_property
    def basename(self) -> str:
        return self.canonical.rsplit("/", 1)[-1]

    @cached_property
    def extension(self) -> str | None:
        index = self.basename.rfind(".")
        if index <= 0:
            return None
        return self.basename[index + 1 :] or None

    @cached_property
    def url(self) -> str:
        if self.extension:
            return self.location
        return self.location + self.config.default_extension


def resolve(raw: str, config: CommonConfig, relative_to: str | None = None) -> str:
    """Return the canonical id for ``raw``."""

    return ModuleId(raw, config, relative_to).canonical


__all__ = [
    "ModuleId",
    "collapse",
    "collapse_segments",
    "is_absolute",
    "is_relative",
    "join_location",
    "resolve",
    "split_scheme",
    "validate_id",
]
