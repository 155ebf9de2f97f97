"""Static discovery of CommonJS-style ``require("...")`` calls.

Only calls whose single argument is a string literal are found. Computed
arguments (``require(name)``, ``require("a" + b)``) are invisible to the scan,
and nothing is ever executed.
"""

from __future__ import annotations

import ast
import inspect
import logging
import textwrap
from collections.abc import Callable
from typing import Any

LOGGER = logging.getLogger(__name__)

COMMON_JS_DEPENDENCIES = ("require", "exports", "module")


def positional_arity(fn: Callable[..., Any]) -> int:
    """Count the named positional parameters of ``fn``."""

    try:
        signature = inspect.signature(fn)
    except (TypeError, ValueError):
        return 0
    kinds = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
    return sum(1 for parameter in signature.parameters.values() if parameter.kind in kinds)


def scan_requires(fn: Callable[..., Any]) -> list[str]:
    """Return literal ``require`` ids found in the source of ``fn``, in source order."""

    try:
        source = inspect.getsource(fn)
    except (OSError, TypeError):
        LOGGER.debug("No source available for %r; skipping require() scan.", fn)
        return []

    try:
        tree = ast.parse(textwrap.dedent(source))
    except SyntaxError:
        LOGGER.debug("Source of %r does not parse on its own; skipping require() scan.", fn)
        return []

    calls = [node for node in ast.walk(tree) if _is_literal_require(node)]
    calls.sort(key=lambda node: (node.lineno, node.col_offset))

    found: list[str] = []
    for call in calls:
        value = call.args[0].value  # type: ignore[attr-defined]
        if value not in found:
            found.append(value)
    return found


def _is_literal_require(node: ast.AST) -> bool:
    if not isinstance(node, ast.Call):
        return False
    if not isinstance(node.func, ast.Name) or node.func.id != "require":
        return False
    if len(node.args) != 1 or node.keywords:
        return False
    argument = node.args[0]
    return isinstance(argument, ast.Constant) and isinstance(argument.value, str)


__all__ = ["COMMON_JS_DEPENDENCIES", "positional_arity", "scan_requires"]
