from __future__ import annotations

from rig.discovery import COMMON_JS_DEPENDENCIES, positional_arity, scan_requires


def test_positional_arity_counts_named_parameters() -> None:
    def three(require, exports, module):
        return None

    def variadic(*args, **kwargs):
        return None

    def keyword_only(require, *, flag=False):
        return None

    assert positional_arity(three) == 3
    assert positional_arity(variadic) == 0
    assert positional_arity(keyword_only) == 1


def test_common_js_free_variables_are_ordered() -> None:
    assert COMMON_JS_DEPENDENCIES == ("require", "exports", "module")


def test_scan_finds_literal_requires_in_source_order() -> None:
    def factory(require, exports, module):
        first = require("./a")
        second = require("lib/b")
        again = require("./a")
        name = "computed"
        require(name)
        require("x" + name)
        exports.values = [first, second, again]

    assert scan_requires(factory) == ["./a", "lib/b"]


def test_scan_ignores_calls_that_are_not_plain_requires() -> None:
    class Holder:
        @staticmethod
        def require(name):
            return name

    def factory(require):
        Holder.require("method/call")
        require("two", "arguments")
        require(["array/form"], print)
        return require("only/this")

    assert scan_requires(factory) == ["only/this"]


def test_scan_without_source_finds_nothing() -> None:
    namespace: dict = {}
    code = compile("def factory(require):\n    return require('hidden')\n", "<generated>", "exec")
    exec(code, namespace)

    assert scan_requires(namespace["factory"]) == []
