from __future__ import annotations

import os.path
from types import SimpleNamespace

import pytest

from rig.errors import ConfigError
from rig.shim import ShimAdapter, import_reference, resolve_global


def test_list_value_declares_dependencies() -> None:
    adapter = ShimAdapter.from_value("plugin", ["jquery", "underscore"])

    assert adapter == ShimAdapter(deps=("jquery", "underscore"))


def test_mapping_value_with_init_reference() -> None:
    adapter = ShimAdapter.from_value(
        "legacy", {"deps": ["base"], "exports": "Legacy", "init": "os.path:join"}
    )

    assert adapter.deps == ("base",)
    assert adapter.exports == "Legacy"
    assert adapter.init is os.path.join


def test_adapter_instances_pass_through() -> None:
    adapter = ShimAdapter(exports="Thing")

    assert ShimAdapter.from_value("thing", adapter) is adapter


def test_exports_path_walks_mappings_and_attributes() -> None:
    namespace = {
        "Foo": SimpleNamespace(Bar={"baz": 42}),
        "Plain": {"value": "x"},
    }

    assert ShimAdapter(exports="Foo.Bar.baz").resolve_exports(namespace) == 42
    assert ShimAdapter(exports="Plain.value").resolve_exports(namespace) == "x"


def test_exports_path_stops_at_first_missing_segment() -> None:
    namespace = {"Foo": SimpleNamespace()}

    assert resolve_global(namespace, "Foo.Missing.deeper") is None
    assert resolve_global(namespace, "Nothing") is None
    assert ShimAdapter().resolve_exports(namespace) is None


@pytest.mark.parametrize(
    "value",
    [
        "not-a-list",
        {"deps": "jquery"},
        {"deps": [""]},
        {"init": 42},
        {"exports": 7},
    ],
)
def test_invalid_shim_values_raise(value: object) -> None:
    with pytest.raises(ConfigError):
        ShimAdapter.from_value("legacy", value)


def test_import_reference_errors() -> None:
    with pytest.raises(ConfigError):
        import_reference("missing_colon")
    with pytest.raises(ConfigError):
        import_reference("rig_no_such_module_here:thing")
    with pytest.raises(ConfigError):
        import_reference("os.path:no_such_attribute")
