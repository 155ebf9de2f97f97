from __future__ import annotations

import json
import logging
import textwrap
from pathlib import Path

import pytest

from rig.config import (
    CommonConfig,
    Config,
    ConfigError,
    LoggingConfig,
    load_config,
    normalize_options,
)
from rig.identifiers import resolve


def _write_config(tmp_path: Path, content: str) -> Path:
    config_path = tmp_path / "rig.yaml"
    config_path.write_text(textwrap.dedent(content), encoding="utf-8")
    return config_path


def test_load_config_success(tmp_path: Path) -> None:
    config_path = _write_config(
        tmp_path,
        f"""
        root: {tmp_path}/site
        base_url: lib
        paths:
          app: src/app
        shim:
          legacy:
            deps: [jquery]
            exports: Legacy.api
            init: json:dumps
          plugin: [legacy]
        logging:
          level: DEBUG
          file: {tmp_path}/logs/rig.log
        """,
    )

    config = load_config(config_path)

    assert config.root == f"{tmp_path.as_posix()}/site"
    assert config.base_url == "lib"
    assert config.paths == {"app": "src/app"}
    assert config.shim["legacy"].deps == ("jquery",)
    assert config.shim["legacy"].exports == "Legacy.api"
    assert config.shim["legacy"].init is json.dumps
    assert config.shim["plugin"].deps == ("legacy",)
    assert config.logging == LoggingConfig(level="debug", file=tmp_path / "logs" / "rig.log")


def test_load_config_accepts_base_url_camel_case(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path, "baseUrl: scripts\n")

    assert load_config(config_path).base_url == "scripts"


def test_load_config_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    config_path = _write_config(tmp_path, "base_url: vendor\n")
    monkeypatch.setenv("RIG_CONFIG", str(config_path))

    assert load_config().base_url == "vendor"


def test_missing_env_config_is_an_error(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("RIG_CONFIG", str(tmp_path / "absent.yaml"))

    with pytest.raises(ConfigError):
        load_config()


def test_missing_explicit_config_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_config(tmp_path / "absent.yaml")


def test_missing_default_config_yields_defaults(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.delenv("RIG_CONFIG", raising=False)
    monkeypatch.chdir(tmp_path)

    assert load_config() == Config()


@pytest.mark.parametrize(
    "content",
    [
        "paths: [not, a, mapping]\n",
        "paths:\n  app: 3\n",
        "shim:\n  ./relative: []\n",
        "shim:\n  legacy: 3\n",
        "shim:\n  legacy:\n    exports: ''\n",
        "shim:\n  legacy:\n    init: no_colon_here\n",
        "base_url: ''\n",
        "logging: verbose\n",
        "- just\n- a list\n",
        "paths: {unclosed\n",
    ],
)
def test_invalid_config_raises(tmp_path: Path, content: str) -> None:
    config_path = _write_config(tmp_path, content)

    with pytest.raises(ConfigError):
        load_config(config_path)


def test_apply_pushes_loader_options() -> None:
    common = CommonConfig(root="/srv")
    config = Config(base_url="lib", paths={"app": "src/app"})

    config.apply(common)

    assert common.root == "/srv"
    assert common.base_url == "lib"
    assert common.paths == {"app": "src/app"}


def test_update_merges_alias_and_shim_tables() -> None:
    common = CommonConfig(root="/srv")
    common.update(paths={"a": "x"}, shim={"one": []})
    common.update(paths={"b": "y"}, shim={"two": {"exports": "Two"}})

    assert common.paths == {"a": "x", "b": "y"}
    assert set(common.shim) == {"one", "two"}


def test_update_clears_remembered_aliases() -> None:
    common = CommonConfig(root="/srv", paths={"app": "src/app"})
    canonical = resolve("app/main", common)
    assert common.original_id(canonical) == "app/main"

    common.update(base_url="lib")

    assert common.original_id(canonical) == canonical


def test_shim_lookup_matches_normalised_keys() -> None:
    common = CommonConfig(root="/srv")
    common.update(base_url="lib", shim={"/srv/lib/legacy": {"exports": "Legacy"}})

    adapter = common.shim_for("legacy")

    assert adapter is not None
    assert adapter.exports == "Legacy"
    assert common.shim_for("other") is None
    assert common.shim_for(None) is None


def test_normalize_options_maps_and_warns(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="rig.config"):
        options = normalize_options({"baseUrl": "lib", "bogus": 1}, paths={"a": "b"})

    assert options == {"base_url": "lib", "paths": {"a": "b"}}
    assert "bogus" in caplog.text
