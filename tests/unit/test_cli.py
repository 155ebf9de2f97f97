from __future__ import annotations

import textwrap
from pathlib import Path

import pytest
from typer.testing import CliRunner

from rig import __version__
from rig.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("RIG_CONFIG", raising=False)
    monkeypatch.chdir(tmp_path)


def _write(root: Path, relative: str, source: str) -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(source), encoding="utf-8")
    return path


def test_version_prints_package_version() -> None:
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_resolve_prints_canonical_ids_and_urls(tmp_path: Path) -> None:
    config_path = _write(
        tmp_path,
        "rig.yaml",
        """
        root: /srv/site
        base_url: lib
        paths:
          app: src/app
        """,
    )

    result = runner.invoke(app, ["-c", str(config_path), "resolve", "app/main", "jquery"])

    assert result.exit_code == 0
    assert "app/main -> /srv/site/src/app/main -> /srv/site/src/app/main.py" in result.stdout
    assert "jquery -> jquery -> /srv/site/lib/jquery.py" in result.stdout


def test_resolve_rejects_invalid_ids() -> None:
    result = runner.invoke(app, ["resolve", "bad id"])

    assert result.exit_code == 1


def test_missing_config_exits_with_code_two(tmp_path: Path) -> None:
    result = runner.invoke(app, ["-c", str(tmp_path / "absent.yaml"), "resolve", "x"])

    assert result.exit_code == 2


def test_unknown_log_level_exits_with_code_two() -> None:
    result = runner.invoke(app, ["--log-level", "loud", "resolve", "x"])

    assert result.exit_code == 2


def test_run_loads_entry_and_dependencies(tmp_path: Path) -> None:
    _write(tmp_path, "prog/greeting.py", "define({'text': 'hello from rig'})\n")
    entry = _write(
        tmp_path,
        "prog/main.py",
        "define(['./greeting'], lambda greeting: print(greeting['text']))\n",
    )

    result = runner.invoke(app, ["run", str(entry)])

    assert result.exit_code == 0
    assert "hello from rig" in result.stdout


def test_run_fails_when_a_dependency_is_missing(tmp_path: Path) -> None:
    entry = _write(tmp_path, "prog/main.py", "define(['./missing-part'], lambda part: part)\n")

    result = runner.invoke(app, ["run", str(entry)])

    assert result.exit_code == 1


def test_run_fails_for_unknown_entry(tmp_path: Path) -> None:
    result = runner.invoke(app, ["run", str(tmp_path / "nope.py")])

    assert result.exit_code == 1
