from __future__ import annotations

import textwrap
from collections.abc import Callable
from pathlib import Path

import pytest

ProgramWriter = Callable[[dict[str, str]], Path]


@pytest.fixture()
def write_program(tmp_path: Path) -> ProgramWriter:
    """Return a helper that lays out program files under a fresh directory."""

    def _write(files: dict[str, str]) -> Path:
        root = tmp_path / "program"
        for relative, source in files.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(textwrap.dedent(source).lstrip(), encoding="utf-8")
        return root

    return _write


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Automatically mark tests in this package as integration."""

    package_root = Path(__file__).resolve().parent
    integration_mark = pytest.mark.integration
    for item in items:
        try:
            path = Path(item.fspath).resolve()
        except OSError:
            continue
        if package_root in path.parents:
            item.add_marker(integration_mark)
