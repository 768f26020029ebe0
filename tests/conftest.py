"""Shared fixtures for kima tests."""

from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def _no_module_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Module selection must come from the test, never from the host shell."""
    monkeypatch.delenv("MODULE", raising=False)
    monkeypatch.delenv("KIMA_ENV", raising=False)


@pytest.fixture
def site(tmp_path: Path) -> Path:
    """An empty application tree: ``application/{controller,module,view}``."""
    for folder in ("controller", "module", "view"):
        (tmp_path / "application" / folder).mkdir(parents=True)
    return tmp_path


def write(path: Path, source: str) -> Path:
    """Write *source* to *path*, creating parent folders."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(source)
    return path
