"""Every module under src/ compiles without warnings (e.g. invalid escapes)."""

from __future__ import annotations

import warnings
from pathlib import Path

import pytest

_SRC = Path(__file__).resolve().parents[2] / "src"


@pytest.mark.parametrize(
    "path",
    sorted(_SRC.rglob("*.py")),
    ids=lambda p: str(p.relative_to(_SRC)),
)
def test_compiles_cleanly(path: Path) -> None:
    source = path.read_text(encoding="utf-8")
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        compile(source, str(path), "exec")


def test_submission_service_is_checked() -> None:
    assert (_SRC / "services" / "submission_service.py") in set(_SRC.rglob("*.py"))
