"""Checks on the project metadata."""

import re
import tomllib
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]


def _project() -> dict:
    with (ROOT / "pyproject.toml").open("rb") as fp:
        return tomllib.load(fp)["project"]


def _declared_distributions() -> set[str]:
    return {re.split(r"[<>=!~\[ ;]", requirement, maxsplit=1)[0].lower() for requirement in _project()["dependencies"]}


def test_receiver_imports_are_declared():
    declared = _declared_distributions()

    assert {"flask", "werkzeug", "structlog"} <= declared


def test_monitor_imports_are_declared():
    declared = _declared_distributions()

    assert {"httpx", "pydantic", "slack-sdk", "structlog"} <= declared


def test_design_notes_are_not_the_package_description():
    assert _project().get("readme") != "DESIGN.md"
