"""Tests for the command line interface."""

import pytest
from typer.testing import CliRunner

from nanopanel import __version__
from nanopanel.cli.commands import _flatten, app

runner = CliRunner()


@pytest.fixture
def home(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setattr("pathlib.Path.home", lambda: tmp_path)
    return tmp_path


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_onboard_writes_config(home):
    result = runner.invoke(app, ["onboard"])
    assert result.exit_code == 0
    assert (home / ".nanopanel" / "config.json").exists()


def test_config_shows_resolved_values(home):
    result = runner.invoke(app, ["config"])
    assert result.exit_code == 0
    assert "nanopanel configuration" in result.stdout


def test_flatten_nested_config():
    rows = dict(_flatten({"paginator": {"long_threshold": 4, "buttons": {"next": {"label": "▶"}}}}))
    assert rows == {"paginator.long_threshold": 4, "paginator.buttons.next.label": "▶"}
