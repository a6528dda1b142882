"""Admin CLI — commands that don't need a live database."""

import httpx
from click.testing import CliRunner

from mediahub.cli import main as cli


def _fake_get(payload=None, exc=None):
    def get(url, timeout=None):
        if exc is not None:
            raise exc
        return httpx.Response(200, json=payload, request=httpx.Request("GET", url))

    return get


def test_health_ok(monkeypatch):
    monkeypatch.setattr(cli.httpx, "get", _fake_get({"status": "healthy"}))
    result = CliRunner().invoke(cli.main, ["health"])
    assert result.exit_code == 0
    assert '"healthy"' in result.output


def test_health_degraded_exit_code(monkeypatch):
    monkeypatch.setattr(cli.httpx, "get", _fake_get({"status": "degraded"}))
    result = CliRunner().invoke(cli.main, ["health"])
    assert result.exit_code == 2


def test_health_unreachable(monkeypatch):
    monkeypatch.setattr(cli.httpx, "get", _fake_get(exc=httpx.ConnectError("refused")))
    result = CliRunner().invoke(cli.main, ["health"])
    assert result.exit_code == 1
    assert "not reachable" in result.output


def test_commands_registered():
    result = CliRunner().invoke(cli.main, ["--help"])
    assert result.exit_code == 0
    for name in ("init-db", "revoke-sessions", "health"):
        assert name in result.output
