"""Tests for the qbitclient CLI."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from qbitclient import __version__
from qbitclient.cli import app
from qbitclient.cli.helpers import get_state
from qbitclient.cli.output import console
from qbitclient.client import Client
from tests.helpers import FakeServer

runner = CliRunner()

ENV = {
    "QBT_BASE_URL": "http://qbt.test:8080",
    "QBT_USERNAME": "admin",
    "QBT_PASSWORD": "adminadmin",
    "QBT_RETRY_BACKOFF": "0.001",
}


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("QBT_BASE_URL", "QBT_USERNAME", "QBT_PASSWORD", "QBT_CONFIG", "QBT_LOG_FORMAT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(console, "width", 200)


@pytest.fixture
def fake_server():
    """Route every client the CLI builds to a FakeServer."""
    server = FakeServer()

    def factory(config):
        return Client(config, http_transport=server.transport())

    with (
        patch("qbitclient.cli.helpers.Client", side_effect=factory),
        patch("qbitclient.cli.commands.status.Client", side_effect=factory),
    ):
        yield server


class TestGlobalOptions:
    """Tests for the app callback."""

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"qbitclient v{__version__}" in result.stdout

    def test_verbose_sets_debug(self, fake_server: FakeServer):
        result = runner.invoke(app, ["--verbose", "status"], env=ENV)
        assert result.exit_code == 0
        state = get_state()
        assert state.level == "DEBUG"
        assert state.debug is True
        assert state.logging_configured

    def test_invalid_log_format(self):
        result = runner.invoke(app, ["--log-format", "xml", "status"], env=ENV)
        assert result.exit_code == 2
        assert "Invalid log format" in result.stdout

    def test_missing_config(self):
        result = runner.invoke(app, ["status"])
        assert result.exit_code == 1
        assert "No server configured" in result.stdout

    def test_config_file(self, fake_server: FakeServer, tmp_path: Path):
        path = tmp_path / "qbt.yaml"
        path.write_text(
            "base_url: http://qbt.test:8080\nusername: admin\npassword: adminadmin\n"
        )
        result = runner.invoke(app, ["--config", str(path), "status"])
        assert result.exit_code == 0
        assert "v4.6.2" in result.stdout

    def test_config_file_missing(self, tmp_path: Path):
        result = runner.invoke(app, ["--config", str(tmp_path / "nope.yaml"), "status"])
        assert result.exit_code == 1
        assert "Error loading config" in result.stdout


class TestStatusCommand:
    """Tests for `qbitclient status`."""

    def test_connected(self, fake_server: FakeServer):
        result = runner.invoke(app, ["status"], env=ENV)
        assert result.exit_code == 0
        assert "connected" in result.stdout
        assert "2.9.3" in result.stdout

    def test_json(self, fake_server: FakeServer):
        result = runner.invoke(app, ["status", "--json"], env=ENV)
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["status"] == "connected"
        assert payload["app_version"] == "v4.6.2"
        assert payload["error"] is None

    def test_bad_credentials(self, fake_server: FakeServer):
        env = {**ENV, "QBT_PASSWORD": "wrong"}
        result = runner.invoke(app, ["status", "--json"], env=env)
        assert result.exit_code == 1
        payload = json.loads(result.stdout)
        assert payload["status"] == "unauthorized"
        assert payload["error_kind"] == "auth_failure"
        assert payload["permanent"] is True
        assert fake_server.count("POST", "/api/v2/auth/login") == 1


class TestListCommand:
    """Tests for `qbitclient list`."""

    def test_table(self, fake_server: FakeServer):
        fake_server.routes[("GET", "/api/v2/torrents/info")] = [
            {"hash": "abcdef0123456789", "name": "debian", "state": "uploading", "size": 2048},
        ]
        result = runner.invoke(app, ["list"], env=ENV)
        assert result.exit_code == 0
        assert "debian" in result.stdout
        assert "abcdef012345" in result.stdout

    def test_empty(self, fake_server: FakeServer):
        fake_server.routes[("GET", "/api/v2/torrents/info")] = []
        result = runner.invoke(app, ["list", "--category", "tv"], env=ENV)
        assert result.exit_code == 0
        assert "No torrents found" in result.stdout
        request = [r for r in fake_server.requests if r.url.path == "/api/v2/torrents/info"][-1]
        assert request.url.params["category"] == "tv"

    def test_json(self, fake_server: FakeServer):
        fake_server.routes[("GET", "/api/v2/torrents/info")] = [
            {"hash": "abc", "name": "debian", "magnet_uri": "magnet:?xt=urn:btih:abc&dn=debian"},
        ]
        result = runner.invoke(app, ["list", "--json"], env=ENV)
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data[0]["name"] == "debian"
        assert "magnet_link" not in data[0]

    def test_request_failure(self, fake_server: FakeServer):
        fake_server.routes[("GET", "/api/v2/torrents/info")] = []
        env = {**ENV, "QBT_PASSWORD": "wrong"}
        result = runner.invoke(app, ["list"], env=env)
        assert result.exit_code == 1
        assert "Request failed" in result.stdout


class TestTorrentCommands:
    """Tests for add, pause and resume."""

    def test_add_magnet(self, fake_server: FakeServer):
        result = runner.invoke(
            app,
            ["add", "magnet:?xt=urn:btih:abc&dn=debian", "--category", "isos", "--paused"],
            env=ENV,
        )
        assert result.exit_code == 0
        assert "Added debian" in result.stdout
        assert fake_server.count("POST", "/api/v2/torrents/add") == 1

    def test_add_url(self, fake_server: FakeServer):
        result = runner.invoke(app, ["add", "https://example.com/debian.torrent"], env=ENV)
        assert result.exit_code == 0
        assert "https://example.com/debian.torrent" in result.stdout

    def test_pause_uses_legacy_endpoint_on_old_servers(self, fake_server: FakeServer):
        result = runner.invoke(app, ["pause", "aaa", "bbb"], env=ENV)
        assert result.exit_code == 0
        assert "Paused 2 torrent(s)" in result.stdout
        assert fake_server.count("POST", "/api/v2/torrents/pause") == 1
        assert fake_server.count("POST", "/api/v2/torrents/stop") == 0

    def test_resume_uses_start_on_new_servers(self, fake_server: FakeServer):
        fake_server.routes[("GET", "/api/v2/app/webapiVersion")] = "2.11.2"
        result = runner.invoke(app, ["resume", "all"], env=ENV)
        assert result.exit_code == 0
        assert fake_server.count("POST", "/api/v2/torrents/start") == 1
        assert fake_server.count("POST", "/api/v2/torrents/resume") == 0
