"""Tests for qbitclient.client and the endpoint mixins."""

import asyncio
import json
from urllib.parse import parse_qs

import httpx
import pytest
from pydantic import SecretStr

from qbitclient import Client, ClientClosedError, ClientConfig
from qbitclient.api import TorrentConfig, TorrentNotFoundError, parse_magnet_link
from qbitclient.api.base import APIBase
from qbitclient.api.models import TorrentProperties
from qbitclient.api.rss import flatten_rss_items
from qbitclient.core.errors import (
    ClassifiedError,
    ConnectionState,
    ErrorKind,
    PermanentFailureError,
    RequestError,
)
from tests.helpers import FakeServer

MAGNET = (
    "magnet:?xt=urn:btih:0123456789abcdef0123456789abcdef01234567"
    "&dn=Ubuntu+24.04"
    "&tr=udp%3A%2F%2Ftracker.one%3A1337"
    "&tr=udp%3A%2F%2Ftracker.two%3A6969"
    "&xl=123456"
)


def _form(request: httpx.Request) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(request.content.decode(), keep_blank_values=True).items()}


def _last(server: FakeServer, method: str, path: str) -> httpx.Request:
    return [r for r in server.requests if r.method == method and r.url.path == path][-1]


class TestTorrentEndpoints:
    """Torrent listing and actions through the retry executor."""

    async def test_list_torrents_with_magnet(self, client: Client, server: FakeServer):
        server.routes[("GET", "/api/v2/torrents/info")] = [
            {
                "hash": "0123456789abcdef0123456789abcdef01234567",
                "name": "Ubuntu 24.04",
                "state": "downloading",
                "progress": 0.5,
                "tags": "linux, iso",
                "magnet_uri": MAGNET,
                "some_future_field": 1,
            }
        ]
        torrents = await client.list_torrents(category="isos")

        assert len(torrents) == 1
        torrent = torrents[0]
        assert torrent.name == "Ubuntu 24.04"
        assert torrent.tag_list == ["linux", "iso"]
        assert torrent.magnet_link is not None
        assert torrent.magnet_link.display_name == "Ubuntu 24.04"
        assert _last(server, "GET", "/api/v2/torrents/info").url.params["category"] == "isos"

    async def test_get_torrent_not_found(self, client: Client, server: FakeServer):
        server.routes[("GET", "/api/v2/torrents/info")] = []
        with pytest.raises(TorrentNotFoundError) as exc_info:
            await client.get_torrent("deadbeef")
        assert exc_info.value.torrent_hash == "deadbeef"
        assert isinstance(exc_info.value, LookupError)

    async def test_add_torrent_link(self, client: Client, server: FakeServer):
        await client.add_torrent_link(
            TorrentConfig(magnet_uri=MAGNET, directory="/data", category="isos", paused=True)
        )
        form = _form(_last(server, "POST", "/api/v2/torrents/add"))
        assert form["urls"] == MAGNET
        assert form["savepath"] == "/data"
        assert form["category"] == "isos"
        assert form["paused"] == "true"
        assert form["stopped"] == "true"
        assert form["skip_checking"] == "false"

    async def test_hashes_are_pipe_joined(self, client: Client, server: FakeServer):
        await client.stop_torrents(["aaa", "bbb"])
        await client.start_torrents("all")
        assert _form(_last(server, "POST", "/api/v2/torrents/stop"))["hashes"] == "aaa|bbb"
        assert _form(_last(server, "POST", "/api/v2/torrents/start"))["hashes"] == "all"

    async def test_share_limits_format(self, client: Client, server: FakeServer):
        await client.set_share_limits("aaa", ratio_limit=1.5, seeding_time_limit=60)
        form = _form(_last(server, "POST", "/api/v2/torrents/setShareLimits"))
        assert form["ratioLimit"] == "1.50"
        assert form["seedingTimeLimit"] == "60"
        assert form["inactiveSeedingTimeLimit"] == "-2"

    async def test_properties_normalize_legacy_limits(self, client: Client, server: FakeServer):
        server.routes[("GET", "/api/v2/torrents/properties")] = {
            "save_path": "/data",
            "max_ratio": 2.0,
            "max_seeding_time": 1440,
        }
        props = await client.get_torrent_properties("aaa")
        assert props.ratio_limit == 2.0
        assert props.seeding_time_limit == 1440

    async def test_categories(self, client: Client, server: FakeServer):
        server.routes[("GET", "/api/v2/torrents/categories")] = {
            "movies": {"name": "movies", "savePath": "/data/movies"},
        }
        categories = await client.get_categories()
        assert categories["movies"].save_path == "/data/movies"

        await client.delete_categories("movies", "tv")
        form = _form(_last(server, "POST", "/api/v2/torrents/removeCategories"))
        assert form["categories"] == "movies\ntv"

    async def test_torrent_limits(self, client: Client, server: FakeServer):
        server.routes[("POST", "/api/v2/torrents/downloadLimit")] = {"aaa": 1024}
        assert await client.get_torrent_download_limit("aaa") == 1024

    async def test_non_success_status_raises_request_error(
        self, client: Client, server: FakeServer
    ):
        server.enqueue(
            "POST",
            "/api/v2/torrents/createCategory",
            httpx.Response(409, text="Category name is already in use"),
        )
        with pytest.raises(RequestError) as exc_info:
            await client.create_category("movies", "/data/movies")
        assert exc_info.value.status_code == 409
        assert exc_info.value.label == "POST /api/v2/torrents/createCategory"
        assert server.count("POST", "/api/v2/torrents/createCategory") == 1


class TestAppAndTransferEndpoints:
    """Application, preference and transfer endpoints."""

    async def test_versions(self, client: Client):
        assert await client.get_app_version() == "v4.6.2"
        assert await client.get_api_version() == "2.9.3"
        assert await client.check_api_version("2.0") == "2.9.3"

    async def test_version_too_old(self, client: Client, server: FakeServer):
        server.routes[("GET", "/api/v2/app/webapiVersion")] = "2.8.3"
        with pytest.raises(ClassifiedError) as exc_info:
            await client.check_api_version("2.11")
        assert exc_info.value.kind is ErrorKind.VERSION_INCOMPATIBLE
        assert exc_info.value.permanent

    async def test_update_preferences_sends_only_changes(
        self, client: Client, server: FakeServer
    ):
        server.routes[("GET", "/api/v2/app/preferences")] = {
            "dl_limit": 0,
            "up_limit": 0,
            "save_path": "/data",
        }
        await client.set_global_rate_limits(download_limit=1000, upload_limit=500)

        sent = json.loads(_form(_last(server, "POST", "/api/v2/app/setPreferences"))["json"])
        assert sent == {"dl_limit": 1000, "up_limit": 500}

    async def test_max_active_limits(self, client: Client, server: FakeServer):
        server.routes[("GET", "/api/v2/app/preferences")] = {
            "max_active_downloads": 3,
            "max_active_uploads": 3,
            "max_active_torrents": 5,
            "max_active_checking_torrents": 1,
        }
        limits = await client.get_max_active_limits()
        assert limits["max_active_torrents"] == 5

        merged = await client.set_max_active_limits(downloads=10)
        assert merged["max_active_downloads"] == 10
        assert merged["max_active_uploads"] == 3
        sent = json.loads(_form(_last(server, "POST", "/api/v2/app/setPreferences"))["json"])
        assert sent == {"max_active_downloads": 10}

    async def test_global_limits(self, client: Client, server: FakeServer):
        server.routes[("GET", "/api/v2/transfer/downloadLimit")] = "2048"
        server.routes[("GET", "/api/v2/transfer/uploadLimit")] = ""
        assert await client.get_download_limit() == 2048
        assert await client.get_upload_limit() == 0

    async def test_main_data(self, client: Client, server: FakeServer):
        server.routes[("GET", "/api/v2/sync/maindata")] = {
            "rid": 7,
            "full_update": True,
            "server_state": {"dl_info_speed": 100, "use_alt_speed_limits": True},
            "categories": {"tv": {"name": "tv", "savePath": "/tv"}},
            "tags": ["a"],
        }
        data = await client.get_main_data()
        assert data.rid == 7
        assert data.server_state.use_alt_speed_limits
        assert data.categories["tv"].save_path == "/tv"


class TestRSS:
    """RSS tree flattening."""

    def test_flatten_nested_folders(self):
        tree = {
            "Linux": {
                "Ubuntu": {"uid": "1", "url": "https://ubuntu.example/rss"},
                "Distros": {"Fedora": {"uid": "2", "url": "https://fedora.example/rss"}},
            },
            "News": {"uid": "3", "url": "https://news.example/rss", "isLoading": True},
        }
        feeds = flatten_rss_items(tree)
        assert set(feeds) == {"Linux\\Ubuntu", "Linux\\Distros\\Fedora", "News"}
        assert feeds["News"].is_loading

    async def test_get_rss_items(self, client: Client, server: FakeServer):
        server.routes[("GET", "/api/v2/rss/items")] = {
            "Feed": {"uid": "1", "url": "https://example/rss"},
        }
        feeds = await client.get_rss_items()
        assert feeds["Feed"].url == "https://example/rss"


class TestMagnet:
    """Magnet URI parsing."""

    def test_parse(self):
        link = parse_magnet_link(MAGNET)
        assert link.hash == "0123456789abcdef0123456789abcdef01234567"
        assert link.display_name == "Ubuntu 24.04"
        assert link.trackers == ["udp://tracker.one:1337", "udp://tracker.two:6969"]
        assert link.exact_length == "123456"
        assert link.keywords == ""

    def test_rejects_non_magnet(self):
        with pytest.raises(ValueError, match="invalid magnet"):
            parse_magnet_link("http://example.com/file.torrent")

    def test_properties_model_prefers_new_fields(self):
        props = TorrentProperties.model_validate(
            {"ratio_limit": 1.0, "max_ratio": 2.0, "seeding_time_limit": 10}
        )
        assert props.ratio_limit == 1.0
        assert props.seeding_time_limit == 10


class TestLifecycle:
    """Close, update and status reporting."""

    async def test_close_logs_out_and_is_idempotent(self, config: ClientConfig, server: FakeServer):
        qbt = Client(config, http_transport=server.transport())
        await qbt.login()
        assert qbt._sweeper.running

        assert await qbt.close() is None
        assert server.count("POST", "/api/v2/auth/logout") == 1
        assert not qbt._sweeper.running
        assert not qbt.state.valid
        assert len(qbt.state.cache) == 0

        assert await qbt.close() is None
        assert server.count("POST", "/api/v2/auth/logout") == 1

    async def test_calls_after_close_fail(self, config: ClientConfig, server: FakeServer):
        qbt = Client(config, http_transport=server.transport())
        await qbt.close()
        with pytest.raises(ClientClosedError):
            await qbt.get_app_version()
        with pytest.raises(ClientClosedError):
            await qbt.login()

    async def test_close_returns_logout_failure(self, config: ClientConfig, server: FakeServer):
        qbt = Client(config, http_transport=server.transport())
        await qbt.login()
        server.enqueue("POST", "/api/v2/auth/logout", httpx.ReadTimeout("slow"))

        err = await qbt.close()
        assert err is not None
        assert err.kind is ErrorKind.TIMEOUT
        assert not qbt.state.valid
        assert not qbt._sweeper.running

    async def test_context_manager(self, config: ClientConfig, server: FakeServer):
        async with Client(config, http_transport=server.transport()) as qbt:
            assert qbt._sweeper.running
            await qbt.get_app_version()
        assert not qbt._sweeper.running
        assert server.active_sids == set()

    async def test_connection_status(self, client: Client, server: FakeServer):
        status = client.get_connection_status()
        assert status.status is ConnectionState.INITIALIZING
        assert status.error_kind is None

        await client.login()
        assert client.get_connection_status().to_dict() == {
            "status": "connected",
            "error_kind": None,
            "message": "",
            "permanent": False,
        }

    async def test_update_resets_latch_on_new_credentials(
        self, config: ClientConfig, server: FakeServer
    ):
        bad = config.model_copy(update={"password": SecretStr("wrong")})
        async with Client(bad, http_transport=server.transport()) as qbt:
            with pytest.raises(PermanentFailureError):
                await qbt.get_app_version()
            assert qbt.is_auth_permanently_failed()
            status = qbt.get_connection_status()
            assert status.error_kind is ErrorKind.AUTH_FAILURE
            assert status.permanent

            await qbt.update(config)
            assert not qbt.is_auth_permanently_failed()
            assert await qbt.get_app_version() == "v4.6.2"
            assert qbt.get_status() is ConnectionState.CONNECTED

    async def test_update_keeps_latch_for_same_credentials(
        self, config: ClientConfig, server: FakeServer
    ):
        async with Client(config, http_transport=server.transport()) as qbt:
            qbt.session.record_error(qbt.classifier.classify_status(403))
            await qbt.update(config.model_copy(update={"request_timeout": 5.0}))
            assert qbt.is_auth_permanently_failed()
            assert qbt.config.request_timeout == 5.0

    async def test_update_forces_relogin(self, client: Client, server: FakeServer):
        await client.login()
        await client.update(client.config)
        assert not client.state.valid
        await client.get_api_version()
        assert server.logins == 2


class TestConcurrentCalls:
    """Independent retry loops sharing one session."""

    async def test_expired_session_recovered_by_parallel_calls(
        self, client: Client, server: FakeServer
    ):
        await client.login()
        server.expire_sessions()

        results = await asyncio.gather(*(client.get_api_version() for _ in range(8)))

        assert results == ["2.9.3"] * 8
        assert client.state.valid
        assert client.get_status() is ConnectionState.CONNECTED
        assert server.logins >= 2
        assert server.count("GET", "/api/v2/app/webapiVersion") >= 8

    async def test_parallel_calls_before_first_login(self, client: Client, server: FakeServer):
        server.routes[("GET", "/api/v2/torrents/info")] = []
        results = await asyncio.wait_for(
            asyncio.gather(*(client.list_torrents() for _ in range(5))),
            timeout=5,
        )
        assert all(r == [] for r in results)
        assert client.state.valid


class TestAPIBase:
    """The request hook the endpoint mixins are written against."""

    def test_request_hook_is_abstract(self):
        with pytest.raises(TypeError, match="_request"):
            APIBase()

    def test_mixin_without_request_cannot_be_built(self):
        class Incomplete(APIBase):
            pass

        with pytest.raises(TypeError):
            Incomplete()

    async def test_client_implements_the_hook(self, client: Client):
        assert "_request" not in Client.__abstractmethods__
        assert await client.get_api_version() == "2.9.3"
