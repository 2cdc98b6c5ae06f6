"""Torrent and category endpoints."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from qbitclient.core.constants import API_PREFIX
from qbitclient.core.errors import QbitClientError
from qbitclient.core.logging import get_logger

from .base import APIBase, form_bool, join_hashes
from .magnet import MAGNET_PREFIX, parse_magnet_link
from .models import (
    Category,
    Torrent,
    TorrentConfig,
    TorrentFile,
    TorrentProperties,
    TorrentTracker,
)

_logger = get_logger("api.torrents")

_TORRENTS = f"{API_PREFIX}/torrents"

Hashes = str | Iterable[str]


class TorrentNotFoundError(QbitClientError, LookupError):
    """No torrent with the requested hash exists on the server."""

    def __init__(self, torrent_hash: str) -> None:
        self.torrent_hash = torrent_hash
        super().__init__(f"torrent {torrent_hash} not found")


def _with_magnet(raw: dict[str, Any]) -> Torrent:
    torrent = Torrent.model_validate(raw)
    if torrent.magnet_uri.startswith(MAGNET_PREFIX):
        try:
            torrent.magnet_link = parse_magnet_link(torrent.magnet_uri)
        except ValueError as exc:
            _logger.debug("magnet_parse_failed", hash=torrent.hash, error=str(exc))
    return torrent


class TorrentsAPIMixin(APIBase):
    """``/api/v2/torrents`` endpoints."""

    # ─── Listing / lookup ──────────────────────────────────────────────

    async def list_torrents(self, category: str | None = None) -> list[Torrent]:
        """List torrents, optionally filtered to one category."""
        params = {"category": category} if category is not None else None
        data = await self._get_json(f"{_TORRENTS}/info", params=params)
        return [_with_magnet(item) for item in data]

    async def get_torrent(self, torrent_hash: str) -> Torrent:
        """Fetch one torrent by hash.

        Raises:
            TorrentNotFoundError: If the server has no such torrent.
        """
        data = await self._get_json(f"{_TORRENTS}/info", params={"hashes": torrent_hash})
        if not data:
            raise TorrentNotFoundError(torrent_hash)
        return _with_magnet(data[0])

    async def list_torrent_files(self, torrent_hash: str) -> list[TorrentFile]:
        data = await self._get_json(f"{_TORRENTS}/files", params={"hash": torrent_hash})
        return [TorrentFile.model_validate(item) for item in data]

    async def get_torrent_properties(self, torrent_hash: str) -> TorrentProperties:
        data = await self._get_json(f"{_TORRENTS}/properties", params={"hash": torrent_hash})
        return TorrentProperties.model_validate(data)

    async def get_torrent_trackers(self, torrent_hash: str) -> list[TorrentTracker]:
        data = await self._get_json(f"{_TORRENTS}/trackers", params={"hash": torrent_hash})
        return [TorrentTracker.model_validate(item) for item in data]

    # ─── Adding / state changes ────────────────────────────────────────

    async def add_torrent_link(self, config: TorrentConfig) -> None:
        """Add a torrent from a magnet link or URL."""
        data: dict[str, Any] = {
            "urls": config.magnet_uri,
            "paused": form_bool(config.paused),
            "stopped": form_bool(config.paused),
            "skip_checking": form_bool(config.skip_checking),
        }
        if config.directory:
            data["savepath"] = config.directory
        if config.category:
            data["category"] = config.category
        await self._post_form(f"{_TORRENTS}/add", data)

    async def start_torrents(self, hashes: Hashes) -> None:
        await self._post_form(f"{_TORRENTS}/start", {"hashes": join_hashes(hashes)})

    async def stop_torrents(self, hashes: Hashes) -> None:
        await self._post_form(f"{_TORRENTS}/stop", {"hashes": join_hashes(hashes)})

    async def pause_torrents(self, hashes: Hashes) -> None:
        """Pause torrents (Web API before 2.11; newer servers use stop)."""
        await self._post_form(f"{_TORRENTS}/pause", {"hashes": join_hashes(hashes)})

    async def resume_torrents(self, hashes: Hashes) -> None:
        """Resume torrents (Web API before 2.11; newer servers use start)."""
        await self._post_form(f"{_TORRENTS}/resume", {"hashes": join_hashes(hashes)})

    async def delete_torrents(self, hashes: Hashes, delete_files: bool = False) -> None:
        await self._post_form(
            f"{_TORRENTS}/delete",
            {"hashes": join_hashes(hashes), "deleteFiles": form_bool(delete_files)},
        )

    async def recheck_torrents(self, hashes: Hashes) -> None:
        await self._post_form(f"{_TORRENTS}/recheck", {"hashes": join_hashes(hashes)})

    async def reannounce_torrents(self, hashes: Hashes) -> None:
        await self._post_form(f"{_TORRENTS}/reannounce", {"hashes": join_hashes(hashes)})

    async def increase_priority(self, hashes: Hashes) -> None:
        await self._post_form(f"{_TORRENTS}/increasePrio", {"hashes": join_hashes(hashes)})

    async def decrease_priority(self, hashes: Hashes) -> None:
        await self._post_form(f"{_TORRENTS}/decreasePrio", {"hashes": join_hashes(hashes)})

    async def set_force_start(self, hashes: Hashes, value: bool = True) -> None:
        await self._post_form(
            f"{_TORRENTS}/setForceStart",
            {"hashes": join_hashes(hashes), "value": form_bool(value)},
        )

    async def set_super_seeding(self, hashes: Hashes, value: bool = True) -> None:
        await self._post_form(
            f"{_TORRENTS}/setSuperSeeding",
            {"hashes": join_hashes(hashes), "value": form_bool(value)},
        )

    async def set_location(self, hashes: Hashes, location: str) -> None:
        await self._post_form(
            f"{_TORRENTS}/setLocation",
            {"hashes": join_hashes(hashes), "location": location},
        )

    async def rename_torrent(self, torrent_hash: str, name: str) -> None:
        await self._post_form(f"{_TORRENTS}/rename", {"hash": torrent_hash, "name": name})

    # ─── Tags / categories ─────────────────────────────────────────────

    async def add_tags(self, hashes: Hashes, tags: Iterable[str]) -> None:
        await self._post_form(
            f"{_TORRENTS}/addTags",
            {"hashes": join_hashes(hashes), "tags": ",".join(tags)},
        )

    async def remove_tags(self, hashes: Hashes, tags: Iterable[str]) -> None:
        await self._post_form(
            f"{_TORRENTS}/removeTags",
            {"hashes": join_hashes(hashes), "tags": ",".join(tags)},
        )

    async def set_category(self, hashes: Hashes, category: str) -> None:
        """Assign a category; an empty string removes it."""
        await self._post_form(
            f"{_TORRENTS}/setCategory",
            {"hashes": join_hashes(hashes), "category": category},
        )

    async def remove_category(self, hashes: Hashes) -> None:
        await self.set_category(hashes, "")

    async def get_categories(self) -> dict[str, Category]:
        data = await self._get_json(f"{_TORRENTS}/categories")
        return {name: Category.model_validate(item) for name, item in data.items()}

    async def create_category(self, name: str, save_path: str = "") -> None:
        await self._post_form(
            f"{_TORRENTS}/createCategory",
            {"category": name, "savePath": save_path},
        )

    async def delete_categories(self, *names: str) -> None:
        await self._post_form(
            f"{_TORRENTS}/removeCategories",
            {"categories": "\n".join(names)},
        )

    # ─── Limits ────────────────────────────────────────────────────────

    async def set_torrent_download_limit(self, hashes: Hashes, limit: int) -> None:
        """Per-torrent download limit in bytes/s; 0 means unlimited."""
        await self._post_form(
            f"{_TORRENTS}/setDownloadLimit",
            {"hashes": join_hashes(hashes), "limit": limit},
        )

    async def set_torrent_upload_limit(self, hashes: Hashes, limit: int) -> None:
        """Per-torrent upload limit in bytes/s; 0 means unlimited."""
        await self._post_form(
            f"{_TORRENTS}/setUploadLimit",
            {"hashes": join_hashes(hashes), "limit": limit},
        )

    async def get_torrent_download_limit(self, torrent_hash: str) -> int:
        response = await self._post_form(f"{_TORRENTS}/downloadLimit", {"hashes": torrent_hash})
        return int(response.json().get(torrent_hash, 0))

    async def get_torrent_upload_limit(self, torrent_hash: str) -> int:
        response = await self._post_form(f"{_TORRENTS}/uploadLimit", {"hashes": torrent_hash})
        return int(response.json().get(torrent_hash, 0))

    async def set_share_limits(
        self,
        hashes: Hashes,
        ratio_limit: float,
        seeding_time_limit: int,
        inactive_seeding_time_limit: int = -2,
    ) -> None:
        """Set share limits. -2 uses the global limit, -1 means no limit."""
        await self._post_form(
            f"{_TORRENTS}/setShareLimits",
            {
                "hashes": join_hashes(hashes),
                "ratioLimit": f"{ratio_limit:.2f}",
                "seedingTimeLimit": seeding_time_limit,
                "inactiveSeedingTimeLimit": inactive_seeding_time_limit,
            },
        )
