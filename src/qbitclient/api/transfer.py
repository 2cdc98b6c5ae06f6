"""Transfer, sync and global-limit endpoints."""

from __future__ import annotations

from typing import Any

from qbitclient.core.constants import API_PREFIX

from .app import AppAPIMixin
from .models import MainData, TransferInfo

_TRANSFER = f"{API_PREFIX}/transfer"

# Preference keys behind the max-active helpers
_MAX_ACTIVE_KEYS = (
    "max_active_downloads",
    "max_active_uploads",
    "max_active_torrents",
    "max_active_checking_torrents",
)


class TransferAPIMixin(AppAPIMixin):
    """``/api/v2/transfer`` and ``/api/v2/sync`` endpoints, plus preference-backed limits."""

    async def get_transfer_info(self) -> TransferInfo:
        return TransferInfo.model_validate(await self._get_json(f"{_TRANSFER}/info"))

    async def get_main_data(self, rid: int = 0) -> MainData:
        """Sync snapshot; pass the previous ``rid`` to get only changes."""
        data = await self._get_json(f"{API_PREFIX}/sync/maindata", params={"rid": rid})
        return MainData.model_validate(data)

    async def get_download_limit(self) -> int:
        """Global download limit in bytes/s; 0 means unlimited."""
        return int(await self._get_text(f"{_TRANSFER}/downloadLimit") or 0)

    async def set_download_limit(self, limit: int) -> None:
        await self._post_form(f"{_TRANSFER}/setDownloadLimit", {"limit": limit})

    async def get_upload_limit(self) -> int:
        """Global upload limit in bytes/s; 0 means unlimited."""
        return int(await self._get_text(f"{_TRANSFER}/uploadLimit") or 0)

    async def set_upload_limit(self, limit: int) -> None:
        await self._post_form(f"{_TRANSFER}/setUploadLimit", {"limit": limit})

    async def toggle_speed_limits_mode(self) -> None:
        """Switch between the normal and alternative speed limits."""
        await self._post_form(f"{_TRANSFER}/toggleSpeedLimitsMode")

    async def set_global_rate_limits(self, download_limit: int, upload_limit: int) -> None:
        await self.update_preferences(dl_limit=download_limit, up_limit=upload_limit)

    async def set_alternative_rate_limits(self, download_limit: int, upload_limit: int) -> None:
        await self.update_preferences(alt_dl_limit=download_limit, alt_up_limit=upload_limit)

    async def get_max_active_limits(self) -> dict[str, int]:
        """Current queueing limits keyed by preference name."""
        prefs = await self.get_preferences()
        return {key: int(prefs.get(key, 0)) for key in _MAX_ACTIVE_KEYS}

    async def set_max_active_limits(
        self,
        *,
        downloads: int | None = None,
        uploads: int | None = None,
        torrents: int | None = None,
        checking: int | None = None,
    ) -> dict[str, Any]:
        """Update any of the queueing limits; unspecified ones keep their value."""
        values = (downloads, uploads, torrents, checking)
        changes = {
            key: value for key, value in zip(_MAX_ACTIVE_KEYS, values) if value is not None
        }
        if not changes:
            return await self.get_preferences()
        return await self.update_preferences(**changes)
