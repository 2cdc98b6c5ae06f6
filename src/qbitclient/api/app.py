"""Application, preferences and log endpoints."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from qbitclient.core.constants import API_PREFIX, MINIMUM_WEBAPI_VERSION
from qbitclient.core.errors import ClassifiedError, ErrorKind

from .base import APIBase, form_bool
from .models import BuildInfo, LogEntry


def _version_tuple(version: str) -> tuple[int, ...]:
    parts: list[int] = []
    for piece in version.strip().lstrip("v").split("."):
        digits = "".join(ch for ch in piece if ch.isdigit())
        parts.append(int(digits) if digits else 0)
    return tuple(parts)


class AppAPIMixin(APIBase):
    """``/api/v2/app`` and ``/api/v2/log`` endpoints."""

    async def get_app_version(self) -> str:
        """Application version, e.g. ``v4.6.2``."""
        return await self._get_text(f"{API_PREFIX}/app/version")

    async def get_api_version(self) -> str:
        """Web API version, e.g. ``2.9.3``."""
        return await self._get_text(f"{API_PREFIX}/app/webapiVersion")

    async def get_build_info(self) -> BuildInfo:
        return BuildInfo.model_validate(await self._get_json(f"{API_PREFIX}/app/buildInfo"))

    async def check_api_version(self, minimum: str = MINIMUM_WEBAPI_VERSION) -> str:
        """Return the server's Web API version if it is at least ``minimum``.

        Raises:
            ClassifiedError: VERSION_INCOMPATIBLE (permanent) if the server is older.
        """
        version = await self.get_api_version()
        if _version_tuple(version) < _version_tuple(minimum):
            raise ClassifiedError(
                ErrorKind.VERSION_INCOMPATIBLE,
                f"Web API version {version} is older than the supported minimum {minimum}",
            )
        return version

    async def get_preferences(self) -> dict[str, Any]:
        prefs: dict[str, Any] = await self._get_json(f"{API_PREFIX}/app/preferences")
        return prefs

    async def set_preferences(self, changes: Mapping[str, Any]) -> None:
        """Apply preference changes. Keys not in ``changes`` are left alone."""
        await self._post_form(
            f"{API_PREFIX}/app/setPreferences",
            {"json": json.dumps(dict(changes))},
        )

    async def update_preferences(self, **changes: Any) -> dict[str, Any]:
        """Read the current preferences and write ``changes`` on top of them.

        Only the changed keys are sent; some preferences are read-only.

        Returns:
            The current preferences with ``changes`` applied.
        """
        prefs = await self.get_preferences()
        prefs.update(changes)
        await self.set_preferences(changes)
        return prefs

    async def get_logs(
        self,
        *,
        normal: bool = True,
        info: bool = True,
        warning: bool = True,
        critical: bool = True,
        last_known_id: int = -1,
    ) -> list[LogEntry]:
        data = await self._get_json(
            f"{API_PREFIX}/log/main",
            params={
                "normal": form_bool(normal),
                "info": form_bool(info),
                "warning": form_bool(warning),
                "critical": form_bool(critical),
                "last_known_id": last_known_id,
            },
        )
        return [LogEntry.model_validate(entry) for entry in data]
