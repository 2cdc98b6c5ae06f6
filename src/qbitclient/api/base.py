"""Shared plumbing for the endpoint mixins."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any

import httpx


def join_hashes(hashes: str | Iterable[str]) -> str:
    """Format one hash or many for the ``hashes`` form field.

    ``"all"`` is passed through; the server treats it as every torrent.
    """
    if isinstance(hashes, str):
        return hashes
    return "|".join(hashes)


def form_bool(value: bool) -> str:
    return "true" if value else "false"


class APIBase(ABC):
    """Request helpers the endpoint mixins are written against.

    The concrete client implements ``_request``; every helper below goes
    through it, and therefore through the retry executor.
    """

    @abstractmethod
    async def _request(
        self,
        method: str,
        path: str,
        *,
        data: dict[str, Any] | None = None,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Send one request through the retry executor and check its status."""

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        response = await self._request("GET", path, params=params)
        return response.json()

    async def _get_text(self, path: str, params: dict[str, Any] | None = None) -> str:
        response = await self._request("GET", path, params=params)
        return response.text

    async def _post_form(self, path: str, data: dict[str, Any] | None = None) -> httpx.Response:
        return await self._request("POST", path, data=data or {})
