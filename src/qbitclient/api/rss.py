"""RSS endpoints."""

from __future__ import annotations

from typing import Any

from qbitclient.core.constants import API_PREFIX

from .base import APIBase, form_bool
from .models import RSSFeed

_RSS = f"{API_PREFIX}/rss"


def flatten_rss_items(items: dict[str, Any], prefix: str = "") -> dict[str, RSSFeed]:
    """Flatten the nested folder tree of ``/rss/items`` into path -> feed.

    Folder paths are joined with a backslash, as the server expects in
    ``/rss/removeItem``.
    """
    feeds: dict[str, RSSFeed] = {}
    for name, item in items.items():
        path = f"{prefix}\\{name}" if prefix else name
        if isinstance(item, dict) and "url" in item:
            feeds[path] = RSSFeed.model_validate(item)
        elif isinstance(item, dict):
            feeds.update(flatten_rss_items(item, path))
    return feeds


class RSSAPIMixin(APIBase):
    """``/api/v2/rss`` endpoints."""

    async def get_rss_items(self, with_data: bool = False) -> dict[str, RSSFeed]:
        data = await self._get_json(f"{_RSS}/items", params={"withData": form_bool(with_data)})
        return flatten_rss_items(data)

    async def add_rss_feed(self, url: str, path: str = "") -> None:
        await self._post_form(f"{_RSS}/addFeed", {"url": url, "path": path})

    async def remove_rss_item(self, path: str) -> None:
        await self._post_form(f"{_RSS}/removeItem", {"path": path})
