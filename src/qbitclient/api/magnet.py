"""Magnet URI parsing."""

from __future__ import annotations

from urllib.parse import parse_qs

from .models import MagnetLink

MAGNET_PREFIX = "magnet:?"
_BTIH_PREFIX = "urn:btih:"


def parse_magnet_link(uri: str) -> MagnetLink:
    """Split a magnet URI into its components.

    ``xt`` loses its ``urn:btih:`` prefix; every ``tr`` is kept in order.

    Raises:
        ValueError: If ``uri`` does not start with ``magnet:?``.
    """
    if not uri.startswith(MAGNET_PREFIX):
        raise ValueError(f"invalid magnet link format: {uri[:32]!r}")

    values = parse_qs(uri[len(MAGNET_PREFIX):], keep_blank_values=True)

    def first(key: str) -> str:
        return values.get(key, [""])[0]

    xt = first("xt")
    return MagnetLink(
        hash=xt[len(_BTIH_PREFIX):] if xt.startswith(_BTIH_PREFIX) else xt,
        display_name=first("dn"),
        trackers=values.get("tr", []),
        exact_length=first("xl"),
        exact_source=first("xs"),
        keywords=first("kt"),
        acceptable_source=first("as"),
    )
