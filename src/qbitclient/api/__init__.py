"""Web API call surface: endpoint mixins, response models, magnet parsing."""

from qbitclient.api.app import AppAPIMixin
from qbitclient.api.magnet import parse_magnet_link
from qbitclient.api.models import (
    BuildInfo,
    Category,
    LogEntry,
    MagnetLink,
    MainData,
    RSSArticle,
    RSSFeed,
    ServerState,
    Torrent,
    TorrentConfig,
    TorrentFile,
    TorrentProperties,
    TorrentTracker,
    TransferInfo,
)
from qbitclient.api.rss import RSSAPIMixin
from qbitclient.api.torrents import TorrentNotFoundError, TorrentsAPIMixin
from qbitclient.api.transfer import TransferAPIMixin

__all__ = [
    "AppAPIMixin",
    "RSSAPIMixin",
    "TorrentsAPIMixin",
    "TransferAPIMixin",
    "TorrentNotFoundError",
    "parse_magnet_link",
    "BuildInfo",
    "Category",
    "LogEntry",
    "MagnetLink",
    "MainData",
    "RSSArticle",
    "RSSFeed",
    "ServerState",
    "Torrent",
    "TorrentConfig",
    "TorrentFile",
    "TorrentProperties",
    "TorrentTracker",
    "TransferInfo",
]
