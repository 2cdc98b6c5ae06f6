"""CLI command modules."""

from .status import list_torrents, status
from .torrents import add, pause, resume

__all__ = ["add", "list_torrents", "pause", "resume", "status"]
