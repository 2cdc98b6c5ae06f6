"""Response and request models for the Web API.

Partial mappings: only fields the client or CLI reads are declared, and
unknown fields are ignored so newer server versions still parse.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator


class _APIModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class MagnetLink(_APIModel):
    """Components of a ``magnet:?`` URI."""

    hash: str = ""
    display_name: str = ""
    trackers: list[str] = Field(default_factory=list)
    exact_length: str = ""
    exact_source: str = ""
    keywords: str = ""
    acceptable_source: str = ""


class Torrent(_APIModel):
    """Entry of ``/torrents/info``."""

    hash: str
    name: str = ""
    state: str = ""
    category: str = ""
    tags: str = ""
    size: int = 0
    progress: float = 0.0
    dlspeed: int = 0
    upspeed: int = 0
    downloaded: int = 0
    uploaded: int = 0
    ratio: float = 0.0
    eta: int = 0
    priority: int = 0
    num_seeds: int = 0
    num_leechs: int = 0
    num_complete: int = 0
    num_incomplete: int = 0
    added_on: int = 0
    completion_on: int = 0
    save_path: str = ""
    force_start: bool = False
    super_seeding: bool = False
    seq_dl: bool = False
    popularity: float = 0.0
    infohash_v1: str = ""
    infohash_v2: str = ""
    magnet_uri: str = ""
    magnet_link: MagnetLink | None = None

    @property
    def tag_list(self) -> list[str]:
        return [t.strip() for t in self.tags.split(",") if t.strip()]


class TorrentFile(_APIModel):
    name: str
    size: int = 0
    progress: float = 0.0
    priority: int = 0
    is_seed: bool = False
    piece_range: list[int] = Field(default_factory=list)
    availability: float = 0.0


class TorrentProperties(_APIModel):
    """Result of ``/torrents/properties``.

    Older Web API versions report share limits as ``max_ratio`` and
    ``max_seeding_time``; those are folded into ``ratio_limit`` and
    ``seeding_time_limit`` when the newer fields are absent or zero.
    """

    save_path: str = ""
    creation_date: int = 0
    piece_size: int = 0
    comment: str = ""
    total_wasted: int = 0
    total_uploaded: int = 0
    total_downloaded: int = 0
    up_limit: int = 0
    dl_limit: int = 0
    time_elapsed: int = 0
    seeding_time: int = 0
    nb_connections: int = 0
    share_ratio: float = 0.0
    addition_date: int = 0
    completion_date: int = 0
    created_by: str = ""
    dl_speed: int = 0
    up_speed: int = 0
    eta: int = 0
    peers: int = 0
    seeds: int = 0
    pieces_have: int = 0
    pieces_num: int = 0
    ratio_limit: float = 0.0
    max_ratio: float = 0.0
    seeding_time_limit: int = 0
    max_seeding_time: int = 0

    @model_validator(mode="after")
    def _normalize_share_limits(self) -> TorrentProperties:
        if self.ratio_limit == 0 and self.max_ratio != 0:
            self.ratio_limit = self.max_ratio
        if self.seeding_time_limit == 0 and self.max_seeding_time != 0:
            self.seeding_time_limit = self.max_seeding_time
        return self


class TorrentTracker(_APIModel):
    url: str
    status: int = 0
    tier: int = 0
    num_peers: int = 0
    num_seeds: int = 0
    num_leeches: int = 0
    num_downloaded: int = 0
    msg: str = ""


class TransferInfo(_APIModel):
    """Result of ``/transfer/info``."""

    dl_info_speed: int = 0
    dl_info_data: int = 0
    up_info_speed: int = 0
    up_info_data: int = 0
    dl_rate_limit: int = 0
    up_rate_limit: int = 0
    dht_nodes: int = 0
    connection_status: str = ""


class ServerState(TransferInfo):
    free_space_on_disk: int = 0
    alltime_dl: int = 0
    alltime_ul: int = 0
    global_ratio: str = ""
    use_alt_speed_limits: bool = False


class MainData(_APIModel):
    """Result of ``/sync/maindata``."""

    rid: int = 0
    full_update: bool = False
    server_state: ServerState = Field(default_factory=ServerState)
    categories: dict[str, Category] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)


class BuildInfo(_APIModel):
    qt: str = ""
    libtorrent: str = ""
    boost: str = ""
    openssl: str = ""
    bitness: int = 0


class Category(_APIModel):
    name: str = ""
    save_path: str = Field(default="", alias="savePath")


class LogEntry(_APIModel):
    """Entry of ``/log/main``. ``type``: 1 normal, 2 info, 4 warning, 8 critical."""

    id: int
    message: str = ""
    timestamp: int = 0
    type: int = 0


class RSSArticle(_APIModel):
    id: str = ""
    title: str = ""
    link: str = ""
    date: str = ""
    description: str = ""
    torrent_url: str = Field(default="", alias="torrentURL")
    is_read: bool = Field(default=False, alias="isRead")


class RSSFeed(_APIModel):
    uid: str = ""
    url: str = ""
    title: str = ""
    last_build: str = Field(default="", alias="lastBuildDate")
    is_loading: bool = Field(default=False, alias="isLoading")
    has_error: bool = Field(default=False, alias="hasError")
    articles: list[RSSArticle] = Field(default_factory=list)


class TorrentConfig(_APIModel):
    """Parameters for adding a torrent by URL or magnet link."""

    magnet_uri: str
    directory: str = ""
    category: str = ""
    paused: bool = False
    skip_checking: bool = False


MainData.model_rebuild()
