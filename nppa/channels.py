"""Static per-channel layout rules.

Everything that differs between the five bulletin types lives in this table:
the detail table selector, the column order, whether the ISBN column may be
missing and whether the catalog comes from an inline script. The extractor and
the listing walker only look things up here.
"""
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

HOST = "https://www.nppa.gov.cn"

IMPORT_ONLINE_GAME = "jkwlyxspxx"
IMPORT_ELECTRONIC_GAME = "jkdzyxspxx"
MADE_IN_CHINA_ONLINE_GAME = "gcwlyxspxx"
GAME_CHANGED = "yxspbgxx"
GAME_REVOKED = "yxspcxxx"

DETAIL_TABLE = "table.trStyle.tableOrder"

# All fields an approval row can carry, in the order they are persisted.
RECORD_FIELDS = (
    "seq", "name", "catalog", "publisher", "operator", "approval_number",
    "isbn", "date", "change_info", "revoke_info",
)


@dataclass(frozen=True)
class ChannelLayout:
    code: str
    name: str
    numeric_id: str
    columns: Tuple[str, ...]
    optional_isbn: bool = False
    script_catalog: bool = False
    table_selector: str = DETAIL_TABLE

    @property
    def max_columns(self) -> int:
        return len(self.columns)

    @property
    def min_columns(self) -> int:
        return len(self.columns) - 1 if self.optional_isbn else len(self.columns)

    @property
    def expected(self):
        if self.min_columns == self.max_columns:
            return self.max_columns
        return (self.min_columns, self.max_columns)

    def fields_for(self, count: int) -> Optional[Tuple[str, ...]]:
        """Column-to-field mapping for a row of ``count`` cells, ``None`` if the
        count is not accepted."""
        if count == self.max_columns:
            return self.columns
        if self.optional_isbn and count == self.min_columns:
            return tuple(c for c in self.columns if c != "isbn")
        return None


_ONLINE_COLUMNS = ("seq", "name", "catalog", "publisher", "operator", "approval_number", "isbn", "date")

CHANNELS: Dict[str, ChannelLayout] = {
    layout.code: layout
    for layout in (
        ChannelLayout(
            code=IMPORT_ONLINE_GAME,
            name="进口网络游戏审批信息",
            numeric_id="318",
            columns=_ONLINE_COLUMNS,
            optional_isbn=True,
            script_catalog=True,
        ),
        ChannelLayout(
            code=IMPORT_ELECTRONIC_GAME,
            name="进口电子游戏审批信息",
            numeric_id="320",
            columns=("seq", "name", "publisher", "approval_number", "date"),
        ),
        ChannelLayout(
            code=MADE_IN_CHINA_ONLINE_GAME,
            name="国产网络游戏审批信息",
            numeric_id="317",
            columns=_ONLINE_COLUMNS,
            optional_isbn=True,
            script_catalog=True,
        ),
        ChannelLayout(
            code=GAME_CHANGED,
            name="游戏审批变更信息",
            numeric_id="319",
            columns=("seq", "name", "catalog", "publisher", "operator", "change_info", "approval_number", "isbn", "date"),
            optional_isbn=True,
        ),
        ChannelLayout(
            code=GAME_REVOKED,
            name="游戏审批撤销信息",
            numeric_id="321",
            columns=("seq", "name", "catalog", "publisher", "operator", "revoke_info", "approval_number", "isbn", "date"),
        ),
    )
}

BY_NUMERIC_ID = {layout.numeric_id: layout.code for layout in CHANNELS.values()}


@dataclass(frozen=True)
class UrlScheme:
    """One of the two URL layouts the bulletin site has used."""
    name: str
    listing: str            # format string with {numeric_id} and {suffix}
    detail_base: str        # prefix for relative detail links
    qualify_links: bool     # keep listing links absolute instead of relative
    not_found: str = "div.g-font-size-140.g-font-size-100--2xs.g-line-height-1.g-mb-10"
    entry: str = "div.ellipsis"

    def listing_base(self, layout: ChannelLayout) -> str:
        return self.listing.format(numeric_id=layout.numeric_id, suffix="")

    def detail_url(self, url: str) -> str:
        if url.startswith(("http://", "https://")):
            return url
        if url.startswith("/"):
            return HOST + url
        return self.detail_base + url


SCHEMES: Dict[str, UrlScheme] = {
    "section": UrlScheme(
        name="section",
        listing=HOST + "/bsfw/jggs/yxspjg/index{suffix}.html",
        detail_base=HOST + "/bsfw/jggs/yxspjg/",
        qualify_links=False,
    ),
    "channels": UrlScheme(
        name="channels",
        listing=HOST + "/nppa/channels/{numeric_id}{suffix}.shtml",
        detail_base=HOST + "/nppa/contents/",
        qualify_links=True,
    ),
}


def get_layout(channel_id: str) -> ChannelLayout:
    try:
        return CHANNELS[channel_id]
    except KeyError:
        raise KeyError(f"unknown channel {channel_id!r}") from None


def channel_name(channel_id: str) -> str:
    layout = CHANNELS.get(channel_id)
    return layout.name if layout else ""
