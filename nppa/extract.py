"""Detail page -> ContentItem with its ordered ApprovalItems.

One generic loop driven by the channel's ``ChannelLayout``. A row whose cell
count the layout does not accept fails the whole content: a short row means
the site markup changed and partial data must not be stored.
"""
import logging
import re
from typing import List, Optional, Union

from scrapy.selector import Selector

from nppa.channels import ChannelLayout, get_layout
from nppa.errors import CatalogNotFoundError, FieldCountError, LayoutError
from nppa.items import ApprovalItem, ContentItem

logger = logging.getLogger(__name__)

# var _sblb = '<value>'; with no escaped quotes inside the value
CATALOG_RE = re.compile(r"var _sblb = '(.*)';")


def catalog_from_script(script: str, channel_id: Optional[str] = None, content_id: Optional[str] = None):
    m = CATALOG_RE.search((script or "").replace("\n", ""))
    if not m:
        raise CatalogNotFoundError("catalog not found", channel_id=channel_id, content_id=content_id)
    return m.group(1)


def cell_text(td: Selector):
    # text inside <script> is not part of what the page displays
    return "".join(td.xpath(".//text()[not(ancestor::script)]").getall()).strip()


def extract_items(sel: Selector, layout: ChannelLayout, channel_id: str, content_id: str) -> List[ApprovalItem]:
    table = sel.css(layout.table_selector)
    if not table:
        raise LayoutError(f"detail table {layout.table_selector!r} not found",
                          channel_id=channel_id, content_id=content_id)

    items = []
    for row, tr in enumerate(table[0].css("tr")[1:], start=1):
        cells = tr.css("td")
        fields = layout.fields_for(len(cells))
        if fields is None:
            raise FieldCountError(layout.expected, len(cells), row, channel_id=channel_id, content_id=content_id)

        item = ApprovalItem(channel_id=channel_id, content_id=content_id)
        for field, td in zip(fields, cells):
            item[field] = cell_text(td)

        if layout.script_catalog and not item.get("catalog"):
            script = "".join(tr.css("script::text").getall())
            item["catalog"] = catalog_from_script(script, channel_id, content_id).strip()
        items.append(item)
    return items


def extract(
    body: Union[bytes, str],
    channel_id: str,
    content_id: str,
    stub: Optional[ContentItem] = None,
    encoding: str = "utf-8",
) -> ContentItem:
    """Parse a detail page. ``stub`` (title/url/date from the listing) is
    copied and completed with the items; without one a bare content is built."""
    if isinstance(body, bytes):
        body = body.decode(encoding, errors="replace")
    layout = get_layout(channel_id)
    items = extract_items(Selector(text=body), layout, channel_id, content_id)

    content = ContentItem(stub) if stub is not None else ContentItem()
    content["channel_id"] = channel_id
    content["id"] = content_id
    content["items"] = items
    logger.debug("extracted %d items for %s/%s", len(items), channel_id, content_id)
    return content
