"""Listing pages -> lightweight ContentItem stubs (title, url, date)."""
from typing import List, Optional

from nppa.channels import ChannelLayout, UrlScheme
from nppa.errors import LayoutError
from nppa.items import ContentItem
from nppa.utility import channel_from_url, content_id_from_url, strip_brackets


def page_url(scheme: UrlScheme, layout: ChannelLayout, page: int) -> str:
    """The first page (index 0) has no suffix, page N appends ``_N``."""
    suffix = f"_{page}" if page > 0 else ""
    return scheme.listing.format(numeric_id=layout.numeric_id, suffix=suffix)


def is_not_found(response, scheme: UrlScheme) -> bool:
    marker = response.css(scheme.not_found)
    return bool(marker) and "".join(marker[0].css("::text").getall()).strip() == "404"


def walk_page(response, scheme: UrlScheme, page: Optional[int] = None) -> Optional[List[ContentItem]]:
    """Stubs in listing order, or ``None`` when the page is the 404 marker page
    that ends pagination."""
    if is_not_found(response, scheme):
        return None

    stubs = []
    for entry in response.css(scheme.entry):
        a = entry.css("a")
        if not a:
            raise LayoutError(f"listing entry without link on {response.url}", page=page)
        span = entry.xpath("parent::*//span")
        if not span:
            raise LayoutError(f"listing entry without date on {response.url}", page=page)

        href = (a[0].attrib.get("href") or "").strip()
        if scheme.qualify_links:
            url = response.urljoin(href)
        else:
            url = href[2:] if href.startswith("./") else href

        stubs.append(ContentItem(
            channel_id=channel_from_url(url),
            id=content_id_from_url(url),
            title="".join(a[0].css("::text").getall()).strip(),
            url=url,
            date=strip_brackets("".join(span[0].css("::text").getall())),
        ))
    return stubs
