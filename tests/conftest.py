from __future__ import annotations

from typing import Dict, List, Optional

import pytest
from scrapy import Request
from scrapy.http import HtmlResponse
from scrapy.statscollectors import MemoryStatsCollector
from scrapy.utils.reactor import install_reactor
from scrapy.utils.test import get_crawler

from nppa.items import ContentItem
from nppa.spiders.approvals import ApprovalSpider
from nppa.store import BaseStore

# Scrapy expects an installed reactor when crawler components are built
# outside a running crawl.
install_reactor("twisted.internet.asyncioreactor.AsyncioSelectorReactor")

SECTION = "https://www.nppa.gov.cn/bsfw/jggs/yxspjg/"

NOT_FOUND_HTML = """
<html><body>
  <div class="g-font-size-140 g-font-size-100--2xs g-line-height-1 g-mb-10"> 404 </div>
</body></html>
"""


def catalog_cell(value: str) -> str:
    return f"<script>\nvar _sblb = '{value}';\ndocument.write(_sblb);\n</script>"


def detail_html(rows: List[List[str]], table_class: str = "trStyle tableOrder") -> str:
    header = "<tr><td>序号</td><td>名称</td><td>...</td></tr>"
    body = "".join(
        "<tr>" + "".join(f"<td>{cell}</td>" for cell in row) + "</tr>" for row in rows
    )
    return f"<html><body><table class='{table_class}'>{header}{body}</table></body></html>"


def listing_html(entries: List[tuple]) -> str:
    """entries: (href, title, date label)"""
    lis = "".join(
        f"<li><div class='ellipsis'><a href='{href}'>{title}</a></div><span>{date}</span></li>"
        for href, title, date in entries
    )
    return f"<html><body><ul>{lis}</ul></body></html>"


def html_response(url: str, body: str, request: Optional[Request] = None) -> HtmlResponse:
    return HtmlResponse(
        url=url,
        body=body.encode("utf-8"),
        encoding="utf-8",
        request=request or Request(url),
    )


class MemoryStore(BaseStore):
    """Baseline kept in a dict keyed by URL."""

    def __init__(self, known=(), stored: Optional[Dict[str, ContentItem]] = None):
        self.known = set(known)
        self.stored = dict(stored or {})
        self.added: List[ContentItem] = []
        self.closed = False

    def has_content(self, content):
        return content["url"] in self.known

    def previous(self, content):
        return self.stored.get(content["url"])

    def add_content(self, content):
        self.added.append(content)
        self.stored[content["url"]] = content

    def close(self):
        self.closed = True


def make_spider(store=None, settings: Optional[dict] = None, **kwargs) -> ApprovalSpider:
    crawler = get_crawler(ApprovalSpider, settings or {})
    if crawler.stats is None:
        crawler.stats = MemoryStatsCollector(crawler)
    return ApprovalSpider.from_crawler(crawler, store=store if store is not None else MemoryStore(), **kwargs)


def run_chain(spider: ApprovalSpider, site: Dict[str, str]):
    """Drive the spider's request chain one request at a time, like the engine
    does with CONCURRENT_REQUESTS = 1. URLs missing from ``site`` get the 404
    marker page."""
    items, urls = [], []
    pending = list(spider.start_requests())
    while pending:
        assert len(pending) == 1, "more than one request in flight"
        request = pending.pop()
        urls.append(request.url)
        response = html_response(request.url, site.get(request.url, NOT_FOUND_HTML), request)
        for out in request.callback(response, **request.cb_kwargs):
            if isinstance(out, Request):
                pending.append(out)
            else:
                items.append(out)
    return items, urls


@pytest.fixture
def memory_store():
    return MemoryStore()

