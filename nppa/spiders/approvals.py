from dataclasses import dataclass
from typing import List, Tuple

import scrapy
from scrapy.exceptions import CloseSpider
from scrapy.spidermiddlewares.httperror import HttpError
from scrapy.utils.misc import load_object

from nppa.channels import CHANNELS, SCHEMES, ChannelLayout
from nppa.errors import ExtractionError, FetchError, LayoutError, NppaError
from nppa.extract import extract
from nppa.items import ContentItem
from nppa.listing import is_not_found, page_url, walk_page
from nppa.utility import differs, unique_preserve

SKIPPED = "skipped"
EMPTY_DROPPED = "empty_dropped"
UNCHANGED = "unchanged"
REPORTED = "reported"
FAILED = "failed"


@dataclass(frozen=True)
class WalkTarget:
    """A listing to page through and the channels whose stubs it keeps."""
    layout: ChannelLayout
    channels: Tuple[str, ...]


def parse_channels(value) -> List[str]:
    if not value:
        return list(CHANNELS)
    if isinstance(value, str):
        value = value.split(",")
    return unique_preserve(str(x).strip() for x in value if str(x).strip())


def parse_flag(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


class ApprovalSpider(scrapy.Spider):
    """Collects new or changed approval bulletins.

    Strictly one request at a time: a listing page, then the detail page of
    every stub on it that the store does not know, in listing order, then the
    next page, then the next listing. Every stub ends in one of the states
    skipped, empty_dropped, unchanged, reported or failed; only reported
    contents are yielded.
    """

    name = "approvals"
    allowed_domains = ["www.nppa.gov.cn"]
    custom_settings = {"CONCURRENT_REQUESTS": 1}

    def __init__(self, channels=None, pages=None, full=False, scheme=None, store=None, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.full = parse_flag(full)
        self.channel_ids = []
        for cid in parse_channels(channels):
            if cid in CHANNELS:
                self.channel_ids.append(cid)
            else:
                self.logger.warning("Unknown channel %r; ignoring.", cid)
        self.pages = int(pages) if pages else None
        self.scheme_name = scheme
        self.store = store
        self.scheme = None
        self.targets: List[WalkTarget] = []
        self.reported: List[ContentItem] = []
        self.errors: List[NppaError] = []
        self.seen_urls = set()

    @classmethod
    def from_crawler(cls, crawler, *args, **kwargs):
        spider = super().from_crawler(crawler, *args, **kwargs)
        s = crawler.settings
        if spider.pages is None:
            key = "NPPA_PAGES_FULL" if spider.full else "NPPA_PAGES_INCREMENTAL"
            spider.pages = s.getint(key, 30 if spider.full else 1)
        spider.scheme = SCHEMES[spider.scheme_name or s.get("NPPA_URL_SCHEME", "section")]
        if spider.store is None:
            spider.store = load_object(s.get("NPPA_STORE", "nppa.store.JsonFileStore")).from_crawler(crawler)
        spider.targets = spider.walk_targets()
        spider.logger.info("%s archive. pages=%d, channels=%s",
                           "full" if spider.full else "increment", spider.pages, ",".join(spider.channel_ids))
        return spider

    def walk_targets(self) -> List[WalkTarget]:
        # channels sharing a listing (the section scheme) are walked once
        order, members = [], {}
        for cid in self.channel_ids:
            layout = CHANNELS[cid]
            base = self.scheme.listing_base(layout)
            if base not in members:
                order.append((base, layout))
                members[base] = []
            members[base].append(cid)
        return [WalkTarget(layout, tuple(members[base])) for base, layout in order]

    def count(self, key, n=1):
        self.crawler.stats.inc_value(f"nppa/{key}", n)

    # -------- requests --------

    def listing_request(self, target: int, page: int):
        url = page_url(self.scheme, self.targets[target].layout, page)
        return scrapy.Request(
            url,
            callback=self.parse_listing,
            errback=self.on_listing_error,
            cb_kwargs={"target": target, "page": page},
            meta={"handle_httpstatus_list": [404]},
            dont_filter=True,
        )

    def start_requests(self):
        if self.targets:
            yield self.listing_request(0, 0)

    async def start(self):
        for r in self.start_requests():
            yield r

    def next_target(self, target: int):
        if target + 1 < len(self.targets):
            yield self.listing_request(target + 1, 0)

    def advance(self, target: int, page: int, queue: List[ContentItem], pos: int = 0):
        """Request the next unknown stub from ``queue``; when none is left move
        on to the next page within the budget, then to the next listing."""
        for i in range(pos, len(queue)):
            stub = queue[i]
            if stub["url"] in self.seen_urls:
                continue
            self.seen_urls.add(stub["url"])
            if self.store.has_content(stub):
                self.logger.info("Skip archived content %s (%s)", stub["title"], stub["url"])
                self.count(SKIPPED)
                continue
            yield scrapy.Request(
                self.scheme.detail_url(stub["url"]),
                callback=self.parse_detail,
                errback=self.on_detail_error,
                cb_kwargs={"stub": stub, "target": target, "page": page, "queue": queue, "pos": i + 1},
                dont_filter=True,
            )
            return

        if page + 1 < self.pages:
            yield self.listing_request(target, page + 1)
        else:
            yield from self.next_target(target)

    # -------- callbacks --------

    def parse_listing(self, response, target=0, page=0, **kwargs):
        channels = self.targets[target].channels
        try:
            # a 404 status is accepted only as the marker page that ends paging
            if response.status == 404 and not is_not_found(response, self.scheme):
                raise FetchError(f"http status 404: {response.url}", url=response.url, status=404, page=page)
            stubs = walk_page(response, self.scheme, page)
        except (FetchError, LayoutError) as e:
            e.channel_id = e.channel_id or ",".join(channels)
            self.listing_failed(e)
            yield from self.next_target(target)
            return

        if stubs is None:
            self.logger.info("Page %d not found for %s; listing exhausted", page, ",".join(channels))
            self.count("pages_not_found")
            yield from self.next_target(target)
            return

        queue = [s for s in stubs if s.get("channel_id") in channels]
        self.logger.info("Found %d contents on page %d (%d for %s)", len(stubs), page, len(queue), ",".join(channels))
        self.count("pages")
        yield from self.advance(target, page, queue)

    def parse_detail(self, response, stub, target, page, queue, pos, **kwargs):
        try:
            content = extract(response.text, stub["channel_id"], stub["id"], stub=stub)
        except ExtractionError as e:
            e.page = page
            self.content_failed(e, "extraction_error")
        else:
            if self.classify(content) == REPORTED:
                self.reported.append(content)
                yield content
        yield from self.advance(target, page, queue, pos)

    def classify(self, content: ContentItem) -> str:
        if not content["items"]:
            self.logger.info("Skip empty content %s", content["title"])
            state = EMPTY_DROPPED
        else:
            prior = self.store.previous(content)
            if prior is not None and not differs(prior, content):
                self.logger.info("Skip same content %s", content["title"])
                state = UNCHANGED
            else:
                self.logger.info("Get content items success. title=%s, items=%d", content["title"], len(content["items"]))
                state = REPORTED
        self.count(state)
        return state

    # -------- errors --------

    def fetch_error(self, failure, **ctx) -> FetchError:
        exc = failure.value
        url = failure.request.url if getattr(failure, "request", None) else ""
        if isinstance(exc, FetchError):
            error = exc
        elif failure.check(HttpError):
            status = exc.response.status
            error = FetchError(f"http status {status}: {exc.response.url}", url=exc.response.url, status=status)
        else:
            error = FetchError(f"{type(exc).__name__}: {exc}", url=url)
        for k, v in ctx.items():
            if getattr(error, k, None) is None:
                setattr(error, k, v)
        return error

    def listing_failed(self, error: NppaError):
        self.errors.append(error)
        self.count("listing_failed")
        self.logger.error("Get page contents fail; abandoning listing. %s", error)

    def content_failed(self, error: NppaError, reason: str):
        self.errors.append(error)
        self.count(FAILED)
        self.logger.error("Get content items fail. %s", error)
        if self.full:
            raise CloseSpider(reason)

    def on_listing_error(self, failure):
        kw = failure.request.cb_kwargs or {}
        target = kw.get("target", 0)
        error = self.fetch_error(failure, channel_id=",".join(self.targets[target].channels), page=kw.get("page"))
        self.listing_failed(error)
        yield from self.next_target(target)

    def on_detail_error(self, failure):
        kw = failure.request.cb_kwargs or {}
        stub = kw.get("stub") or {}
        error = self.fetch_error(failure, channel_id=stub.get("channel_id"), content_id=stub.get("id"), page=kw.get("page"))
        self.content_failed(error, "fetch_error")
        yield from self.advance(kw["target"], kw["page"], kw["queue"], kw["pos"])

    def closed(self, reason):
        self.logger.info("Run %s: reported=%d, errors=%d", reason, len(self.reported), len(self.errors))
