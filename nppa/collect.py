"""Run one collection: crawl, store the reported contents, notify.

    nppa-isbn                    # incremental, first listing page, mail if configured
    nppa-isbn --full             # full archive, no mail
    nppa-isbn --store sql --channel yxspbgxx --channel yxspcxxx

A scheduler calling this on a cadence must not start a run while the previous
one is still going.
"""
import argparse
import logging
import sys
from typing import Iterable, List, Optional

from scrapy import signals
from scrapy.crawler import CrawlerProcess
from scrapy.settings import Settings

from nppa.channels import CHANNELS
from nppa.items import ContentItem
from nppa.spiders.approvals import ApprovalSpider

logger = logging.getLogger("nppa.collect")

STORES = {
    "json": "nppa.store.JsonFileStore",
    "sql": "nppa.store_sql.SqlStore",
    "mongo": "nppa.store_mongo.MongoStore",
}


class _Reported:
    def __init__(self):
        self.contents: List[ContentItem] = []

    def item_scraped(self, item, response, spider):
        self.contents.append(item)


def project_settings(overrides: Optional[dict] = None) -> Settings:
    settings = Settings()
    settings.setmodule("nppa.settings", priority="project")
    if overrides:
        settings.update(overrides, priority="cmdline")
    return settings


def collect(
    channels: Optional[Iterable[str]] = None,
    pages: Optional[int] = None,
    store=None,
    full: bool = False,
    settings: Optional[Settings] = None,
) -> List[ContentItem]:
    """Crawl ``channels`` (all five by default) and return the new or changed
    contents in channel, page and listing order.

    ``store`` is the baseline; when omitted it is built from NPPA_STORE. It is
    only written to after the crawl finished. Blocks until the crawl is done
    and can run once per process (Twisted's reactor cannot be restarted).
    """
    process = CrawlerProcess(settings or project_settings())
    crawler = process.create_crawler(ApprovalSpider)
    reported = _Reported()
    crawler.signals.connect(reported.item_scraped, signal=signals.item_scraped)
    process.crawl(
        crawler,
        channels=list(channels) if channels else None,
        pages=pages,
        full=full,
        store=store,
    )
    process.start()

    stats = crawler.stats.get_stats() if crawler.stats else {}
    reason = stats.get("finish_reason")
    if reason != "finished":
        logger.error("Run ended with %r", reason)
    return reported.contents


def main(argv=None):
    ap = argparse.ArgumentParser(description="Collect new or changed game approval bulletins.")
    ap.add_argument("--full", action="store_true", help="full archive: walk up to NPPA_PAGES_FULL pages, no mail")
    ap.add_argument("--channel", action="append", choices=sorted(CHANNELS), help="channel code (repeatable, default all)")
    ap.add_argument("--pages", type=int, help="page budget per listing")
    ap.add_argument("--store", choices=sorted(STORES), help="baseline store (default NPPA_STORE)")
    ap.add_argument("--data-dir", help="directory of the json store")
    ap.add_argument("--addr", help="notification smtp addr host:port")
    ap.add_argument("--user", help="notification smtp user")
    ap.add_argument("--pass", dest="password", help="notification smtp pass")
    ap.add_argument("--to", help="notification smtp to, comma separated")
    args = ap.parse_args(argv)

    overrides = {}
    if args.store:
        overrides["NPPA_STORE"] = STORES[args.store]
    if args.data_dir:
        overrides["NPPA_DATA_DIR"] = args.data_dir
    if args.addr:
        host, _, port = args.addr.rpartition(":")
        overrides["MAIL_HOST"] = host or args.addr
        overrides["MAIL_PORT"] = int(port) if host and port else 25
        overrides["MAIL_SSL"] = overrides["MAIL_PORT"] == 465
        overrides["MAIL_TLS"] = not overrides["MAIL_SSL"]
    if args.user:
        overrides["MAIL_USER"] = args.user
        overrides["MAIL_FROM"] = args.user
    if args.password:
        overrides["MAIL_PASS"] = args.password
    if args.to:
        overrides["NPPA_NOTIFY_TO"] = [x.strip() for x in args.to.split(",") if x.strip()]

    contents = collect(
        channels=args.channel,
        pages=args.pages,
        full=args.full,
        settings=project_settings(overrides),
    )
    for c in contents:
        logger.info("reported %s (%d)", c.get("title"), len(c.get("items") or []))
    logger.info("Done. reported=%d", len(contents))
    return 0


if __name__ == "__main__":
    sys.exit(main())
