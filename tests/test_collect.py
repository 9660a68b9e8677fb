"""Command line entry point."""

from __future__ import annotations

import logging
from unittest.mock import patch

from scrapy import signals
from scrapy.statscollectors import MemoryStatsCollector
from scrapy.utils.test import get_crawler

from conftest import SECTION, MemoryStore, detail_html, listing_html, run_chain
from nppa import collect as collect_mod


def test_project_settings_override() -> None:
    settings = collect_mod.project_settings({"NPPA_STORE": collect_mod.STORES["sql"]})
    assert settings.get("NPPA_STORE") == "nppa.store_sql.SqlStore"
    assert settings.getint("CONCURRENT_REQUESTS") == 1
    assert settings.getbool("ROBOTSTXT_OBEY") is False
    assert "nppa.pipelines.StorePipeline" in settings.getdict("ITEM_PIPELINES")


def test_main_maps_flags_to_settings() -> None:
    with patch.object(collect_mod, "collect", return_value=[]) as collect:
        assert collect_mod.main([
            "--full", "--channel", "yxspbgxx", "--store", "json", "--data-dir", "/tmp/x",
            "--addr", "smtp.example.com:465", "--user", "bot@example.com", "--pass", "secret",
            "--to", "a@example.com, b@example.com",
        ]) == 0

    kwargs = collect.call_args[1]
    assert kwargs["full"] is True
    assert kwargs["channels"] == ["yxspbgxx"]
    settings = kwargs["settings"]
    assert settings.get("NPPA_DATA_DIR") == "/tmp/x"
    assert settings.get("MAIL_HOST") == "smtp.example.com"
    assert settings.getint("MAIL_PORT") == 465
    assert settings.getbool("MAIL_SSL") is True
    assert settings.getbool("MAIL_TLS") is False
    assert settings.get("MAIL_USER") == "bot@example.com"
    assert settings.get("MAIL_PASS") == "secret"
    assert settings.getlist("NPPA_NOTIFY_TO") == ["a@example.com", "b@example.com"]


def test_main_defaults() -> None:
    with patch.object(collect_mod, "collect", return_value=[]) as collect:
        collect_mod.main([])
    kwargs = collect.call_args[1]
    assert kwargs["full"] is False
    assert kwargs["channels"] is None
    assert kwargs["pages"] is None


def test_main_starttls_on_submission_port() -> None:
    with patch.object(collect_mod, "collect", return_value=[]) as collect:
        collect_mod.main(["--addr", "smtp.example.com:587"])
    settings = collect.call_args[1]["settings"]
    assert settings.getbool("MAIL_TLS") is True
    assert settings.getbool("MAIL_SSL") is False


class _SiteProcess:
    """Stands in for CrawlerProcess: runs the spider's request chain against
    canned pages and fires item_scraped like the engine does."""

    def __init__(self, site, finish_reason="finished"):
        self.site = site
        self.finish_reason = finish_reason
        self.crawler = None

    def __call__(self, settings):
        self.settings = settings
        return self

    def create_crawler(self, spidercls):
        self.crawler = get_crawler(spidercls, {"NPPA_PAGES_INCREMENTAL": 2})
        if self.crawler.stats is None:
            self.crawler.stats = MemoryStatsCollector(self.crawler)
        return self.crawler

    def crawl(self, crawler, **kwargs):
        self.kwargs = kwargs
        spider = crawler.spidercls.from_crawler(crawler, **kwargs)
        items, _ = run_chain(spider, self.site)
        for item in items:
            crawler.signals.send_catch_log(signals.item_scraped, item=item, response=None, spider=spider)
        crawler.stats.set_value("finish_reason", self.finish_reason)

    def start(self):
        pass


ELECTRONIC_URL = "jkdzyxspxx/202401/t20240110_1.html"
CHANGED_URL = "yxspbgxx/202401/t20240111_2.html"
SITE = {
    SECTION + "index.html": listing_html([
        ("./" + ELECTRONIC_URL, "2024年1月进口电子游戏审批信息", "[2024-01-10]"),
        ("./" + CHANGED_URL, "2024年1月游戏审批变更信息", "[2024-01-11]"),
    ]),
    SECTION + ELECTRONIC_URL: detail_html([["1", "Game X", "PubCo", "GA12345", "2024-01-10"]]),
    SECTION + CHANGED_URL: detail_html([
        ["1", "星际探险", "移动", "某出版社", "某运营商", "变更运营单位", "国新出审[2023]9号", "2024-01-11"],
    ]),
}


class TestCollect:
    def test_returns_reported_contents_in_listing_order(self) -> None:
        process = _SiteProcess(SITE)
        store = MemoryStore()
        with patch.object(collect_mod, "CrawlerProcess", process):
            contents = collect_mod.collect(store=store)
        assert [c["url"] for c in contents] == [ELECTRONIC_URL, CHANGED_URL]
        assert contents[1]["items"][0]["change_info"] == "变更运营单位"
        assert process.kwargs["store"] is store
        assert process.kwargs["channels"] is None
        assert process.settings.get("BOT_NAME") == "nppa"

    def test_known_contents_are_not_reported(self) -> None:
        store = MemoryStore(known=[ELECTRONIC_URL])
        with patch.object(collect_mod, "CrawlerProcess", _SiteProcess(SITE)):
            contents = collect_mod.collect(channels=["jkdzyxspxx", "yxspbgxx"], store=store)
        assert [c["url"] for c in contents] == [CHANGED_URL]

    def test_channel_selection(self) -> None:
        with patch.object(collect_mod, "CrawlerProcess", _SiteProcess(SITE)):
            contents = collect_mod.collect(channels=["yxspbgxx"], store=MemoryStore())
        assert [c["channel_id"] for c in contents] == ["yxspbgxx"]

    def test_unfinished_run_is_logged(self, caplog) -> None:
        with patch.object(collect_mod, "CrawlerProcess", _SiteProcess(SITE, finish_reason="extraction_error")):
            with caplog.at_level(logging.ERROR, logger="nppa.collect"):
                collect_mod.collect(store=MemoryStore())
        assert "extraction_error" in caplog.text
