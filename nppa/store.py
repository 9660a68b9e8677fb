"""Baseline stores: what the collector already knows about.

A store answers two questions during a run, ``has_content`` (skip the stub
without fetching it) and ``previous`` (last stored version to compare
against), and is written to only after a run finished, through
``StorePipeline``.
"""
import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from nppa.channels import MADE_IN_CHINA_ONLINE_GAME
from nppa.items import ContentItem
from nppa.utility import from_record, safe_key, to_record

logger = logging.getLogger(__name__)


class BaseStore:
    @classmethod
    def from_crawler(cls, crawler):
        return cls()

    def has_content(self, content: ContentItem) -> bool:
        raise NotImplementedError

    def previous(self, content: ContentItem) -> Optional[ContentItem]:
        return None

    def add_content(self, content: ContentItem):
        raise NotImplementedError

    def close(self):
        pass


class JsonFileStore(BaseStore):
    """One ``<title>.json`` document per content under ``data_dir``.

    A stored content is settled, and skipped without fetching, when its
    channel is frozen or its title does not mention the current year. Anything
    else may still be revised upstream, so it is re-fetched and compared with
    the stored document.
    """

    def __init__(self, data_dir="data", frozen_channels: Iterable[str] = (MADE_IN_CHINA_ONLINE_GAME,), year: Optional[int] = None):
        self.data_dir = Path(data_dir)
        self.frozen_channels = set(frozen_channels)
        self.year = year

    @classmethod
    def from_crawler(cls, crawler):
        s = crawler.settings
        return cls(
            data_dir=s.get("NPPA_DATA_DIR", "data"),
            frozen_channels=s.getlist("NPPA_FROZEN_CHANNELS", [MADE_IN_CHINA_ONLINE_GAME]),
        )

    def path(self, content: ContentItem) -> Path:
        return self.data_dir / f"{safe_key(content.get('title'))}.json"

    def current_year(self) -> str:
        return str(self.year or datetime.now().year)

    def has_content(self, content: ContentItem) -> bool:
        if not self.path(content).exists():
            return False
        if content.get("channel_id") in self.frozen_channels:
            return True
        return self.current_year() not in (content.get("title") or "")

    def previous(self, content: ContentItem) -> Optional[ContentItem]:
        p = self.path(content)
        if not p.exists():
            return None
        with p.open("r", encoding="utf-8") as f:
            record = json.load(f)
        return from_record(record, content.get("channel_id"), content.get("id"))

    def add_content(self, content: ContentItem):
        os.makedirs(self.data_dir, exist_ok=True)
        p = self.path(content)
        with p.open("w", encoding="utf-8") as f:
            json.dump(to_record(content), f, ensure_ascii=False, indent=2)
        logger.info("write content success. title=%s, path=%s", content.get("title"), p)
