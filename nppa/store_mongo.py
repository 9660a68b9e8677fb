import os
import time
from typing import Any, Dict, Optional

from pymongo import MongoClient

from nppa.items import ContentItem
from nppa.store import BaseStore
from nppa.utility import from_record, to_record


class MongoStore(BaseStore):
    """One document per content, keyed by (channel_id, id).

    Known means a document exists for a frozen channel; other stored contents
    are re-fetched and compared, like the flat-file store does.
    """

    def __init__(self, uri: str, db_name: str, coll_name: str, frozen_channels=()):
        self.uri = uri
        self.db_name = db_name
        self.coll_name = coll_name
        self.frozen_channels = set(frozen_channels)
        self.client = None
        self._coll = None

    @classmethod
    def from_crawler(cls, crawler):
        uri = os.getenv("MONGO_URI", "mongodb://localhost:27017")
        db = os.getenv("MONGO_DB", "nppa")
        coll = os.getenv("MONGO_COLLECTION", "contents")
        return cls(uri, db, coll, crawler.settings.getlist("NPPA_FROZEN_CHANNELS"))

    @property
    def coll(self):
        if self._coll is None:
            self.client = MongoClient(self.uri, connect=True)
            self._coll = self.client[self.db_name][self.coll_name]
            self._coll.create_index([("channel_id", 1), ("id", 1)], unique=True)
        return self._coll

    def _filter(self, content: ContentItem):
        return {"channel_id": content.get("channel_id"), "id": content.get("id")}

    def has_content(self, content: ContentItem) -> bool:
        if content.get("channel_id") not in self.frozen_channels:
            return False
        return self.coll.find_one(self._filter(content), {"_id": 1}) is not None

    def previous(self, content: ContentItem) -> Optional[ContentItem]:
        doc = self.coll.find_one(self._filter(content))
        if doc is None:
            return None
        return from_record(doc, content.get("channel_id"), content.get("id"))

    def add_content(self, content: ContentItem):
        doc: Dict[str, Any] = to_record(content)
        doc.update(self._filter(content))
        now = time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
        doc["updated_at"] = now
        update = {"$set": doc, "$setOnInsert": {"first_seen": now}}
        self.coll.update_one(self._filter(content), update, upsert=True)

    def close(self):
        if self.client:
            self.client.close()
            self.client = None
            self._coll = None
