import logging
import os
from typing import Optional

import sqlalchemy as sa

from nppa.items import ContentItem
from nppa.store import BaseStore

logger = logging.getLogger(__name__)

metadata = sa.MetaData()

content_table = sa.Table(
    "content",
    metadata,
    sa.Column("ChannelID", sa.String(16), primary_key=True),
    sa.Column("ID", sa.String(64), primary_key=True),
    sa.Column("Title", sa.String(256), nullable=False),
    sa.Column("URL", sa.String(256), nullable=False),
    sa.Column("Date", sa.String(16), nullable=False),
)

item_table = sa.Table(
    "item",
    metadata,
    sa.Column("ChannelID", sa.String(16), primary_key=True),
    sa.Column("ContentID", sa.String(64), primary_key=True),
    sa.Column("Seq", sa.String(8), primary_key=True),
    sa.Column("Name", sa.String(256), nullable=False),
    sa.Column("Catalog", sa.String(256)),
    sa.Column("Publisher", sa.String(256)),
    sa.Column("Operator", sa.String(256)),
    sa.Column("ApprovalNumber", sa.String(256), nullable=False),
    sa.Column("ISBN", sa.String(256)),
    sa.Column("ChangeInfo", sa.String(256)),
    sa.Column("RevokeInfo", sa.String(256)),
    sa.Column("Date", sa.String(16), nullable=False),
)


class SqlStore(BaseStore):
    """``content``/``item`` tables keyed by (channel, content id).

    Known means a content row exists; there is no prior-version comparison.
    """

    def __init__(self, url: str = "sqlite:///nppa.db"):
        self.url = url
        self._engine: Optional[sa.engine.Engine] = None

    @classmethod
    def from_crawler(cls, crawler):
        return cls(crawler.settings.get("NPPA_SQL_URL") or os.getenv("NPPA_SQL_URL", "sqlite:///nppa.db"))

    @property
    def engine(self):
        if self._engine is None:
            self._engine = sa.create_engine(self.url)
            self.migrate()
        return self._engine

    def migrate(self):
        metadata.create_all(self._engine)

    def has_content(self, content: ContentItem) -> bool:
        stmt = sa.select(content_table.c.ID).where(
            content_table.c.ChannelID == content.get("channel_id"),
            content_table.c.ID == content.get("id"),
        )
        with self.engine.connect() as conn:
            return conn.execute(stmt).first() is not None

    def has_item(self, conn, item) -> bool:
        stmt = sa.select(item_table.c.Seq).where(
            item_table.c.ChannelID == item.get("channel_id"),
            item_table.c.ContentID == item.get("content_id"),
            item_table.c.Seq == item.get("seq"),
        )
        return conn.execute(stmt).first() is not None

    def add_content(self, content: ContentItem):
        # items first, then the content row that marks the content as known
        with self.engine.begin() as conn:
            for item in content.get("items") or []:
                if self.has_item(conn, item):
                    continue
                conn.execute(item_table.insert().values(
                    ChannelID=item.get("channel_id"),
                    ContentID=item.get("content_id"),
                    Seq=item.get("seq"),
                    Name=item.get("name"),
                    Catalog=item.get("catalog"),
                    Publisher=item.get("publisher"),
                    Operator=item.get("operator"),
                    ApprovalNumber=item.get("approval_number") or "",
                    ISBN=item.get("isbn"),
                    ChangeInfo=item.get("change_info"),
                    RevokeInfo=item.get("revoke_info"),
                    Date=item.get("date") or "",
                ))
            conn.execute(content_table.insert().values(
                ChannelID=content.get("channel_id"),
                ID=content.get("id"),
                Title=content.get("title") or "",
                URL=content.get("url") or "",
                Date=content.get("date") or "",
            ))
        logger.info("insert content success. channel=%s, id=%s, items=%d",
                    content.get("channel_id"), content.get("id"), len(content.get("items") or []))

    def close(self):
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
