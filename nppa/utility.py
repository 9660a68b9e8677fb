import os
import re
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from itemadapter import ItemAdapter

from nppa.channels import BY_NUMERIC_ID, CHANNELS, RECORD_FIELDS
from nppa.items import ApprovalItem, ContentItem

# Persisted JSON keys for the snake_case item fields that differ.
RECORD_KEYS = {
    "approval_number": "approvalNumber",
    "change_info": "changeInfo",
    "revoke_info": "revokeInfo",
}


def content_id_from_url(url: str):
    seg = os.path.basename(urlparse(url or "").path)
    return re.sub(r"\.s?html?$", "", seg, flags=re.IGNORECASE)


def channel_from_url(url: str) -> Optional[str]:
    """Channel code of a detail link.

    ``jkwlyxspxx/202401/t20240110_1.html`` gives the first path segment;
    ``/nppa/contents/318/123.shtml`` maps the numeric channel back to its code.
    """
    path = urlparse(url or "").path.strip("/")
    parts = [p for p in path.split("/") if p and p != "."]
    if len(parts) >= 3 and parts[0] == "nppa" and parts[1] == "contents":
        return BY_NUMERIC_ID.get(parts[2])
    if len(parts) >= 3 and parts[-3] in CHANNELS:
        return parts[-3]
    if len(parts) == 3:
        return parts[0]
    return None


def strip_brackets(label: str):
    return (label or "").strip().strip("[]").strip()


def unique_preserve(seq):
    seen = set()
    out = []
    for x in seq:
        if x not in seen:
            seen.add(x)
            out.append(x)
    return out


def safe_key(title: str):
    return (title or "NOTITLE").strip().replace("/", "-").replace("\\", "-")


def item_values(item) -> tuple:
    # an empty cell and a missing key are the same value
    adapter = ItemAdapter(item)
    return tuple(adapter.get(f) or None for f in RECORD_FIELDS)


def differs(old: ContentItem, new: ContentItem) -> bool:
    """True when the item sequences are not equal row by row."""
    old_items = old.get("items") or []
    new_items = new.get("items") or []
    if len(old_items) != len(new_items):
        return True
    return any(item_values(o) != item_values(n) for o, n in zip(old_items, new_items))


def to_record(content: ContentItem) -> Dict[str, Any]:
    """JSON document for the flat-file store. Absent and empty fields are omitted."""
    items: List[Dict[str, Any]] = []
    for item in content.get("items") or []:
        adapter = ItemAdapter(item)
        rec = {}
        for f in RECORD_FIELDS:
            if adapter.get(f):
                rec[RECORD_KEYS.get(f, f)] = adapter[f]
        items.append(rec)
    return {
        "title": content.get("title", ""),
        "url": content.get("url", ""),
        "date": content.get("date", ""),
        "items": items,
    }


def from_record(record: Dict[str, Any], channel_id: Optional[str] = None, content_id: Optional[str] = None):
    url = record.get("url", "")
    channel_id = channel_id or channel_from_url(url)
    content_id = content_id or content_id_from_url(url)
    content = ContentItem(
        channel_id=channel_id,
        id=content_id,
        title=record.get("title", ""),
        url=url,
        date=record.get("date", ""),
        items=[],
    )
    for rec in record.get("items") or []:
        item = ApprovalItem(channel_id=channel_id, content_id=content_id)
        for f in RECORD_FIELDS:
            val = rec.get(RECORD_KEYS.get(f, f))
            if val:
                item[f] = val
        content["items"].append(item)
    return content


def notification_body(contents) -> str:
    return "".join(f"{c.get('title', '')} ({len(c.get('items') or [])})\r\n" for c in contents)
