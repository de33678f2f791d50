"""Atom feed parsing for YouTube push notifications."""
import re
import xml.etree.ElementTree as ET
from typing import Any, Dict, Optional

NS = {
    "atom": "http://www.w3.org/2005/Atom",
    "yt": "http://www.youtube.com/xml/schemas/2015",
    "at": "http://purl.org/atompub/tombstones/1.0",
}

_CHANNEL_URI_RE = re.compile(r"/channel/([A-Za-z0-9_-]+)")


def _text(element: Optional[ET.Element], path: str) -> Optional[str]:
    if element is None:
        return None
    found = element.find(path, NS)
    if found is None or found.text is None:
        return None
    return found.text.strip()


def parse_notification(body: str) -> Dict[str, Any]:
    """Extract the video change from a hub notification.

    Raises ValueError when the body is not XML. ``channel_id`` may be None when the
    feed carries no channel, which callers treat as a bad request.
    """
    try:
        root = ET.fromstring(body)
    except ET.ParseError as e:
        raise ValueError(f"Invalid notification XML: {e}")

    deleted = root.find("at:deleted-entry", NS)
    if deleted is not None:
        ref = deleted.get("ref") or ""
        uri = _text(deleted, "at:by/atom:uri") or ""
        match = _CHANNEL_URI_RE.search(uri)
        link = deleted.find("atom:link", NS)
        return {
            "video_id": ref.rsplit(":", 1)[-1] or None,
            "channel_id": match.group(1) if match else None,
            "title": None,
            "published_at": None,
            "updated_at": deleted.get("when"),
            "link": link.get("href") if link is not None else None,
            "deleted": True,
        }

    entry = root.find("atom:entry", NS)
    link = entry.find("atom:link", NS) if entry is not None else None
    return {
        "video_id": _text(entry, "yt:videoId"),
        "channel_id": _text(entry, "yt:channelId") or _text(root, "yt:channelId"),
        "title": _text(entry, "atom:title"),
        "published_at": _text(entry, "atom:published"),
        "updated_at": _text(entry, "atom:updated"),
        "link": link.get("href") if link is not None else None,
        "deleted": False,
    }
