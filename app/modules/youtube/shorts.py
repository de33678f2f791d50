"""Shorts detection and channel format classification over normalized video dicts."""
import re
from typing import Any, Dict, List

SHORTS_MAX_SECONDS = 60
SHORTS_THRESHOLD = 0.6

SHORTS_KEYWORDS = (
    "#shorts", "#쇼츠", "shorts", "쇼츠",
    "#short", "#ytshorts", "#youtubeshorts",
    "#yt", "#youtube",
)
LIVE_KEYWORDS = ("live", "라이브", "생방송", "스트리밍", "streaming", "방송")

_DURATION_RE = re.compile(r"^P(?:(\d+)D)?T?(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?$")
_EMOJI_RE = re.compile("[\U0001F300-\U0001F9FF\u2600-\u26FF\u2700-\u27BF]")


def parse_duration(duration: str) -> int:
    """ISO-8601 duration (PT1H2M3S) to seconds; 0 when unparseable."""
    if not duration:
        return 0
    match = _DURATION_RE.match(duration.strip())
    if not match:
        return 0
    days, hours, minutes, seconds = (int(g or 0) for g in match.groups())
    return days * 86400 + hours * 3600 + minutes * 60 + seconds


def _has_vertical_thumbnail(thumbnails: Dict[str, Any]) -> bool:
    thumb = thumbnails.get("high") or thumbnails.get("medium") or thumbnails.get("default")
    if not thumb:
        return False
    return (thumb.get("height") or 0) > (thumb.get("width") or 0)


def detect_shorts(video: Dict[str, Any]) -> Dict[str, Any]:
    seconds = parse_duration(video.get("duration") or "")
    if seconds > SHORTS_MAX_SECONDS:
        return {
            "is_shorts": False,
            "confidence": 0.0,
            "reasons": [f"Duration too long: {seconds}s (> {SHORTS_MAX_SECONDS}s)"],
            "duration": seconds,
        }

    reasons = [f"Duration: {seconds}s (<= {SHORTS_MAX_SECONDS}s)"]
    confidence = 0.5

    title = video.get("title") or ""
    haystacks = [title.lower(), (video.get("description") or "").lower()]
    haystacks.extend(str(tag).lower() for tag in video.get("tags") or [])
    if any(kw in text for kw in SHORTS_KEYWORDS for text in haystacks):
        confidence += 0.3
        reasons.append("Has Shorts keyword")

    if _has_vertical_thumbnail(video.get("thumbnails") or {}):
        confidence += 0.1
        reasons.append("Vertical thumbnail (9:16 ratio)")

    if _EMOJI_RE.search(title) and len(title) < 50:
        confidence += 0.1
        reasons.append("Short title with emoji")

    if seconds <= 30:
        confidence += 0.1
        reasons.append("Very short duration (<= 30s)")

    confidence = round(min(1.0, confidence), 2)
    return {
        "is_shorts": confidence >= SHORTS_THRESHOLD,
        "confidence": confidence,
        "reasons": reasons,
        "duration": seconds,
    }


def _is_live_title(title: str) -> bool:
    lowered = title.lower()
    return any(kw in lowered for kw in LIVE_KEYWORDS)


def detect_dominant_format(videos: List[Dict[str, Any]]) -> Dict[str, Any]:
    if not videos:
        return {"format": "mixed", "distribution": {"shorts": 0, "longform": 0, "live": 0}}

    counts = {"shorts": 0, "longform": 0, "live": 0}
    for video in videos:
        if detect_shorts(video)["is_shorts"]:
            counts["shorts"] += 1
        elif _is_live_title(video.get("title") or ""):
            counts["live"] += 1
        else:
            counts["longform"] += 1

    total = len(videos)
    distribution = {key: int(count / total * 100 + 0.5) for key, count in counts.items()}

    fmt = "mixed"
    for key in ("shorts", "longform", "live"):
        if distribution[key] >= 50:
            fmt = key
            break
    else:
        top = max(counts.values())
        for key in ("shorts", "longform", "live"):
            if top > 0 and counts[key] == top:
                fmt = key
                break
    return {"format": fmt, "distribution": distribution}


def shorts_stats(videos: List[Dict[str, Any]]) -> Dict[str, Any]:
    results = [detect_shorts(v) for v in videos]
    total = len(videos)
    total_shorts = sum(1 for r in results if r["is_shorts"])
    dominant = detect_dominant_format(videos)
    return {
        "totalVideos": total,
        "totalShorts": total_shorts,
        "shortsPercentage": int(total_shorts / total * 100 + 0.5) if total else 0,
        "averageDuration": int(sum(r["duration"] for r in results) / total + 0.5) if total else 0,
        "dominantFormat": dominant["format"],
        "distribution": dominant["distribution"],
    }
