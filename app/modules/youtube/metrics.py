"""View velocity, engagement and viral scoring for YouTube videos and channels."""
import math
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Union

from app.core.time_utils import parse_timestamp, utcnow

Timestamp = Union[str, datetime, None]


def hours_since(published_at: Timestamp, now: Optional[datetime] = None) -> float:
    published = parse_timestamp(published_at)
    if published is None:
        return 0.0
    return ((now or utcnow()) - published).total_seconds() / 3600


def views_per_hour(view_count: int, published_at: Timestamp, now: Optional[datetime] = None) -> float:
    hours = hours_since(published_at, now)
    if hours <= 0:
        return 0.0
    return view_count / hours


def engagement_rate(view_count: int, like_count: int, comment_count: int) -> float:
    if not view_count:
        return 0.0
    return (like_count + comment_count) / view_count * 100


def _velocity_score(vph: float, hours: float) -> float:
    score = min(vph / 10000, 1) * 100
    if hours < 24:
        score *= 1.2
    elif hours < 72:
        score *= 1.1
    return min(score, 100)


def _engagement_score(rate: float) -> float:
    return min(rate / 10 * 100, 100)


def _reach_score(view_count: int, subscriber_count: int) -> float:
    if not subscriber_count:
        return 50
    ratio = view_count / subscriber_count
    if ratio > 1:
        return min(50 + ratio * 10, 100)
    return ratio * 50


def _momentum_score(view_count: int, hours: float) -> float:
    if hours > 168:
        return 0
    recency = (168 - hours) / 168
    return recency * min(view_count / 100000, 1) * 100


def viral_score(
    view_count: int,
    like_count: int,
    comment_count: int,
    published_at: Timestamp,
    subscriber_count: int = 10000,
    now: Optional[datetime] = None,
) -> int:
    """0-100 score: velocity 40%, engagement 30%, reach 20%, momentum 10%, with boosts."""
    now = now or utcnow()
    hours = hours_since(published_at, now)
    vph = views_per_hour(view_count, published_at, now)
    rate = engagement_rate(view_count, like_count, comment_count)

    score = (
        _velocity_score(vph, hours) * 0.4
        + _engagement_score(rate) * 0.3
        + _reach_score(view_count, subscriber_count) * 0.2
        + _momentum_score(view_count, hours) * 0.1
    )
    if vph > 100000:
        score *= 1.5
    if rate > 15:
        score *= 1.3
    if hours < 6 and view_count > 100000:
        score *= 1.4
    return min(int(score + 0.5), 100)


def growth_rate(current: float, previous: float, hours_elapsed: float) -> float:
    """Hourly percentage growth between two snapshots."""
    if not previous or not hours_elapsed:
        return 0.0
    return (current - previous) / previous * 100 / hours_elapsed


def normalize_metrics(vph: float, engagement: float, viral: float) -> Dict[str, float]:
    return {
        "normalizedVph": min(vph / 100000, 1),
        "normalizedEngagement": min(engagement / 20, 1),
        "normalizedViral": viral / 100,
    }


def _median(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return ordered[mid]


def identify_outliers(scores: Sequence[float], threshold: float = 2.5) -> Dict[str, Any]:
    """Indexes of scores further than ``threshold`` standard deviations from the mean."""
    if not scores:
        return {"outliers": [], "stats": {"mean": 0, "median": 0, "stdDev": 0}}
    mean = sum(scores) / len(scores)
    std_dev = math.sqrt(sum((s - mean) ** 2 for s in scores) / len(scores))
    outliers = [i for i, s in enumerate(scores) if abs(s - mean) > threshold * std_dev]
    return {
        "outliers": outliers,
        "stats": {"mean": mean, "median": _median(scores), "stdDev": std_dev},
    }


def calculate_trend(points: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Least-squares trend over ``[{"value", "timestamp"}]`` points ordered by time."""
    if len(points) < 2:
        return {"direction": "stable", "strength": 0.0, "slope": 0.0}

    ordered = sorted(points, key=lambda p: parse_timestamp(p["timestamp"]))
    values = [float(p["value"]) for p in ordered]
    n = len(values)
    sum_x = sum(range(n))
    sum_y = sum(values)
    sum_xy = sum(i * y for i, y in enumerate(values))
    sum_x2 = sum(i * i for i in range(n))

    slope = (n * sum_xy - sum_x * sum_y) / (n * sum_x2 - sum_x * sum_x)
    direction = "up" if slope > 0.01 else "down" if slope < -0.01 else "stable"

    mean_y = sum_y / n
    intercept = mean_y - slope * (sum_x / n)
    ss_total = sum((y - mean_y) ** 2 for y in values)
    ss_residual = sum((y - (slope * i + intercept)) ** 2 for i, y in enumerate(values))
    r_squared = 1 - ss_residual / ss_total if ss_total else 0.0
    strength = max(0.0, min(100.0, abs(r_squared) * 100))
    return {"direction": direction, "strength": strength, "slope": slope}


def channel_performance(channel: Dict[str, Any], recent_videos: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    recent_videos = recent_videos or []
    upload_frequency = 0.0
    published = [parse_timestamp(v.get("published_at")) for v in recent_videos]
    published = [p for p in published if p is not None]
    if len(published) > 1:
        days = (max(published) - min(published)).total_seconds() / 86400
        upload_frequency = len(recent_videos) / days if days > 0 else 0.0

    views = [int(v.get("view_count") or 0) for v in recent_videos]
    score = (
        min(int(channel.get("subscriber_count") or 0) / 1_000_000, 1) * 30
        + min(int(channel.get("view_count") or 0) / 100_000_000, 1) * 30
        + min(upload_frequency * 10, 1) * 20
        + min(int(channel.get("video_count") or 0) / 1000, 1) * 20
    )
    return {
        "avgViews": sum(views) / len(views) if views else 0,
        "uploadFrequency": upload_frequency,
        "performanceScore": int(score + 0.5),
    }


def video_metrics(video: Dict[str, Any], subscriber_count: int = 10000, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Metrics for one normalized video dict."""
    now = now or utcnow()
    views = int(video.get("view_count") or 0)
    likes = int(video.get("like_count") or 0)
    comments = int(video.get("comment_count") or 0)
    published_at = video.get("published_at")
    return {
        "vph": views_per_hour(views, published_at, now),
        "engagementRate": engagement_rate(views, likes, comments),
        "viralScore": viral_score(views, likes, comments, published_at, subscriber_count, now),
    }
