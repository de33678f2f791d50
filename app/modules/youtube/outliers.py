"""z-MAD outlier detection over video statistics."""
import math
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from app.core.time_utils import utcnow
from app.modules.youtube.metrics import views_per_hour

DEFAULT_THRESHOLD = 3.0
MAD_CONSTANT = 0.6745


def median(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return ordered[mid]


def mad(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    med = median(values)
    return median([abs(v - med) for v in values])


def z_scores(values: Sequence[float]) -> List[float]:
    if not values:
        return []
    mean = sum(values) / len(values)
    std_dev = math.sqrt(sum((v - mean) ** 2 for v in values) / len(values))
    if std_dev == 0:
        return [0.0] * len(values)
    return [(v - mean) / std_dev for v in values]


def modified_z_scores(values: Sequence[float]) -> List[float]:
    if not values:
        return []
    med = median(values)
    deviation = mad(values)
    if deviation == 0:
        return [0.0] * len(values)
    return [MAD_CONSTANT * (v - med) / deviation for v in values]


def percentile_rank(value: float, values: Sequence[float]) -> float:
    if not values:
        return 50.0
    return sum(1 for v in values if v <= value) / len(values) * 100


def detect_outliers(
    videos: List[Dict[str, Any]],
    threshold: float = DEFAULT_THRESHOLD,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """Score each video on views, likes, comments and VPH.

    combined = 0.4 * mean |z| + 0.6 * mean |modified z|; a video is an outlier when
    combined exceeds ``threshold``, positive when the summed z-scores are above zero.
    """
    now = now or utcnow()
    views = [int(v.get("view_count") or 0) for v in videos]
    likes = [int(v.get("like_count") or 0) for v in videos]
    comments = [int(v.get("comment_count") or 0) for v in videos]
    vph = [
        float(v["vph"]) if v.get("vph") is not None else views_per_hour(views[i], v.get("published_at"), now)
        for i, v in enumerate(videos)
    ]

    series = [views, likes, comments, vph]
    z = [z_scores(s) for s in series]
    mz = [modified_z_scores(s) for s in series]

    results = []
    for i, video in enumerate(videos):
        avg_z = sum(abs(col[i]) for col in z) / 4
        avg_mad = sum(abs(col[i]) for col in mz) / 4
        combined = avg_z * 0.4 + avg_mad * 0.6
        is_outlier = combined > threshold
        outlier_type = None
        if is_outlier:
            outlier_type = "positive" if sum(col[i] for col in z) > 0 else "negative"
        results.append({
            "video_id": video.get("id") or video.get("video_id"),
            "zScore": avg_z,
            "madScore": avg_mad,
            "combinedScore": combined,
            "isOutlier": is_outlier,
            "outlierType": outlier_type,
            "metrics": {
                "view_count": views[i],
                "like_count": likes[i],
                "comment_count": comments[i],
                "vph": vph[i],
            },
            "percentile": int(percentile_rank(views[i], views) + 0.5),
        })
    return results


def find_top_outliers(results: List[Dict[str, Any]], kind: str = "all", limit: int = 10) -> List[Dict[str, Any]]:
    filtered = [r for r in results if r["isOutlier"]]
    if kind != "all":
        filtered = [r for r in filtered if r["outlierType"] == kind]
    return sorted(filtered, key=lambda r: r["combinedScore"], reverse=True)[:limit]


def outlier_report(results: List[Dict[str, Any]]) -> Dict[str, Any]:
    total = len(results)
    outliers = [r for r in results if r["isOutlier"]]
    return {
        "totalVideos": total,
        "totalOutliers": len(outliers),
        "positiveOutliers": sum(1 for r in outliers if r["outlierType"] == "positive"),
        "negativeOutliers": sum(1 for r in outliers if r["outlierType"] == "negative"),
        "outlierRate": len(outliers) / total if total else 0.0,
        "topPerformers": find_top_outliers(results, "positive", 5),
        "underperformers": find_top_outliers(results, "negative", 5),
    }
