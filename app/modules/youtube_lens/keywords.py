"""Keyword and hashtag trend extraction over video titles and descriptions."""
import re
from collections import Counter
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

UNCATEGORIZED = "기타"

KOREAN_STOPWORDS = frozenset({
    "그리고", "하지만", "그러나", "그래서", "따라서", "그런데",
    "이것", "저것", "그것", "여기", "거기", "저기",
    "이", "그", "저", "것", "들", "등", "및", "또는",
    "있다", "없다", "하다", "되다", "이다", "아니다",
    "한다", "했다", "할", "함", "합니다", "했습니다",
    "에", "에서", "으로", "로", "를", "을", "는", "은", "가",
    "의", "과", "와", "도", "만", "까지", "부터", "에게", "한테",
})

ENGLISH_STOPWORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "if", "then",
    "in", "on", "at", "to", "for", "of", "with", "by",
    "from", "up", "about", "into", "through", "during",
    "is", "are", "was", "were", "be", "been", "being",
    "have", "has", "had", "do", "does", "did", "will",
    "would", "could", "should", "may", "might", "must",
    "can", "this", "that", "these", "those", "i", "you",
    "he", "she", "it", "we", "they", "them", "their",
})

HASHTAG_WEIGHT = 2.0
KEYWORD_WEIGHT = 1.0
BIGRAM_WEIGHT = 1.5

_HASHTAG_RE = re.compile(r"#[0-9A-Za-z가-힣ㄱ-ㅎㅏ-ㅣ_]+")
_EMOJI_RE = re.compile("[\U0001F300-\U0001F9FF\u2600-\u26FF\u2700-\u27BF]")
_HTML_RE = re.compile(r"<[^>]*>")
_URL_RE = re.compile(r"https?://\S+")
_SYMBOL_RE = re.compile(r"[^\w가-힣ㄱ-ㅎㅏ-ㅣ\s#]")
_SPACE_RE = re.compile(r"\s+")


def is_stopword(word: str) -> bool:
    return word in KOREAN_STOPWORDS or word in ENGLISH_STOPWORDS


def normalize_text(text: str) -> str:
    text = _EMOJI_RE.sub(" ", text or "")
    text = _HTML_RE.sub(" ", text)
    text = _URL_RE.sub(" ", text)
    text = _SYMBOL_RE.sub(" ", text)
    return _SPACE_RE.sub(" ", text).strip()


def extract_hashtags(text: str) -> List[str]:
    """Unique lower-cased hashtags longer than two characters, in order of appearance."""
    tags = (tag.lower() for tag in _HASHTAG_RE.findall(text or ""))
    return list(dict.fromkeys(tag for tag in tags if len(tag) > 2))


def extract_keywords(text: str, max_keywords: int = 10) -> List[str]:
    words = [
        word for word in normalize_text(text).lower().split()
        if 1 < len(word) <= 20
        and not word.startswith("#")
        and not word.isdigit()
        and not is_stopword(word)
    ]
    return [word for word, _ in Counter(words).most_common(max_keywords)]


def extract_ngrams(text: str, n: int = 2, max_ngrams: int = 5) -> List[str]:
    words = normalize_text(text).lower().split()
    if len(words) < n:
        return []
    counts: Counter = Counter()
    for i in range(len(words) - n + 1):
        window = words[i:i + n]
        # n-grams made only of stop-words carry nothing
        if any(not is_stopword(w) for w in window):
            counts[" ".join(window)] += 1
    return [ngram for ngram, _ in counts.most_common(max_ngrams)]


def trend_score(current_freq: float, previous_freq: float, total_channels: int) -> float:
    if not previous_freq:
        return 100.0 if current_freq >= 3 else current_freq * 20
    growth = (current_freq - previous_freq) / previous_freq * 100
    penetration = min(100.0, current_freq / max(1, total_channels) * 100)
    score = growth * 0.6 + penetration * 0.4
    return max(-100.0, min(500.0, score))


def analyze_keyword_trends(
    videos: Iterable[Dict[str, Any]],
    previous: Optional[Dict[str, float]] = None,
    limit: int = 30,
) -> List[Dict[str, Any]]:
    """
    Weighted keyword frequencies across videos compared with the previous run.

    Each video is a dict with title, description, channel_id and optional category.
    Returns at most `limit` trends shaped {keyword, frequency, growth, channels, category}.
    """
    previous = previous or {}
    stats: Dict[str, Dict[str, Any]] = {}
    channel_ids = set()

    for video in videos:
        channel_id = video.get("channel_id") or "unknown"
        channel_ids.add(channel_id)
        text = f"{video.get('title') or ''} {video.get('description') or ''}"
        weighted = (
            [(tag, HASHTAG_WEIGHT) for tag in extract_hashtags(text)]
            + [(word, KEYWORD_WEIGHT) for word in extract_keywords(text, 15)]
            + [(gram, BIGRAM_WEIGHT) for gram in extract_ngrams(text, 2, 5)]
        )
        for word, weight in weighted:
            entry = stats.setdefault(word, {"frequency": 0.0, "channels": [], "categories": []})
            entry["frequency"] += weight
            if channel_id not in entry["channels"]:
                entry["channels"].append(channel_id)
            category = video.get("category")
            if category and category not in entry["categories"]:
                entry["categories"].append(category)

    trends = []
    for keyword, entry in stats.items():
        if len(entry["channels"]) < 2 and entry["frequency"] < 3:
            continue
        score = trend_score(entry["frequency"], previous.get(keyword, 0), len(channel_ids))
        if score > 5 or entry["frequency"] >= 5:
            trends.append({
                "keyword": keyword,
                "frequency": round(entry["frequency"]),
                "growth": round(score),
                "channels": entry["channels"],
                "category": entry["categories"][0] if entry["categories"] else None,
            })

    ordered = sorted(trends, key=lambda t: (-t["growth"], -t["frequency"]))
    return ordered[:limit]


def group_by_category(trends: Iterable[Dict[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
    grouped: Dict[str, List[Dict[str, Any]]] = {}
    for trend in trends:
        grouped.setdefault(trend.get("category") or UNCATEGORIZED, []).append(trend)
    for items in grouped.values():
        items.sort(key=lambda t: t.get("growth", 0), reverse=True)
    return grouped


def keyword_stats(trends: List[Dict[str, Any]]) -> Dict[str, Any]:
    categories = Counter(t.get("category") or UNCATEGORIZED for t in trends)
    return {
        "totalKeywords": sum(t["frequency"] for t in trends),
        "uniqueKeywords": len(trends),
        "trendingKeywords": sum(1 for t in trends if t["growth"] > 50),
        "risingKeywords": sum(1 for t in trends if 20 < t["growth"] <= 50),
        "decliningKeywords": sum(1 for t in trends if t["growth"] < -20),
        "topCategories": [{"category": c, "count": n} for c, n in categories.most_common(5)],
    }


def to_db_record(trend: Dict[str, Any], day: date) -> Dict[str, Any]:
    return {
        "keyword": trend["keyword"],
        "date": day.isoformat(),
        "frequency": trend["frequency"],
        "channels": trend["channels"],
        "growth_rate": trend["growth"],
        "category": trend.get("category"),
    }
