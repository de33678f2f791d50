"""Random Korean nicknames ([adjective][animal]) and Naver Cafe URL checks."""
import random
import re
from typing import List, Optional

ADJECTIVES = [
    "용감한", "활발한", "똑똑한", "귀여운", "멋진", "재빠른", "강한", "부드러운", "날렵한", "즐거운",
    "행복한", "신나는", "빛나는", "따뜻한", "시원한", "상큼한", "달콤한", "깔끔한", "산뜻한", "포근한",
    "든든한", "씩씩한", "당당한", "우아한", "화려한", "조용한", "차분한", "성실한", "부지런한", "열정적인",
    "창의적인", "도전적인", "긍정적인", "활기찬", "명랑한", "쾌활한", "유쾌한", "상냥한", "친절한", "정직한",
    "겸손한", "지혜로운", "현명한", "영리한", "재치있는", "센스있는", "매력적인", "사랑스런", "깜찍한", "발랄한",
]

ANIMALS = [
    "사자", "호랑이", "곰", "토끼", "고양이", "강아지", "여우", "늑대", "사슴", "다람쥐",
    "햄스터", "고슴도치", "수달", "너구리", "판다", "코알라", "캥거루", "원숭이", "고릴라", "침팬지",
    "펭귄", "독수리", "매", "올빼미", "앵무새", "까마귀", "비둘기", "참새", "제비", "두루미",
    "백조", "오리", "거위", "닭", "공작", "돌고래", "고래", "상어", "가오리", "해마",
    "거북이", "악어", "도마뱀", "카멜레온", "이구아나", "나비", "벌", "개미", "거미", "전갈",
]

ANONYMOUS = "익명"

CAFE_ID = "dinohighclass"
CAFE_NAME = "디지털 노마드 하이클래스"
CAFE_URL = f"https://cafe.naver.com/{CAFE_ID}"

_NICKNAME_PATTERN = re.compile(r"^[가-힣a-zA-Z0-9]+$")
_CAFE_URL_PATTERN = re.compile(rf"^https?://cafe\.naver\.com/{CAFE_ID}(/member/[\w-]+)?$")


def generate_nickname(rng: Optional[random.Random] = None) -> str:
    rng = rng or random
    return f"{rng.choice(ADJECTIVES)}{rng.choice(ANIMALS)}"


def generate_multiple(count: int = 5, rng: Optional[random.Random] = None) -> List[str]:
    """Distinct nicknames, at most as many as there are combinations."""
    target = min(count, len(ADJECTIVES) * len(ANIMALS))
    names: List[str] = []
    seen = set()
    while len(names) < target:
        name = generate_nickname(rng)
        if name not in seen:
            seen.add(name)
            names.append(name)
    return names


def is_valid_nickname(nickname: str) -> bool:
    if not nickname or len(nickname) < 2 or len(nickname) > 20:
        return False
    return bool(_NICKNAME_PATTERN.match(nickname))


def format_nickname(nickname: Optional[str], max_length: int = 10) -> str:
    if not nickname:
        return ANONYMOUS
    if len(nickname) <= max_length:
        return nickname
    return f"{nickname[:max_length - 2]}..."


def display_nickname(profile: Optional[dict]) -> str:
    """Verified cafe nickname > random nickname > username > anonymous"""
    if not profile:
        return ANONYMOUS
    if profile.get("naver_cafe_verified") and profile.get("naver_cafe_nickname"):
        return profile["naver_cafe_nickname"]
    if profile.get("random_nickname"):
        return profile["random_nickname"]
    if profile.get("username"):
        return profile["username"]
    return ANONYMOUS


def is_valid_cafe_url(url: str) -> bool:
    return bool(url) and bool(_CAFE_URL_PATTERN.match(url))
