"""
Offline mood analyzer.

Scores review text on the 0..100 mood scale by counting calm vs. energetic atmosphere
keywords. It implements the `MoodAnalyzer` capability, so a hosted sentiment service can
replace it without touching discovery code.

Score = 50 + 50 * (energetic - calm) / (energetic + calm); 50 when nothing matches.
"""

from __future__ import annotations

import re

CALM_KEYWORDS = (
    "peaceful",
    "relaxing",
    "calm",
    "tranquil",
    "serene",
    "quiet",
    "gentle",
    "soothing",
    "mellow",
    "zen",
    "low-key",
    "laid-back",
    "easygoing",
    "leisurely",
    "restful",
    "cozy",
    "intimate",
    "stress-free",
    "unwinding",
)

ENERGETIC_KEYWORDS = (
    "energetic",
    "exciting",
    "lively",
    "thrilling",
    "dynamic",
    "vibrant",
    "buzzing",
    "electric",
    "intense",
    "wild",
    "crazy",
    "loud",
    "packed",
    "pumping",
    "high-energy",
    "fast-paced",
    "action-packed",
    "party",
)


def _pattern(words: tuple[str, ...]) -> re.Pattern[str]:
    alternatives = "|".join(re.escape(w) for w in sorted(words, key=len, reverse=True))
    return re.compile(rf"(?<![\w-])(?:{alternatives})(?![\w-])", re.IGNORECASE)


_CALM = _pattern(CALM_KEYWORDS)
_ENERGETIC = _pattern(ENERGETIC_KEYWORDS)


def keyword_mood_score(texts: list[str]) -> float:
    calm = 0
    energetic = 0
    for text in texts:
        if not text:
            continue
        calm += len(_CALM.findall(text))
        energetic += len(_ENERGETIC.findall(text))
    total = calm + energetic
    if total == 0:
        return 50.0
    return 50.0 + 50.0 * (energetic - calm) / total


class KeywordMoodAnalyzer:
    async def analyze_mood(self, review_texts: list[str]) -> float:
        return keyword_mood_score(review_texts)
