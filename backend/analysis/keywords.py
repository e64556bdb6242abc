from __future__ import annotations

import re
from collections import Counter

_NON_WORD_RE = re.compile(r"[^\w\s]")

STOP_WORDS: frozenset[str] = frozenset({
    "this", "that", "with", "from", "they", "have", "more", "will", "been",
    "were", "said", "each", "which", "their", "time", "very", "when", "much",
    "just", "there", "what", "your", "would", "make", "like", "into", "them",
    "these", "some", "other", "about", "many", "then", "word",
})


def _words(text: str) -> list[str]:
    return [w for w in _NON_WORD_RE.sub(" ", text.lower()).split() if len(w) > 3]


def extract_keywords(text: str, limit: int = 10) -> list[str]:
    """First ``limit`` distinct non-stop-words of a description."""
    if not text:
        return []
    result: list[str] = []
    for word in _words(text):
        if word not in STOP_WORDS and word not in result:
            result.append(word)
            if len(result) == limit:
                break
    return result


def extract_competitor_keywords(descriptions: list[str], limit: int = 15) -> list[str]:
    """Most frequent words across competitor descriptions."""
    counter: Counter[str] = Counter()
    for desc in descriptions:
        counter.update(_words(desc))
    return [word for word, _ in counter.most_common(limit)]
