"""Keyword tag extraction used when the model returns no tags."""

from __future__ import annotations

import re
import string
from collections import Counter

STOPWORDS: frozenset[str] = frozenset(
    {
        "the", "and", "for", "are", "but", "not", "you", "all", "any", "can",
        "had", "her", "was", "one", "our", "out", "has", "have", "been", "from",
        "that", "this", "with", "they", "will", "would", "there", "their", "what",
        "about", "which", "when", "make", "like", "just", "over", "such", "into",
        "than", "them", "then", "some", "could", "also", "more", "most", "other",
        "after", "first", "new", "now", "how", "its", "who", "why", "may", "says",
        "said", "your", "very", "only", "these", "those", "while", "where",
        "people", "time", "year", "years", "day", "days", "today",
    }
)  # fmt: skip

# Characters to strip from word boundaries
_PUNCT_TABLE = str.maketrans("", "", string.punctuation)

_MIN_WORD_LEN = 3

# Title words receive this multiplier to their frequency score
_TITLE_WEIGHT = 3


def _tokenize(text: str) -> list[str]:
    text = re.sub(r"[\u00a0\u2003\u2002\t\r\n]+", " ", text)
    result: list[str] = []
    for raw in text.lower().split():
        word = raw.translate(_PUNCT_TABLE)
        if len(word) < _MIN_WORD_LEN or word.isdigit() or word in STOPWORDS:
            continue
        result.append(word)
    return result


def extract_tags(title: str, body: str, max_tags: int = 5) -> list[str]:
    """Return the most relevant keywords, title words weighted higher."""
    freq: Counter[str] = Counter()
    for token in _tokenize(title):
        freq[token] += _TITLE_WEIGHT
    for token in _tokenize(body):
        freq[token] += 1
    return [tag for tag, _count in freq.most_common(max_tags)]


def normalize_tags(raw: object, max_tags: int = 8) -> list[str]:
    """Clean a model-provided tag list; non-lists yield an empty list."""
    if not isinstance(raw, list):
        return []
    tags: list[str] = []
    for value in raw:
        tag = str(value).strip().lower().lstrip("#")
        if tag and tag not in tags:
            tags.append(tag)
    return tags[:max_tags]
