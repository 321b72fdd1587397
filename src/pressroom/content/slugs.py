"""URL slugs for localized titles.

Norwegian letters and Ukrainian Cyrillic are transliterated to ASCII so
every language variant gets a readable slug.  The first eight characters
of the item id are appended to keep slugs unique across items.
"""

from __future__ import annotations

import re

MAX_SLUG_LENGTH = 80

_NORWEGIAN = {
    "æ": "ae",
    "ø": "oe",
    "å": "aa",
    "é": "e",
    "ö": "o",
    "ä": "a",
    "ü": "u",
}

_UKRAINIAN = {
    "а": "a", "б": "b", "в": "v", "г": "h", "ґ": "g", "д": "d", "е": "e",
    "є": "ye", "ж": "zh", "з": "z", "и": "y", "і": "i", "ї": "yi", "й": "y",
    "к": "k", "л": "l", "м": "m", "н": "n", "о": "o", "п": "p", "р": "r",
    "с": "s", "т": "t", "у": "u", "ф": "f", "х": "kh", "ц": "ts", "ч": "ch",
    "ш": "sh", "щ": "shch", "ь": "", "ю": "yu", "я": "ya", "ъ": "",
}  # fmt: skip

_TRANSLIT = str.maketrans({**_NORWEGIAN, **_UKRAINIAN})


def transliterate(text: str) -> str:
    return text.lower().translate(_TRANSLIT)


def slugify(title: str, item_id: str = "") -> str:
    """Build a slug from ``title``, suffixed with ``item_id[:8]`` when given."""
    text = transliterate(title)
    text = re.sub(r"[^a-z0-9\s-]", "", text)
    text = re.sub(r"\s+", "-", text)
    text = re.sub(r"-+", "-", text).strip("-")
    text = text[:MAX_SLUG_LENGTH].rstrip("-")
    suffix = item_id[:8]
    if not text:
        return suffix
    return f"{text}-{suffix}" if suffix else text
