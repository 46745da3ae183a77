"""Text normalization primitives shared by the parsers."""

from __future__ import annotations

import re
import unicodedata

_MULTISPACE_RE = re.compile(r"\s+")
_URL_RE = re.compile(r"https?://\S+|www\.\S+", re.IGNORECASE)
_EMAIL_RE = re.compile(r"[\w.+-]+@[\w-]+\.[\w.-]+")
_HANDLE_RE = re.compile(r"@\S+")
_HASHTAG_RE = re.compile(r"#\w+")
_SPECIAL_FOLDS = str.maketrans({"ı": "i", "İ": "i", "ø": "o", "ł": "l", "’": "'"})


def fold_text(value: str) -> str:
    """Lowercase and strip diacritics so "Yarın" and "yarin" compare equal."""

    decomposed = unicodedata.normalize("NFKD", value.translate(_SPECIAL_FOLDS))
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.lower()


def condense_whitespace(value: str) -> str:
    return _MULTISPACE_RE.sub(" ", value).strip()


def strip_links(value: str) -> str:
    """Remove URLs, emails, @handles and #hashtags."""

    cleaned = _URL_RE.sub(" ", value)
    cleaned = _EMAIL_RE.sub(" ", cleaned)
    cleaned = _HANDLE_RE.sub(" ", cleaned)
    return _HASHTAG_RE.sub(" ", cleaned)


def slugify(value: str) -> str:
    """Lowercase, join alphanumeric runs with single underscores."""

    components: list[str] = []
    current: list[str] = []
    for ch in value.lower():
        if ch.isalnum():
            current.append(ch)
        elif current:
            components.append("".join(current))
            current = []
    if current:
        components.append("".join(current))
    return "_".join(components)


def capitalize_words(value: str) -> str:
    """Uppercase the first letter of every whitespace-separated word."""

    return " ".join(word[:1].upper() + word[1:].lower() for word in value.split())


def humanize_slug(value: str) -> str:
    return capitalize_words(value.replace("_", " ").strip())
