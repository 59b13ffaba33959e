"""Slug generation for category names."""
import hashlib
import re
import unicodedata

# Column width of ``categories.slug``.
SLUG_MAX_LENGTH = 120

_SLUG_STRIP_RE = re.compile(r"[^\w\s-]")
_SLUG_SPACE_RE = re.compile(r"[\s_]+")
_SLUG_DASH_RE = re.compile(r"-+")

_HASH_PREFIX = "c-"
_SUFFIX_LENGTH = 8


def _digest(text: str, length: int) -> str:
    return hashlib.sha1(text.encode("utf-8")).hexdigest()[:length]


def generate_slug(name: str) -> str:
    """
    Return the lookup slug for a category display name.

    The slug is lowercase and dash-separated.  ``\\w`` is Unicode-aware, so
    Hangul, CJK, Cyrillic and accented Latin letters survive unchanged after
    NFKC normalisation.  Case and whitespace are folded; any other
    character that has to be dropped ("C++", "Q&A") adds a short hash of the
    normalised name, so "C", "C++" and "C#" get distinct slugs.  Names that
    normalise to nothing (punctuation or emoji only) map to a stable hash,
    and slugs longer than ``SLUG_MAX_LENGTH`` are truncated with a hash
    suffix.
    """
    normalized = unicodedata.normalize("NFKC", name).strip().lower()
    stripped = _SLUG_STRIP_RE.sub("", normalized)
    slug = _SLUG_SPACE_RE.sub("-", stripped)
    slug = _SLUG_DASH_RE.sub("-", slug).strip("-")
    if not slug:
        return f"{_HASH_PREFIX}{_digest(normalized, 12)}"

    if stripped != normalized or len(slug) > SLUG_MAX_LENGTH:
        slug = slug[: SLUG_MAX_LENGTH - _SUFFIX_LENGTH - 1].rstrip("-")
        slug = f"{slug}-{_digest(normalized, _SUFFIX_LENGTH)}"
    return slug
