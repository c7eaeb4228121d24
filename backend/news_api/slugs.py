import re
from typing import Optional

_DISALLOWED = re.compile(r"[^\w\s-]", flags=re.ASCII)
_SEPARATORS = re.compile(r"[\s_-]+", flags=re.ASCII)
_EDGE_HYPHENS = re.compile(r"^-+|-+$")


def slugify(text: str, max_length: Optional[int] = None) -> str:
    """
    Turn free text into a URL-safe slug.

    >>> slugify("Breaking Tech News!")
    'breaking-tech-news'
    >>> slugify("  Multi   Space--Title ")
    'multi-space-title'
    """
    slug = text.lower().strip()
    slug = _DISALLOWED.sub("", slug)
    slug = _SEPARATORS.sub("-", slug)
    slug = _EDGE_HYPHENS.sub("", slug)
    if max_length is not None:
        slug = slug[:max_length]
    return slug
