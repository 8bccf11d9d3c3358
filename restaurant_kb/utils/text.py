"""
Text helpers: slug generation and whitespace cleanup.
"""

import re
import unicodedata


def slugify(text: str, max_length: int = 0) -> str:
    """
    Convert text to a URL-safe slug.

    Diacritics are folded to ASCII (``Ängelholm`` -> ``angelholm``), anything
    that is not a letter or digit becomes a single hyphen.

    Args:
        text: Input text
        max_length: Truncate the slug to this many characters (0 = no limit)

    Returns:
        Lowercase slug, possibly empty
    """
    if not text:
        return ""

    folded = unicodedata.normalize('NFKD', str(text))
    folded = folded.encode('ascii', 'ignore').decode('ascii').lower()
    slug = re.sub(r'[^a-z0-9]+', '-', folded).strip('-')

    if max_length and len(slug) > max_length:
        slug = slug[:max_length].rstrip('-')
    return slug


def collapse_whitespace(text: str) -> str:
    """Collapse runs of spaces and tabs while keeping line breaks"""
    lines = [re.sub(r'[ \t\xa0]+', ' ', line).strip() for line in text.splitlines()]
    return "\n".join(line for line in lines if line)
