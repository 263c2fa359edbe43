"""Embedding Text Generator - Generate canonical text for embedding.

Provides deterministic text generation from item, shop and category fields.
Titles and names are repeated to weigh them more heavily than descriptions,
and each tag is repeated after the tag list for the same reason.
"""

import hashlib
from typing import Iterable, Optional

DESCRIPTION_PREVIEW_CHARS = 500


def _present(value: Optional[str]) -> bool:
    return value is not None and bool(value.strip())


def generate_item_text(
    title: Optional[str],
    description: Optional[str] = None,
    tags: Optional[Iterable[str]] = None,
    category_name: Optional[str] = None,
) -> str:
    """Generate canonical embedding text for an item.

    Format:
        {title}. {title}. Category: {category}. Tags: {a}, {b}. {a}. {b}. {description[:500]}...

    Args:
        title: Item title
        description: Item description (optional, cut to 500 chars)
        tags: Item tags (optional)
        category_name: Name of the item's category (optional)

    Returns:
        Canonical text, empty string when every field is empty

    Example:
        >>> generate_item_text("Oak table", "Solid wood", ["wood", "oak"], "Furniture")
        'Oak table. Oak table. Category: Furniture. Tags: wood, oak. wood. oak. Solid wood'
    """
    parts = []

    if _present(title):
        parts.append(f"{title.strip()}. {title.strip()}. ")

    if _present(category_name):
        parts.append(f"Category: {category_name.strip()}. ")

    tag_list = [t.strip() for t in (tags or []) if _present(t)]
    if tag_list:
        parts.append(f"Tags: {', '.join(tag_list)}. ")
        for tag in tag_list:
            parts.append(f"{tag}. ")

    if _present(description):
        desc = description.strip()
        if len(desc) > DESCRIPTION_PREVIEW_CHARS:
            desc = desc[:DESCRIPTION_PREVIEW_CHARS] + "..."
        parts.append(desc)

    return "".join(parts).strip()


def generate_shop_text(
    name: Optional[str],
    description: Optional[str] = None,
    owner_name: Optional[str] = None,
) -> str:
    """Generate canonical embedding text for a shop.

    Format:
        {name}. {name}. {description}. Owner: {owner_name}
    """
    parts = []

    if _present(name):
        parts.append(f"{name.strip()}. {name.strip()}. ")

    if _present(description):
        parts.append(f"{description.strip()}. ")

    if _present(owner_name):
        parts.append(f"Owner: {owner_name.strip()}")

    return "".join(parts).strip()


def generate_category_text(name: Optional[str], slug: Optional[str] = None) -> str:
    """Generate canonical embedding text for a category: name twice, then its slug."""
    parts = []

    if _present(name):
        parts.append(f"{name.strip()}. {name.strip()}. ")

    if _present(slug):
        parts.append(f"Type: {slug.strip()}")

    return "".join(parts).strip()


def calculate_text_hash(text: str) -> str:
    """Calculate SHA256 hash of text.

    Returns:
        SHA256 hex digest (64 characters)
    """
    return hashlib.sha256(text.encode('utf-8')).hexdigest()


def truncate_text_for_embedding(text: str, max_chars: int = 8000) -> str:
    """Truncate text to at most max_chars, keeping the beginning."""
    if len(text) <= max_chars:
        return text
    return text[:max_chars]
