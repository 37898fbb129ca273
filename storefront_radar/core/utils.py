"""
Shared utilities.
"""
import re
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp (the catalog stores naive UTC everywhere)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def collapse_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


def title_case(name: str) -> str:
    """'palo alto' -> 'Palo Alto'"""
    return " ".join(word[:1].upper() + word[1:].lower() for word in name.split())


def clean_store_name(text: str, max_length: int = 100) -> str:
    """
    Clean a store name taken from a page title or heading.
    """
    if not text:
        return ""

    return collapse_whitespace(text)[:max_length].strip()
