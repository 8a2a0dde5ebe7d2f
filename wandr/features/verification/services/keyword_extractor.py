"""
Keyword extraction for upload-mode candidate search.

Turns the oracle's free-text description of a photo into search terms for the
catalog. Pure string heuristics, no NLP: the same description always yields
the same keywords in the same order.
"""

import re

PLACE_TYPES = (
    "museum",
    "park",
    "landmark",
    "beach",
    "temple",
    "church",
    "cathedral",
    "palace",
    "castle",
    "tower",
    "bridge",
    "monument",
    "statue",
    "garden",
    "market",
    "square",
    "plaza",
    "mosque",
    "shrine",
    "gallery",
)

KNOWN_PLACES = (
    "paris",
    "london",
    "rome",
    "tokyo",
    "new york",
    "barcelona",
    "dubai",
    "cairo",
    "sydney",
    "beijing",
    "venice",
    "florence",
    "madrid",
    "amsterdam",
    "berlin",
    "vienna",
    "prague",
    "budapest",
    "istanbul",
    "bangkok",
    "singapore",
    "hong kong",
    "seoul",
    "mumbai",
    "delhi",
    "agra",
    "marrakech",
    "cape town",
    "rio",
    "machu picchu",
    "petra",
    "jerusalem",
    "athens",
    "santorini",
)

EXCLUDED_PROPER_NOUNS = frozenset({"The", "This", "That", "These", "There"})
MIN_PROPER_NOUN_LENGTH = 4

_KNOWN_PLACES_PATTERN = re.compile(
    r"\b(" + "|".join(re.escape(place) for place in KNOWN_PLACES) + r")\b",
    re.IGNORECASE,
)
_PROPER_NOUN_PATTERN = re.compile(r"[A-Z][a-z]+(?:\s[A-Z][a-z]+)*")


def extract_keywords(description: str) -> list[str]:
    """
    Extract lowercase, de-duplicated search keywords from an image description.

    Sources, in output order:
        1. place-type nouns found anywhere in the text (substring match)
        2. well-known city/country names (word-boundary match)
        3. capitalized word runs longer than three characters, excluding
           demonstratives such as "The" or "This"

    Returns:
        Keywords in first-seen order (an ordered set).
    """
    if not description:
        return []

    lowered = description.lower()

    place_types = [place_type for place_type in PLACE_TYPES if place_type in lowered]
    known_places = _KNOWN_PLACES_PATTERN.findall(description)
    proper_nouns = [
        noun
        for noun in _PROPER_NOUN_PATTERN.findall(description)
        if len(noun) >= MIN_PROPER_NOUN_LENGTH and noun not in EXCLUDED_PROPER_NOUNS
    ]

    keywords: dict[str, None] = {}
    for keyword in (*place_types, *known_places, *proper_nouns):
        keywords.setdefault(keyword.casefold(), None)
    return list(keywords)


def build_search_query(keywords: list[str], max_keywords: int = 5) -> str:
    """Join the leading keywords into a catalog search string."""
    return " ".join(keywords[:max_keywords])
