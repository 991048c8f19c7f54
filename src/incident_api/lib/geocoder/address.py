"""Cache-key normalization, unusable-address rejection and block-address reduction.

Incident feeds redact exact house numbers as block ranges
(``"2600 *** BLOCK AMANDA AV"``) and sometimes publish placeholders instead
of a street. Only enough parsing is done here to key the cache, to refuse
obviously unusable input, and to turn a block range into something a
street-level geocoder can match.
"""

import re

CACHE_KEY_PREFIX = "geocode:"
MIN_ADDRESS_LENGTH = 5

# Whole-value placeholders published instead of a street address
_PLACEHOLDERS: frozenset[str] = frozenset(
    {
        "unknown",
        "unk",
        "confidential",
        "address withheld",
        "withheld",
        "undefined",
        "n/a",
        "na",
        "none",
        "null",
    }
)

# Placeholder words that make an address unusable wherever they appear
_PLACEHOLDER_FRAGMENTS = re.compile(r"\b(?:confidential|withheld|undefined)\b", re.IGNORECASE)

# "2600 *** BLOCK AMANDA AV", "100 BLOCK MAIN ST"
_BLOCK_PATTERN = re.compile(r"(\d+)\s+(?:\*+\s+)?BLOCK\b\s*(.*)", re.IGNORECASE)

# A block marker with nothing after it, with or without a block number
_BARE_BLOCK_PATTERN = re.compile(r"^[\d\s*]*BLOCK$", re.IGNORECASE)

_WHITESPACE = re.compile(r"\s+")


def collapse_whitespace(value: str | None) -> str:
    """Trim and collapse internal whitespace runs to single spaces."""
    if not value:
        return ""
    return _WHITESPACE.sub(" ", value).strip()


def normalize_cache_component(value: str | None) -> str:
    """Case-fold and whitespace-collapse one component of a cache key."""
    return collapse_whitespace(value).casefold()


def make_cache_key(raw_address: str, area: str | None) -> str:
    """Build the deterministic cache key for an address.

    Station is deliberately not part of the key: it only biases provider
    queries, it does not change which physical address is being resolved.

    Args:
        raw_address: Address as published by the feed.
        area: Optional area/city the address belongs to.

    Returns:
        ``"<normalized address>|<normalized area>"``.
    """
    return f"{normalize_cache_component(raw_address)}|{normalize_cache_component(area)}"


def parse_block_address(address: str) -> str | None:
    """Reduce a block-range address to ``"<block number> <street>"``.

    Args:
        address: Raw address string.

    Returns:
        The reduced address, ``""`` for a block marker with no street name,
        or None if the address is not a block address.
    """
    match = _BLOCK_PATTERN.search(address)
    if not match:
        return None
    street = collapse_whitespace(match.group(2))
    if not street:
        return ""
    return f"{match.group(1)} {street}"


def rejection_reason(raw_address: str | None) -> str | None:
    """Explain why an address cannot be geocoded, or return None if it can.

    Args:
        raw_address: Address as published by the feed.

    Returns:
        A short reason string for unusable input, else None.
    """
    address = collapse_whitespace(raw_address)
    if not address:
        return "empty address"
    if len(address) < MIN_ADDRESS_LENGTH:
        return f"address shorter than {MIN_ADDRESS_LENGTH} characters"
    lowered = address.casefold()
    if lowered in _PLACEHOLDERS or _PLACEHOLDER_FRAGMENTS.search(lowered):
        return "placeholder address"
    if _BARE_BLOCK_PATTERN.match(address) or parse_block_address(address) == "":
        return "block marker without a street name"
    return None


def is_usable_address(raw_address: str | None) -> bool:
    """Whether an address is worth sending to a geocoding provider."""
    return rejection_reason(raw_address) is None


def join_query(*parts: str | None) -> str:
    """Join non-empty query parts with ``", "``."""
    return ", ".join(p for p in (collapse_whitespace(part) for part in parts) if p)
