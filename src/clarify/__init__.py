"""
Clarify Package

- chips: TTL-cached "refine this goal" chip contract with localized fallbacks
"""

from src.clarify.chips import (
    ClarifyChipsService,
    build_fallback,
    cache_key,
    chips_cache,
    normalize_intent,
)

__all__ = [
    "ClarifyChipsService",
    "build_fallback",
    "cache_key",
    "chips_cache",
    "normalize_intent",
]
