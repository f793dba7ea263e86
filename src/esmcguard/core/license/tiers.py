"""Tier ordering and access checks.

Tiers are opaque strings on disk; this module gives the known ones an
order so callers can ask whether a license grants at least a given tier.
"""

from __future__ import annotations

TIER_HIERARCHY: tuple[str, ...] = ("FREE", "PRO", "MAX", "VIP")


def tier_rank(tier: str | None) -> int:
    """Return the position of *tier* in ``TIER_HIERARCHY``.

    Matching is case-insensitive. Unknown or missing tiers rank -1, below
    FREE.
    """
    if not tier:
        return -1
    try:
        return TIER_HIERARCHY.index(tier.upper())
    except ValueError:
        return -1


def meets_tier(current: str | None, required: str) -> bool:
    """Return True if *current* is at or above *required*."""
    return tier_rank(current) >= tier_rank(required)
