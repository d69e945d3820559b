"""
Role Tier Module
================

Explicit power ranking among roles.

A role's tier is computed once, when the role is created, from the
configured tier role names. Authorization rules branch on the tier
instead of comparing role names.
"""

from enum import Enum
from typing import Iterable

from portal.core.config import get_settings


class Tier(str, Enum):
    """
    Role tiers, from most to least powerful.
    """

    TOP = "TOP"
    ELEVATED = "ELEVATED"
    STANDARD = "STANDARD"

    @property
    def rank(self) -> int:
        """Higher rank = more power."""
        return TIER_RANKS[self]

    def outranks(self, other: "Tier") -> bool:
        return self.rank > other.rank

    @property
    def is_protected(self) -> bool:
        """Roles of a protected tier may only be granted or revoked by the top tier."""
        return self in (Tier.TOP, Tier.ELEVATED)


TIER_RANKS: dict[Tier, int] = {
    Tier.STANDARD: 0,
    Tier.ELEVATED: 1,
    Tier.TOP: 2,
}


def tier_for_role_name(name: str) -> Tier:
    """
    Compute the tier for a role name.

    Args:
        name: Role name

    Returns:
        TOP or ELEVATED for the configured tier role names, STANDARD otherwise
    """
    settings = get_settings()
    if name == settings.TOP_TIER_ROLE:
        return Tier.TOP
    if name == settings.ELEVATED_TIER_ROLE:
        return Tier.ELEVATED
    return Tier.STANDARD


def highest_tier(tiers: Iterable[Tier]) -> Tier:
    """Return the most powerful tier, STANDARD for an empty iterable."""
    return max(tiers, key=lambda tier: tier.rank, default=Tier.STANDARD)
