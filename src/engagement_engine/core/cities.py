"""Supported cities and their pricing tiers."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Final


class Tier(str, Enum):
    """Coarse city classification driving the revenue multiplier."""

    TIER1 = "tier1"
    TIER2 = "tier2"
    TIER3 = "tier3"


SUPPORTED_CITIES: Final[tuple[str, ...]] = (
    "Mumbai", "Delhi", "Bangalore", "Hyderabad", "Chennai", "Kolkata",
    "Pune", "Ahmedabad", "Jaipur", "Surat", "Lucknow", "Kanpur",
    "Nagpur", "Indore", "Thane", "Bhopal", "Visakhapatnam", "Pimpri",
    "Patna", "Vadodara", "Ghaziabad", "Ludhiana", "Agra", "Nashik",
    "Faridabad", "Meerut", "Rajkot", "Kalyan", "Vasai", "Varanasi",
    "Srinagar", "Aurangabad", "Dhanbad", "Amritsar", "Navi Mumbai",
    "Allahabad", "Ranchi", "Howrah", "Coimbatore", "Jabalpur",
)


@dataclass(frozen=True)
class CityTierTable:
    """Static city membership table for tiers and their multipliers.

    Cities not listed in tier1 or tier2 fall into tier3.
    """

    tier1: frozenset[str] = frozenset(
        {"Mumbai", "Delhi", "Bangalore", "Hyderabad", "Chennai", "Kolkata", "Pune"}
    )
    tier2: frozenset[str] = frozenset(
        {"Ahmedabad", "Jaipur", "Surat", "Lucknow", "Kanpur", "Nagpur", "Indore"}
    )
    multipliers: dict[Tier, Decimal] = field(
        default_factory=lambda: {
            Tier.TIER1: Decimal("1.5"),
            Tier.TIER2: Decimal("1.2"),
            Tier.TIER3: Decimal("1.0"),
        }
    )
    cities: tuple[str, ...] = SUPPORTED_CITIES

    def is_supported(self, city: str) -> bool:
        return city in self.cities

    def tier_for(self, city: str) -> Tier:
        if city in self.tier1:
            return Tier.TIER1
        if city in self.tier2:
            return Tier.TIER2
        return Tier.TIER3

    def multiplier_for(self, city: str) -> Decimal:
        return self.multipliers[self.tier_for(city)]

    def random_city(self, rng: random.Random | None = None) -> str:
        """Pick a city for posts submitted without one."""
        return (rng or random).choice(self.cities)


DEFAULT_CITY_TIERS: Final[CityTierTable] = CityTierTable()
