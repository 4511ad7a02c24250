from __future__ import annotations

from enum import Enum
from typing import NamedTuple, Optional


class Category(str, Enum):
    """Known subscription categories. ``OTHER`` doubles as the fallback for unlisted names."""

    BUSINESS = "Business"
    COMMUNICATION = "Communication"
    DESIGN = "Design"
    DEVELOPMENT = "Development"
    EDUCATION = "Education"
    ENTERTAINMENT = "Entertainment"
    FINANCE = "Finance"
    MARKETING = "Marketing"
    PRODUCTIVITY = "Productivity"
    SECURITY = "Security"
    WRITING = "Writing"
    OTHER = "Other"

    @classmethod
    def from_name(cls, name: Optional[str]) -> "Category":
        # Exact match only; "productivity" is not "Productivity".
        try:
            return cls(name)
        except ValueError:
            return cls.OTHER


class CostExpectations(NamedTuple):
    typical: float
    high: float


class CategoryProfile(NamedTuple):
    value_multiplier: float
    cost_expectations: CostExpectations
    lock_in_factor: float


# value multiplier, (typical, high) monthly USD, lock-in factor
CATEGORY_PROFILES: dict[Category, CategoryProfile] = {
    Category.DEVELOPMENT: CategoryProfile(1.4, CostExpectations(50, 200), 0.75),
    Category.PRODUCTIVITY: CategoryProfile(1.3, CostExpectations(15, 50), 0.7),
    Category.SECURITY: CategoryProfile(1.3, CostExpectations(20, 100), 0.8),
    Category.BUSINESS: CategoryProfile(1.25, CostExpectations(30, 150), 0.85),
    Category.COMMUNICATION: CategoryProfile(1.2, CostExpectations(12, 40), 0.9),
    Category.FINANCE: CategoryProfile(1.2, CostExpectations(25, 100), 0.85),
    Category.EDUCATION: CategoryProfile(1.15, CostExpectations(30, 100), 0.5),
    Category.DESIGN: CategoryProfile(1.15, CostExpectations(30, 100), 0.7),
    Category.MARKETING: CategoryProfile(1.1, CostExpectations(100, 500), 0.65),
    Category.WRITING: CategoryProfile(1.1, CostExpectations(20, 50), 0.6),
    Category.ENTERTAINMENT: CategoryProfile(0.85, CostExpectations(15, 35), 0.4),
    Category.OTHER: CategoryProfile(1.0, CostExpectations(20, 60), 0.6),
}

PRIMARY_CATEGORY_WEIGHT = 0.7
SECONDARY_CATEGORY_WEIGHT = 0.3


def category_profile(name: Optional[str]) -> CategoryProfile:
    return CATEGORY_PROFILES[Category.from_name(name)]


def _mix(primary: float, secondary: float) -> float:
    return primary * PRIMARY_CATEGORY_WEIGHT + secondary * SECONDARY_CATEGORY_WEIGHT


def blend(primary_category: str, secondary_category: Optional[str] = None) -> CategoryProfile:
    """Combine category constants for a subscription that serves two purposes.

    Without a secondary category the primary profile is returned untouched.
    Otherwise each attribute is weighted 70/30 toward the primary category.
    """
    primary = category_profile(primary_category)
    if not secondary_category:
        return primary

    secondary = category_profile(secondary_category)
    return CategoryProfile(
        value_multiplier=_mix(primary.value_multiplier, secondary.value_multiplier),
        cost_expectations=CostExpectations(
            typical=_mix(primary.cost_expectations.typical, secondary.cost_expectations.typical),
            high=_mix(primary.cost_expectations.high, secondary.cost_expectations.high),
        ),
        lock_in_factor=_mix(primary.lock_in_factor, secondary.lock_in_factor),
    )
