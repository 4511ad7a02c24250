"""ROI scoring for subscriptions.

The score is a weighted combination of four sub-scores, each 0-100:

- Usage Value (40%): value extracted from usage, importance and category
- Cost Efficiency (35%): value for money against category price norms
- Replacement Risk (15%): how hard the tool would be to replace
- Cancellation Friction (10%): how disruptive cancelling would be

Prices are first normalized to a monthly, per-user figure. A secondary
category blends the category constants 70/30 (see ``categories.blend``).
Everything here is a pure function of its arguments.
"""

from __future__ import annotations

import math
from typing import Any, Optional

import structlog

from .categories import blend
from .models import (
    BillingCycle,
    CancellationFriction,
    Importance,
    Recommendation,
    ScoreBreakdown,
    SubscriptionStatus,
    UsageFrequency,
    UsageScope,
)

log = structlog.get_logger(__name__)

USAGE_BASE: dict[UsageFrequency, int] = {
    UsageFrequency.DAILY: 100,
    UsageFrequency.WEEKLY: 70,
    UsageFrequency.MONTHLY: 40,
    UsageFrequency.RARE: 15,
}

IMPORTANCE_MULTIPLIERS: dict[Importance, float] = {
    Importance.HIGH: 1.0,
    Importance.MEDIUM: 0.75,
    Importance.LOW: 0.5,
}

CANCELLATION_FRICTION_SCORES: dict[CancellationFriction, int] = {
    CancellationFriction.EASY: 20,
    CancellationFriction.MODERATE: 60,
    CancellationFriction.PAINFUL: 100,
}

# Assumed number of people splitting the bill.
USAGE_SCOPE_USERS: dict[UsageScope, int] = {
    UsageScope.PERSONAL: 1,
    UsageScope.TEAM: 3,
    UsageScope.FAMILY: 2,
}

BILLING_CYCLE_MONTHS: dict[BillingCycle, int] = {
    BillingCycle.MONTHLY: 1,
    BillingCycle.QUARTERLY: 3,
    BillingCycle.ANNUAL: 12,
}

WEIGHT_USAGE_VALUE = 0.40
WEIGHT_COST_EFFICIENCY = 0.35
WEIGHT_REPLACEMENT_RISK = 0.15
WEIGHT_CANCELLATION_FRICTION = 0.10

TRIAL_DAMPENING = 0.75

# Shared by status and recommendation.
GOOD_THRESHOLD = 75
REVIEW_THRESHOLD = 40


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp(value: float, low: float = 0, high: float = 100) -> float:
    return max(low, min(high, value))


def normalize_to_monthly_cost(raw_cost: float, billing_cycle: BillingCycle) -> float:
    if billing_cycle == BillingCycle.TRIAL:
        return 0.0
    return raw_cost / BILLING_CYCLE_MONTHS[billing_cycle]


def adjust_for_usage_scope(monthly_cost: float, usage_scope: UsageScope) -> float:
    return monthly_cost / USAGE_SCOPE_USERS[usage_scope]


def effective_monthly_cost(
    raw_cost: float,
    billing_cycle: BillingCycle = BillingCycle.MONTHLY,
    usage_scope: UsageScope = UsageScope.PERSONAL,
) -> float:
    return adjust_for_usage_scope(normalize_to_monthly_cost(raw_cost, billing_cycle), usage_scope)


def generate_breakdown(
    usage_frequency: UsageFrequency,
    importance: Importance,
    raw_cost: float,
    category: str = "Other",
    secondary_category: Optional[str] = None,
    billing_cycle: BillingCycle = BillingCycle.MONTHLY,
    usage_scope: UsageScope = UsageScope.PERSONAL,
    friction_override: Optional[CancellationFriction] = None,
) -> ScoreBreakdown:
    cost = effective_monthly_cost(raw_cost, billing_cycle, usage_scope)
    profile = blend(category, secondary_category)

    usage_base = USAGE_BASE[usage_frequency]
    importance_multiplier = IMPORTANCE_MULTIPLIERS[importance]

    usage_value = min(100, round_half_up(usage_base * importance_multiplier * profile.value_multiplier))

    # The same price is easier to justify the more value is being extracted.
    cost_position = min(100, cost / profile.cost_expectations.high * 100)
    value_extracted = usage_base * importance_multiplier
    cost_burden = cost_position * (1 - value_extracted / 150)
    cost_efficiency = int(_clamp(round_half_up(100 - cost_burden)))

    replacement_risk = round_half_up(importance_multiplier * 100 * profile.lock_in_factor)

    if friction_override is not None:
        friction = CANCELLATION_FRICTION_SCORES[friction_override]
    else:
        friction = min(100, round_half_up(importance_multiplier * 55 + (usage_base / 100) * 45))

    return ScoreBreakdown(
        usage_value=usage_value,
        cost_efficiency=cost_efficiency,
        replacement_risk=replacement_risk,
        cancellation_friction=friction,
    )


def calculate_roi_score(
    usage_frequency: UsageFrequency,
    importance: Importance,
    raw_cost: float,
    category: str = "Other",
    secondary_category: Optional[str] = None,
    billing_cycle: BillingCycle = BillingCycle.MONTHLY,
    usage_scope: UsageScope = UsageScope.PERSONAL,
    friction_override: Optional[CancellationFriction] = None,
) -> int:
    breakdown = generate_breakdown(
        usage_frequency,
        importance,
        raw_cost,
        category,
        secondary_category,
        billing_cycle,
        usage_scope,
        friction_override,
    )
    roi = (
        breakdown.usage_value * WEIGHT_USAGE_VALUE
        + breakdown.cost_efficiency * WEIGHT_COST_EFFICIENCY
        + breakdown.replacement_risk * WEIGHT_REPLACEMENT_RISK
        + breakdown.cancellation_friction * WEIGHT_CANCELLATION_FRICTION
    )
    if billing_cycle == BillingCycle.TRIAL:
        roi *= TRIAL_DAMPENING

    score = round_half_up(_clamp(roi))
    log.debug("roi_scored", score=score, **breakdown.model_dump())
    return score


def get_status_from_score(score: int) -> SubscriptionStatus:
    if score >= GOOD_THRESHOLD:
        return SubscriptionStatus.GOOD
    if score >= REVIEW_THRESHOLD:
        return SubscriptionStatus.REVIEW
    return SubscriptionStatus.CUT


def get_recommendation(score: int) -> Recommendation:
    if score >= GOOD_THRESHOLD:
        return Recommendation.KEEP
    if score >= REVIEW_THRESHOLD:
        return Recommendation.DOWNGRADE
    return Recommendation.CANCEL


def _scoring_args(record: Any) -> tuple:
    return (
        record.usage_frequency,
        record.importance,
        record.monthly_cost,
        record.category,
        record.secondary_category,
        record.billing_cycle,
        record.usage_scope,
        record.cancellation_friction,
    )


def score_subscription(record: Any) -> tuple[int, SubscriptionStatus]:
    """Return the ``(roi_score, status)`` pair to persist alongside ``record``.

    ``record`` is anything carrying the scoring attributes of a subscription.
    """
    score = calculate_roi_score(*_scoring_args(record))
    return score, get_status_from_score(score)


def breakdown_for(record: Any) -> ScoreBreakdown:
    return generate_breakdown(*_scoring_args(record))


def explain_score(
    usage_frequency: UsageFrequency,
    importance: Importance,
    raw_cost: float,
    category: str = "Other",
    secondary_category: Optional[str] = None,
    billing_cycle: BillingCycle = BillingCycle.MONTHLY,
    usage_scope: UsageScope = UsageScope.PERSONAL,
    friction_override: Optional[CancellationFriction] = None,
) -> list[str]:
    breakdown = generate_breakdown(
        usage_frequency,
        importance,
        raw_cost,
        category,
        secondary_category,
        billing_cycle,
        usage_scope,
        friction_override,
    )
    expectations = blend(category, secondary_category).cost_expectations
    cost = effective_monthly_cost(raw_cost, billing_cycle, usage_scope)
    explanations: list[str] = []

    if breakdown.usage_value >= 80:
        explanations.append("High value extraction from frequent, important use")
    elif breakdown.usage_value >= 50:
        explanations.append("Moderate value - used regularly but room for more")
    else:
        explanations.append("Low value extraction - underutilized for its potential")

    label = f"{category}/{secondary_category}" if secondary_category else category
    if cost > expectations.high:
        explanations.append(
            f"Premium priced for {label} (typical: ${round_half_up(expectations.typical)}/mo)"
        )
    elif cost < expectations.typical * 0.5:
        explanations.append("Budget-friendly for its category")

    if breakdown.cost_efficiency >= 70:
        explanations.append("Good value for money given your usage")
    elif breakdown.cost_efficiency < 40:
        explanations.append("Cost may not be justified by current usage")

    if breakdown.replacement_risk >= 70:
        explanations.append("Difficult to replace - high switching costs")
    elif breakdown.replacement_risk < 40:
        explanations.append("Easy to find alternatives if needed")

    return explanations


def explain_subscription(record: Any) -> list[str]:
    return explain_score(*_scoring_args(record))
