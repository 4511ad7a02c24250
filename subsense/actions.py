from __future__ import annotations

import math
from datetime import datetime
from typing import Callable, Iterable, List, NamedTuple, Optional

import structlog

from .models import (
    ActionItem,
    ActionType,
    BillingCycle,
    Importance,
    PotentialSavings,
    Priority,
    Subscription,
    SubscriptionStatus,
    UsageFrequency,
)

log = structlog.get_logger(__name__)

SnoozeCheck = Callable[[str], bool]

SECONDS_PER_DAY = 60 * 60 * 24
REMINDER_WINDOW_DAYS = 7
URGENT_TRIAL_DAYS = 3

HIGH_PRIORITY_CANCEL_COST = 30
RENEWAL_NOTICE_COST = 20
DOWNGRADE_MIN_COST = 40
REVIEW_SAVINGS_RATIO = 0.5

PRIORITY_RANK = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}


class DowngradeSuggestion(NamedTuple):
    suggestion: str
    savings: float


# Keyed by exact service name.
DOWNGRADE_SUGGESTIONS: dict[str, DowngradeSuggestion] = {
    "Adobe Creative Cloud": DowngradeSuggestion(
        "Downgrade to Photography Plan ($9.99/mo) if you only use Photoshop/Lightroom", 45
    ),
    "Microsoft 365": DowngradeSuggestion(
        "Consider Microsoft 365 Basic ($6/mo) if you don't need desktop apps", 7
    ),
    "Spotify": DowngradeSuggestion("Try Spotify Free with ads, or family plan to split costs", 5),
    "Netflix": DowngradeSuggestion("Downgrade to Standard plan or consider ad-supported tier", 7),
    "YouTube Premium": DowngradeSuggestion("Family plan splits cost among 6 members", 8),
    "Dropbox": DowngradeSuggestion("Use free tier (2GB) or switch to Google Drive (15GB free)", 12),
    "Zoom Pro": DowngradeSuggestion("Free tier allows 40-min meetings. Sufficient for most uses", 16),
    "Slack": DowngradeSuggestion(
        "Free tier keeps 90 days of messages. Often sufficient for small teams", 8
    ),
    "Notion": DowngradeSuggestion("Free personal plan is very generous. Evaluate team needs", 8),
    "Canva Pro": DowngradeSuggestion(
        "Free tier has many templates. Pro mainly adds brand kit features", 13
    ),
    "Grammarly": DowngradeSuggestion(
        "Free version catches most errors. Premium mainly for style/tone", 12
    ),
}

USAGE_LABELS = {
    UsageFrequency.DAILY: "Used daily",
    UsageFrequency.WEEKLY: "Used weekly",
    UsageFrequency.MONTHLY: "Used monthly",
    UsageFrequency.RARE: "Rarely used",
}

IMPORTANCE_LABELS = {
    Importance.HIGH: "marked as essential",
    Importance.MEDIUM: "moderate importance",
    Importance.LOW: "low importance",
}


def get_downgrade_suggestion(service_name: str) -> Optional[DowngradeSuggestion]:
    return DOWNGRADE_SUGGESTIONS.get(service_name)


def action_id(action_type: str, subscription_id: int) -> str:
    return f"{action_type}-{subscription_id}"


def days_until(moment: datetime, now: datetime) -> int:
    return math.ceil((moment - now).total_seconds() / SECONDS_PER_DAY)


def _plural_days(days: int) -> str:
    return f"{days} day{'' if days == 1 else 's'}"


def _cancel_item(sub: Subscription) -> ActionItem:
    return ActionItem(
        id=action_id("cancel", sub.id),
        subscription_id=sub.id,
        subscription_name=sub.name,
        type=ActionType.CANCEL,
        title=f"Cancel {sub.name}",
        description=(
            f"ROI score of {sub.roi_score}. "
            f"{USAGE_LABELS[sub.usage_frequency]}, {IMPORTANCE_LABELS[sub.importance]}."
        ),
        potential_savings=sub.monthly_cost,
        priority=Priority.HIGH if sub.monthly_cost > HIGH_PRIORITY_CANCEL_COST else Priority.MEDIUM,
    )


def _review_item(sub: Subscription) -> ActionItem:
    used = "Rarely" if sub.usage_frequency == UsageFrequency.RARE else "Only monthly"
    return ActionItem(
        id=action_id("review", sub.id),
        subscription_id=sub.id,
        subscription_name=sub.name,
        type=ActionType.REVIEW,
        title=f"Review {sub.name}",
        description=f"{used} used. Consider if you still need it.",
        potential_savings=sub.monthly_cost * REVIEW_SAVINGS_RATIO,
        priority=Priority.MEDIUM,
    )


def _trial_item(sub: Subscription, now: datetime) -> Optional[ActionItem]:
    days = days_until(sub.trial_end_date, now)
    if days > REMINDER_WINDOW_DAYS:
        return None
    if days > 0:
        return ActionItem(
            id=action_id("trial", sub.id),
            subscription_id=sub.id,
            subscription_name=sub.name,
            type=ActionType.TRIAL_ENDING,
            title=f"Trial ending: {sub.name}",
            description=f"Trial ends in {_plural_days(days)}. Decide if you want to keep it.",
            due_date=sub.trial_end_date,
            potential_savings=sub.monthly_cost,
            priority=Priority.HIGH if days <= URGENT_TRIAL_DAYS else Priority.MEDIUM,
        )
    return ActionItem(
        id=action_id("trial-expired", sub.id),
        subscription_id=sub.id,
        subscription_name=sub.name,
        type=ActionType.TRIAL_ENDING,
        title=f"Trial expired: {sub.name}",
        description="Trial has ended. You may be charged if you haven't canceled.",
        due_date=sub.trial_end_date,
        potential_savings=sub.monthly_cost,
        priority=Priority.HIGH,
    )


def _renewal_item(sub: Subscription, now: datetime) -> Optional[ActionItem]:
    days = days_until(sub.renewal_date, now)
    if not 0 < days <= REMINDER_WINDOW_DAYS:
        return None
    if sub.status == SubscriptionStatus.GOOD and sub.monthly_cost <= RENEWAL_NOTICE_COST:
        return None
    period = "/yr" if sub.billing_cycle == BillingCycle.ANNUAL else "/mo"
    return ActionItem(
        id=action_id("renewal", sub.id),
        subscription_id=sub.id,
        subscription_name=sub.name,
        type=ActionType.RENEWAL_REMINDER,
        title=f"{sub.name} renews soon",
        description=f"Renews in {_plural_days(days)} for ${sub.monthly_cost:.2f}{period}.",
        due_date=sub.renewal_date,
        priority=Priority.HIGH if sub.status == SubscriptionStatus.CUT else Priority.LOW,
    )


def _downgrade_item(sub: Subscription) -> Optional[ActionItem]:
    info = get_downgrade_suggestion(sub.name)
    if info is None:
        return None
    return ActionItem(
        id=action_id("downgrade", sub.id),
        subscription_id=sub.id,
        subscription_name=sub.name,
        type=ActionType.DOWNGRADE,
        title=f"Downgrade {sub.name}",
        description=info.suggestion,
        potential_savings=info.savings,
        priority=Priority.MEDIUM,
    )


def _items_for(sub: Subscription, now: datetime) -> Iterable[Optional[ActionItem]]:
    if sub.status == SubscriptionStatus.CUT:
        yield _cancel_item(sub)

    if sub.status == SubscriptionStatus.REVIEW and sub.usage_frequency in (
        UsageFrequency.RARE,
        UsageFrequency.MONTHLY,
    ):
        yield _review_item(sub)

    if sub.billing_cycle == BillingCycle.TRIAL and sub.trial_end_date:
        yield _trial_item(sub, now)

    if sub.renewal_date and sub.billing_cycle != BillingCycle.TRIAL:
        yield _renewal_item(sub, now)

    if sub.monthly_cost > DOWNGRADE_MIN_COST and sub.status == SubscriptionStatus.REVIEW:
        yield _downgrade_item(sub)


def _sort_key(item: ActionItem) -> tuple[int, float]:
    return PRIORITY_RANK[item.priority], -(item.potential_savings or 0)


def generate_action_items(
    subscriptions: Iterable[Subscription],
    now: datetime,
    is_snoozed: Optional[SnoozeCheck] = None,
) -> List[ActionItem]:
    """Build the prioritized action queue for a set of scored subscriptions.

    Each rule is evaluated independently per subscription. Items are ordered
    by priority, then by potential savings (largest first), and any item whose
    id is currently snoozed is dropped.

    ``trial_end_date``/``renewal_date`` must be comparable with ``now``
    (both naive or both timezone-aware).
    """
    actions = [item for sub in subscriptions for item in _items_for(sub, now) if item is not None]
    actions.sort(key=_sort_key)

    if is_snoozed is None:
        return actions
    visible = [item for item in actions if not is_snoozed(item.id)]
    log.debug("actions_generated", total=len(actions), snoozed=len(actions) - len(visible))
    return visible


def calculate_potential_savings(actions: Iterable[ActionItem]) -> PotentialSavings:
    monthly = sum(action.potential_savings or 0 for action in actions)
    return PotentialSavings(monthly=monthly, annual=monthly * 12)
