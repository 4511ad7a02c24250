from __future__ import annotations

from datetime import datetime, timezone

import pytest

from subsense.models import (
    CancelLinkSource,
    ConfidenceLevel,
    FeedbackResult,
    FeedbackStats,
    Importance,
    Subscription,
    SubscriptionStatus,
    UsageFrequency,
    Vendor,
    VendorFeedback,
)
from subsense.vendors import (
    calculate_vendor_confidence,
    get_cancel_link,
    get_confidence_description,
    get_confidence_label,
    search_cancel_url,
    should_prompt_feedback,
    tally_feedback,
)

NOW = datetime(2026, 3, 10, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "success, fail, skip, expected",
    [
        (0, 0, 0, ConfidenceLevel.LOW),
        (1, 1, 0, ConfidenceLevel.LOW),
        (2, 0, 40, ConfidenceLevel.LOW),
        (3, 0, 0, ConfidenceLevel.MEDIUM),
        (4, 0, 0, ConfidenceLevel.MEDIUM),
        (4, 1, 0, ConfidenceLevel.HIGH),
        (5, 0, 9, ConfidenceLevel.HIGH),
        (3, 2, 0, ConfidenceLevel.MEDIUM),
        (7, 3, 0, ConfidenceLevel.MEDIUM),
        (2, 2, 0, ConfidenceLevel.LOW),
        (1, 2, 10, ConfidenceLevel.LOW),
    ],
)
def test_calculate_vendor_confidence(success, fail, skip, expected):
    stats = FeedbackStats(success_count=success, fail_count=fail, skip_count=skip)
    assert calculate_vendor_confidence(stats) is expected


def test_tally_feedback_counts_each_outcome():
    results = [FeedbackResult.SUCCESS] * 3 + [FeedbackResult.FAIL] + [FeedbackResult.SKIP] * 2
    feedback = [
        VendorFeedback(vendor_id=1, user_id=f"user-{i}", result=result, created_at=NOW)
        for i, result in enumerate(results)
    ]
    assert tally_feedback(feedback) == FeedbackStats(success_count=3, fail_count=1, skip_count=2)


def test_confidence_labels():
    assert get_confidence_label(ConfidenceLevel.HIGH) == "Verified"
    assert get_confidence_label(ConfidenceLevel.MEDIUM) == "Suggested"
    assert get_confidence_label(ConfidenceLevel.LOW) == "Unverified"
    assert get_confidence_description(ConfidenceLevel.LOW) == "This link has not been verified yet"


def make_subscription(**overrides) -> Subscription:
    fields = {
        "id": 7,
        "user_id": "tester",
        "name": "Disney+",
        "category": "Entertainment",
        "monthly_cost": 13.99,
        "usage_frequency": UsageFrequency.WEEKLY,
        "importance": Importance.LOW,
        "roi_score": 50,
        "status": SubscriptionStatus.REVIEW,
        "created_at": NOW,
    }
    fields.update(overrides)
    return Subscription(**fields)


def make_vendor(**overrides) -> Vendor:
    fields = {
        "id": 3,
        "name": "Disney+",
        "domain": "disneyplus.com",
        "billing_url": "https://www.disneyplus.com/account",
        "cancel_help_url": "https://help.disneyplus.com/cancel",
        "confidence": ConfidenceLevel.MEDIUM,
        "last_verified_at": NOW,
        "created_at": NOW,
        "updated_at": NOW,
    }
    fields.update(overrides)
    return Vendor(**fields)


def test_user_link_wins_and_skips_feedback():
    link = get_cancel_link(make_subscription(cancel_url="https://example.com/mine"), make_vendor())
    assert link.url == "https://example.com/mine"
    assert link.source is CancelLinkSource.USER
    assert link.show_feedback is False
    assert link.confidence is None


def test_vendor_billing_then_help_url():
    link = get_cancel_link(make_subscription(), make_vendor())
    assert link.source is CancelLinkSource.VENDOR_BILLING
    assert link.url == "https://www.disneyplus.com/account"
    assert link.show_feedback is True
    assert link.confidence is ConfidenceLevel.MEDIUM
    assert link.last_verified_at == NOW

    link = get_cancel_link(make_subscription(), make_vendor(billing_url=None))
    assert link.source is CancelLinkSource.VENDOR_HELP
    assert link.url == "https://help.disneyplus.com/cancel"


def test_no_link_offers_a_search():
    link = get_cancel_link(make_subscription(), make_vendor(billing_url=None, cancel_help_url=None))
    assert link.source is CancelLinkSource.NONE
    assert link.url is None
    assert link.show_feedback is False
    assert link.search_url == search_cancel_url("Disney+")
    assert get_cancel_link(make_subscription()).source is CancelLinkSource.NONE


def test_search_cancel_url_is_encoded():
    assert search_cancel_url("Disney+") == (
        "https://www.google.com/search?q=how%20to%20cancel%20Disney%2B%20subscription"
    )


def test_should_prompt_feedback():
    assert should_prompt_feedback(CancelLinkSource.VENDOR_BILLING)
    assert should_prompt_feedback(CancelLinkSource.VENDOR_HELP)
    assert not should_prompt_feedback(CancelLinkSource.USER)
    assert not should_prompt_feedback(CancelLinkSource.NONE)
