"""Confidence ratings for crowd-sourced cancel links, and cancel-link selection."""

from __future__ import annotations

from typing import Iterable, Optional
from urllib.parse import quote

from .models import (
    CancelLink,
    CancelLinkSource,
    ConfidenceLevel,
    FeedbackResult,
    FeedbackStats,
    Subscription,
    Vendor,
    VendorFeedback,
)

MIN_MEANINGFUL_FEEDBACK = 3
HIGH_CONFIDENCE_MIN_FEEDBACK = 5
HIGH_CONFIDENCE_RATE = 0.8
MEDIUM_CONFIDENCE_RATE = 0.6

CONFIDENCE_LABELS = {
    ConfidenceLevel.HIGH: "Verified",
    ConfidenceLevel.MEDIUM: "Suggested",
    ConfidenceLevel.LOW: "Unverified",
}

CONFIDENCE_DESCRIPTIONS = {
    ConfidenceLevel.HIGH: "This link has been verified by multiple users",
    ConfidenceLevel.MEDIUM: "This link usually works based on user feedback",
    ConfidenceLevel.LOW: "This link has not been verified yet",
}


def calculate_vendor_confidence(stats: FeedbackStats) -> ConfidenceLevel:
    """Rate a vendor link from its success/fail counts.

    Skips carry no signal and are ignored. Fewer than three meaningful votes
    is always ``low``; ``high`` needs an 80% success rate over at least five
    votes; ``medium`` needs 60%.
    """
    meaningful_total = stats.success_count + stats.fail_count
    if meaningful_total < MIN_MEANINGFUL_FEEDBACK:
        return ConfidenceLevel.LOW

    success_rate = stats.success_count / meaningful_total
    if success_rate >= HIGH_CONFIDENCE_RATE and meaningful_total >= HIGH_CONFIDENCE_MIN_FEEDBACK:
        return ConfidenceLevel.HIGH
    if success_rate >= MEDIUM_CONFIDENCE_RATE:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


def tally_feedback(feedback: Iterable[VendorFeedback]) -> FeedbackStats:
    stats = FeedbackStats()
    for record in feedback:
        if record.result == FeedbackResult.SUCCESS:
            stats.success_count += 1
        elif record.result == FeedbackResult.FAIL:
            stats.fail_count += 1
        else:
            stats.skip_count += 1
    return stats


def get_confidence_label(confidence: ConfidenceLevel) -> str:
    return CONFIDENCE_LABELS[confidence]


def get_confidence_description(confidence: ConfidenceLevel) -> str:
    return CONFIDENCE_DESCRIPTIONS[confidence]


def search_cancel_url(service_name: str) -> str:
    query = quote(f"how to cancel {service_name} subscription", safe="")
    return f"https://www.google.com/search?q={query}"


def should_prompt_feedback(source: CancelLinkSource) -> bool:
    return source in (CancelLinkSource.VENDOR_BILLING, CancelLinkSource.VENDOR_HELP)


def get_cancel_link(subscription: Subscription, vendor: Optional[Vendor] = None) -> CancelLink:
    """Pick the best cancel link: the user's own, then the vendor billing page, then vendor help."""
    if subscription.cancel_url:
        return CancelLink(url=subscription.cancel_url, source=CancelLinkSource.USER, show_feedback=False)

    if vendor is not None:
        for url, source in (
            (vendor.billing_url, CancelLinkSource.VENDOR_BILLING),
            (vendor.cancel_help_url, CancelLinkSource.VENDOR_HELP),
        ):
            if url:
                return CancelLink(
                    url=url,
                    source=source,
                    show_feedback=should_prompt_feedback(source),
                    confidence=vendor.confidence,
                    last_verified_at=vendor.last_verified_at,
                )

    return CancelLink(
        source=CancelLinkSource.NONE,
        show_feedback=False,
        search_url=search_cancel_url(subscription.name),
    )
