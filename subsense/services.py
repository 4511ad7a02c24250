from __future__ import annotations

import threading
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Dict, Hashable, Iterable, List, Optional, Protocol, Tuple

import structlog

from . import actions, guides, scoring, vendors
from .config import settings
from .models import (
    ActionQueue,
    CancelGuideResponse,
    CancelLink,
    DashboardSummary,
    FeedbackOutcome,
    FeedbackResult,
    KPIData,
    ScoreReport,
    Subscription,
    SubscriptionIn,
    SubscriptionStatus,
    SubscriptionUpdate,
    Vendor,
    VendorFeedback,
    VendorIn,
)

log = structlog.get_logger(__name__)

# Fields that may be cleared by an update; the rest ignore explicit nulls.
NULLABLE_FIELDS = {
    "secondary_category",
    "cancellation_friction",
    "renewal_date",
    "trial_end_date",
    "vendor_id",
    "cancel_url",
}


class SubsenseError(Exception):
    """Base class for domain errors raised by the manager."""


class SubscriptionNotFound(SubsenseError):
    pass


class DuplicateSubscription(SubsenseError):
    pass


class VendorNotFound(SubsenseError):
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ----------------------------------------------------------------------
# Storage collaborators
# ----------------------------------------------------------------------
class SubscriptionRepository(Protocol):
    def next_id(self) -> int: ...
    def get(self, subscription_id: int) -> Optional[Subscription]: ...
    def list_for_user(self, user_id: str) -> List[Subscription]: ...
    def save(self, subscription: Subscription) -> None: ...
    def delete(self, subscription_id: int) -> None: ...


class VendorRepository(Protocol):
    def next_id(self) -> int: ...
    def get(self, vendor_id: int) -> Optional[Vendor]: ...
    def save(self, vendor: Vendor) -> None: ...
    def add_feedback(self, feedback: VendorFeedback) -> None: ...
    def feedback_for(self, vendor_id: int) -> List[VendorFeedback]: ...


class SnoozeStore(Protocol):
    def snooze(self, user_id: str, action_id: str, until: datetime) -> None: ...
    def unsnooze(self, user_id: str, action_id: str) -> None: ...
    def snoozed_until(self, user_id: str, action_id: str) -> Optional[datetime]: ...


class InMemorySubscriptionRepository:
    def __init__(self) -> None:
        self._rows: Dict[int, Subscription] = {}
        self._sequence = 0

    def next_id(self) -> int:
        self._sequence += 1
        return self._sequence

    def get(self, subscription_id: int) -> Optional[Subscription]:
        return self._rows.get(subscription_id)

    def list_for_user(self, user_id: str) -> List[Subscription]:
        rows = [row for row in self._rows.values() if row.user_id == user_id]
        return sorted(rows, key=lambda row: row.created_at, reverse=True)

    def save(self, subscription: Subscription) -> None:
        self._rows[subscription.id] = subscription

    def delete(self, subscription_id: int) -> None:
        self._rows.pop(subscription_id, None)


class InMemoryVendorRepository:
    def __init__(self) -> None:
        self._vendors: Dict[int, Vendor] = {}
        self._feedback: Dict[int, List[VendorFeedback]] = defaultdict(list)
        self._sequence = 0

    def next_id(self) -> int:
        self._sequence += 1
        return self._sequence

    def get(self, vendor_id: int) -> Optional[Vendor]:
        return self._vendors.get(vendor_id)

    def save(self, vendor: Vendor) -> None:
        self._vendors[vendor.id] = vendor

    def add_feedback(self, feedback: VendorFeedback) -> None:
        self._feedback[feedback.vendor_id].append(feedback)

    def feedback_for(self, vendor_id: int) -> List[VendorFeedback]:
        return list(self._feedback.get(vendor_id, []))


class InMemorySnoozeStore:
    def __init__(self) -> None:
        self._until: Dict[Tuple[str, str], datetime] = {}

    def snooze(self, user_id: str, action_id: str, until: datetime) -> None:
        self._until[(user_id, action_id)] = until

    def unsnooze(self, user_id: str, action_id: str) -> None:
        self._until.pop((user_id, action_id), None)

    def snoozed_until(self, user_id: str, action_id: str) -> Optional[datetime]:
        return self._until.get((user_id, action_id))


class EntityLocks:
    """One lock per entity key, so recomputes on the same row never interleave."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[Tuple[str, Hashable], threading.Lock] = {}

    def for_key(self, kind: str, key: Hashable) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault((kind, key), threading.Lock())

    def discard(self, kind: str, key: Hashable) -> None:
        with self._guard:
            self._locks.pop((kind, key), None)

    def __len__(self) -> int:
        return len(self._locks)


# ----------------------------------------------------------------------
# Orchestration
# ----------------------------------------------------------------------
class SubscriptionManager:
    """Keeps derived fields in step with stored subscriptions and vendors."""

    def __init__(
        self,
        subscriptions: Optional[SubscriptionRepository] = None,
        vendor_repo: Optional[VendorRepository] = None,
        snoozes: Optional[SnoozeStore] = None,
    ) -> None:
        self._subscriptions = subscriptions or InMemorySubscriptionRepository()
        self._vendors = vendor_repo or InMemoryVendorRepository()
        self._snoozes = snoozes or InMemorySnoozeStore()
        self._locks = EntityLocks()
        self._id_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------
    def list_subscriptions(self, user_id: str) -> List[Subscription]:
        return self._subscriptions.list_for_user(user_id)

    def get_subscription(self, user_id: str, subscription_id: int) -> Subscription:
        subscription = self._subscriptions.get(subscription_id)
        if subscription is None or subscription.user_id != user_id:
            raise SubscriptionNotFound(subscription_id)
        return subscription

    def create_subscription(self, user_id: str, payload: SubscriptionIn) -> Subscription:
        with self._locks.for_key("user", user_id):
            self._ensure_unique_name(user_id, payload.name)
            with self._id_lock:
                subscription_id = self._subscriptions.next_id()
            draft = Subscription(
                id=subscription_id,
                user_id=user_id,
                roi_score=0,
                status=SubscriptionStatus.CUT,
                created_at=utcnow(),
                **payload.model_dump(),
            )
            subscription = self._with_score(draft)
            self._subscriptions.save(subscription)
        log.info(
            "subscription_created",
            subscription_id=subscription.id,
            roi_score=subscription.roi_score,
            status=subscription.status.value,
        )
        return subscription

    def update_subscription(
        self, user_id: str, subscription_id: int, payload: SubscriptionUpdate
    ) -> Subscription:
        changes = {
            field: value
            for field, value in payload.model_dump(exclude_unset=True).items()
            if value is not None or field in NULLABLE_FIELDS
        }
        # Name checks and their saves share the per-user lock with create.
        name_lock = self._locks.for_key("user", user_id)
        row_lock = self._locks.for_key("subscription", subscription_id)
        with name_lock, row_lock:
            current = self.get_subscription(user_id, subscription_id)
            new_name = changes.get("name")
            if new_name is not None and new_name.lower() != current.name.lower():
                self._ensure_unique_name(user_id, new_name)
            subscription = self._with_score(current.model_copy(update=changes))
            self._subscriptions.save(subscription)
        log.info(
            "subscription_updated",
            subscription_id=subscription_id,
            fields=sorted(changes),
            roi_score=subscription.roi_score,
            status=subscription.status.value,
        )
        return subscription

    def delete_subscription(self, user_id: str, subscription_id: int) -> None:
        with self._locks.for_key("subscription", subscription_id):
            self.get_subscription(user_id, subscription_id)
            self._subscriptions.delete(subscription_id)
            self._locks.discard("subscription", subscription_id)
        log.info("subscription_deleted", subscription_id=subscription_id)

    def score_report(self, user_id: str, subscription_id: int) -> ScoreReport:
        subscription = self.get_subscription(user_id, subscription_id)
        return ScoreReport(
            subscription_id=subscription.id,
            roi_score=subscription.roi_score,
            status=subscription.status,
            recommendation=scoring.get_recommendation(subscription.roi_score),
            breakdown=scoring.breakdown_for(subscription),
            explanations=scoring.explain_subscription(subscription),
        )

    def kpis(self, user_id: str) -> KPIData:
        subscriptions = self.list_subscriptions(user_id)
        return KPIData(
            total_monthly_spend=round(sum(s.monthly_cost for s in subscriptions), 2),
            subscription_count=len(subscriptions),
            estimated_waste=round(
                sum(s.monthly_cost for s in subscriptions if s.status is SubscriptionStatus.CUT), 2
            ),
            optimization_opportunities=len(
                [s for s in subscriptions if s.status is not SubscriptionStatus.GOOD]
            ),
        )

    # ------------------------------------------------------------------
    # Action queue
    # ------------------------------------------------------------------
    def action_queue(self, user_id: str, now: Optional[datetime] = None) -> ActionQueue:
        now = now or utcnow()
        items = actions.generate_action_items(
            self.list_subscriptions(user_id),
            now,
            is_snoozed=lambda action_id: self.is_snoozed(user_id, action_id, now),
        )
        return ActionQueue(
            actions=items,
            potential_savings=actions.calculate_potential_savings(items),
            total_count=len(items),
        )

    def is_snoozed(self, user_id: str, action_id: str, now: Optional[datetime] = None) -> bool:
        until = self._snoozes.snoozed_until(user_id, action_id)
        if until is None:
            return False
        return (now or utcnow()) < until

    def snooze_action(
        self,
        user_id: str,
        action_id: str,
        until: Optional[datetime] = None,
        days: Optional[int] = None,
    ) -> datetime:
        if until is None:
            until = utcnow() + timedelta(days=days or settings.DEFAULT_SNOOZE_DAYS)
        self._snoozes.snooze(user_id, action_id, until)
        log.info("action_snoozed", action_id=action_id, until=until.isoformat())
        return until

    def unsnooze_action(self, user_id: str, action_id: str) -> None:
        self._snoozes.unsnooze(user_id, action_id)
        log.info("action_unsnoozed", action_id=action_id)

    # ------------------------------------------------------------------
    # Vendors
    # ------------------------------------------------------------------
    def create_vendor(self, payload: VendorIn) -> Vendor:
        now = utcnow()
        vendor = Vendor(
            id=self._vendors.next_id(),
            created_at=now,
            updated_at=now,
            **payload.model_dump(),
        )
        self._vendors.save(vendor)
        log.info("vendor_created", vendor_id=vendor.id, name=vendor.name)
        return vendor

    def get_vendor(self, vendor_id: int) -> Vendor:
        vendor = self._vendors.get(vendor_id)
        if vendor is None:
            raise VendorNotFound(vendor_id)
        return vendor

    def record_feedback(
        self,
        vendor_id: int,
        user_id: str,
        result: FeedbackResult,
        now: Optional[datetime] = None,
    ) -> FeedbackOutcome:
        now = now or utcnow()
        with self._locks.for_key("vendor", vendor_id):
            vendor = self.get_vendor(vendor_id)
            self._vendors.add_feedback(
                VendorFeedback(vendor_id=vendor_id, user_id=user_id, result=result, created_at=now)
            )
            stats = vendors.tally_feedback(self._vendors.feedback_for(vendor_id))
            confidence = vendors.calculate_vendor_confidence(stats)
            update = {"confidence": confidence, "updated_at": now}
            if result is FeedbackResult.SUCCESS:
                update["last_verified_at"] = now
            vendor = vendor.model_copy(update=update)
            self._vendors.save(vendor)
        log.info(
            "vendor_confidence_recomputed",
            vendor_id=vendor_id,
            result=result.value,
            confidence=confidence.value,
            **stats.model_dump(),
        )
        return FeedbackOutcome(
            vendor_id=vendor_id,
            confidence=vendor.confidence,
            last_verified_at=vendor.last_verified_at,
        )

    def cancel_link(self, user_id: str, subscription_id: int) -> CancelLink:
        subscription = self.get_subscription(user_id, subscription_id)
        vendor = self._vendors.get(subscription.vendor_id) if subscription.vendor_id else None
        return vendors.get_cancel_link(subscription, vendor)

    def cancel_guide(self, user_id: str, subscription_id: int) -> CancelGuideResponse:
        subscription = self.get_subscription(user_id, subscription_id)
        return CancelGuideResponse(
            subscription_id=subscription.id,
            guide=guides.get_cancellation_guide(subscription.name),
            generic_tips=guides.get_generic_cancellation_tips(),
        )

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------
    def dashboard(self, user_id: str, now: Optional[datetime] = None) -> DashboardSummary:
        now = now or utcnow()
        queue = self.action_queue(user_id, now)
        return DashboardSummary(
            kpis=self.kpis(user_id),
            actions=queue.actions,
            potential_savings=queue.potential_savings,
            upcoming_renewals=self._upcoming_renewals(
                self.list_subscriptions(user_id), now, settings.UPCOMING_RENEWAL_DAYS
            ),
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _ensure_unique_name(self, user_id: str, name: str) -> None:
        wanted = name.lower()
        if any(s.name.lower() == wanted for s in self._subscriptions.list_for_user(user_id)):
            raise DuplicateSubscription(name)

    @staticmethod
    def _with_score(subscription: Subscription) -> Subscription:
        roi_score, status = scoring.score_subscription(subscription)
        return subscription.model_copy(update={"roi_score": roi_score, "status": status})

    @staticmethod
    def _upcoming_renewals(
        subscriptions: Iterable[Subscription], now: datetime, horizon_days: int
    ) -> List[Subscription]:
        cutoff = now + timedelta(days=horizon_days)
        upcoming = [s for s in subscriptions if s.renewal_date and now <= s.renewal_date <= cutoff]
        return sorted(upcoming, key=lambda s: s.renewal_date)


manager = SubscriptionManager()
