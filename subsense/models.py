from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class UsageFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    RARE = "rare"


class Importance(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class BillingCycle(str, Enum):
    MONTHLY = "monthly"
    ANNUAL = "annual"
    QUARTERLY = "quarterly"
    TRIAL = "trial"


class UsageScope(str, Enum):
    PERSONAL = "personal"
    TEAM = "team"
    FAMILY = "family"


class CancellationFriction(str, Enum):
    EASY = "easy"
    MODERATE = "moderate"
    PAINFUL = "painful"


class SubscriptionStatus(str, Enum):
    GOOD = "good"
    REVIEW = "review"
    CUT = "cut"


class Recommendation(str, Enum):
    KEEP = "keep"
    DOWNGRADE = "downgrade"
    CANCEL = "cancel"


class ActionType(str, Enum):
    CANCEL = "cancel"
    DOWNGRADE = "downgrade"
    REVIEW = "review"
    TRIAL_ENDING = "trial_ending"
    RENEWAL_REMINDER = "renewal_reminder"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ConfidenceLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class FeedbackResult(str, Enum):
    SUCCESS = "success"
    FAIL = "fail"
    SKIP = "skip"


class VendorSource(str, Enum):
    CURATED = "curated"
    USER_SUBMITTED = "user_submitted"


class CancelLinkSource(str, Enum):
    USER = "user"
    VENDOR_BILLING = "vendor_billing"
    VENDOR_HELP = "vendor_help"
    NONE = "none"


def _assume_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SubscriptionIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    category: str = Field("Other", min_length=1, max_length=50)
    secondary_category: Optional[str] = Field(None, max_length=50)
    monthly_cost: float = Field(..., gt=0, description="Price as billed; its period is given by billing_cycle")
    usage_frequency: UsageFrequency
    importance: Importance
    billing_cycle: BillingCycle = BillingCycle.MONTHLY
    usage_scope: UsageScope = UsageScope.PERSONAL
    cancellation_friction: Optional[CancellationFriction] = None
    renewal_date: Optional[datetime] = None
    trial_end_date: Optional[datetime] = None
    vendor_id: Optional[int] = None
    cancel_url: Optional[str] = None

    @field_validator("renewal_date", "trial_end_date")
    @classmethod
    def dates_in_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _assume_utc(value)


class SubscriptionUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    category: Optional[str] = Field(None, min_length=1, max_length=50)
    secondary_category: Optional[str] = Field(None, max_length=50)
    monthly_cost: Optional[float] = Field(None, gt=0)
    usage_frequency: Optional[UsageFrequency] = None
    importance: Optional[Importance] = None
    billing_cycle: Optional[BillingCycle] = None
    usage_scope: Optional[UsageScope] = None
    cancellation_friction: Optional[CancellationFriction] = None
    renewal_date: Optional[datetime] = None
    trial_end_date: Optional[datetime] = None
    vendor_id: Optional[int] = None
    cancel_url: Optional[str] = None

    @field_validator("renewal_date", "trial_end_date")
    @classmethod
    def dates_in_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _assume_utc(value)


class Subscription(BaseModel):
    id: int
    user_id: str
    name: str
    category: str
    secondary_category: Optional[str] = None
    monthly_cost: float
    usage_frequency: UsageFrequency
    importance: Importance
    billing_cycle: BillingCycle = BillingCycle.MONTHLY
    usage_scope: UsageScope = UsageScope.PERSONAL
    cancellation_friction: Optional[CancellationFriction] = None
    renewal_date: Optional[datetime] = None
    trial_end_date: Optional[datetime] = None
    vendor_id: Optional[int] = None
    cancel_url: Optional[str] = None
    roi_score: int = Field(..., ge=0, le=100)
    status: SubscriptionStatus
    created_at: datetime


class ScoreBreakdown(BaseModel):
    usage_value: int
    cost_efficiency: int
    replacement_risk: int
    cancellation_friction: int


class ScoreReport(BaseModel):
    subscription_id: int
    roi_score: int
    status: SubscriptionStatus
    recommendation: Recommendation
    breakdown: ScoreBreakdown
    explanations: list[str] = Field(default_factory=list)


class ActionItem(BaseModel):
    id: str
    subscription_id: int
    subscription_name: str
    type: ActionType
    title: str
    description: str
    priority: Priority
    potential_savings: Optional[float] = None
    due_date: Optional[datetime] = None


class PotentialSavings(BaseModel):
    monthly: float
    annual: float


class ActionQueue(BaseModel):
    actions: list[ActionItem]
    potential_savings: PotentialSavings
    total_count: int


class SnoozeIn(BaseModel):
    until: Optional[datetime] = None
    days: Optional[int] = Field(None, gt=0)

    @field_validator("until")
    @classmethod
    def until_in_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _assume_utc(value)


class KPIData(BaseModel):
    total_monthly_spend: float
    subscription_count: int
    estimated_waste: float
    optimization_opportunities: int


class DashboardSummary(BaseModel):
    kpis: KPIData
    actions: list[ActionItem]
    potential_savings: PotentialSavings
    upcoming_renewals: list[Subscription]


class FeedbackStats(BaseModel):
    success_count: int = 0
    fail_count: int = 0
    skip_count: int = 0


class VendorIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    domain: str = Field(..., min_length=1, max_length=255)
    billing_url: Optional[str] = None
    cancel_help_url: Optional[str] = None
    source: VendorSource = VendorSource.CURATED


class Vendor(BaseModel):
    id: int
    name: str
    domain: str
    billing_url: Optional[str] = None
    cancel_help_url: Optional[str] = None
    source: VendorSource = VendorSource.CURATED
    confidence: ConfidenceLevel = ConfidenceLevel.LOW
    last_verified_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class FeedbackIn(BaseModel):
    result: FeedbackResult


class VendorFeedback(BaseModel):
    vendor_id: int
    user_id: str
    action: str = "open_billing_link"
    result: FeedbackResult
    created_at: datetime


class FeedbackOutcome(BaseModel):
    vendor_id: int
    confidence: ConfidenceLevel
    last_verified_at: Optional[datetime] = None


class CancelLink(BaseModel):
    url: Optional[str] = None
    source: CancelLinkSource
    show_feedback: bool
    confidence: Optional[ConfidenceLevel] = None
    last_verified_at: Optional[datetime] = None
    search_url: Optional[str] = None


class CancellationStep(BaseModel):
    step_number: int
    instruction: str
    link: Optional[str] = None


class CancellationGuide(BaseModel):
    service_name: str
    difficulty: CancellationFriction
    estimated_time: str
    steps: list[CancellationStep]
    tips: list[str] = Field(default_factory=list)
    can_cancel_online: bool = True
    refund_policy: Optional[str] = None


class CancelGuideResponse(BaseModel):
    subscription_id: int
    guide: Optional[CancellationGuide] = None
    generic_tips: list[str]
