from __future__ import annotations

from fastapi import FastAPI, Header, HTTPException, Response

from . import services
from .config import settings
from .log import ErrorHandlerMiddleware, RequestLoggingMiddleware, configure_logging
from .models import (
    ActionQueue,
    CancelGuideResponse,
    CancelLink,
    DashboardSummary,
    FeedbackIn,
    FeedbackOutcome,
    KPIData,
    ScoreReport,
    SnoozeIn,
    Subscription,
    SubscriptionIn,
    SubscriptionUpdate,
    Vendor,
    VendorIn,
)

configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)

app = FastAPI(title=settings.APP_NAME)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(ErrorHandlerMiddleware)


def get_manager() -> services.SubscriptionManager:
    return services.manager


def subscription_not_found() -> HTTPException:
    return HTTPException(status_code=404, detail="Subscription not found")


@app.get("/subscriptions", response_model=list[Subscription])
def list_subscriptions(x_user_id: str = Header("demo")) -> list[Subscription]:
    return get_manager().list_subscriptions(x_user_id)


@app.post("/subscriptions", response_model=Subscription, status_code=201)
def create_subscription(payload: SubscriptionIn, x_user_id: str = Header("demo")) -> Subscription:
    try:
        return get_manager().create_subscription(x_user_id, payload)
    except services.DuplicateSubscription:
        raise HTTPException(status_code=409, detail="A subscription with this name already exists")


@app.get("/subscriptions/kpis", response_model=KPIData)
def subscription_kpis(x_user_id: str = Header("demo")) -> KPIData:
    return get_manager().kpis(x_user_id)


@app.get("/subscriptions/{subscription_id}", response_model=Subscription)
def get_subscription(subscription_id: int, x_user_id: str = Header("demo")) -> Subscription:
    try:
        return get_manager().get_subscription(x_user_id, subscription_id)
    except services.SubscriptionNotFound:
        raise subscription_not_found()


@app.patch("/subscriptions/{subscription_id}", response_model=Subscription)
def update_subscription(
    subscription_id: int, payload: SubscriptionUpdate, x_user_id: str = Header("demo")
) -> Subscription:
    try:
        return get_manager().update_subscription(x_user_id, subscription_id, payload)
    except services.SubscriptionNotFound:
        raise subscription_not_found()
    except services.DuplicateSubscription:
        raise HTTPException(status_code=409, detail="A subscription with this name already exists")


@app.delete("/subscriptions/{subscription_id}", status_code=204)
def delete_subscription(subscription_id: int, x_user_id: str = Header("demo")) -> Response:
    try:
        get_manager().delete_subscription(x_user_id, subscription_id)
    except services.SubscriptionNotFound:
        raise subscription_not_found()
    return Response(status_code=204)


@app.get("/subscriptions/{subscription_id}/breakdown", response_model=ScoreReport)
def subscription_breakdown(subscription_id: int, x_user_id: str = Header("demo")) -> ScoreReport:
    try:
        return get_manager().score_report(x_user_id, subscription_id)
    except services.SubscriptionNotFound:
        raise subscription_not_found()


@app.get("/subscriptions/{subscription_id}/cancel-link", response_model=CancelLink)
def subscription_cancel_link(subscription_id: int, x_user_id: str = Header("demo")) -> CancelLink:
    try:
        return get_manager().cancel_link(x_user_id, subscription_id)
    except services.SubscriptionNotFound:
        raise subscription_not_found()


@app.get("/subscriptions/{subscription_id}/cancel-guide", response_model=CancelGuideResponse)
def subscription_cancel_guide(subscription_id: int, x_user_id: str = Header("demo")) -> CancelGuideResponse:
    try:
        return get_manager().cancel_guide(x_user_id, subscription_id)
    except services.SubscriptionNotFound:
        raise subscription_not_found()


@app.get("/actions", response_model=ActionQueue)
def list_actions(x_user_id: str = Header("demo")) -> ActionQueue:
    return get_manager().action_queue(x_user_id)


@app.post("/actions/{action_id}/snooze")
def snooze_action(action_id: str, payload: SnoozeIn, x_user_id: str = Header("demo")) -> dict:
    until = get_manager().snooze_action(x_user_id, action_id, until=payload.until, days=payload.days)
    return {"action_id": action_id, "snoozed_until": until.isoformat()}


@app.delete("/actions/{action_id}/snooze", status_code=204)
def unsnooze_action(action_id: str, x_user_id: str = Header("demo")) -> Response:
    get_manager().unsnooze_action(x_user_id, action_id)
    return Response(status_code=204)


@app.post("/vendors", response_model=Vendor, status_code=201)
def create_vendor(payload: VendorIn) -> Vendor:
    return get_manager().create_vendor(payload)


@app.get("/vendors/{vendor_id}", response_model=Vendor)
def get_vendor(vendor_id: int) -> Vendor:
    try:
        return get_manager().get_vendor(vendor_id)
    except services.VendorNotFound:
        raise HTTPException(status_code=404, detail="Vendor not found")


@app.post("/vendors/{vendor_id}/feedback", response_model=FeedbackOutcome)
def vendor_feedback(vendor_id: int, payload: FeedbackIn, x_user_id: str = Header("demo")) -> FeedbackOutcome:
    try:
        return get_manager().record_feedback(vendor_id, x_user_id, payload.result)
    except services.VendorNotFound:
        raise HTTPException(status_code=404, detail="Vendor not found")


@app.get("/dashboard", response_model=DashboardSummary)
def dashboard(x_user_id: str = Header("demo")) -> DashboardSummary:
    return get_manager().dashboard(x_user_id)
