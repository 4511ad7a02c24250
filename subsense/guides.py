from __future__ import annotations

from typing import Optional, Sequence, Tuple, Union

from .models import CancellationFriction, CancellationGuide, CancellationStep

EASY = CancellationFriction.EASY
MODERATE = CancellationFriction.MODERATE
PAINFUL = CancellationFriction.PAINFUL

# A step is either a bare instruction or (instruction, link).
StepSpec = Union[str, Tuple[str, str]]


def _guide(
    name: str,
    difficulty: CancellationFriction,
    estimated_time: str,
    steps: Sequence[StepSpec],
    tips: Sequence[str],
    refund_policy: Optional[str] = None,
) -> CancellationGuide:
    numbered = []
    for number, step in enumerate(steps, start=1):
        instruction, link = (step, None) if isinstance(step, str) else step
        numbered.append(CancellationStep(step_number=number, instruction=instruction, link=link))
    return CancellationGuide(
        service_name=name,
        difficulty=difficulty,
        estimated_time=estimated_time,
        steps=numbered,
        tips=list(tips),
        refund_policy=refund_policy,
    )


_GUIDES = [
    _guide(
        "Netflix",
        EASY,
        "2 minutes",
        [
            ("Go to netflix.com/cancelplan", "https://netflix.com/cancelplan"),
            "Click 'Cancel Membership'",
            "Confirm cancellation",
        ],
        [
            "You can keep watching until your billing period ends",
            "Your profile and history are saved for 10 months if you rejoin",
        ],
        refund_policy="No refunds for partial months",
    ),
    _guide(
        "Spotify",
        EASY,
        "2 minutes",
        [
            ("Go to your account page", "https://www.spotify.com/account"),
            "Click 'Your plan'",
            "Click 'Cancel Premium'",
            "Confirm cancellation",
        ],
        ["Your playlists and saved music remain accessible on the free tier"],
    ),
    _guide(
        "Adobe Creative Cloud",
        PAINFUL,
        "10-15 minutes",
        [
            ("Sign in to your Adobe account", "https://account.adobe.com"),
            "Go to Plans & Products",
            "Click 'Manage plan' on your subscription",
            "Select 'Cancel your plan'",
            "Complete the cancellation survey",
            "Confirm and pay any early termination fee if applicable",
        ],
        [
            "Annual plans have early termination fees (50% of remaining months)",
            "Consider switching to Photography Plan first to reduce fees",
            "Download all files before canceling - you lose cloud storage access",
        ],
        refund_policy="Early termination fee for annual plans",
    ),
    _guide(
        "Amazon Prime",
        MODERATE,
        "5 minutes",
        [
            ("Go to Amazon Prime membership settings", "https://www.amazon.com/mc"),
            "Click 'End Membership'",
            "Choose end date (immediate or end of period)",
            "Confirm cancellation",
        ],
        [
            "You can get a prorated refund if you haven't used Prime benefits",
            "Consider if the free shipping alone is worth it for your order frequency",
        ],
        refund_policy="Prorated refund available if unused",
    ),
    _guide(
        "Hulu",
        EASY,
        "3 minutes",
        [
            ("Go to your Hulu account page", "https://secure.hulu.com/account"),
            "Click 'Cancel' under 'Your Subscription'",
            "Select cancellation reason",
            "Confirm cancellation",
        ],
        ["You retain access until the end of your billing period"],
    ),
    _guide(
        "Disney+",
        EASY,
        "2 minutes",
        [
            ("Go to disneyplus.com/account", "https://www.disneyplus.com/account"),
            "Click on your subscription",
            "Click 'Cancel Subscription'",
            "Confirm cancellation",
        ],
        ["Watch list and profiles are saved if you resubscribe"],
    ),
    _guide(
        "Coursera Plus",
        EASY,
        "3 minutes",
        [
            ("Go to Coursera settings", "https://www.coursera.org/account-settings"),
            "Click 'Manage Subscription'",
            "Click 'Cancel Subscription'",
            "Complete survey and confirm",
        ],
        [
            "Download certificates before canceling",
            "Audit mode lets you continue learning for free (no certificates)",
        ],
        refund_policy="7-day refund window for new subscriptions",
    ),
    _guide(
        "Zoom Pro",
        MODERATE,
        "5 minutes",
        [
            ("Sign in to zoom.us", "https://zoom.us/account"),
            "Go to Account Management > Billing",
            "Click 'Cancel Subscription'",
            "Follow prompts to confirm",
        ],
        [
            "Free tier allows 40-minute meetings with up to 100 participants",
            "Consider if longer meetings are truly necessary",
        ],
    ),
    _guide(
        "YouTube Premium",
        EASY,
        "2 minutes",
        [
            ("Go to youtube.com/paid_memberships", "https://www.youtube.com/paid_memberships"),
            "Click 'Manage membership'",
            "Click 'Deactivate'",
            "Select 'Continue to cancel'",
        ],
        [
            "YouTube Music Premium is included - both will be canceled",
            "Downloaded videos will be removed after cancellation",
            "Consider family plan if sharing with others",
        ],
    ),
    _guide(
        "Apple Music",
        EASY,
        "3 minutes",
        [
            "Open Settings on your iPhone/iPad, or Music app on Mac",
            "Tap your name > Subscriptions",
            "Select Apple Music",
            "Tap 'Cancel Subscription'",
        ],
        [
            "Your library and playlists are saved if you resubscribe",
            "Can also cancel via appleid.apple.com",
            "Downloaded music will be removed",
        ],
    ),
    _guide(
        "HBO Max",
        EASY,
        "3 minutes",
        [
            ("Go to max.com and sign in", "https://www.max.com"),
            "Click your profile icon > Settings",
            "Select 'Subscription'",
            "Click 'Cancel Subscription'",
        ],
        [
            "If subscribed through a cable provider, cancel through them instead",
            "Access continues until end of billing period",
        ],
    ),
    _guide(
        "Paramount+",
        EASY,
        "3 minutes",
        [
            ("Go to paramountplus.com/account", "https://www.paramountplus.com/account"),
            "Click 'Cancel Subscription'",
            "Select reason and confirm",
        ],
        [
            "Check if bundled with other services before canceling",
            "Annual plans may have cancellation restrictions",
        ],
    ),
    _guide(
        "Peacock",
        EASY,
        "3 minutes",
        [
            ("Go to peacocktv.com/account", "https://www.peacocktv.com/account"),
            "Click 'Subscription and Billing'",
            "Select 'Cancel Peacock Premium'",
            "Confirm cancellation",
        ],
        [
            "Free tier still available with ads after canceling Premium",
            "If subscribed via Xfinity, cancel through Xfinity account",
        ],
    ),
    _guide(
        "Microsoft 365",
        MODERATE,
        "5 minutes",
        [
            ("Go to account.microsoft.com/services", "https://account.microsoft.com/services"),
            "Find Microsoft 365 and click 'Manage'",
            "Click 'Cancel' or 'Turn off recurring billing'",
            "Follow prompts to confirm",
        ],
        [
            "You lose access to premium Office apps but can still use free web versions",
            "OneDrive storage drops to 5GB - download files first",
            "Consider if you only need the free web versions",
        ],
        refund_policy="Prorated refund within first 30 days",
    ),
    _guide(
        "Dropbox",
        MODERATE,
        "5 minutes",
        [
            ("Go to dropbox.com/account", "https://www.dropbox.com/account"),
            "Click 'Plan' tab",
            "Click 'Cancel plan' at bottom",
            "Complete survey and confirm",
        ],
        [
            "You'll downgrade to free 2GB Basic plan",
            "Download all files before canceling if over 2GB",
            "Shared folders may become inaccessible to collaborators",
        ],
    ),
    _guide(
        "Google One",
        EASY,
        "2 minutes",
        [
            ("Go to one.google.com/settings", "https://one.google.com/settings"),
            "Click 'Cancel membership'",
            "Confirm cancellation",
        ],
        [
            "Storage reverts to free 15GB shared across Google services",
            "You won't be able to upload new files if over limit",
            "Existing files won't be deleted but new syncs will fail",
        ],
    ),
    _guide(
        "iCloud+",
        EASY,
        "3 minutes",
        [
            "On iPhone/iPad: Settings > [Your Name] > iCloud > Manage Storage",
            "Tap 'Change Storage Plan'",
            "Tap 'Downgrade Options'",
            "Select 'Free 5GB' plan",
        ],
        [
            "Download photos and files before downgrading",
            "Can also manage at icloud.com/settings",
            "Private Relay and Hide My Email features will stop working",
        ],
    ),
    _guide(
        "LinkedIn Premium",
        MODERATE,
        "5 minutes",
        [
            (
                "Go to linkedin.com/mypreferences/settings",
                "https://www.linkedin.com/mypreferences/settings",
            ),
            "Click 'Subscriptions and payments'",
            "Click 'Manage Premium subscription'",
            "Click 'Cancel subscription'",
        ],
        [
            "InMail credits expire after cancellation",
            "You lose access to 'Who viewed your profile' details",
            "Learning courses will become inaccessible",
        ],
        refund_policy="Prorated refund within first 30 days for annual plans",
    ),
    _guide(
        "New York Times",
        MODERATE,
        "5-10 minutes",
        [
            ("Go to nytimes.com/subscription/manage", "https://www.nytimes.com/subscription/manage"),
            "Click 'Cancel Subscription'",
            "You may be offered a retention discount - decline if you want to cancel",
            "Confirm cancellation",
        ],
        [
            "They will try to offer you discounts to stay",
            "Phone cancellation may be required for some older plans",
            "Access continues until end of billing period",
        ],
    ),
    _guide(
        "Audible",
        MODERATE,
        "5 minutes",
        [
            ("Go to audible.com/account", "https://www.audible.com/account"),
            "Click 'Account Details'",
            "Select 'Cancel membership'",
            "Complete the cancellation flow (they will offer discounts)",
        ],
        [
            "You keep books you've purchased forever",
            "Unused credits expire 6 months after cancellation",
            "Use remaining credits before canceling",
        ],
        refund_policy="365-day return policy on audiobooks",
    ),
    _guide(
        "NordVPN",
        EASY,
        "3 minutes",
        [
            ("Log in to my.nordaccount.com", "https://my.nordaccount.com"),
            "Go to 'Billing'",
            "Click 'Cancel automatic payments'",
            "Confirm cancellation",
        ],
        [
            "30-day money-back guarantee for new subscribers",
            "Service continues until end of paid period",
            "Consider pausing instead of full cancellation",
        ],
        refund_policy="30-day money-back guarantee",
    ),
    _guide(
        "ExpressVPN",
        EASY,
        "3 minutes",
        [
            ("Go to expressvpn.com/subscriptions", "https://www.expressvpn.com/subscriptions"),
            "Sign in to your account",
            "Click 'Manage subscription settings'",
            "Turn off auto-renewal",
        ],
        ["30-day money-back guarantee available", "Contact live chat for refund requests"],
        refund_policy="30-day money-back guarantee",
    ),
    _guide(
        "Notion",
        EASY,
        "2 minutes",
        [
            "Go to Settings & Members in Notion",
            "Click 'Upgrade' or 'Plans'",
            "Click 'Downgrade' at the bottom",
            "Confirm downgrade to free plan",
        ],
        [
            "Free plan is very generous for personal use",
            "Team features will be disabled",
            "Export workspace before downgrading if needed",
        ],
    ),
    _guide(
        "Canva Pro",
        EASY,
        "3 minutes",
        [
            ("Go to canva.com/settings/billing", "https://www.canva.com/settings/billing"),
            "Click your subscription plan",
            "Click 'Cancel subscription'",
            "Complete survey and confirm",
        ],
        [
            "You'll lose access to premium templates and features",
            "Download designs using premium elements before canceling",
            "Free tier still has many useful features",
        ],
    ),
    _guide(
        "Grammarly Premium",
        EASY,
        "3 minutes",
        [
            (
                "Go to account.grammarly.com/subscription",
                "https://account.grammarly.com/subscription",
            ),
            "Click 'Cancel Subscription'",
            "Select reason and confirm",
        ],
        [
            "Free version catches most basic errors",
            "Premium mainly adds style and tone suggestions",
            "Browser extension still works on free tier",
        ],
    ),
    _guide(
        "Slack Pro",
        MODERATE,
        "5 minutes",
        [
            "Go to your workspace's billing page: [workspace].slack.com/admin/billing",
            "Click 'Change plan'",
            "Select 'Downgrade to Free'",
            "Confirm downgrade",
        ],
        [
            "Free tier keeps 90 days of message history",
            "Integrations will be limited to 10",
            "Export data before downgrading if needed",
        ],
    ),
    _guide(
        "ChatGPT Plus",
        EASY,
        "2 minutes",
        [
            ("Go to chat.openai.com", "https://chat.openai.com"),
            "Click your profile > 'My Plan'",
            "Click 'Manage my subscription'",
            "Click 'Cancel Plan'",
        ],
        [
            "Free tier still provides access to GPT-3.5",
            "Your conversation history is preserved",
            "Access to GPT-4 and plugins will end",
        ],
    ),
    _guide(
        "Peloton",
        MODERATE,
        "5 minutes",
        [
            ("Go to members.onepeloton.com", "https://members.onepeloton.com"),
            "Click your profile > 'Subscription'",
            "Click 'Cancel Subscription'",
            "Complete the cancellation survey",
        ],
        [
            "Bike/Tread still work with free 'Just Run/Ride' feature",
            "Digital membership is cheaper if you only use the app",
            "Check for seasonal pause options",
        ],
    ),
]

# Keyed by exact service name, like the downgrade table.
CANCELLATION_GUIDES: dict[str, CancellationGuide] = {guide.service_name: guide for guide in _GUIDES}

GENERIC_CANCELLATION_TIPS = (
    "Check your email for the original subscription confirmation - it often has cancellation instructions",
    "Look for 'Account', 'Settings', or 'Subscription' in the service's menu",
    "If you subscribed through Apple App Store or Google Play, cancel there instead",
    "Take screenshots of your cancellation confirmation",
    "Set a calendar reminder to verify the charge stops",
    "Check bank statements after the next billing date to confirm",
)


def get_cancellation_guide(service_name: str) -> Optional[CancellationGuide]:
    guide = CANCELLATION_GUIDES.get(service_name)
    return guide.model_copy(deep=True) if guide else None


def get_generic_cancellation_tips() -> list[str]:
    return list(GENERIC_CANCELLATION_TIPS)
