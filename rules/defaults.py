"""
Default Automation - Starter flows used when nothing is configured
==================================================================
"""

from .models import AutomationConfig
from .validation import validate_config

DEFAULT_CONFIG = {
    "flows": [
        {
            "id": "flow-pricing",
            "name": "Pricing questions",
            "description": "Answers plan and pricing questions with the price sheet.",
            "matchType": "contains",
            "matchValue": "pricing",
            "tags": ["sales"],
            "active": True,
            "responses": [
                {
                    "id": "pricing-overview",
                    "label": "Overview",
                    "message": "Our plans start at $29/month. Here is the full price sheet:",
                    "mediaUrls": ["https://flowwave.app/assets/pricing.png"],
                },
                {
                    "id": "pricing-followup",
                    "label": "Follow-up",
                    "message": "Reply DEMO to book a walkthrough with our team.",
                },
            ],
        },
        {
            "id": "flow-support",
            "name": "Support escalation",
            "description": "Hands urgent support requests to the on-call engineer.",
            "matchType": "regex",
            "matchValue": "support|help|down",
            "tags": ["support", "handoff"],
            "active": True,
            "responses": [
                {
                    "id": "support-ack",
                    "label": "Acknowledge",
                    "message": "Sorry to hear that! I'm escalating you to the on-call engineer.",
                    "handoffNumber": "+15555550100",
                },
                {
                    "id": "support-eta",
                    "label": "ETA",
                    "message": "You'll hear from a human in a moment.",
                },
            ],
        },
        {
            "id": "flow-demo",
            "name": "Book a demo",
            "description": "Sends the booking link.",
            "matchType": "starts_with",
            "matchValue": "DEMO",
            "tags": ["sales"],
            "active": True,
            "responses": [
                {
                    "id": "demo-link",
                    "label": "Booking link",
                    "message": "Pick a slot that works for you: https://flowwave.app/demo",
                },
            ],
        },
    ],
    "fallbackMessage": (
        "Hey! Looking for pricing, support, or to book a demo? "
        "Reply with one of those and I'll point you the right way."
    ),
    "notes": "Starter automation. Edit the flows or set AUTOMATION_CONFIG.",
}


def default_config() -> AutomationConfig:
    """Return the starter automation config."""
    return validate_config(DEFAULT_CONFIG).unwrap()
