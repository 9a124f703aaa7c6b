from __future__ import annotations

from typing import Any, Dict, List, Optional

SERVER_NAME = "Onekgman"
SERVER_VERSION = "1.0.0"

FREE_ENDPOINTS: List[str] = ["/health", "/info"]

MODE_LABELS = {
    "facilitator": "FACILITATOR",
    "local": "LOCAL (default x402 facilitator)",
    "permissive": "PERMISSIVE (signature check bypassed, test only)",
}

TIER_CONTENT: Dict[str, Dict[str, Any]] = {
    "/api/basic": {
        "content": "Basic Onekgman Content",
        "message": "Welcome to the basic tier!",
        "features": ["Basic content access", "Standard support", "Community features"],
        "nextUpgrade": "Premium tier for $0.01",
    },
    "/api/premium": {
        "content": "Premium Onekgman Content",
        "message": "Welcome to the premium tier!",
        "features": ["Premium content access", "Priority support", "Advanced features", "Exclusive content"],
        "nextUpgrade": "Pro tier for $0.10",
    },
    "/api/pro": {
        "content": "Pro Onekgman Content",
        "message": "Welcome to the pro tier!",
        "features": [
            "Pro content access",
            "24/7 support",
            "All advanced features",
            "Exclusive pro content",
            "API access",
        ],
        "nextUpgrade": "VIP tier for $1.00",
    },
    "/api/vip": {
        "content": "VIP Onekgman Content",
        "message": "You have reached the highest tier!",
        "features": [
            "VIP content access",
            "Personal manager",
            "All features unlocked",
            "Exclusive VIP content",
            "Full API access",
            "Custom integrations",
            "White-label options",
        ],
    },
}


def tier_document(path: str, mode: str, payer: Optional[str]) -> Dict[str, Any]:
    doc = dict(TIER_CONTENT[path])
    doc["payment"] = f"Verified with {MODE_LABELS.get(mode, mode)} verification"
    if payer:
        doc["payer"] = payer
    return doc
