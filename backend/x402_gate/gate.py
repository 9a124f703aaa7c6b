"""
Per-request payment gate decision.

evaluate() walks a request from Unverified to exactly one of Allowed or
Rejected(kind). It makes at most one verifier call and never retries.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .proof import MalformedProofError, parse_proof_header, structural_problem
from .tiers import X402_VERSION, PriceTier
from .verifiers import Verifier, VerifierError

logger = logging.getLogger(__name__)


class RejectKind(str, enum.Enum):
    MISSING_PAYMENT = "MissingPayment"
    MALFORMED_PAYMENT = "MalformedPayment"
    INVALID_FORMAT = "InvalidFormat"
    PAYMENT_REJECTED = "PaymentRejected"
    VERIFIER_UNAVAILABLE = "VerifierUnavailable"


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    tier: Optional[PriceTier] = None
    kind: Optional[RejectKind] = None
    error: Optional[str] = None
    payer: Optional[str] = None

    @classmethod
    def allow(cls, tier: Optional[PriceTier] = None, payer: Optional[str] = None) -> "GateDecision":
        return cls(allowed=True, tier=tier, payer=payer)

    @classmethod
    def reject(cls, tier: PriceTier, kind: RejectKind, error: str, payer: Optional[str] = None) -> "GateDecision":
        return cls(allowed=False, tier=tier, kind=kind, error=error, payer=payer)

    def body(self) -> Dict[str, Any]:
        """402 response body. Only meaningful for rejections."""
        out: Dict[str, Any] = {
            "x402Version": X402_VERSION,
            "error": self.error,
            "kind": self.kind.value if self.kind else None,
            "accepts": [self.tier.to_requirements()] if self.tier else [],
        }
        if self.payer:
            out["payer"] = self.payer
        return out


async def evaluate(
    path: str,
    raw_header_value: Optional[str],
    tier: Optional[PriceTier],
    verifier: Verifier,
) -> GateDecision:
    if tier is None:
        return GateDecision.allow()

    decision = await _decide(raw_header_value, tier, verifier)
    if decision.allowed:
        logger.info("[x402-gate] verified path=%s payer=%s mode=%s", path, decision.payer, verifier.name)
    elif decision.kind is RejectKind.VERIFIER_UNAVAILABLE:
        logger.warning("[x402-gate] verifier unavailable path=%s payer=%s mode=%s", path, decision.payer, verifier.name)
    else:
        logger.info(
            "[x402-gate] 402 path=%s payer=%s kind=%s error=%s",
            path,
            decision.payer or "-",
            decision.kind.value,
            decision.error,
        )
    return decision


async def _decide(raw_header_value: Optional[str], tier: PriceTier, verifier: Verifier) -> GateDecision:
    if not raw_header_value:
        return GateDecision.reject(tier, RejectKind.MISSING_PAYMENT, "X-PAYMENT header is required")

    try:
        proof = parse_proof_header(raw_header_value)
    except MalformedProofError:
        return GateDecision.reject(tier, RejectKind.MALFORMED_PAYMENT, "Malformed X-PAYMENT header")

    problem = structural_problem(proof, tier)
    if problem:
        return GateDecision.reject(tier, RejectKind.INVALID_FORMAT, f"Invalid payment format: {problem}", payer=proof.payer)

    try:
        result = await asyncio.wait_for(verifier.verify(proof, tier), timeout=tier.timeout_seconds)
    except (VerifierError, asyncio.TimeoutError):
        return GateDecision.reject(tier, RejectKind.VERIFIER_UNAVAILABLE, "Payment verifier unavailable", payer=proof.payer)

    if not result.is_valid:
        return GateDecision.reject(
            tier,
            RejectKind.PAYMENT_REJECTED,
            result.invalid_reason or "Payment rejected",
            payer=result.payer,
        )

    return GateDecision.allow(tier, payer=result.payer)
