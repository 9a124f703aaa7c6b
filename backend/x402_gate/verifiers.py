from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from pydantic import ValidationError
from x402.facilitator import FacilitatorClient, FacilitatorConfig  # type: ignore
from x402.types import VerifyResponse  # type: ignore

from .config import DEFAULT_FACILITATOR_URL, MODE_FACILITATOR, MODE_LOCAL, MODE_PERMISSIVE, GateConfig
from .proof import PaymentProof
from .tiers import PriceTier

logger = logging.getLogger(__name__)


class VerifierError(Exception):
    """The verifier could not reach a verdict (transport, facilitator or RPC failure)."""


@dataclass(frozen=True)
class VerificationResult:
    is_valid: bool
    invalid_reason: Optional[str] = None
    payer: Optional[str] = None


class Verifier:
    name = "verifier"

    async def verify(self, proof: PaymentProof, tier: PriceTier) -> VerificationResult:  # pragma: no cover - interface
        raise NotImplementedError

    async def aclose(self) -> None:
        return None


class FacilitatorVerifier(Verifier):
    """
    Delegates signature, balance, amount and expiry checks to an x402 facilitator.

    One SDK FacilitatorClient is built per process and reused for every
    request. A facilitator verdict of isValid=false is a rejection whatever
    HTTP status carried it. Only transport failures and unreadable replies
    raise VerifierError.
    """

    name = MODE_FACILITATOR

    def __init__(self, facilitator_url: str, facilitator: Optional[FacilitatorClient] = None):
        self.facilitator_url = facilitator_url.rstrip("/")
        self._facilitator = facilitator or FacilitatorClient(FacilitatorConfig(url=self.facilitator_url))

    async def verify(self, proof: PaymentProof, tier: PriceTier) -> VerificationResult:
        try:
            payment = proof.to_payment_payload(tier.network)
        except ValidationError as exc:
            logger.info("[x402-gate] payload not forwardable path=%s payer=%s errors=%d", tier.path, proof.payer, exc.error_count())
            return VerificationResult(is_valid=False, invalid_reason="invalid_payload", payer=proof.payer)

        try:
            response: VerifyResponse = await self._facilitator.verify(payment, tier.to_payment_requirements())
        except httpx.HTTPError as exc:
            raise VerifierError(f"facilitator request failed: {exc}") from exc
        except ValueError as exc:
            # non-JSON body, or JSON that is not a verify response
            raise VerifierError(f"facilitator returned an unreadable verify response: {exc}") from exc

        is_valid = bool(response.is_valid)
        return VerificationResult(
            is_valid=is_valid,
            invalid_reason=None if is_valid else (response.invalid_reason or "invalid_payment"),
            payer=response.payer or proof.payer,
        )


class DefaultFacilitatorVerifier(FacilitatorVerifier):
    """FacilitatorVerifier bound to the facilitator the x402 SDK uses when none is configured."""

    name = MODE_LOCAL

    def __init__(self, facilitator: Optional[FacilitatorClient] = None):
        super().__init__(DEFAULT_FACILITATOR_URL, facilitator=facilitator or FacilitatorClient())


class PermissiveVerifier(Verifier):
    """
    TEST ONLY. Accepts any well-formed proof addressed to the configured payee.

    Signatures are not checked. Never enable this outside local integration runs.
    """

    name = MODE_PERMISSIVE

    def __init__(self):
        logger.warning("[x402-gate] PERMISSIVE verifier active: payment signatures are NOT verified")

    async def verify(self, proof: PaymentProof, tier: PriceTier) -> VerificationResult:
        if not proof.pay_to or proof.pay_to.lower() != tier.pay_to_address.lower():
            return VerificationResult(is_valid=False, invalid_reason="payee mismatch", payer=proof.payer)
        logger.warning("[x402-gate] accepted unverified payment payer=%s path=%s", proof.payer, tier.path)
        return VerificationResult(is_valid=True, payer=proof.payer)


def build_verifier(config: GateConfig, facilitator: Optional[FacilitatorClient] = None) -> Verifier:
    if config.verification_mode == MODE_PERMISSIVE:
        if config.is_production:
            raise RuntimeError("Permissive verification cannot run with APP_ENV=production.")
        if not config.allow_permissive:
            raise RuntimeError(
                "VERIFICATION_MODE=permissive also requires ALLOW_PERMISSIVE_VERIFIER=true (test environments only)."
            )
        return PermissiveVerifier()

    if config.verification_mode == MODE_LOCAL:
        logger.info("[x402-gate] no facilitator configured, using the x402 SDK default %s", DEFAULT_FACILITATOR_URL)
        return DefaultFacilitatorVerifier(facilitator=facilitator)

    logger.info("[x402-gate] using facilitator %s", config.facilitator_url)
    return FacilitatorVerifier(config.facilitator_url, facilitator=facilitator)
