from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

from x402.types import PaymentPayload  # type: ignore

from .tiers import SCHEME_EXACT, X402_VERSION, PriceTier


class MalformedProofError(ValueError):
    """The X-PAYMENT header could not be decoded into a payment payload."""


@dataclass(frozen=True)
class PaymentProof:
    scheme: str
    network: Optional[str]
    payer: Optional[str]
    pay_to: Optional[str]
    value: Optional[str]
    signature: Optional[str]
    raw: Dict[str, Any]

    def to_payment_payload(self, default_network: str) -> PaymentPayload:
        """
        Normalize the proof into the SDK's PaymentPayload for a facilitator.

        The scheme default and the tier's network are filled in, and a
        signature found under the authorization is lifted to its v1 place.
        Raises pydantic's ValidationError when the authorization lacks
        EIP-3009 fields.
        """
        payload = dict(self.raw["payload"])
        if self.signature is not None:
            payload["signature"] = self.signature
        return PaymentPayload.model_validate(
            {
                "x402Version": X402_VERSION,
                "scheme": self.scheme,
                "network": self.network or default_network,
                "payload": payload,
            }
        )


def _opt_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def parse_proof_header(raw: str) -> PaymentProof:
    """
    Decode base64 -> UTF-8 -> JSON and lift the fields the gate inspects.

    Raises MalformedProofError when any step fails or the document has no
    payload.authorization object.
    """
    try:
        decoded = base64.b64decode(raw.strip(), validate=True).decode("utf-8")
        doc = json.loads(decoded)
    except (binascii.Error, UnicodeDecodeError, ValueError) as exc:
        raise MalformedProofError(f"undecodable payment header: {exc}") from exc

    if not isinstance(doc, dict):
        raise MalformedProofError("payment header is not a JSON object")
    payload = doc.get("payload")
    if not isinstance(payload, dict):
        raise MalformedProofError("payment header has no payload object")
    auth = payload.get("authorization")
    if not isinstance(auth, dict):
        raise MalformedProofError("payment payload has no authorization object")

    signature = payload.get("signature")
    if signature is None:
        signature = auth.get("signature")

    return PaymentProof(
        scheme=str(doc.get("scheme") or SCHEME_EXACT),
        network=_opt_str(doc.get("network")),
        payer=_opt_str(auth.get("from")),
        pay_to=_opt_str(auth.get("to")),
        value=_opt_str(auth.get("value")),
        signature=_opt_str(signature),
        raw=doc,
    )


def structural_problem(proof: PaymentProof, tier: PriceTier) -> Optional[str]:
    """Return why the proof cannot satisfy the tier, or None if it is well formed."""
    if proof.scheme != SCHEME_EXACT:
        return f"unsupported scheme {proof.scheme!r}"
    if not proof.payer:
        return "missing payer"
    if not proof.pay_to or proof.pay_to.lower() != tier.pay_to_address.lower():
        return "payee mismatch"
    if not proof.signature:
        return "missing signature"
    return None
