from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Tuple

from pydantic import ValidationError
from x402.types import PaymentRequirements  # type: ignore

from .config import GateConfig

X402_VERSION = 1
SCHEME_EXACT = "exact"
DEFAULT_MIME_TYPE = "application/json"
# EIP-712 domain of the USDC contract, as (key, value) pairs so tiers stay hashable.
DEFAULT_EXTRA: Tuple[Tuple[str, str], ...] = (("name", "USD Coin"), ("version", "2"))

# (path, atomic amount, display price, description)
DEFAULT_TIERS: Tuple[Tuple[str, int, str, str], ...] = (
    ("/api/basic", 1000, "$0.001", "Basic Onekgman content access"),
    ("/api/premium", 10000, "$0.01", "Premium Onekgman content access"),
    ("/api/pro", 100000, "$0.10", "Pro Onekgman content access"),
    ("/api/vip", 1000000, "$1.00", "VIP Onekgman content access"),
)


@dataclass(frozen=True)
class PriceTier:
    path: str
    amount_required_atomic: int
    asset: str
    pay_to_address: str
    network: str
    timeout_seconds: int
    description: str
    resource: str = ""
    display_price: str = ""
    mime_type: str = DEFAULT_MIME_TYPE
    extra: Tuple[Tuple[str, Any], ...] = DEFAULT_EXTRA

    @property
    def name(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    def to_payment_requirements(self) -> PaymentRequirements:
        """The tier as the SDK's x402 v1 PaymentRequirements model."""
        return PaymentRequirements.model_validate(
            {
                "scheme": SCHEME_EXACT,
                "network": self.network,
                "maxAmountRequired": str(self.amount_required_atomic),
                "resource": self.resource,
                "description": self.description,
                "mimeType": self.mime_type,
                "payTo": self.pay_to_address,
                "maxTimeoutSeconds": self.timeout_seconds,
                "asset": self.asset,
                "outputSchema": {"input": {"type": "http", "method": "GET", "discoverable": True}},
                "extra": dict(self.extra),
            }
        )

    def to_requirements(self) -> Dict[str, Any]:
        """JSON form of the requirements, as listed in a 402 body's `accepts`."""
        return self.to_payment_requirements().model_dump(by_alias=True, exclude_none=True)


def validate_tiers(tiers: Iterable[PriceTier]) -> None:
    seen = set()
    for tier in tiers:
        if not tier.path.startswith("/"):
            raise ValueError(f"tier path must start with '/': {tier.path!r}")
        if tier.path in seen:
            raise ValueError(f"duplicate tier path: {tier.path}")
        seen.add(tier.path)
        if not isinstance(tier.amount_required_atomic, int) or tier.amount_required_atomic <= 0:
            raise ValueError(f"{tier.path}: amount must be a positive integer")
        if tier.timeout_seconds <= 0:
            raise ValueError(f"{tier.path}: timeout must be positive")
        if not tier.pay_to_address:
            raise ValueError(f"{tier.path}: missing pay-to address")
        try:
            tier.to_payment_requirements()
        except ValidationError as exc:
            raise ValueError(f"{tier.path}: not valid x402 payment requirements: {exc}") from exc


def build_price_tiers(
    config: GateConfig,
    table: Iterable[Tuple[str, int, str, str]] = DEFAULT_TIERS,
) -> Mapping[str, PriceTier]:
    """Build the read-only path -> tier mapping used for the life of the process."""
    tiers = [
        PriceTier(
            path=path,
            amount_required_atomic=amount,
            asset=config.asset,
            pay_to_address=config.pay_to_address,
            network=config.network,
            timeout_seconds=config.timeout_seconds,
            description=description,
            resource=f"{config.public_base_url}{path}",
            display_price=price,
        )
        for path, amount, price, description in table
    ]
    validate_tiers(tiers)
    return MappingProxyType({tier.path: tier for tier in tiers})
