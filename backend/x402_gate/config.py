import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_NETWORK = "base"
DEFAULT_FACILITATOR_URL = "https://x402.org/facilitator"
DEFAULT_TIMEOUT_SECONDS = 60
DEFAULT_PORT = 3000

MODE_FACILITATOR = "facilitator"
MODE_PERMISSIVE = "permissive"
# Delegates to the x402 SDK's built-in facilitator; FACILITATOR_URL is ignored.
MODE_LOCAL = "local"
VERIFICATION_MODES = (MODE_FACILITATOR, MODE_LOCAL, MODE_PERMISSIVE)

# USDC contract per network.
USDC_ASSETS = {
    "base": "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
    "base-sepolia": "0x036CbD53842c5426634e7929541eC2318f3dCF7e",
}

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class GateConfig:
    pay_to_address: str
    network: str
    asset: str
    facilitator_url: str
    verification_mode: str
    allow_permissive: bool
    timeout_seconds: int
    unavailable_status: int
    port: int
    public_base_url: str
    app_env: str = ""

    @property
    def is_production(self) -> bool:
        return self.app_env in {"prod", "production"}


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    try:
        value = int(raw) if raw else default
    except ValueError:
        logger.warning("[x402-gate] ignoring invalid %s=%r, using %s", name, raw, default)
        return default
    return value if value > 0 else default


def load_config() -> GateConfig:
    pay_to = os.getenv("PAY_TO_ADDRESS") or os.getenv("ADDRESS")
    if not pay_to:
        raise RuntimeError("Missing PAY_TO_ADDRESS env var. Set it to the address that receives payments.")

    network = os.getenv("NETWORK", DEFAULT_NETWORK)
    asset = os.getenv("ASSET_ADDRESS") or USDC_ASSETS.get(network)
    if not asset:
        raise RuntimeError(f"No default asset for network {network!r}; set ASSET_ADDRESS.")

    mode = os.getenv("VERIFICATION_MODE", MODE_FACILITATOR).strip().lower()
    if mode == "custom":
        raise RuntimeError(
            "VERIFICATION_MODE=custom (in-process chain verification) is not supported; "
            "run a facilitator next to the server and use VERIFICATION_MODE=facilitator with FACILITATOR_URL."
        )
    if mode not in VERIFICATION_MODES:
        raise RuntimeError(f"Unknown VERIFICATION_MODE {mode!r}; expected one of {', '.join(VERIFICATION_MODES)}.")

    unavailable_status = _int_env("VERIFIER_UNAVAILABLE_STATUS", 402)
    if unavailable_status not in (402, 503):
        raise RuntimeError("VERIFIER_UNAVAILABLE_STATUS must be 402 or 503.")

    port = _int_env("PORT", DEFAULT_PORT)
    base_url = os.getenv("PUBLIC_BASE_URL") or f"http://localhost:{port}"

    return GateConfig(
        pay_to_address=pay_to,
        network=network,
        asset=asset,
        facilitator_url=os.getenv("FACILITATOR_URL", DEFAULT_FACILITATOR_URL),
        verification_mode=mode,
        allow_permissive=os.getenv("ALLOW_PERMISSIVE_VERIFIER", "").strip().lower() in _TRUTHY,
        timeout_seconds=_int_env("PAYMENT_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
        unavailable_status=unavailable_status,
        port=port,
        public_base_url=base_url.rstrip("/"),
        app_env=os.getenv("APP_ENV", "").strip().lower(),
    )
