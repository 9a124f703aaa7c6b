from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Mapping

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.content import FREE_ENDPOINTS, MODE_LABELS, SERVER_NAME, SERVER_VERSION, TIER_CONTENT, tier_document
from backend.x402_gate.config import GateConfig, load_config
from backend.x402_gate.middleware import PAYMENT_HEADER, install_payment_gate
from backend.x402_gate.tiers import PriceTier, build_price_tiers
from backend.x402_gate.verifiers import Verifier, build_verifier

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(settings: GateConfig, tiers: Mapping[str, PriceTier], verifier: Verifier) -> FastAPI:
    started_at = time.monotonic()
    available = ["/", *FREE_ENDPOINTS, *tiers.keys()]
    mode_label = MODE_LABELS.get(verifier.name, verifier.name)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("[x402-gate] %s server starting pay_to=%s network=%s mode=%s", SERVER_NAME, settings.pay_to_address, settings.network, verifier.name)
        yield
        await verifier.aclose()

    app = FastAPI(title=f"{SERVER_NAME} Server (x402-gated)", version=SERVER_VERSION, lifespan=lifespan)

    install_payment_gate(app, tiers=tiers, verifier=verifier, unavailable_status=settings.unavailable_status)

    # Added last so it wraps the gate and 402 responses carry CORS headers too.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Origin", "X-Requested-With", "Content-Type", "Accept", "Authorization", PAYMENT_HEADER],
        expose_headers=["X-X402-Payer", "X-X402-Path", "X-X402-Mode"],
    )

    @app.exception_handler(404)
    async def not_found(request: Request, exc):
        return JSONResponse(
            {
                "error": "Not found",
                "message": "The requested endpoint does not exist",
                "availableEndpoints": available,
            },
            status_code=404,
        )

    @app.exception_handler(Exception)
    async def internal_error(request: Request, exc: Exception):
        logger.error("[x402-gate] unhandled error path=%s: %s", request.url.path, exc)
        return JSONResponse({"error": "Internal server error", "message": str(exc)}, status_code=500)

    @app.get("/")
    async def root():
        return {
            "name": f"{SERVER_NAME} Server",
            "version": SERVER_VERSION,
            "description": f"A x402 payment-enabled server with {mode_label} verification",
            "endpoints": {"free": FREE_ENDPOINTS, "paid": list(tiers.keys())},
            "prices": {tier.name: tier.display_price for tier in tiers.values()},
            "verification": mode_label,
        }

    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "server": SERVER_NAME,
            "uptime": round(time.monotonic() - started_at, 3),
            "verification": verifier.name,
        }

    @app.get("/info")
    async def info():
        return {
            "server": SERVER_NAME,
            "description": f"Welcome to {SERVER_NAME} - Your premium content server",
            "features": [
                "x402 Payment Integration",
                "Multiple Pricing Tiers",
                f"{settings.network} Network Support",
                f"{mode_label} Payment Verification",
            ],
            "contact": "onekgman@example.com",
        }

    for path in tiers:
        if path not in TIER_CONTENT:
            raise RuntimeError(f"No content registered for paid path {path}")
        app.add_api_route(path, _tier_handler(path, verifier.name), methods=["GET"])

    return app


def _tier_handler(path: str, mode: str):
    async def handler(request: Request):
        return tier_document(path, mode, getattr(request.state, "payer", None))

    handler.__name__ = f"tier_{path.rsplit('/', 1)[-1]}"
    return handler


settings = load_config()
tiers = build_price_tiers(settings)
verifier = build_verifier(settings)
app = create_app(settings, tiers, verifier)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.port)
