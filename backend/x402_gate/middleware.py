from __future__ import annotations

from typing import Mapping

from fastapi import Request
from fastapi.responses import JSONResponse

from .gate import RejectKind, evaluate
from .tiers import PriceTier
from .verifiers import Verifier

PAYMENT_HEADER = "x-payment"


def install_payment_gate(app, tiers: Mapping[str, PriceTier], verifier: Verifier, unavailable_status: int = 402) -> None:
    @app.middleware("http")
    async def _payment_gate(request: Request, call_next):
        if request.method.upper() == "OPTIONS":
            return await call_next(request)

        path = request.url.path
        tier = tiers.get(path)
        if tier is None:
            return await call_next(request)

        decision = await evaluate(path, request.headers.get(PAYMENT_HEADER), tier, verifier)
        if not decision.allowed:
            status = unavailable_status if decision.kind is RejectKind.VERIFIER_UNAVAILABLE else 402
            return JSONResponse(
                decision.body(),
                status_code=status,
                headers={"X-X402-Mode": verifier.name, "X-X402-Path": path},
            )

        request.state.payer = decision.payer
        response = await call_next(request)
        if decision.payer:
            response.headers["X-X402-Payer"] = decision.payer
        response.headers["X-X402-Path"] = path
        response.headers["X-X402-Mode"] = verifier.name
        return response
