"""
Walk the x402 handshake against a locally running server.

The signature attached here is a personal_sign over the requirements, not an
EIP-3009 transfer authorization, so only a server running with the permissive
verifier will accept it.
"""

from __future__ import annotations

import asyncio
import base64
import json
import os
import secrets
import time
from typing import Any, Dict, List, Tuple

import httpx
from eth_account import Account  # type: ignore
from eth_account.messages import encode_defunct  # type: ignore

API_BASE = os.getenv("API_BASE", "http://127.0.0.1:3000")


def print_handshake(path: str, steps: List[Tuple[int, str]]):
    """One line per HTTP exchange: status, then what the client learned or sent."""
    print(f"\nx402 handshake for GET {path}")
    for status, note in steps:
        marker = "paid" if status == 200 else str(status)
        print(f"  {marker:>4} | {note}")
    print()


def build_payment_header(requirements: Dict[str, Any], acct) -> str:
    now = int(time.time())
    authorization = {
        "from": acct.address,
        "to": requirements["payTo"],
        "value": requirements["maxAmountRequired"],
        "validAfter": str(now - 60),
        "validBefore": str(now + int(requirements.get("maxTimeoutSeconds", 60))),
        "nonce": "0x" + secrets.token_hex(32),
    }
    msg = json.dumps(authorization, sort_keys=True, separators=(",", ":"))
    signed = Account.sign_message(encode_defunct(text=msg), private_key=acct.key)
    proof = {
        "x402Version": 1,
        "scheme": requirements.get("scheme", "exact"),
        "network": requirements.get("network"),
        "payload": {"authorization": authorization, "signature": "0x" + signed.signature.hex().removeprefix("0x")},
    }
    return base64.b64encode(json.dumps(proof).encode("utf-8")).decode("utf-8")


async def call_with_wallet(path: str, acct):
    steps: List[Tuple[int, str]] = []
    async with httpx.AsyncClient(base_url=API_BASE) as client:
        res = await client.get(path)
        if res.status_code != 402:
            print(f"Expected 402, got {res.status_code}: {res.text}")
            return

        requirements = res.json()["accepts"][0]
        steps.append(
            (
                res.status_code,
                f"quote {requirements['maxAmountRequired']} atomic on {requirements['network']} to {requirements['payTo']}",
            )
        )

        header = build_payment_header(requirements, acct)
        res2 = await client.get(path, headers={"X-PAYMENT": header})
        verdict = res2.headers.get("x-x402-mode", "-") if res2.status_code == 200 else res2.json().get("kind", "-")
        steps.append((res2.status_code, f"retry as {acct.address}, gate says {verdict}"))
        print_handshake(path, steps)
        try:
            print(json.dumps(res2.json(), indent=2)[:400])
        except ValueError:
            print(res2.text[:400])


async def main():
    acct = Account.create()
    print("Ephemeral wallet:", acct.address)
    await call_with_wallet(os.getenv("DEMO_PATH", "/api/basic"), acct)


if __name__ == "__main__":
    asyncio.run(main())
