"""Pay for tier content with a real wallet through the x402 SDK client (facilitator mode)."""

import asyncio
import os

from eth_account import Account  # type: ignore
from x402.clients.httpx import x402HttpxClient  # type: ignore

API_BASE = os.getenv("API_BASE", "http://127.0.0.1:3000")


async def main():
    acct = Account.from_key(os.environ["PRIVATE_KEY"])
    async with x402HttpxClient(account=acct, base_url=API_BASE) as client:
        r = await client.get("/health")
        print(r.status_code, r.json())

        r2 = await client.get(os.getenv("DEMO_PATH", "/api/basic"))
        print(r2.status_code, r2.json())

if __name__ == "__main__":
    asyncio.run(main())
