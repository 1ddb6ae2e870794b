"""examples/basic_usage.py - LogNorth integration demo.

Demonstrates the two primitives and trace correlation:
    Scenario A: ordinary events are buffered and shipped in one batch
    Scenario B: an error is shipped immediately with its location

Run against a local collector:
    LOGNORTH_API_KEY=dev LOGNORTH_ENDPOINT=http://localhost:8080 python examples/basic_usage.py
"""

import asyncio
import logging

import lognorth

logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)


# ===========================================================================
# Business logic
# ===========================================================================


def get_balance(user_id: int) -> int:
    lognorth.log("Querying balance", {"user_id": user_id})
    return 3_000


def pay(user_id: int, amount: int) -> None:
    lognorth.log("Payment attempt", {"user_id": user_id, "amount": amount})
    balance = get_balance(user_id)
    if balance < amount:
        raise ValueError(f"InsufficientFunds: balance={balance}, amount={amount}")
    lognorth.log("Payment successful", {"user_id": user_id})


async def handle_request(user_id: int, amount: int) -> None:
    try:
        pay(user_id, amount)
    except ValueError as exc:
        await lognorth.error("Payment failed", exc, {"user_id": user_id})


async def main() -> None:
    # Environment variables are read on first use; config() overrides them.
    lognorth.config(batch_size=20)

    print("Scenario A: successful payment (events stay buffered)")
    await lognorth.with_trace_id(lognorth.generate_trace_id(), handle_request, 1, 1_000)

    print("Scenario B: failing payment (error shipped immediately)")
    await lognorth.with_trace_id(lognorth.generate_trace_id(), handle_request, 2, 5_000)

    await lognorth.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
