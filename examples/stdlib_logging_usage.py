"""examples/stdlib_logging_usage.py - Ship existing ``logging`` calls.

An application that already uses the standard library only needs one extra
line: ``addHandler(LogNorthHandler())``. INFO and DEBUG records are batched,
ERROR records (including ``logger.exception``) are shipped immediately.

Run:
    LOGNORTH_API_KEY=dev LOGNORTH_ENDPOINT=http://localhost:8080 python examples/stdlib_logging_usage.py
"""

import logging

from lognorth import LogNorthHandler, traced

logging.basicConfig(level=logging.DEBUG)
logging.getLogger().addHandler(LogNorthHandler())

logger = logging.getLogger("inventory")


@traced
def reserve(product_id: int, qty: int) -> None:
    logger.info("Reserving stock", extra={"context": {"product_id": product_id, "qty": qty}})
    stock = {1: 10, 2: 0}.get(product_id, 0)
    if stock < qty:
        raise RuntimeError(f"OutOfStock: product_id={product_id}")


if __name__ == "__main__":
    reserve(1, 3)
    try:
        reserve(2, 1)
    except RuntimeError:
        logger.exception("Reservation failed")
    # Remaining buffered events are flushed by the exit hook.
