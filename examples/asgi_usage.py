"""examples/asgi_usage.py - Request logging for any ASGI application.

Wraps a plain ASGI app with LogNorthMiddleware and replays two requests
in-process through httpx. Every request gets (or keeps) an X-Trace-ID, and
events logged inside the handler share it with the request summary event.

Run:
    python examples/asgi_usage.py
"""

import asyncio

import httpx

import lognorth
from lognorth import LogNorthMiddleware


async def orders_app(scope, receive, send):
    lognorth.log("Loading orders", {"path": scope["path"]})
    status = 200 if scope["path"] == "/orders" else 404
    await send({"type": "http.response.start", "status": status, "headers": []})
    await send({"type": "http.response.body", "body": b"ok"})


app = LogNorthMiddleware(orders_app)


async def main() -> None:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://demo") as client:
        first = await client.get("/orders", headers={"X-Trace-ID": "feedfacecafebeef"})
        second = await client.get("/nowhere")

    print(f"GET /orders  -> {first.status_code}, trace {first.headers['x-trace-id']}")
    print(f"GET /nowhere -> {second.status_code}, trace {second.headers['x-trace-id']}")

    await lognorth.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
