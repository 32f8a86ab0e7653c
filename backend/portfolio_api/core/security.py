from __future__ import annotations

from typing import Any

from fastapi import Request
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from portfolio_api.core.exceptions import PayloadTooLarge

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Resource-Policy": "cross-origin",
    "X-DNS-Prefetch-Control": "off",
}


def sanitize_payload(value: Any) -> Any:
    """Strip keys that look like query operators (``$gt``, ``a.b``) at any depth."""
    if isinstance(value, dict):
        return {
            k: sanitize_payload(v)
            for k, v in value.items()
            if not (isinstance(k, str) and (k.startswith("$") or "." in k))
        }
    if isinstance(value, list):
        return [sanitize_payload(v) for v in value]
    return value


def get_client_ip(request: Request, *, trust_proxy: bool = False) -> str:
    """Address of the connecting peer.

    ``X-Forwarded-For`` is client-controlled, so its first entry is only used
    when ``trust_proxy`` says a proxy in front of the app sets it.
    """
    if trust_proxy:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            ip = forwarded.split(",")[0].strip()
            if ip:
                return ip
    if request.client and request.client.host:
        return request.client.host
    return "Unknown"


def get_user_agent(request: Request) -> str:
    return request.headers.get("user-agent") or "Unknown"


class BodySizeLimitMiddleware:
    """
    **BodySizeLimitMiddleware**
        Counts the request body bytes as they are received and raises
        PayloadTooLarge once more than ``max_bytes`` have arrived, whether or
        not the client declared a Content-Length.
    """

    def __init__(self, app: ASGIApp, max_bytes: int):
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    raise PayloadTooLarge()
            return message

        await self.app(scope, limited_receive, send)
