from __future__ import annotations

from typing import Any

from fastapi import Request

from portfolio_api.core.exceptions import MalformedRequestBody
from portfolio_api.core.ratelimit import RateLimiter
from portfolio_api.core.security import get_client_ip, get_user_agent, sanitize_payload
from portfolio_api.db.session import get_db
from portfolio_api.services.contact_service import ClientMeta
from portfolio_api.services.notifications import ContactNotifier

__all__ = [
    "get_db",
    "client_ip",
    "get_client_meta",
    "get_notifier",
    "contact_rate_limit",
    "read_payload",
]

FORM_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def client_ip(request: Request) -> str:
    return get_client_ip(request, trust_proxy=request.app.state.settings.TRUST_PROXY)


def get_client_meta(request: Request) -> ClientMeta:
    return ClientMeta(ip_address=client_ip(request), user_agent=get_user_agent(request))


def get_notifier(request: Request) -> ContactNotifier:
    return request.app.state.notifier


async def contact_rate_limit(request: Request) -> None:
    """Counts every submission attempt, valid or not, before the body is read."""
    limiter: RateLimiter = request.app.state.contact_limiter
    limiter.hit(client_ip(request))


def _media_type(request: Request) -> str:
    return request.headers.get("content-type", "").split(";")[0].strip().lower()


async def read_payload(request: Request) -> dict[str, Any]:
    """
    Request body as a sanitized dict.

    JSON and form-encoded bodies are accepted; anything else, an empty body
    or a JSON value that is not an object reads as ``{}``.
    """
    media_type = _media_type(request)

    if media_type in FORM_TYPES:
        form = await request.form()
        payload: Any = {key: value for key, value in form.items()}
    elif media_type == "application/json" or media_type.endswith("+json"):
        if not await request.body():
            return {}
        try:
            payload = await request.json()
        except ValueError:
            raise MalformedRequestBody() from None
    else:
        return {}

    if not isinstance(payload, dict):
        return {}
    return sanitize_payload(payload)
