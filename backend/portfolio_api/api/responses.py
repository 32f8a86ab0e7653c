from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel


def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, list):
        return [_dump(v) for v in value]
    return value


def envelope(
    success: bool,
    *,
    message: Optional[str] = None,
    data: Any = None,
    errors: Any = None,
    **extra: Any,
) -> dict[str, Any]:
    """Build the ``{success, message?, data?, errors?}`` body shared by every endpoint."""
    body: dict[str, Any] = {"success": success}
    if message is not None:
        body["message"] = message
    for key, value in extra.items():
        if value is not None:
            body[key] = _dump(value)
    if data is not None:
        body["data"] = _dump(data)
    if errors is not None:
        body["errors"] = _dump(errors)
    return body
