from __future__ import annotations

from typing import Any, Optional

from pydantic import ValidationError

from portfolio_api.schemas.contact import ContactCreate, FieldError


def _error_message(error: dict[str, Any]) -> str:
    ctx = error.get("ctx") or {}
    if error.get("type") == "value_error" and "error" in ctx:
        return str(ctx["error"])
    return str(error.get("msg", "Invalid value"))


def validate_submission(raw: Any) -> tuple[Optional[ContactCreate], list[FieldError]]:
    """Validate raw form fields.

    Returns the normalized form and an empty list, or ``None`` and one
    violation per offending field in form order. Never raises for bad input.
    """
    if not isinstance(raw, dict):
        raw = {}

    try:
        return ContactCreate.model_validate(raw), []
    except ValidationError as e:
        errors = [
            FieldError(field=".".join(str(p) for p in err["loc"]) or "body", message=_error_message(err))
            for err in e.errors()
        ]
        return None, errors
