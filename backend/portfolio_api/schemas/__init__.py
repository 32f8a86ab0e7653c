from __future__ import annotations

from portfolio_api.schemas.contact import (
    ContactCreate,
    ContactOut,
    ContactStats,
    ContactSummary,
    FieldError,
    PaginationOut,
)

__all__ = [
    "ContactCreate",
    "ContactOut",
    "ContactStats",
    "ContactSummary",
    "FieldError",
    "PaginationOut",
]
