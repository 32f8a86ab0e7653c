from __future__ import annotations

import re
import uuid
from datetime import datetime, timezone
from typing import Any

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, Field, computed_field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

from portfolio_api.models.contact_submission import ContactStatus

NAME_PATTERN = re.compile(r"^[a-zA-Z\s'-]+$")


def _required(value: Any, label: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{label} is required")
    return value.strip()


def _length(value: str, label: str, min_length: int, max_length: int) -> str:
    if not min_length <= len(value) <= max_length:
        raise ValueError(f"{label} must be between {min_length} and {max_length} characters")
    return value


def format_submission_date(value: datetime) -> str:
    """Human readable local time, e.g. ``October 19, 2026 at 09:30 AM``."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    local = value.astimezone()
    return f"{local:%B} {local.day}, {local.year} at {local:%I:%M %p}"


class FieldError(BaseModel):
    field: str
    message: str


class ContactCreate(BaseModel):
    """Inbound contact form. Each validator trims and checks a single field."""

    model_config = ConfigDict(extra="ignore", validate_default=True)

    name: str = ""
    email: str = ""
    subject: str = ""
    message: str = ""

    @field_validator("name", mode="before")
    @classmethod
    def _check_name(cls, value: Any) -> str:
        value = _length(_required(value, "Name"), "Name", 2, 100)
        if not NAME_PATTERN.match(value):
            raise ValueError("Name can only contain letters, spaces, hyphens, and apostrophes")
        return value

    @field_validator("email", mode="before")
    @classmethod
    def _check_email(cls, value: Any) -> str:
        value = _required(value, "Email")
        try:
            value = validate_email(value, check_deliverability=False).normalized
        except EmailNotValidError:
            raise ValueError("Please provide a valid email address") from None
        value = value.lower()
        if len(value) > 255:
            raise ValueError("Email cannot exceed 255 characters")
        return value

    @field_validator("subject", mode="before")
    @classmethod
    def _check_subject(cls, value: Any) -> str:
        return _length(_required(value, "Subject"), "Subject", 3, 200)

    @field_validator("message", mode="before")
    @classmethod
    def _check_message(cls, value: Any) -> str:
        return _length(_required(value, "Message"), "Message", 10, 5000)


class _CamelModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    @staticmethod
    def _as_utc(value: datetime) -> datetime:
        # SQLite hands timestamps back without tzinfo; they are stored as UTC.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class ContactSummary(_CamelModel):
    id: uuid.UUID
    name: str
    email: str
    subject: str
    submitted_at: datetime

    @field_serializer("submitted_at")
    def _serialize_submitted_at(self, value: datetime) -> datetime:
        return self._as_utc(value)


class ContactOut(_CamelModel):
    id: uuid.UUID
    name: str
    email: str
    subject: str
    message: str
    ip_address: str
    user_agent: str
    status: ContactStatus
    created_at: datetime
    updated_at: datetime

    @field_serializer("created_at", "updated_at")
    def _serialize_timestamps(self, value: datetime) -> datetime:
        return self._as_utc(value)

    @computed_field(alias="formattedDate")
    @property
    def formatted_date(self) -> str:
        return format_submission_date(self.created_at)


class PaginationOut(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class ContactStats(_CamelModel):
    total: int
    today: int
    by_status: dict[str, int] = Field(default_factory=dict)
