from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Enum, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, validates

from portfolio_api.db.base import Base

FIELD_MAX_LENGTHS = {"name": 100, "email": 255, "subject": 200, "message": 5000}


class ContactStatus(str, enum.Enum):
    UNREAD = "unread"
    READ = "read"
    REPLIED = "replied"
    ARCHIVED = "archived"

    @classmethod
    def values(cls) -> list[str]:
        return [s.value for s in cls]


class ModelValidationError(ValueError):
    """A write rejected by the model itself rather than the validation layer."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ContactSubmission(Base):
    __tablename__ = "contact_submissions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    subject: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    ip_address: Mapped[str] = mapped_column(String(255), nullable=False, default="Unknown")
    user_agent: Mapped[str] = mapped_column(Text, nullable=False, default="Unknown")
    status: Mapped[ContactStatus] = mapped_column(
        Enum(
            ContactStatus,
            name="contact_status",
            values_callable=lambda enum_cls: [s.value for s in enum_cls],
            validate_strings=True,
        ),
        nullable=False,
        default=ContactStatus.UNREAD,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    @validates("name", "email", "subject", "message")
    def _validate_text(self, key: str, value):
        if not isinstance(value, str) or not value.strip():
            raise ModelValidationError(key, f"{key.capitalize()} is required")
        if len(value) > FIELD_MAX_LENGTHS[key]:
            raise ModelValidationError(key, f"{key.capitalize()} cannot exceed {FIELD_MAX_LENGTHS[key]} characters")
        return value

    @validates("status")
    def _validate_status(self, key: str, value):
        try:
            return ContactStatus(value)
        except ValueError:
            raise ModelValidationError(key, f"'{value}' is not a valid status") from None

    def __repr__(self) -> str:
        return f"<ContactSubmission {self.id} {self.email} ({self.status.value})>"
