from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from portfolio_api.core.exceptions import DuplicateEntry, UpstreamUnavailable, ValidationFailure
from portfolio_api.core.logger import init_logger
from portfolio_api.crud.contact_submission import create_contact_submission
from portfolio_api.models.contact_submission import ModelValidationError
from portfolio_api.schemas.contact import ContactSummary, FieldError
from portfolio_api.services.validation import validate_submission

contact_logger = init_logger("contact-service")

SUBMIT_FAILED_MESSAGE = "An error occurred while sending your message. Please try again later."


@dataclass(frozen=True)
class ClientMeta:
    ip_address: str = "Unknown"
    user_agent: str = "Unknown"


@dataclass(frozen=True)
class ContactNotice:
    """Detached copy of a stored submission, handed to the notifier."""

    id: str
    name: str
    email: str
    subject: str
    message: str
    ip_address: str
    submitted_at: datetime


@dataclass
class SubmissionResult:
    summary: Optional[ContactSummary] = None
    errors: list[FieldError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.summary is not None


def submit(
    db: Session,
    raw: Any,
    meta: ClientMeta,
    *,
    schedule: Optional[Callable[[ContactNotice], None]] = None,
) -> SubmissionResult:
    form, errors = validate_submission(raw)
    if form is None:
        return SubmissionResult(errors=errors)

    try:
        submission = create_contact_submission(
            db,
            name=form.name,
            email=form.email,
            subject=form.subject,
            message=form.message,
            ip_address=(meta.ip_address or "Unknown")[:255],
            user_agent=meta.user_agent or "Unknown",
        )
    except ModelValidationError as e:
        raise ValidationFailure([{"field": e.field, "message": e.message}]) from e
    except IntegrityError as e:
        contact_logger.error(f"Contact submission rejected by the store: {e}")
        raise DuplicateEntry() from e
    except SQLAlchemyError as e:
        contact_logger.exception("Contact submission error")
        raise UpstreamUnavailable(SUBMIT_FAILED_MESSAGE, detail=str(e)) from e

    contact_logger.info(f"New contact submission from: {submission.email}")

    if schedule is not None:
        schedule(
            ContactNotice(
                id=str(submission.id),
                name=submission.name,
                email=submission.email,
                subject=submission.subject,
                message=submission.message,
                ip_address=submission.ip_address,
                submitted_at=submission.created_at,
            )
        )

    return SubmissionResult(
        summary=ContactSummary(
            id=submission.id,
            name=submission.name,
            email=submission.email,
            subject=submission.subject,
            submitted_at=submission.created_at,
        )
    )
