from __future__ import annotations

import math
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portfolio_api.core.exceptions import InvalidStatus, MalformedIdentifier, NotFound, UpstreamUnavailable
from portfolio_api.core.logger import init_logger
from portfolio_api.crud.contact_submission import (
    count_by_status,
    count_contact_submissions,
    delete_contact_submission,
    get_contact_submission,
    list_contact_submissions,
    set_contact_status,
)
from portfolio_api.models.contact_submission import ContactStatus
from portfolio_api.schemas.contact import ContactOut, ContactStats

admin_logger = init_logger("contact-admin")

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10


@dataclass
class ContactPage:
    items: list[ContactOut]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit)


@contextmanager
def _store_errors(message: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as e:
        admin_logger.exception(message)
        raise UpstreamUnavailable(message, detail=str(e)) from e


def parse_positive_int(value: Any, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number >= 1 else default


def parse_contact_id(value: Any) -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise MalformedIdentifier() from None


def parse_status(value: Any) -> ContactStatus:
    try:
        return ContactStatus(value)
    except ValueError:
        raise InvalidStatus(f"Invalid status. Must be one of: {', '.join(ContactStatus.values())}") from None


def list_contacts(
    db: Session,
    *,
    page: Any = None,
    limit: Any = None,
    status: Optional[str] = None,
) -> ContactPage:
    page = parse_positive_int(page, DEFAULT_PAGE)
    limit = parse_positive_int(limit, DEFAULT_LIMIT)
    status_filter = None
    if status:
        try:
            status_filter = ContactStatus(status)
        except ValueError:
            # no stored row can carry an unknown status
            return ContactPage(items=[], total=0, page=page, limit=limit)

    with _store_errors("Error fetching contact submissions"):
        rows = list_contact_submissions(db, limit=limit, offset=(page - 1) * limit, status=status_filter)
        total = count_contact_submissions(db, status=status_filter)

    return ContactPage(
        items=[ContactOut.model_validate(row) for row in rows],
        total=total,
        page=page,
        limit=limit,
    )


def get_contact(db: Session, contact_id: Any) -> ContactOut:
    submission_id = parse_contact_id(contact_id)
    with _store_errors("Error fetching contact submission"):
        submission = get_contact_submission(db, submission_id=submission_id)
    if submission is None:
        raise NotFound()
    return ContactOut.model_validate(submission)


def update_status(db: Session, contact_id: Any, new_status: Any) -> ContactOut:
    submission_id = parse_contact_id(contact_id)
    status = parse_status(new_status)

    with _store_errors("Error updating contact status"):
        submission = set_contact_status(db, submission_id=submission_id, status=status)
    if submission is None:
        raise NotFound()

    admin_logger.info(f"Contact {submission_id} status set to '{status.value}'")
    return ContactOut.model_validate(submission)


def delete_contact(db: Session, contact_id: Any) -> None:
    submission_id = parse_contact_id(contact_id)
    with _store_errors("Error deleting contact submission"):
        deleted = delete_contact_submission(db, submission_id=submission_id)
    if not deleted:
        raise NotFound()
    admin_logger.info(f"Contact {submission_id} deleted")


def local_midnight(now: Optional[datetime] = None) -> datetime:
    """Start of the current local day, expressed in UTC."""
    local_now = (now or datetime.now(timezone.utc)).astimezone()
    return local_now.replace(hour=0, minute=0, second=0, microsecond=0).astimezone(timezone.utc)


def contact_stats(db: Session, *, now: Optional[datetime] = None) -> ContactStats:
    with _store_errors("Error fetching statistics"):
        total = count_contact_submissions(db)
        today = count_contact_submissions(db, created_since=local_midnight(now))
        by_status = count_by_status(db)
    return ContactStats(total=total, today=today, by_status=by_status)
