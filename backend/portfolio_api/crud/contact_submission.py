from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from portfolio_api.models.contact_submission import ContactStatus, ContactSubmission, utcnow


def create_contact_submission(
    db: Session,
    *,
    name: str,
    email: str,
    subject: str,
    message: str,
    ip_address: str = "Unknown",
    user_agent: str = "Unknown",
) -> ContactSubmission:
    now = utcnow()
    submission = ContactSubmission(
        name=name,
        email=email,
        subject=subject,
        message=message,
        ip_address=ip_address,
        user_agent=user_agent,
        status=ContactStatus.UNREAD,
        created_at=now,
        updated_at=now,
    )
    db.add(submission)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(submission)
    return submission


def get_contact_submission(db: Session, *, submission_id: uuid.UUID) -> Optional[ContactSubmission]:
    return db.execute(
        select(ContactSubmission).where(ContactSubmission.id == submission_id)
    ).scalar_one_or_none()


def list_contact_submissions(
    db: Session,
    *,
    limit: int = 10,
    offset: int = 0,
    status: Optional[ContactStatus] = None,
) -> list[ContactSubmission]:
    stmt = select(ContactSubmission)
    if status is not None:
        stmt = stmt.where(ContactSubmission.status == status)
    stmt = stmt.order_by(ContactSubmission.created_at.desc()).offset(offset).limit(limit)
    return list(db.execute(stmt).scalars().all())


def count_contact_submissions(
    db: Session,
    *,
    status: Optional[ContactStatus] = None,
    created_since: Optional[datetime] = None,
) -> int:
    stmt = select(func.count()).select_from(ContactSubmission)
    if status is not None:
        stmt = stmt.where(ContactSubmission.status == status)
    if created_since is not None:
        stmt = stmt.where(ContactSubmission.created_at >= created_since)
    return int(db.execute(stmt).scalar_one())


def count_by_status(db: Session) -> dict[str, int]:
    stmt = select(ContactSubmission.status, func.count()).group_by(ContactSubmission.status)
    return {status.value: int(count) for status, count in db.execute(stmt).all()}


def set_contact_status(
    db: Session,
    *,
    submission_id: uuid.UUID,
    status: ContactStatus,
) -> Optional[ContactSubmission]:
    submission = get_contact_submission(db, submission_id=submission_id)
    if submission is None:
        return None
    submission.status = status
    submission.updated_at = utcnow()
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(submission)
    return submission


def delete_contact_submission(db: Session, *, submission_id: uuid.UUID) -> bool:
    submission = get_contact_submission(db, submission_id=submission_id)
    if submission is None:
        return False
    db.delete(submission)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    return True
