from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from portfolio_api.api import deps
from portfolio_api.api.responses import envelope
from portfolio_api.core.exceptions import ValidationFailure
from portfolio_api.db.session import get_db
from portfolio_api.schemas.contact import PaginationOut
from portfolio_api.services import contact_admin
from portfolio_api.services.contact_service import ClientMeta, submit
from portfolio_api.services.notifications import ContactNotifier

router = APIRouter(prefix="/contact", tags=["contact"])

SUBMITTED_MESSAGE = "Your message has been sent successfully! I will get back to you soon."


@router.post("", status_code=201, dependencies=[Depends(deps.contact_rate_limit)])
def submit_contact(
    background_tasks: BackgroundTasks,
    payload: dict[str, Any] = Depends(deps.read_payload),
    meta: ClientMeta = Depends(deps.get_client_meta),
    notifier: ContactNotifier = Depends(deps.get_notifier),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    result = submit(
        db,
        payload,
        meta,
        schedule=lambda notice: background_tasks.add_task(notifier.dispatch, notice),
    )
    if not result.ok:
        raise ValidationFailure([e.model_dump() for e in result.errors])
    return envelope(True, message=SUBMITTED_MESSAGE, data=result.summary)


@router.get("")
def list_contacts(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    result = contact_admin.list_contacts(db, page=page, limit=limit, status=status)
    return envelope(
        True,
        count=len(result.items),
        pagination=PaginationOut(page=result.page, limit=result.limit, total=result.total, pages=result.pages),
        data=result.items,
    )


# Declared before /{contact_id} so "stats" is never taken for an id.
@router.get("/stats")
def contact_stats(db: Session = Depends(get_db)) -> dict[str, Any]:
    return envelope(True, data=contact_admin.contact_stats(db))


@router.get("/{contact_id}")
def get_contact(contact_id: str, db: Session = Depends(get_db)) -> dict[str, Any]:
    return envelope(True, data=contact_admin.get_contact(db, contact_id))


@router.put("/{contact_id}/status")
def update_contact_status(
    contact_id: str,
    payload: dict[str, Any] = Depends(deps.read_payload),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    new_status = payload.get("status")
    contact = contact_admin.update_status(db, contact_id, new_status)
    return envelope(True, message=f"Status updated to '{contact.status.value}'", data=contact)


@router.delete("/{contact_id}")
def delete_contact(contact_id: str, db: Session = Depends(get_db)) -> dict[str, Any]:
    contact_admin.delete_contact(db, contact_id)
    return envelope(True, message="Contact submission deleted successfully")
