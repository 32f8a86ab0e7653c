from __future__ import annotations

from portfolio_api.models.contact_submission import ContactStatus, ContactSubmission

__all__ = ["ContactStatus", "ContactSubmission"]
