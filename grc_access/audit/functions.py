"""
GRC Access Audit - Write Contract
=================================
Every mutating access-core call appends exactly one entry in the same
transaction as the change. If the append fails, the change rolls back.
If the change fails, a separate entry with details["error"] is written
afterwards so failed attempts stay forensically visible.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterator, Optional

from django.db import transaction

from grc_access.primitives.actor import Actor
from grc_access.time.clock import now_utc

logger = logging.getLogger("grc.audit")


def write_audit_entry(
    *,
    action: str,
    performed_by: Actor,
    user_id: Optional[int] = None,
    details: Optional[dict[str, Any]] = None,
    timestamp: Optional[datetime] = None,
):
    """Append one entry to the audit log. Returns the stored row."""
    from grc_access.audit.models import AuditLogEntry

    if not action or not isinstance(action, str):
        raise ValueError("action must be a non-empty string.")
    if not isinstance(performed_by, Actor):
        raise ValueError("performed_by must be an Actor.")

    return AuditLogEntry.objects.create(
        user_id=user_id,
        action=action,
        details=dict(details or {}),
        performed_by=performed_by.actor_id,
        performed_by_type=performed_by.actor_type.value,
        timestamp=timestamp or now_utc(),
    )


@dataclass
class AuditDraft:
    """Mutable audit payload filled in by the body of audited_change()."""

    action: str
    performed_by: Actor
    user_id: Optional[int] = None
    details: dict[str, Any] = field(default_factory=dict)


@contextmanager
def audited_change(
    *,
    action: str,
    performed_by: Actor,
    user_id: Optional[int] = None,
    details: Optional[dict[str, Any]] = None,
) -> Iterator[AuditDraft]:
    """
    Run a mutation and its audit entry as one atomic unit.

    The body receives an AuditDraft and may set user_id or add details
    (e.g. the id of a row it just created). On success the entry is
    written inside the same transaction. On failure the transaction is
    rolled back, a failure entry is attempted, and the original
    exception propagates.
    """
    draft = AuditDraft(
        action=action,
        performed_by=performed_by,
        user_id=user_id,
        details=dict(details or {}),
    )
    try:
        with transaction.atomic():
            yield draft
            write_audit_entry(
                action=draft.action,
                performed_by=draft.performed_by,
                user_id=draft.user_id,
                details=draft.details,
            )
    except Exception as exc:
        _record_failure(draft, exc)
        raise


def _record_failure(draft: AuditDraft, exc: Exception) -> None:
    failure_details = dict(draft.details)
    failure_details["error"] = f"{type(exc).__name__}: {exc}"
    try:
        with transaction.atomic():
            write_audit_entry(
                action=draft.action,
                performed_by=draft.performed_by,
                user_id=draft.user_id,
                details=failure_details,
            )
    except Exception:
        logger.error(
            f"Could not audit failed '{draft.action}' for user {draft.user_id}",
            exc_info=True,
        )
