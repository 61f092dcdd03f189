from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional
from portal import get_db
from portal.models.comment import EventComment
from portal.workflow.records import AuditComment, CommentKind


def add_audit_comment(comment: AuditComment) -> EventComment:
    """Persist a workflow AuditComment within the current DB session.

    No commit here; the caller commits it together with the status change.
    """
    session = get_db()
    row = EventComment(
        event_id=comment.event_id,
        author_id=comment.author_id,
        text=comment.text,
        kind=comment.kind.value,
        status_from=comment.status_from.value if comment.status_from else None,
        status_to=comment.status_to.value if comment.status_to else None,
        created_at=comment.created_at,
    )
    session.add(row)
    return row


def add_note(event_id: int, author_id: int, text: str, now: Optional[datetime] = None) -> EventComment:
    """Free-form comment outside any transition."""
    return add_audit_comment(AuditComment(
        event_id=event_id,
        author_id=author_id,
        text=text,
        status_from=None,
        status_to=None,
        created_at=now or datetime.now(timezone.utc),
        kind=CommentKind.GENERAL,
    ))
