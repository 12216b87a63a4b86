import uuid
from datetime import date
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from localmarket.models.audit_log import AuditLog


def log_audit_event(
    db: Session,
    *,
    business_id: str | None,
    actor_user_id: str,
    action: str,
    target_type: str,
    target_id: str | None = None,
    metadata_json: dict[str, Any] | None = None,
) -> AuditLog:
    """Add an audit row to the open transaction. Nothing is flushed here."""
    row = AuditLog(
        id=str(uuid.uuid4()),
        business_id=business_id,
        actor_user_id=actor_user_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        metadata_json=metadata_json,
    )
    db.add(row)
    return row


def list_business_audit_events(
    db: Session,
    business_id: str,
    *,
    action: str | None = None,
    since: date | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[AuditLog], int]:
    """Newest first page of a business trail plus the unpaged total."""
    conditions = [AuditLog.business_id == business_id]
    if action and action.strip():
        conditions.append(AuditLog.action == action.strip())
    if since is not None:
        conditions.append(func.date(AuditLog.created_at) >= since)

    total = db.scalar(select(func.count()).select_from(AuditLog).where(*conditions)) or 0
    page = db.scalars(
        select(AuditLog)
        .where(*conditions)
        .order_by(AuditLog.created_at.desc(), AuditLog.id)
        .offset(offset)
        .limit(limit)
    ).all()
    return list(page), int(total)
