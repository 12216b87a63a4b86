from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from localmarket.core.api_docs import error_responses
from localmarket.core.deps import get_db
from localmarket.core.permissions import require_business_roles
from localmarket.core.security_current import BusinessAccess
from localmarket.schemas.audit import AuditLogListOut, AuditLogOut
from localmarket.schemas.common import PaginationMeta
from localmarket.services.audit_service import list_business_audit_events

router = APIRouter(prefix="/businesses/{business_id}/audit-logs", tags=["audit"])


@router.get(
    "",
    response_model=AuditLogListOut,
    summary="List the audit trail of a business",
    responses={**error_responses(400, 401, 403, 404, 422, 500)},
)
def list_audit_logs(
    action: str | None = Query(default=None, description="Exact action name, e.g. team.member.removed"),
    since: date | None = Query(default=None, description="Only entries on or after this day"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    access: BusinessAccess = Depends(require_business_roles("owner", "admin")),
):
    if since is not None and since > date.today():
        raise HTTPException(status_code=400, detail="since cannot be in the future")

    rows, total = list_business_audit_events(
        db,
        access.business.id,
        action=action,
        since=since,
        limit=limit,
        offset=offset,
    )
    return AuditLogListOut(
        items=[AuditLogOut.model_validate(row) for row in rows],
        pagination=PaginationMeta.for_page(total=total, limit=limit, offset=offset, count=len(rows)),
    )
