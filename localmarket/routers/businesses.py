from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from localmarket.core.api_docs import error_responses
from localmarket.core.config import settings
from localmarket.core.deps import get_db
from localmarket.core.permissions import require_business_roles
from localmarket.core.security_current import (
    BusinessAccess,
    get_current_user,
    get_optional_user,
    resolve_business_role,
)
from localmarket.models.business import Business
from localmarket.models.event import Event
from localmarket.models.user import User
from localmarket.models.vendor import Vendor
from localmarket.routers.events import _event_out
from localmarket.routers.vendors import _vendor_out
from localmarket.schemas.business import (
    BusinessAccessOut,
    BusinessCreateIn,
    BusinessOut,
    BusinessSearchItemOut,
    BusinessSearchOut,
    BusinessUpdateIn,
)
from localmarket.schemas.event import EventOut
from localmarket.schemas.vendor import VendorListOut
from localmarket.services.audit_service import log_audit_event
from localmarket.services.business_service import (
    check_business_access,
    create_business,
    search_businesses,
)
from localmarket.services.vendor_service import get_vendor_location

router = APIRouter(prefix="/businesses", tags=["businesses"])


def _business_out(business: Business, viewer_role: str | None = None) -> BusinessOut:
    return BusinessOut(
        id=business.id,
        name=business.name,
        description=business.description,
        created_by=business.created_by,
        created_at=business.created_at,
        viewer_role=viewer_role,
    )


def _get_business_or_404(db: Session, business_id: str) -> Business:
    business = db.get(Business, business_id)
    if not business:
        raise HTTPException(status_code=404, detail="Business not found")
    return business


@router.post(
    "",
    response_model=BusinessOut,
    summary="Create business",
    description="Creates a business and makes the caller its owner.",
    responses=error_responses(401, 422, 500),
)
def create_business_route(
    payload: BusinessCreateIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    business = create_business(
        db,
        name=payload.name,
        description=payload.description,
        created_by=user.id,
    )
    log_audit_event(
        db,
        business_id=business.id,
        actor_user_id=user.id,
        action="business.created",
        target_type="business",
        target_id=business.id,
        metadata_json={"name": business.name},
    )
    db.commit()
    db.refresh(business)
    return _business_out(business, viewer_role="owner")


@router.get(
    "",
    response_model=BusinessSearchOut,
    summary="Search businesses by name",
    responses=error_responses(422, 500),
)
def search_businesses_route(
    q: str = Query(min_length=3),
    limit: int = Query(default=5, ge=1),
    db: Session = Depends(get_db),
):
    rows = search_businesses(db, query=q, limit=min(limit, settings.business_search_max_results))
    return BusinessSearchOut(items=[BusinessSearchItemOut(id=row.id, name=row.name) for row in rows])


@router.get(
    "/{business_id}",
    response_model=BusinessOut,
    summary="Get business",
    responses=error_responses(404, 500),
)
def get_business(
    business_id: str,
    db: Session = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
):
    business = _get_business_or_404(db, business_id)
    viewer_role = None
    if viewer:
        viewer_role, _ = resolve_business_role(db, business=business, user_id=viewer.id)
    return _business_out(business, viewer_role=viewer_role)


@router.patch(
    "/{business_id}",
    response_model=BusinessOut,
    summary="Update business",
    responses=error_responses(401, 403, 404, 422, 500),
)
def update_business(
    payload: BusinessUpdateIn,
    db: Session = Depends(get_db),
    access: BusinessAccess = Depends(require_business_roles("owner", "admin")),
):
    business = access.business
    previous = {"name": business.name, "description": business.description}
    if payload.name is not None:
        business.name = payload.name
    if payload.description is not None:
        business.description = payload.description.strip() or None

    log_audit_event(
        db,
        business_id=business.id,
        actor_user_id=access.user_id,
        action="business.updated",
        target_type="business",
        target_id=business.id,
        metadata_json={"previous": previous},
    )
    db.commit()
    db.refresh(business)
    return _business_out(business, viewer_role=access.role)


@router.get(
    "/{business_id}/access",
    response_model=BusinessAccessOut,
    summary="Check caller access to business",
    responses=error_responses(401, 404, 500),
)
def get_business_access_route(
    business_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    result = check_business_access(db, user_id=user.id, business_id=business_id)
    return BusinessAccessOut(has_access=result.has_access, role=result.role)


@router.get(
    "/{business_id}/vendors",
    response_model=VendorListOut,
    summary="List vendors linked to business",
    responses=error_responses(404, 500),
)
def list_business_vendors(business_id: str, db: Session = Depends(get_db)):
    _get_business_or_404(db, business_id)
    vendors = db.execute(
        select(Vendor).where(Vendor.business_id == business_id).order_by(Vendor.created_at.asc())
    ).scalars().all()
    return VendorListOut(items=[_vendor_out(vendor, get_vendor_location(db, vendor.id)) for vendor in vendors])


@router.get(
    "/{business_id}/events",
    response_model=list[EventOut],
    summary="List events created by the business owner",
    responses=error_responses(404, 500),
)
def list_business_events(business_id: str, db: Session = Depends(get_db)):
    business = _get_business_or_404(db, business_id)
    events = db.execute(
        select(Event)
        .where(Event.created_by == business.created_by)
        .order_by(Event.date.asc(), Event.start_time.asc())
    ).scalars().all()
    return [_event_out(event) for event in events]
