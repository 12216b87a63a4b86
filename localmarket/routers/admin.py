from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from localmarket.core.api_docs import error_responses
from localmarket.core.deps import get_db
from localmarket.core.permissions import require_platform_admin
from localmarket.core.statuses import normalize_vendor_status
from localmarket.models.profile import Profile
from localmarket.models.user import User
from localmarket.models.vendor import Vendor, VendorLocation
from localmarket.routers.vendors import _vendor_out
from localmarket.schemas.auth import PlatformRoleIn, PlatformRoleOut
from localmarket.schemas.vendor import VendorListOut, VendorOut, VendorStatusUpdateIn
from localmarket.services.vendor_service import get_vendor_location, set_vendor_status

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get(
    "/vendors",
    response_model=VendorListOut,
    summary="List vendors for review",
    responses=error_responses(400, 401, 403, 500),
)
def list_vendors(
    status_filter: str | None = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    _admin: Profile = Depends(require_platform_admin),
):
    stmt = (
        select(Vendor, VendorLocation)
        .outerjoin(VendorLocation, VendorLocation.vendor_id == Vendor.id)
        .order_by(Vendor.created_at.desc())
    )
    if status_filter:
        stmt = stmt.where(Vendor.status == normalize_vendor_status(status_filter))

    rows = db.execute(stmt).all()
    return VendorListOut(items=[_vendor_out(vendor, location) for vendor, location in rows])


@router.patch(
    "/vendors/{vendor_id}/status",
    response_model=VendorOut,
    summary="Approve or reject a vendor",
    responses=error_responses(400, 401, 403, 404, 422, 500),
)
def update_vendor_status(
    vendor_id: str,
    payload: VendorStatusUpdateIn,
    db: Session = Depends(get_db),
    admin: Profile = Depends(require_platform_admin),
):
    vendor = set_vendor_status(
        db,
        vendor_id=vendor_id,
        requested_status=payload.status,
        actor_user_id=admin.id,
    )
    return _vendor_out(vendor, get_vendor_location(db, vendor.id))


@router.post(
    "/users/{user_id}/role",
    response_model=PlatformRoleOut,
    summary="Set a user's platform role",
    responses=error_responses(401, 403, 404, 422, 500),
)
def set_platform_role(
    user_id: str,
    payload: PlatformRoleIn,
    db: Session = Depends(get_db),
    _admin: Profile = Depends(require_platform_admin),
):
    if not db.get(User, user_id):
        raise HTTPException(status_code=404, detail="User not found")

    profile = db.get(Profile, user_id)
    if profile is None:
        profile = Profile(id=user_id, role=payload.role, is_vendor=False)
        db.add(profile)
    else:
        profile.role = payload.role
    db.commit()
    return PlatformRoleOut(user_id=user_id, role=profile.role)
