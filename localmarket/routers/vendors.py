from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from localmarket.core.api_docs import error_responses
from localmarket.core.deps import get_db
from localmarket.core.security_current import get_current_user
from localmarket.models.user import User
from localmarket.models.vendor import Vendor, VendorLocation
from localmarket.schemas.vendor import (
    VENDOR_CATEGORIES,
    VendorCategoryListOut,
    VendorCategoryOut,
    VendorLocationOut,
    VendorOut,
    VendorSignupIn,
    VendorUpdateIn,
)
from localmarket.services.vendor_service import get_vendor_location, signup_vendor, update_vendor

router = APIRouter(prefix="/vendors", tags=["vendors"])


def _vendor_out(vendor: Vendor, location: VendorLocation | None) -> VendorOut:
    return VendorOut(
        id=vendor.id,
        user_id=vendor.user_id,
        business_id=vendor.business_id,
        business_name=vendor.business_name,
        business_category=vendor.business_category,
        description=vendor.description,
        website=vendor.website,
        instagram=vendor.instagram,
        contact_name=vendor.contact_name,
        email=vendor.email,
        phone=vendor.phone,
        status=vendor.status,
        location=(
            VendorLocationOut(address=location.address, city=location.city, zip_code=location.zip_code)
            if location
            else None
        ),
        created_at=vendor.created_at,
        updated_at=vendor.updated_at,
    )


def _my_vendor_or_404(db: Session, user: User) -> Vendor:
    vendor = db.get(Vendor, user.id)
    if not vendor:
        raise HTTPException(status_code=404, detail="Vendor profile not found")
    return vendor


@router.get(
    "/categories",
    response_model=VendorCategoryListOut,
    summary="List vendor categories",
)
def list_vendor_categories():
    return VendorCategoryListOut(
        items=[VendorCategoryOut(value=value, label=label) for value, label in VENDOR_CATEGORIES]
    )


@router.post(
    "/signup",
    response_model=VendorOut,
    summary="Sign up as a vendor",
    description=(
        "Creates the vendor's business (with owner membership), vendor profile and "
        "location in a single transaction."
    ),
    responses=error_responses(401, 409, 422, 500),
)
def vendor_signup(
    payload: VendorSignupIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    vendor = signup_vendor(db, user=user, payload=payload)
    return _vendor_out(vendor, get_vendor_location(db, vendor.id))


@router.get(
    "/me",
    response_model=VendorOut,
    summary="Get my vendor profile",
    responses=error_responses(401, 404, 500),
)
def get_my_vendor(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    vendor = _my_vendor_or_404(db, user)
    return _vendor_out(vendor, get_vendor_location(db, vendor.id))


@router.patch(
    "/me",
    response_model=VendorOut,
    summary="Update my vendor profile",
    responses=error_responses(400, 401, 404, 422, 500),
)
def update_my_vendor(
    payload: VendorUpdateIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    vendor = update_vendor(db, vendor=_my_vendor_or_404(db, user), payload=payload)
    return _vendor_out(vendor, get_vendor_location(db, vendor.id))
