import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from localmarket.core.config import settings
from localmarket.core.errors import ConflictError, DomainError, NotFoundError
from localmarket.core.observability import log_event
from localmarket.core.statuses import transition_vendor_status
from localmarket.models.profile import Profile
from localmarket.models.user import User
from localmarket.models.vendor import Vendor, VendorLocation
from localmarket.schemas.vendor import VendorSignupIn, VendorUpdateIn
from localmarket.services.audit_service import log_audit_event
from localmarket.services.business_service import create_business

VENDOR_EXISTS = "A vendor profile already exists for this account"


def get_vendor_location(db: Session, vendor_id: str) -> VendorLocation | None:
    return db.execute(
        select(VendorLocation).where(VendorLocation.vendor_id == vendor_id)
    ).scalar_one_or_none()


def _existing_vendor(db: Session, user_id: str) -> Vendor | None:
    return db.get(Vendor, user_id)


def signup_vendor(db: Session, *, user: User, payload: VendorSignupIn) -> Vendor:
    """Creates business, owner membership, vendor and location in one transaction.

    Nothing is persisted unless every step succeeds, so a failed signup never
    leaves an orphaned business behind.
    """
    if _existing_vendor(db, user.id):
        raise ConflictError(VENDOR_EXISTS)

    try:
        business = create_business(
            db,
            name=payload.business_name,
            description=payload.description,
            created_by=user.id,
        )
        vendor = Vendor(
            id=user.id,
            user_id=user.id,
            business_id=business.id,
            business_name=payload.business_name,
            business_category=payload.business_category,
            description=payload.description,
            website=payload.website,
            instagram=payload.instagram,
            contact_name=payload.contact_name,
            email=str(payload.email).lower(),
            phone=payload.phone,
            status="approved" if settings.vendor_auto_approve else "pending",
        )
        db.add(vendor)
        db.flush()
        db.add(
            VendorLocation(
                id=str(uuid.uuid4()),
                vendor_id=vendor.id,
                address=payload.address,
                city=payload.city,
                zip_code=payload.zip_code,
            )
        )

        profile = db.get(Profile, user.id)
        if profile is None:
            profile = Profile(id=user.id, role="user")
            db.add(profile)
        profile.is_vendor = True

        log_audit_event(
            db,
            business_id=business.id,
            actor_user_id=user.id,
            action="vendor.signup",
            target_type="vendor",
            target_id=vendor.id,
            metadata_json={"status": vendor.status, "category": vendor.business_category},
        )
        db.commit()
    except Exception as exc:
        db.rollback()
        log_event(
            "vendor.signup.failed",
            level=logging.ERROR,
            user_id=user.id,
            business_name=payload.business_name,
            error=str(exc),
        )
        if isinstance(exc, IntegrityError):
            # Lost a race with a concurrent signup for the same account.
            raise ConflictError(VENDOR_EXISTS) from exc
        raise

    db.refresh(vendor)
    log_event("vendor.signup.completed", user_id=user.id, vendor_id=vendor.id, status=vendor.status)
    return vendor


def update_vendor(db: Session, *, vendor: Vendor, payload: VendorUpdateIn) -> Vendor:
    changes = payload.model_dump(exclude_unset=True)
    for field in ("business_category", "description", "website", "instagram"):
        if field in changes:
            setattr(vendor, field, changes[field])

    location_fields = {key: changes[key] for key in ("address", "city", "zip_code") if changes.get(key)}
    if location_fields:
        location = get_vendor_location(db, vendor.id)
        if location is None:
            missing = {"address", "city", "zip_code"} - set(location_fields)
            if missing:
                raise DomainError("address, city and zip_code are required to add a location")
            location = VendorLocation(id=str(uuid.uuid4()), vendor_id=vendor.id, **location_fields)
            db.add(location)
        else:
            for key, value in location_fields.items():
                setattr(location, key, value)

    db.commit()
    db.refresh(vendor)
    return vendor


def set_vendor_status(db: Session, *, vendor_id: str, requested_status: str, actor_user_id: str) -> Vendor:
    vendor = db.get(Vendor, vendor_id)
    if not vendor:
        raise NotFoundError("Vendor not found")

    previous_status = vendor.status
    next_status, changed = transition_vendor_status(previous_status, requested_status)
    if not changed:
        return vendor

    vendor.status = next_status
    log_audit_event(
        db,
        business_id=vendor.business_id,
        actor_user_id=actor_user_id,
        action="vendor.status.changed",
        target_type="vendor",
        target_id=vendor.id,
        metadata_json={"from": previous_status, "to": next_status},
    )
    db.commit()
    db.refresh(vendor)
    return vendor
