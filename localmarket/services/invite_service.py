import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from localmarket.core.config import settings
from localmarket.core.errors import AccessDeniedError, ConflictError, InviteRedemptionError, NotFoundError
from localmarket.core.id_utils import generate_invite_code
from localmarket.core.statuses import transition_vendor_status
from localmarket.models.business import Business
from localmarket.models.business_invite import BusinessInvite
from localmarket.models.business_member import BusinessMember
from localmarket.models.profile import Profile
from localmarket.models.user import User
from localmarket.models.vendor import Vendor
from localmarket.services.audit_service import log_audit_event

_MAX_CODE_ATTEMPTS = 5


@dataclass(frozen=True)
class Redemption:
    business: Business
    member: BusinessMember
    vendor: Vendor


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_invite_expired(invite: BusinessInvite, *, now: datetime | None = None) -> bool:
    now = now or datetime.now(timezone.utc)
    return _as_utc(invite.expires_at) <= now


def expire_stale_invites(db: Session, *, business_id: str) -> None:
    db.execute(
        update(BusinessInvite)
        .where(
            BusinessInvite.business_id == business_id,
            BusinessInvite.status == "active",
            BusinessInvite.expires_at <= datetime.now(timezone.utc),
        )
        .values(status="expired")
    )


def _unused_code(db: Session) -> str:
    for _ in range(_MAX_CODE_ATTEMPTS):
        code = generate_invite_code()
        taken = db.execute(
            select(BusinessInvite.id).where(BusinessInvite.code == code)
        ).scalar_one_or_none()
        if not taken:
            return code
    raise ConflictError("Could not allocate a unique invite code, try again")


def get_or_create_invite(
    db: Session,
    *,
    business_id: str,
    actor_user_id: str,
    email: str | None = None,
    expires_in_days: int | None = None,
) -> tuple[BusinessInvite, bool]:
    """Returns (invite, reused).

    An active unexpired code is handed out again when it is open to anyone or
    addressed to the same email. Codes addressed to someone else are never reused.
    """
    expire_stale_invites(db, business_id=business_id)
    email = email.strip().lower() if email else None

    addressee = BusinessInvite.email.is_(None)
    if email:
        addressee = or_(addressee, BusinessInvite.email == email)
    existing = db.execute(
        select(BusinessInvite)
        .where(
            BusinessInvite.business_id == business_id,
            BusinessInvite.status == "active",
            addressee,
        )
        .order_by(BusinessInvite.created_at.desc())
        .limit(1)
    ).scalar_one_or_none()
    if existing and not is_invite_expired(existing):
        return existing, True

    days = expires_in_days or settings.business_invite_expire_days
    invite = BusinessInvite(
        id=str(uuid.uuid4()),
        business_id=business_id,
        code=_unused_code(db),
        created_by=actor_user_id,
        email=email,
        status="active",
        expires_at=datetime.now(timezone.utc) + timedelta(days=days),
    )
    db.add(invite)
    log_audit_event(
        db,
        business_id=business_id,
        actor_user_id=actor_user_id,
        action="team.invite.created",
        target_type="business_invite",
        target_id=invite.id,
        metadata_json={"email": invite.email, "expires_in_days": days},
    )
    return invite, False


def _ensure_vendor_for_business(db: Session, *, user: User, business: Business) -> Vendor:
    vendor = db.get(Vendor, user.id)
    if vendor:
        vendor.business_id = business.id
        next_status, changed = transition_vendor_status(vendor.status, "approved")
        if changed:
            vendor.status = next_status
        return vendor

    vendor = Vendor(
        id=user.id,
        user_id=user.id,
        business_id=business.id,
        business_name=business.name,
        business_category="other",
        description=business.description,
        email=user.email,
        status="approved",
    )
    db.add(vendor)
    return vendor


def redeem_invite(db: Session, *, code: str, user: User) -> Redemption:
    invite = db.execute(
        select(BusinessInvite).where(BusinessInvite.code == code.strip().upper())
    ).scalar_one_or_none()
    if not invite:
        raise NotFoundError("Invite code not found")

    if invite.status != "active":
        raise InviteRedemptionError("Invite code is no longer active")

    if is_invite_expired(invite):
        invite.status = "expired"
        db.commit()
        raise InviteRedemptionError("Invite code has expired")

    if invite.email and invite.email != user.email.lower():
        raise AccessDeniedError("Invitation email does not match your account")

    business = db.get(Business, invite.business_id)
    if not business:
        raise NotFoundError("Business not found")

    already_member = db.execute(
        select(BusinessMember.id).where(
            BusinessMember.business_id == business.id,
            BusinessMember.user_id == user.id,
        )
    ).scalar_one_or_none()
    if already_member or business.created_by == user.id:
        raise ConflictError("You are already a member of this business")

    try:
        # Claim the code; zero rows means another redemption already used it.
        claimed = db.execute(
            update(BusinessInvite)
            .where(BusinessInvite.id == invite.id, BusinessInvite.status == "active")
            .values(status="used", used_by=user.id, used_at=datetime.now(timezone.utc))
        )
        if claimed.rowcount != 1:
            db.rollback()
            raise InviteRedemptionError("Invite code is no longer active")

        vendor = _ensure_vendor_for_business(db, user=user, business=business)

        member = BusinessMember(
            id=str(uuid.uuid4()),
            business_id=business.id,
            user_id=user.id,
            role="member",
        )
        db.add(member)

        profile = db.get(Profile, user.id)
        if profile:
            profile.is_vendor = True

        log_audit_event(
            db,
            business_id=business.id,
            actor_user_id=user.id,
            action="team.invite.redeemed",
            target_type="business_invite",
            target_id=invite.id,
            metadata_json={"member_id": member.id, "vendor_id": vendor.id},
        )
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("You are already a member of this business") from exc

    db.refresh(member)
    return Redemption(business=business, member=member, vendor=vendor)
