from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from localmarket.core.api_docs import error_responses
from localmarket.core.deps import get_db
from localmarket.core.permissions import require_business_roles
from localmarket.core.security_current import BusinessAccess, get_business_access, get_current_user
from localmarket.models.business_invite import INVITE_STATUSES, BusinessInvite
from localmarket.models.business_member import BusinessMember
from localmarket.models.profile import Profile
from localmarket.models.user import User
from localmarket.models.vendor import Vendor
from localmarket.schemas.team import (
    InviteCreateIn,
    InviteListOut,
    InviteOut,
    InviteRedeemIn,
    InviteRedeemOut,
    MemberListOut,
    MemberOut,
    MemberRoleUpdateIn,
)
from localmarket.services.audit_service import log_audit_event
from localmarket.services.invite_service import expire_stale_invites, get_or_create_invite, redeem_invite

router = APIRouter(tags=["team"])


def _member_out(member: BusinessMember, user: User, profile: Profile | None) -> MemberOut:
    return MemberOut(
        member_id=member.id,
        user_id=user.id,
        email=user.email,
        first_name=profile.first_name if profile else None,
        last_name=profile.last_name if profile else None,
        role=member.role,
        created_at=member.created_at,
    )


def _invite_out(invite: BusinessInvite, *, reused: bool = False) -> InviteOut:
    return InviteOut(
        invite_id=invite.id,
        business_id=invite.business_id,
        code=invite.code,
        email=invite.email,
        status=invite.status,
        expires_at=invite.expires_at,
        used_by=invite.used_by,
        used_at=invite.used_at,
        created_at=invite.created_at,
        reused=reused,
    )


def _member_in_business(db: Session, *, business_id: str, member_id: str) -> BusinessMember:
    member = db.execute(
        select(BusinessMember).where(
            BusinessMember.id == member_id,
            BusinessMember.business_id == business_id,
        )
    ).scalar_one_or_none()
    if not member:
        raise HTTPException(status_code=404, detail="Member not found")
    return member


def _owner_count(db: Session, business_id: str) -> int:
    return int(
        db.execute(
            select(func.count(BusinessMember.id)).where(
                BusinessMember.business_id == business_id,
                BusinessMember.role == "owner",
            )
        ).scalar_one()
    )


def _enforce_manage_rules(
    *,
    actor_access: BusinessAccess,
    target: BusinessMember,
    new_role: str | None,
) -> None:
    actor_role = actor_access.role.lower()
    target_role = (target.role or "").lower()

    if target_role == "owner" and actor_role != "owner":
        raise HTTPException(status_code=403, detail="Only owners can modify owner memberships")

    if actor_role == "admin":
        if target_role in {"owner", "admin"} and target.user_id != actor_access.user_id:
            raise HTTPException(status_code=403, detail="Admins cannot modify owner/admin memberships")
        if new_role in {"owner", "admin"}:
            raise HTTPException(status_code=403, detail="Admins cannot assign owner/admin roles")

    if new_role == "owner" and actor_role != "owner":
        raise HTTPException(status_code=403, detail="Only owners can assign owner role")


@router.get(
    "/businesses/{business_id}/members",
    response_model=MemberListOut,
    summary="List business members",
    responses={**error_responses(401, 403, 404, 500)},
)
def list_members(
    db: Session = Depends(get_db),
    access: BusinessAccess = Depends(get_business_access),
):
    rows = db.execute(
        select(BusinessMember, User, Profile)
        .join(User, User.id == BusinessMember.user_id)
        .outerjoin(Profile, Profile.id == BusinessMember.user_id)
        .where(BusinessMember.business_id == access.business.id)
        .order_by(BusinessMember.created_at.asc())
    ).all()
    return MemberListOut(items=[_member_out(member, user, profile) for member, user, profile in rows])


@router.patch(
    "/businesses/{business_id}/members/{member_id}",
    response_model=MemberOut,
    summary="Change a member's role",
    responses={**error_responses(400, 401, 403, 404, 422, 500)},
)
def update_member_role(
    member_id: str,
    payload: MemberRoleUpdateIn,
    db: Session = Depends(get_db),
    access: BusinessAccess = Depends(require_business_roles("owner", "admin")),
):
    member = _member_in_business(db, business_id=access.business.id, member_id=member_id)
    _enforce_manage_rules(actor_access=access, target=member, new_role=payload.role)

    previous_role = member.role
    if previous_role == "owner" and payload.role != "owner":
        if member.user_id == access.business.created_by:
            raise HTTPException(status_code=400, detail="The business creator must remain an owner")
        if _owner_count(db, access.business.id) <= 1:
            raise HTTPException(status_code=400, detail="A business must keep at least one owner")

    member.role = payload.role
    log_audit_event(
        db,
        business_id=access.business.id,
        actor_user_id=access.user_id,
        action="team.member.role_changed",
        target_type="business_member",
        target_id=member.id,
        metadata_json={"user_id": member.user_id, "from": previous_role, "to": payload.role},
    )
    db.commit()
    db.refresh(member)
    return _member_out(member, db.get(User, member.user_id), db.get(Profile, member.user_id))


@router.delete(
    "/businesses/{business_id}/members/{member_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a member",
    responses={**error_responses(400, 401, 403, 404, 500)},
)
def remove_member(
    member_id: str,
    db: Session = Depends(get_db),
    access: BusinessAccess = Depends(require_business_roles("owner", "admin")),
):
    member = _member_in_business(db, business_id=access.business.id, member_id=member_id)
    _enforce_manage_rules(actor_access=access, target=member, new_role=None)

    if member.user_id == access.business.created_by:
        raise HTTPException(status_code=400, detail="The business creator cannot be removed")
    if member.role == "owner" and _owner_count(db, access.business.id) <= 1:
        raise HTTPException(status_code=400, detail="A business must keep at least one owner")

    log_audit_event(
        db,
        business_id=access.business.id,
        actor_user_id=access.user_id,
        action="team.member.removed",
        target_type="business_member",
        target_id=member.id,
        metadata_json={"user_id": member.user_id, "role": member.role},
    )
    db.delete(member)
    vendor = db.get(Vendor, member.user_id)
    if vendor and vendor.business_id == access.business.id:
        vendor.business_id = None
    db.commit()
    return None


@router.post(
    "/businesses/{business_id}/invites",
    response_model=InviteOut,
    summary="Get or create an invite code",
    description="Returns the business's active code when one exists, otherwise issues a new one.",
    responses={**error_responses(401, 403, 404, 409, 422, 500)},
)
def create_invite(
    payload: InviteCreateIn | None = None,
    db: Session = Depends(get_db),
    access: BusinessAccess = Depends(require_business_roles("owner", "admin")),
):
    payload = payload or InviteCreateIn()
    invite, reused = get_or_create_invite(
        db,
        business_id=access.business.id,
        actor_user_id=access.user_id,
        email=str(payload.email) if payload.email else None,
        expires_in_days=payload.expires_in_days,
    )
    db.commit()
    db.refresh(invite)
    return _invite_out(invite, reused=reused)


@router.get(
    "/businesses/{business_id}/invites",
    response_model=InviteListOut,
    summary="List invite codes",
    responses={**error_responses(400, 401, 403, 404, 500)},
)
def list_invites(
    status_filter: str | None = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    access: BusinessAccess = Depends(require_business_roles("owner", "admin")),
):
    expire_stale_invites(db, business_id=access.business.id)
    db.commit()

    stmt = select(BusinessInvite).where(BusinessInvite.business_id == access.business.id)
    if status_filter:
        normalized_status = status_filter.strip().lower()
        if normalized_status not in INVITE_STATUSES:
            raise HTTPException(status_code=400, detail="status must be one of: active, expired, used")
        stmt = stmt.where(BusinessInvite.status == normalized_status)

    rows = db.execute(stmt.order_by(BusinessInvite.created_at.desc())).scalars().all()
    return InviteListOut(items=[_invite_out(invite) for invite in rows])


@router.post(
    "/business-invites/redeem",
    response_model=InviteRedeemOut,
    summary="Join a business with an invite code",
    responses={**error_responses(400, 401, 403, 404, 409, 422, 500)},
)
def redeem_business_invite(
    payload: InviteRedeemIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    redemption = redeem_invite(db, code=payload.code, user=user)
    return InviteRedeemOut(
        business_id=redemption.business.id,
        business_name=redemption.business.name,
        member_id=redemption.member.id,
        role=redemption.member.role,
        vendor_id=redemption.vendor.id,
    )
