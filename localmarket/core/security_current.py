from dataclasses import dataclass

from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.orm import Session

from localmarket.core.deps import get_db
from localmarket.core.security import ACCESS_TOKEN, TokenValidationError, decode_token
from localmarket.models.business import Business
from localmarket.models.business_member import BusinessMember
from localmarket.models.profile import Profile
from localmarket.models.user import User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)


@dataclass(frozen=True)
class BusinessAccess:
    business: Business
    user_id: str
    role: str
    member_id: str | None


def resolve_business_role(db: Session, *, business: Business, user_id: str) -> tuple[str | None, str | None]:
    """Returns (role, member_id); the creator is always owner."""
    membership = db.execute(
        select(BusinessMember).where(
            BusinessMember.business_id == business.id,
            BusinessMember.user_id == user_id,
        )
    ).scalar_one_or_none()

    if business.created_by == user_id:
        return "owner", membership.id if membership else None
    if membership:
        return (membership.role or "member").lower(), membership.id
    return None, None


def _user_from_token(db: Session, token: str) -> User:
    try:
        payload = decode_token(token, expected_type=ACCESS_TOKEN)
    except TokenValidationError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    user_id = payload.get("sub")
    user = db.execute(select(User).where(User.id == user_id)).scalar_one_or_none()
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found")
    return user


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
    return _user_from_token(db, token)


def get_optional_user(
    token: str | None = Depends(optional_oauth2_scheme),
    db: Session = Depends(get_db),
) -> User | None:
    if not token:
        return None
    return _user_from_token(db, token)


def get_current_profile(user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> Profile:
    profile = db.get(Profile, user.id)
    if not profile:
        # Accounts created before profiles existed get one lazily.
        profile = Profile(id=user.id, role="user", is_vendor=False)
        db.add(profile)
        db.commit()
        db.refresh(profile)
    return profile


def get_business_access(
    business_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> BusinessAccess:
    business = db.get(Business, business_id)
    if not business:
        raise HTTPException(status_code=404, detail="Business not found")

    role, member_id = resolve_business_role(db, business=business, user_id=user.id)
    if not role:
        raise HTTPException(status_code=403, detail="You are not a member of this business")
    return BusinessAccess(business=business, user_id=user.id, role=role, member_id=member_id)
