import uuid
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from localmarket.core.errors import NotFoundError
from localmarket.core.security_current import resolve_business_role
from localmarket.models.business import Business
from localmarket.models.business_member import BusinessMember


@dataclass(frozen=True)
class AccessCheck:
    has_access: bool
    role: str | None


def create_business(
    db: Session,
    *,
    name: str,
    description: str | None,
    created_by: str,
) -> Business:
    """Adds the business and its owner membership without committing."""
    business = Business(
        id=str(uuid.uuid4()),
        name=name,
        description=description,
        created_by=created_by,
    )
    db.add(business)
    db.flush()
    db.add(
        BusinessMember(
            id=str(uuid.uuid4()),
            business_id=business.id,
            user_id=created_by,
            role="owner",
        )
    )
    db.flush()
    return business


def find_business_created_by(db: Session, user_id: str) -> Business | None:
    return db.execute(
        select(Business)
        .where(Business.created_by == user_id)
        .order_by(Business.created_at.asc())
        .limit(1)
    ).scalar_one_or_none()


def create_or_get_business(
    db: Session,
    *,
    name: str,
    description: str | None,
    created_by: str,
) -> tuple[Business, bool]:
    """Returns (business, existing). A user who already created one gets it back."""
    existing = find_business_created_by(db, created_by)
    if existing:
        return existing, True
    return create_business(db, name=name, description=description, created_by=created_by), False


def check_business_access(db: Session, *, user_id: str, business_id: str) -> AccessCheck:
    business = db.get(Business, business_id)
    if not business:
        raise NotFoundError("Business not found")
    role, _ = resolve_business_role(db, business=business, user_id=user_id)
    return AccessCheck(has_access=role is not None, role=role)


def search_businesses(db: Session, *, query: str, limit: int) -> list[Business]:
    pattern = f"%{query.strip()}%"
    return list(
        db.execute(
            select(Business)
            .where(Business.name.ilike(pattern))
            .order_by(Business.name.asc())
            .limit(limit)
        ).scalars().all()
    )
