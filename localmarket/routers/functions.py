from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from localmarket.core.api_docs import error_responses
from localmarket.core.deps import get_db
from localmarket.core.security_current import get_current_profile
from localmarket.models.profile import Profile
from localmarket.models.user import User
from localmarket.schemas.business import BusinessAccessOut
from localmarket.schemas.functions import (
    CheckBusinessAccessIn,
    CreateBusinessFunctionIn,
    CreateBusinessFunctionOut,
)
from localmarket.services.audit_service import log_audit_event
from localmarket.services.business_service import check_business_access, create_or_get_business

router = APIRouter(prefix="/functions", tags=["functions"])


def _ensure_self_or_admin(caller: Profile, user_id: str) -> None:
    if caller.id != user_id and (caller.role or "").lower() != "admin":
        raise HTTPException(status_code=403, detail="You can only act on your own account")


@router.post(
    "/create_business_function",
    response_model=CreateBusinessFunctionOut,
    summary="Create business (idempotent)",
    description="Returns the caller's existing business when one was already created.",
    responses=error_responses(401, 403, 404, 422, 500),
)
def create_business_function(
    payload: CreateBusinessFunctionIn,
    db: Session = Depends(get_db),
    caller: Profile = Depends(get_current_profile),
):
    _ensure_self_or_admin(caller, payload.user_id)
    if not db.get(User, payload.user_id):
        raise HTTPException(status_code=404, detail="User not found")

    business, existing = create_or_get_business(
        db,
        name=payload.name,
        description=payload.description,
        created_by=payload.user_id,
    )
    if not existing:
        log_audit_event(
            db,
            business_id=business.id,
            actor_user_id=caller.id,
            action="business.created",
            target_type="business",
            target_id=business.id,
            metadata_json={"name": business.name, "via": "function"},
        )
        db.commit()
    return CreateBusinessFunctionOut(id=business.id, existing=existing)


@router.post(
    "/check_business_access",
    response_model=BusinessAccessOut,
    summary="Check a user's access to a business",
    responses=error_responses(401, 403, 404, 422, 500),
)
def check_business_access_function(
    payload: CheckBusinessAccessIn,
    db: Session = Depends(get_db),
    caller: Profile = Depends(get_current_profile),
):
    _ensure_self_or_admin(caller, payload.user_id)
    result = check_business_access(db, user_id=payload.user_id, business_id=payload.business_id)
    return BusinessAccessOut(has_access=result.has_access, role=result.role)
