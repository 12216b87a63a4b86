from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from localmarket.core.api_docs import error_responses
from localmarket.core.deps import get_db
from localmarket.core.security_current import get_current_user
from localmarket.models.user import User
from localmarket.schemas.product import InterestOut
from localmarket.services.interest_service import set_interest, toggle_interest

router = APIRouter(prefix="/events/{event_id}/products/{product_id}/interest", tags=["interests"])


@router.post(
    "/toggle",
    response_model=InterestOut,
    summary="Toggle interest in a showcased product",
    responses=error_responses(401, 404, 500),
)
def toggle_product_interest(
    event_id: str,
    product_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    interested, count = toggle_interest(db, event_id=event_id, product_id=product_id, user_id=user.id)
    return InterestOut(product_id=product_id, event_id=event_id, interested=interested, interest_count=count)


@router.put(
    "",
    response_model=InterestOut,
    summary="Mark interest",
    responses=error_responses(401, 404, 500),
)
def mark_product_interest(
    event_id: str,
    product_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    interested, count = set_interest(
        db, event_id=event_id, product_id=product_id, user_id=user.id, interested=True
    )
    return InterestOut(product_id=product_id, event_id=event_id, interested=interested, interest_count=count)


@router.delete(
    "",
    response_model=InterestOut,
    summary="Remove interest",
    responses=error_responses(401, 404, 500),
)
def unmark_product_interest(
    event_id: str,
    product_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    interested, count = set_interest(
        db, event_id=event_id, product_id=product_id, user_id=user.id, interested=False
    )
    return InterestOut(product_id=product_id, event_id=event_id, interested=interested, interest_count=count)
