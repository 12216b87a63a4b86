import uuid

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from localmarket.core.errors import NotFoundError
from localmarket.models.product import EventProduct, ProductInterest


def ensure_showcased(db: Session, *, event_id: str, product_id: str) -> EventProduct:
    showcase = db.execute(
        select(EventProduct).where(
            EventProduct.event_id == event_id,
            EventProduct.product_id == product_id,
        )
    ).scalar_one_or_none()
    if not showcase:
        raise NotFoundError("Product is not showcased at this event")
    return showcase


def clear_showcase(db: Session, *, event_id: str, business_id: str) -> int:
    """Drop every product a business showcases at an event. Caller commits."""
    result = db.execute(
        delete(EventProduct).where(
            EventProduct.event_id == event_id,
            EventProduct.business_id == business_id,
        )
    )
    return result.rowcount or 0


def interest_count(db: Session, *, event_id: str, product_id: str) -> int:
    return int(
        db.execute(
            select(func.count(ProductInterest.id)).where(
                ProductInterest.event_id == event_id,
                ProductInterest.product_id == product_id,
            )
        ).scalar_one()
    )


def _find_interest(db: Session, *, event_id: str, product_id: str, user_id: str) -> ProductInterest | None:
    return db.execute(
        select(ProductInterest).where(
            ProductInterest.event_id == event_id,
            ProductInterest.product_id == product_id,
            ProductInterest.user_id == user_id,
        )
    ).scalar_one_or_none()


def _add_interest(db: Session, *, event_id: str, product_id: str, user_id: str) -> None:
    db.add(
        ProductInterest(
            id=str(uuid.uuid4()),
            event_id=event_id,
            product_id=product_id,
            user_id=user_id,
        )
    )
    try:
        db.commit()
    except IntegrityError:
        # A concurrent request already recorded this interest.
        db.rollback()


def _remove_interest(db: Session, *, event_id: str, product_id: str, user_id: str) -> None:
    db.execute(
        delete(ProductInterest).where(
            ProductInterest.event_id == event_id,
            ProductInterest.product_id == product_id,
            ProductInterest.user_id == user_id,
        )
    )
    db.commit()


def set_interest(
    db: Session,
    *,
    event_id: str,
    product_id: str,
    user_id: str,
    interested: bool,
) -> tuple[bool, int]:
    ensure_showcased(db, event_id=event_id, product_id=product_id)
    existing = _find_interest(db, event_id=event_id, product_id=product_id, user_id=user_id)
    if interested and not existing:
        _add_interest(db, event_id=event_id, product_id=product_id, user_id=user_id)
    elif not interested and existing:
        _remove_interest(db, event_id=event_id, product_id=product_id, user_id=user_id)

    current = _find_interest(db, event_id=event_id, product_id=product_id, user_id=user_id) is not None
    return current, interest_count(db, event_id=event_id, product_id=product_id)


def toggle_interest(db: Session, *, event_id: str, product_id: str, user_id: str) -> tuple[bool, int]:
    ensure_showcased(db, event_id=event_id, product_id=product_id)
    existing = _find_interest(db, event_id=event_id, product_id=product_id, user_id=user_id)
    return set_interest(
        db,
        event_id=event_id,
        product_id=product_id,
        user_id=user_id,
        interested=existing is None,
    )
