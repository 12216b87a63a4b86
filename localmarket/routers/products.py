import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from localmarket.core.api_docs import error_responses
from localmarket.core.deps import get_db
from localmarket.core.security_current import BusinessAccess, get_business_access, get_optional_user
from localmarket.models.business import Business
from localmarket.models.event import Event, EventVendor
from localmarket.models.product import EventProduct, Product, ProductInterest
from localmarket.models.user import User
from localmarket.schemas.product import (
    EventProductListOut,
    EventProductOut,
    ProductCreateIn,
    ProductListOut,
    ProductOut,
    ShowcaseIn,
    ShowcaseOut,
)
from localmarket.services.audit_service import log_audit_event
from localmarket.services.interest_service import clear_showcase

router = APIRouter(tags=["products"])


def _product_out(product: Product) -> ProductOut:
    return ProductOut(
        id=product.id,
        business_id=product.business_id,
        name=product.name,
        description=product.description,
        price=product.price,
        image_url=product.image_url,
        created_at=product.created_at,
    )


def _showcase_product_ids(db: Session, *, event_id: str, business_id: str) -> list[str]:
    return list(
        db.execute(
            select(EventProduct.product_id)
            .where(
                EventProduct.event_id == event_id,
                EventProduct.business_id == business_id,
            )
            .order_by(EventProduct.created_at.asc())
        ).scalars().all()
    )


def _require_accepted_invitation(db: Session, *, event_id: str, business_id: str) -> Event:
    event = db.get(Event, event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")

    invitation_status = db.execute(
        select(EventVendor.status).where(
            EventVendor.event_id == event_id,
            EventVendor.business_id == business_id,
        )
    ).scalar_one_or_none()
    if invitation_status != "accepted":
        raise HTTPException(
            status_code=400,
            detail="Business must accept the event invitation before showcasing products",
        )
    return event


def _create_product(db: Session, *, access: BusinessAccess, payload: ProductCreateIn) -> Product:
    product = Product(
        id=str(uuid.uuid4()),
        business_id=access.business.id,
        name=payload.name,
        description=payload.description,
        price=payload.price,
        image_url=payload.image_url,
    )
    db.add(product)
    log_audit_event(
        db,
        business_id=access.business.id,
        actor_user_id=access.user_id,
        action="product.created",
        target_type="product",
        target_id=product.id,
        metadata_json={"name": product.name},
    )
    return product


@router.get(
    "/businesses/{business_id}/products",
    response_model=ProductListOut,
    summary="List business products",
    responses=error_responses(404, 500),
)
def list_products(business_id: str, db: Session = Depends(get_db)):
    if not db.get(Business, business_id):
        raise HTTPException(status_code=404, detail="Business not found")
    rows = db.execute(
        select(Product)
        .where(Product.business_id == business_id)
        .order_by(Product.created_at.desc(), Product.name.asc())
    ).scalars().all()
    return ProductListOut(items=[_product_out(product) for product in rows])


@router.post(
    "/businesses/{business_id}/products",
    response_model=ProductOut,
    summary="Create product",
    responses=error_responses(401, 403, 404, 422, 500),
)
def create_product(
    payload: ProductCreateIn,
    db: Session = Depends(get_db),
    access: BusinessAccess = Depends(get_business_access),
):
    product = _create_product(db, access=access, payload=payload)
    db.commit()
    db.refresh(product)
    return _product_out(product)


@router.get(
    "/businesses/{business_id}/events/{event_id}/products",
    response_model=ShowcaseOut,
    summary="Get the business showcase for an event",
    responses=error_responses(401, 403, 404, 500),
)
def get_showcase(
    event_id: str,
    db: Session = Depends(get_db),
    access: BusinessAccess = Depends(get_business_access),
):
    if not db.get(Event, event_id):
        raise HTTPException(status_code=404, detail="Event not found")
    return ShowcaseOut(
        event_id=event_id,
        business_id=access.business.id,
        product_ids=_showcase_product_ids(db, event_id=event_id, business_id=access.business.id),
    )


@router.put(
    "/businesses/{business_id}/events/{event_id}/products",
    response_model=ShowcaseOut,
    summary="Replace the business showcase for an event",
    responses=error_responses(400, 401, 403, 404, 422, 500),
)
def replace_showcase(
    event_id: str,
    payload: ShowcaseIn,
    db: Session = Depends(get_db),
    access: BusinessAccess = Depends(get_business_access),
):
    _require_accepted_invitation(db, event_id=event_id, business_id=access.business.id)

    if payload.product_ids:
        owned = set(
            db.execute(
                select(Product.id).where(
                    Product.id.in_(payload.product_ids),
                    Product.business_id == access.business.id,
                )
            ).scalars().all()
        )
        foreign = [product_id for product_id in payload.product_ids if product_id not in owned]
        if foreign:
            raise HTTPException(status_code=400, detail="Products must belong to this business")

    clear_showcase(db, event_id=event_id, business_id=access.business.id)
    for product_id in payload.product_ids:
        db.add(
            EventProduct(
                id=str(uuid.uuid4()),
                event_id=event_id,
                product_id=product_id,
                business_id=access.business.id,
            )
        )
    log_audit_event(
        db,
        business_id=access.business.id,
        actor_user_id=access.user_id,
        action="event.showcase.replaced",
        target_type="event",
        target_id=event_id,
        metadata_json={"product_ids": payload.product_ids},
    )
    db.commit()
    return ShowcaseOut(
        event_id=event_id,
        business_id=access.business.id,
        product_ids=_showcase_product_ids(db, event_id=event_id, business_id=access.business.id),
    )


@router.post(
    "/businesses/{business_id}/events/{event_id}/products",
    response_model=ProductOut,
    summary="Create a product and showcase it at an event",
    responses=error_responses(400, 401, 403, 404, 422, 500),
)
def create_showcase_product(
    event_id: str,
    payload: ProductCreateIn,
    db: Session = Depends(get_db),
    access: BusinessAccess = Depends(get_business_access),
):
    _require_accepted_invitation(db, event_id=event_id, business_id=access.business.id)
    product = _create_product(db, access=access, payload=payload)
    db.flush()
    db.add(
        EventProduct(
            id=str(uuid.uuid4()),
            event_id=event_id,
            product_id=product.id,
            business_id=access.business.id,
        )
    )
    db.commit()
    db.refresh(product)
    return _product_out(product)


@router.get(
    "/events/{event_id}/products",
    response_model=EventProductListOut,
    summary="List products showcased at an event",
    description="Includes interest counts; `interested` reflects the caller and is false when anonymous.",
    responses=error_responses(404, 500),
)
def list_event_products(
    event_id: str,
    db: Session = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
):
    if not db.get(Event, event_id):
        raise HTTPException(status_code=404, detail="Event not found")

    interest_total = func.count(ProductInterest.id)
    rows = db.execute(
        select(Product, Business.name, interest_total)
        .select_from(EventProduct)
        .join(Product, Product.id == EventProduct.product_id)
        .join(Business, Business.id == EventProduct.business_id)
        .outerjoin(
            ProductInterest,
            and_(
                ProductInterest.product_id == EventProduct.product_id,
                ProductInterest.event_id == EventProduct.event_id,
            ),
        )
        .where(EventProduct.event_id == event_id)
        .group_by(Product.id, Business.name)
        .order_by(Business.name.asc(), Product.name.asc())
    ).all()

    mine: set[str] = set()
    if viewer:
        mine = set(
            db.execute(
                select(ProductInterest.product_id).where(
                    ProductInterest.event_id == event_id,
                    ProductInterest.user_id == viewer.id,
                )
            ).scalars().all()
        )

    return EventProductListOut(
        items=[
            EventProductOut(
                product_id=product.id,
                business_id=product.business_id,
                business_name=business_name,
                name=product.name,
                description=product.description,
                price=product.price,
                image_url=product.image_url,
                interest_count=int(count),
                interested=product.id in mine,
            )
            for product, business_name, count in rows
        ]
    )
