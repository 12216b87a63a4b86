from sqlalchemy import distinct, func, select
from sqlalchemy.orm import Session

from localmarket.models.event import Event
from localmarket.models.product import EventProduct, Product, ProductInterest


def get_vendor_dashboard(db: Session, business_id: str) -> dict:
    product_count = int(
        db.execute(
            select(func.count(Product.id)).where(Product.business_id == business_id)
        ).scalar_one()
    )
    event_count = int(
        db.execute(
            select(func.count(distinct(EventProduct.event_id))).where(
                EventProduct.business_id == business_id
            )
        ).scalar_one()
    )

    interest_total = func.count(ProductInterest.id)
    rows = db.execute(
        select(
            Event.id,
            Event.name,
            Event.date,
            Product.id,
            Product.name,
            interest_total,
        )
        .select_from(EventProduct)
        .join(Event, Event.id == EventProduct.event_id)
        .join(Product, Product.id == EventProduct.product_id)
        .outerjoin(
            ProductInterest,
            (ProductInterest.event_id == EventProduct.event_id)
            & (ProductInterest.product_id == EventProduct.product_id),
        )
        .where(EventProduct.business_id == business_id)
        .group_by(Event.id, Event.name, Event.date, Product.id, Product.name)
        .order_by(Event.date.asc(), interest_total.desc(), Product.name.asc())
    ).all()

    items = [
        {
            "event_id": event_id,
            "event_name": event_name,
            "event_date": event_date,
            "product_id": product_id,
            "product_name": product_name,
            "interest_count": int(count),
        }
        for event_id, event_name, event_date, product_id, product_name, count in rows
    ]

    return {
        "business_id": business_id,
        "product_count": product_count,
        "event_count": event_count,
        "total_interest": sum(item["interest_count"] for item in items),
        "rows": items,
    }
