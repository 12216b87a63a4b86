import datetime as dt
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from localmarket.core.api_docs import error_responses
from localmarket.core.deps import get_db
from localmarket.core.security_current import get_current_user
from localmarket.models.business import Business
from localmarket.models.event import Event, EventVendor
from localmarket.models.user import User
from localmarket.schemas.common import PaginationMeta
from localmarket.schemas.event import (
    EventCityListOut,
    EventCreateIn,
    EventListOut,
    EventOut,
    EventVendorInviteIn,
    EventVendorListOut,
    EventVendorOut,
)
from localmarket.services.audit_service import log_audit_event

router = APIRouter(prefix="/events", tags=["events"])


def _event_out(event: Event) -> EventOut:
    return EventOut(
        id=event.id,
        name=event.name,
        description=event.description,
        date=event.date,
        start_time=event.start_time,
        end_time=event.end_time,
        location=event.location,
        address=event.address,
        city=event.city,
        lat=event.lat,
        lng=event.lng,
        image_url=event.image_url,
        created_by=event.created_by,
        created_at=event.created_at,
    )


def _event_vendor_out(invitation: EventVendor, business: Business) -> EventVendorOut:
    return EventVendorOut(
        invitation_id=invitation.id,
        event_id=invitation.event_id,
        business_id=business.id,
        business_name=business.name,
        status=invitation.status,
        created_at=invitation.created_at,
        updated_at=invitation.updated_at,
    )


def _get_event_or_404(db: Session, event_id: str) -> Event:
    event = db.get(Event, event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


@router.post(
    "",
    response_model=EventOut,
    summary="Create event",
    responses=error_responses(401, 422, 500),
)
def create_event(
    payload: EventCreateIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    event = Event(
        id=str(uuid.uuid4()),
        name=payload.name,
        description=payload.description,
        date=payload.date,
        start_time=payload.start_time,
        end_time=payload.end_time,
        location=payload.location,
        address=payload.address,
        city=payload.city,
        lat=payload.lat,
        lng=payload.lng,
        image_url=payload.image_url,
        created_by=user.id,
    )
    db.add(event)
    db.commit()
    db.refresh(event)
    return _event_out(event)


@router.get(
    "",
    response_model=EventListOut,
    summary="Search events",
    description=(
        "`q` matches name or description case-insensitively; `city` is an exact match. "
        "Results are ordered by date then start time."
    ),
    responses=error_responses(422, 500),
)
def list_events(
    q: str | None = Query(default=None),
    city: str | None = Query(default=None),
    from_date: dt.date | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    filters = []
    if q and q.strip():
        pattern = f"%{q.strip()}%"
        filters.append(or_(Event.name.ilike(pattern), Event.description.ilike(pattern)))
    if city and city.strip():
        filters.append(Event.city == city.strip())
    if from_date:
        filters.append(Event.date >= from_date)

    total = int(db.execute(select(func.count(Event.id)).where(*filters)).scalar_one())
    rows = db.execute(
        select(Event)
        .where(*filters)
        .order_by(Event.date.asc(), Event.start_time.asc())
        .offset(offset)
        .limit(limit)
    ).scalars().all()
    items = [_event_out(event) for event in rows]
    count = len(items)
    return EventListOut(
        items=items,
        pagination=PaginationMeta.for_page(total=total, limit=limit, offset=offset, count=count),
    )


@router.get(
    "/cities",
    response_model=EventCityListOut,
    summary="List cities with events",
)
def list_event_cities(db: Session = Depends(get_db)):
    cities = db.execute(select(Event.city).distinct().order_by(Event.city.asc())).scalars().all()
    return EventCityListOut(items=list(cities))


@router.get(
    "/{event_id}",
    response_model=EventOut,
    summary="Get event",
    responses=error_responses(404, 500),
)
def get_event(event_id: str, db: Session = Depends(get_db)):
    return _event_out(_get_event_or_404(db, event_id))


@router.get(
    "/{event_id}/vendors",
    response_model=EventVendorListOut,
    summary="List businesses invited to event",
    responses=error_responses(404, 500),
)
def list_event_vendors(event_id: str, db: Session = Depends(get_db)):
    _get_event_or_404(db, event_id)
    rows = db.execute(
        select(EventVendor, Business)
        .join(Business, Business.id == EventVendor.business_id)
        .where(EventVendor.event_id == event_id)
        .order_by(EventVendor.created_at.asc())
    ).all()
    return EventVendorListOut(items=[_event_vendor_out(invitation, business) for invitation, business in rows])


@router.post(
    "/{event_id}/vendors",
    response_model=EventVendorOut,
    summary="Invite business to event",
    description="Only the event creator can invite businesses.",
    responses=error_responses(401, 403, 404, 409, 422, 500),
)
def invite_event_vendor(
    event_id: str,
    payload: EventVendorInviteIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    event = _get_event_or_404(db, event_id)
    if event.created_by != user.id:
        raise HTTPException(status_code=403, detail="Only the event creator can invite vendors")

    business = db.get(Business, payload.business_id)
    if not business:
        raise HTTPException(status_code=404, detail="Business not found")

    existing = db.execute(
        select(EventVendor.id).where(
            EventVendor.event_id == event.id,
            EventVendor.business_id == business.id,
        )
    ).scalar_one_or_none()
    if existing:
        raise HTTPException(status_code=409, detail="Business is already invited to this event")

    invitation = EventVendor(
        id=str(uuid.uuid4()),
        event_id=event.id,
        business_id=business.id,
        status="invited",
    )
    db.add(invitation)
    log_audit_event(
        db,
        business_id=business.id,
        actor_user_id=user.id,
        action="event.vendor.invited",
        target_type="event_vendor",
        target_id=invitation.id,
        metadata_json={"event_id": event.id},
    )
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=409, detail="Business is already invited to this event") from exc
    db.refresh(invitation)
    return _event_vendor_out(invitation, business)
