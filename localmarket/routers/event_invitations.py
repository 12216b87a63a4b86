from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from localmarket.core.api_docs import error_responses
from localmarket.core.deps import get_db
from localmarket.core.security_current import BusinessAccess, get_business_access
from localmarket.core.statuses import transition_event_vendor_status
from localmarket.models.event import Event, EventVendor
from localmarket.routers.events import _event_out
from localmarket.schemas.event import (
    EventInvitationListOut,
    EventInvitationOut,
    EventInvitationStatusIn,
)
from localmarket.services.audit_service import log_audit_event
from localmarket.services.interest_service import clear_showcase

router = APIRouter(prefix="/businesses/{business_id}/event-invitations", tags=["event-invitations"])


def _invitation_out(invitation: EventVendor, event: Event) -> EventInvitationOut:
    return EventInvitationOut(
        invitation_id=invitation.id,
        business_id=invitation.business_id,
        status=invitation.status,
        event=_event_out(event),
    )


@router.get(
    "",
    response_model=EventInvitationListOut,
    summary="List event invitations for business",
    responses=error_responses(401, 403, 404, 500),
)
def list_event_invitations(
    db: Session = Depends(get_db),
    access: BusinessAccess = Depends(get_business_access),
):
    rows = db.execute(
        select(EventVendor, Event)
        .join(Event, Event.id == EventVendor.event_id)
        .where(EventVendor.business_id == access.business.id)
        .order_by(Event.date.asc(), Event.start_time.asc())
    ).all()
    return EventInvitationListOut(items=[_invitation_out(invitation, event) for invitation, event in rows])


@router.patch(
    "/{invitation_id}",
    response_model=EventInvitationOut,
    summary="Accept or decline an event invitation",
    responses=error_responses(400, 401, 403, 404, 422, 500),
)
def respond_to_event_invitation(
    invitation_id: str,
    payload: EventInvitationStatusIn,
    db: Session = Depends(get_db),
    access: BusinessAccess = Depends(get_business_access),
):
    row = db.execute(
        select(EventVendor, Event)
        .join(Event, Event.id == EventVendor.event_id)
        .where(
            EventVendor.id == invitation_id,
            EventVendor.business_id == access.business.id,
        )
    ).first()
    if not row:
        raise HTTPException(status_code=404, detail="Event invitation not found")
    invitation, event = row

    previous_status = invitation.status
    next_status, changed = transition_event_vendor_status(previous_status, payload.status)
    if changed:
        invitation.status = next_status
        details = {"event_id": event.id, "from": previous_status, "to": next_status}
        if next_status == "declined":
            # Showcases only exist under an accepted invitation.
            details["showcase_removed"] = clear_showcase(db, event_id=event.id, business_id=access.business.id)
        log_audit_event(
            db,
            business_id=access.business.id,
            actor_user_id=access.user_id,
            action="event.invitation.responded",
            target_type="event_vendor",
            target_id=invitation.id,
            metadata_json=details,
        )
        db.commit()
        db.refresh(invitation)
    return _invitation_out(invitation, event)
