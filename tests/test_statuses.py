import pytest

from localmarket.core.errors import StatusTransitionError
from localmarket.core.statuses import (
    normalize_event_vendor_status,
    transition_event_vendor_status,
    transition_vendor_status,
)


def test_vendor_transitions_follow_review_flow():
    assert transition_vendor_status("pending", "approved") == ("approved", True)
    assert transition_vendor_status("approved", "rejected") == ("rejected", True)
    assert transition_vendor_status("rejected", " APPROVED ") == ("approved", True)
    assert transition_vendor_status("approved", "approved") == ("approved", False)

    with pytest.raises(StatusTransitionError, match="Cannot transition vendor from approved to pending"):
        transition_vendor_status("approved", "pending")


def test_unknown_status_lists_allowed_values():
    with pytest.raises(StatusTransitionError) as exc_info:
        transition_vendor_status("pending", "archived")
    assert exc_info.value.message == "status must be one of: pending, approved, rejected"
    assert exc_info.value.status_code == 400


def test_event_invitation_confirmed_is_an_alias_for_accepted():
    assert normalize_event_vendor_status("Confirmed") == "accepted"
    assert transition_event_vendor_status("invited", "confirmed") == ("accepted", True)
    assert transition_event_vendor_status("confirmed", "accepted") == ("accepted", False)
    assert transition_event_vendor_status("accepted", "declined") == ("declined", True)


def test_declined_invitation_is_final():
    with pytest.raises(StatusTransitionError):
        transition_event_vendor_status("declined", "accepted")
    with pytest.raises(StatusTransitionError):
        transition_event_vendor_status("accepted", "invited")
