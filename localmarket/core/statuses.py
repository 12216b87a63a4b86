"""Status vocabularies for vendors and event invitations.

Both vocabularies are guarded by explicit transition tables. A transition to
the current status is a no-op; anything outside the table raises
``StatusTransitionError``.
"""

from localmarket.core.errors import StatusTransitionError

VENDOR_STATUSES = ("pending", "approved", "rejected")
ALLOWED_VENDOR_TRANSITIONS: dict[str, set[str]] = {
    "pending": {"approved", "rejected"},
    "approved": {"rejected"},
    # Rejected vendors can be re-reviewed.
    "rejected": {"approved"},
}

EVENT_VENDOR_STATUSES = ("invited", "accepted", "declined")
ALLOWED_EVENT_VENDOR_TRANSITIONS: dict[str, set[str]] = {
    "invited": {"accepted", "declined"},
    "accepted": {"declined"},
    "declined": set(),
}
EVENT_VENDOR_STATUS_ALIASES = {"confirmed": "accepted"}


def _normalize(value: str, *, allowed: tuple[str, ...], aliases: dict[str, str], label: str) -> str:
    status = (value or "").strip().lower()
    status = aliases.get(status, status)
    if status not in allowed:
        raise StatusTransitionError(f"{label} must be one of: {', '.join(allowed)}")
    return status


def normalize_vendor_status(value: str) -> str:
    return _normalize(value, allowed=VENDOR_STATUSES, aliases={}, label="status")


def normalize_event_vendor_status(value: str) -> str:
    return _normalize(
        value,
        allowed=EVENT_VENDOR_STATUSES,
        aliases=EVENT_VENDOR_STATUS_ALIASES,
        label="status",
    )


def _ensure_transition_allowed(
    *,
    kind: str,
    transitions: dict[str, set[str]],
    current_status: str,
    next_status: str,
) -> bool:
    """Returns False for a same-status no-op, True when the move is legal."""
    if current_status == next_status:
        return False
    if next_status not in transitions.get(current_status, set()):
        raise StatusTransitionError(
            f"Cannot transition {kind} from {current_status} to {next_status}"
        )
    return True


def transition_vendor_status(current_status: str, requested: str) -> tuple[str, bool]:
    next_status = normalize_vendor_status(requested)
    changed = _ensure_transition_allowed(
        kind="vendor",
        transitions=ALLOWED_VENDOR_TRANSITIONS,
        current_status=current_status,
        next_status=next_status,
    )
    return next_status, changed


def transition_event_vendor_status(current_status: str, requested: str) -> tuple[str, bool]:
    next_status = normalize_event_vendor_status(requested)
    changed = _ensure_transition_allowed(
        kind="event invitation",
        transitions=ALLOWED_EVENT_VENDOR_TRANSITIONS,
        current_status=EVENT_VENDOR_STATUS_ALIASES.get(current_status, current_status),
        next_status=next_status,
    )
    return next_status, changed
