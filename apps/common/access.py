"""Who may do what to an event.

Access to an event comes from creating it, or from membership of the
organization it belongs to. Each route asks for a capability rather
than checking roles itself.
"""

from enum import Enum
from functools import wraps

from flask import g
from flask_login import current_user

from models.event import Event
from models.organization import OrganizationMember
from models.user import User

from .errors import EventNotFound, Forbidden, Unauthenticated, UserNotFound


class Capability(str, Enum):
    # Read proposals, rate them and message about them
    REVIEW = "REVIEW"
    # Change proposals or the event itself
    MANAGE = "MANAGE"


ALL_CAPABILITIES = frozenset(Capability)

ROLE_CAPABILITIES = {
    "OWNER": ALL_CAPABILITIES,
    "MEMBER": ALL_CAPABILITIES,
    "REVIEWER": frozenset([Capability.REVIEW]),
}


def event_capabilities(user: User, event: Event) -> frozenset[Capability]:
    if event.creator_id == user.id:
        return ALL_CAPABILITIES

    if event.organization_id is None:
        return frozenset()

    member = OrganizationMember.get(event.organization_id, user.id)
    if member is None:
        return frozenset()

    return ROLE_CAPABILITIES.get(member.role, frozenset())


def authorize(user: User, event: Event, capability: Capability) -> None:
    if capability not in event_capabilities(user, event):
        raise Forbidden()


def current_uid() -> str:
    # Touching current_user runs the request loader, which records the token's uid
    if current_user.is_authenticated:
        return current_user.uid

    uid = g.get("api_uid")
    if uid is None:
        raise Unauthenticated()
    return uid


def get_current_user() -> User:
    current_uid()
    if not current_user.is_authenticated:
        raise UserNotFound()
    return current_user._get_current_object()


def event_for(user: User, event_id, capability: Capability) -> Event:
    event = Event.get(event_id)
    if event is None:
        raise EventNotFound()

    authorize(user, event, capability)
    return event


def require_identity(func):
    """Reject requests without a valid token before anything else is looked at"""

    @wraps(func)
    def wrapper(*args, **kwargs):
        current_uid()
        return func(*args, **kwargs)

    return wrapper
