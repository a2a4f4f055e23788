""" Call for Papers: submitting talks to events, and reviewing what's been submitted """

from sqlalchemy import select

from models.event import EventCategory, EventFormat


def event_formats(session, event, ids) -> list[EventFormat]:
    """The event's formats with these ids. Ids from other events are ignored."""
    if not ids:
        return []
    return list(
        session.scalars(
            select(EventFormat)
            .where(EventFormat.event_id == event.id, EventFormat.id.in_(ids))
            .order_by(EventFormat.id)
        )
    )


def event_categories(session, event, ids) -> list[EventCategory]:
    if not ids:
        return []
    return list(
        session.scalars(
            select(EventCategory)
            .where(EventCategory.event_id == event.id, EventCategory.id.in_(ids))
            .order_by(EventCategory.id)
        )
    )
