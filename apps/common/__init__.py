from datetime import datetime

from flask import current_app as app
from sqlalchemy.exc import IntegrityError

from .errors import Conflict


def isoformat(dt: datetime | None) -> str | None:
    """Render a naive UTC datetime the way javascript's toISOString does"""
    if dt is None:
        return None
    return dt.isoformat(timespec="milliseconds") + "Z"


def commit_or_conflict(session, message="Conflict"):
    """Commit, turning a unique constraint violation from a concurrent request into a 409"""
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        app.logger.warning("Commit raised %r, possible concurrent request", e)
        raise Conflict(message)
