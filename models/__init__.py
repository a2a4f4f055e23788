from datetime import UTC, datetime
from typing import TYPE_CHECKING

import datetype
from sqlalchemy import func, select
from sqlalchemy.orm import Query

from main import db

# If we're type checking, we want models to inherit from the BaseModel (trivial subclass
# of DeclarativeBase) as mypy can't handle using the sqlalchemy-flask generated db.Model
if TYPE_CHECKING:
    from main import BaseModel
else:
    BaseModel = db.Model


def naive_utcnow() -> datetype.DateTime[None]:
    return datetype.naive(datetime.now(UTC).replace(tzinfo=None))


def count_rows(session, stmt) -> int:
    """Count the rows a select would return, ignoring its ordering"""
    return session.scalar(select(func.count()).select_from(stmt.order_by(None).subquery()))


def count_groups(selectable, *entities):
    if isinstance(selectable, Query):
        return (
            selectable.with_entities(func.count().label("count"), *entities)
            .group_by(*entities)
            .order_by(*entities)
        )
    return db.session.execute(
        selectable.with_only_columns(func.count().label("count"), *entities)
        .group_by(*entities)
        .order_by(*entities)
    )


from .user import *  # noqa: F403
from .organization import *  # noqa: F403
from .event import *  # noqa: F403
from .talk import *  # noqa: F403
from .cfp import *  # noqa: F403
