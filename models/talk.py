from __future__ import annotations

import typing
from datetime import datetime

from sqlalchemy import Column, ForeignKey, Integer, Table, select
from sqlalchemy.orm import Mapped, mapped_column, relationship, selectinload

from main import db

from . import BaseModel, naive_utcnow

if typing.TYPE_CHECKING:
    from .cfp import Proposal
    from .user import User

__all__ = [
    "TALK_LEVELS",
    "Talk",
    "TalkSpeaker",
]

TALK_LEVELS = ["BEGINNER", "INTERMEDIATE", "ADVANCED"]

TalkSpeaker = Table(
    "talk_speaker",
    BaseModel.metadata,
    Column("talk_id", Integer, ForeignKey("talk.id"), primary_key=True),
    Column("user_id", Integer, ForeignKey("user.id"), primary_key=True, index=True),
)


class Talk(BaseModel):
    __tablename__ = "talk"

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column()
    abstract: Mapped[str | None]
    level: Mapped[str | None]
    language: Mapped[str | None]
    references: Mapped[str | None]
    creator_id: Mapped[int | None] = mapped_column(ForeignKey("user.id"))

    created: Mapped[datetime] = mapped_column(default=naive_utcnow)
    modified: Mapped[datetime] = mapped_column(default=naive_utcnow, onupdate=naive_utcnow)

    speakers: Mapped[list[User]] = relationship(
        secondary=TalkSpeaker, back_populates="talks", order_by="User.id"
    )
    creator: Mapped[User | None] = relationship()
    # Proposals are snapshots, so they outlive the talk they were submitted from
    proposals: Mapped[list[Proposal]] = relationship(back_populates="talk", order_by="Proposal.id")

    def __init__(self, title: str, creator: User | None = None, abstract: str | None = None):
        self.title = title
        self.abstract = abstract
        self.creator = creator
        if creator is not None:
            self.speakers = [creator]

    def __repr__(self):
        return f"<Talk {self.id}: {self.title}>"

    def is_speaker(self, user) -> bool:
        return any(speaker.id == user.id for speaker in self.speakers)

    @classmethod
    def get_with_speakers(cls, talk_id) -> Talk | None:
        return db.session.execute(
            select(cls).where(cls.id == talk_id).options(selectinload(cls.speakers))
        ).scalar_one_or_none()

    @classmethod
    def for_speaker(cls, user) -> list[Talk]:
        return list(
            db.session.scalars(
                select(cls)
                .join(TalkSpeaker)
                .where(TalkSpeaker.c.user_id == user.id)
                .order_by(cls.created.desc(), cls.id.desc())
            )
        )
