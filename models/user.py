from __future__ import annotations

import base64
import hashlib
import hmac
import typing
from datetime import datetime

from flask import current_app as app
from flask_login import UserMixin
from sqlalchemy import select
from sqlalchemy.orm import Mapped, mapped_column, relationship

from main import db

from . import BaseModel, naive_utcnow

if typing.TYPE_CHECKING:
    from .cfp import Message, Rating
    from .organization import OrganizationMember
    from .talk import Talk

__all__ = [
    "User",
    "generate_api_token",
    "verify_api_token",
]

# Length of the base64 MAC appended to signed messages
MAC_LEN = 20


def _generate_hmac(prefix, key, msg):
    """
    Generate a keyed HMAC for a unique purpose. You don't want to call this directly.

    This returns bytes because we don't want to assume the encoding of msg.
    """
    if isinstance(key, str):
        key = key.encode("utf-8")

    if isinstance(prefix, str):
        prefix = prefix.encode("utf-8")

    if isinstance(msg, str):
        msg = msg.encode("utf-8")

    mac = hmac.new(key, prefix + msg, digestmod=hashlib.sha256)
    # Truncate the digest to 20 base64 characters (120 bits)
    return msg + b"-" + base64.urlsafe_b64encode(mac.digest())[:MAC_LEN]


def generate_unlimited_hmac(prefix, key, uid):
    """Intended for user tokens, long-lived but low-importance"""
    return _generate_hmac(prefix, key, f"{uid}").decode("utf-8")


def verify_unlimited_hmac(prefix, key, code) -> str | None:
    # External uids may contain dashes, and so may the MAC, so split on the fixed MAC length
    if not code or len(code) <= MAC_LEN + 1 or code[-MAC_LEN - 1] != "-":
        return None

    uid = code[: -MAC_LEN - 1]
    expected_code = generate_unlimited_hmac(prefix, key, uid)
    if hmac.compare_digest(expected_code.encode("utf-8"), code.encode("utf-8")):
        return uid
    return None


def generate_api_token(key, uid):
    return generate_unlimited_hmac("api-", key, uid)


def verify_api_token(key, code):
    return verify_unlimited_hmac("api-", key, code)


class User(BaseModel, UserMixin):
    __tablename__ = "user"

    id: Mapped[int] = mapped_column(primary_key=True)
    # Identity issued by the external authentication provider
    uid: Mapped[str] = mapped_column(unique=True, index=True)
    email: Mapped[str | None] = mapped_column(index=True)
    name: Mapped[str | None]
    photo_url: Mapped[str | None]
    bio: Mapped[str | None]
    company: Mapped[str | None]
    address: Mapped[str | None]
    language: Mapped[str | None]
    references: Mapped[str | None]
    github: Mapped[str | None]
    twitter: Mapped[str | None]

    created: Mapped[datetime] = mapped_column(default=naive_utcnow)
    modified: Mapped[datetime] = mapped_column(default=naive_utcnow, onupdate=naive_utcnow)

    talks: Mapped[list[Talk]] = relationship(secondary="talk_speaker", back_populates="speakers")
    memberships: Mapped[list[OrganizationMember]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )
    ratings: Mapped[list[Rating]] = relationship(back_populates="user", lazy="dynamic")
    messages: Mapped[list[Message]] = relationship(back_populates="user", lazy="dynamic")

    def __init__(self, uid: str, name: str | None = None, email: str | None = None):
        self.uid = uid
        self.name = name
        self.email = email

    def __repr__(self):
        return f"<User {self.uid}>"

    @property
    def api_token(self):
        return generate_api_token(app.config["SECRET_KEY"], self.uid)

    @classmethod
    def get_by_uid(cls, uid) -> User | None:
        return db.session.execute(select(User).where(User.uid == uid)).scalar_one_or_none()

    @classmethod
    def uid_from_api_token(cls, key, code) -> str | None:
        return verify_api_token(key, code)
