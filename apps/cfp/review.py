"""Organizer side of the CfP: finding, rating, updating and discussing proposals.

Callers authorize the user against the event first; everything here is
scoped to that one event.
"""

from flask import current_app as app
from sqlalchemy import exists, or_, select
from sqlalchemy.orm import selectinload

from apps.common import commit_or_conflict
from apps.common.errors import MessageNotFound, ProposalNotFound
from models import count_rows
from models.cfp import Message, Proposal, Rating
from models.event import EventCategory, EventFormat
from models.user import User

from . import event_categories, event_formats

# Proposal fields organizers may edit directly
EDITABLE_FIELDS = ("title", "abstract", "level", "language", "references", "comments")


class ProposalReview:
    def __init__(self, session, user, event):
        self.session = session
        self.user = user
        self.event = event

    def get_proposal(self, proposal_id) -> Proposal:
        proposal = self.session.get(Proposal, proposal_id)
        if proposal is None or proposal.event_id != self.event.id:
            raise ProposalNotFound()
        return proposal

    def select_proposals(self, filters, sort="newest"):
        """Build the query for this event's proposals.

        `filters` may contain `status`, `ratings` ("rated" or "not-rated" by
        this user), `query` (matched against titles and speaker names), and
        lists of `formats` and `categories` ids.
        """
        stmt = select(Proposal).where(Proposal.event_id == self.event.id)

        if filters.get("status"):
            stmt = stmt.where(Proposal.status == filters["status"])

        rated = exists().where(Rating.proposal_id == Proposal.id, Rating.user_id == self.user.id)
        if filters.get("ratings") == "rated":
            stmt = stmt.where(rated)
        elif filters.get("ratings") == "not-rated":
            stmt = stmt.where(~rated)

        if filters.get("query"):
            like = f"%{filters['query']}%"
            stmt = stmt.where(
                or_(Proposal.title.ilike(like), Proposal.speakers.any(User.name.ilike(like)))
            )

        if filters.get("formats"):
            stmt = stmt.where(Proposal.formats.any(EventFormat.id.in_(filters["formats"])))
        if filters.get("categories"):
            stmt = stmt.where(Proposal.categories.any(EventCategory.id.in_(filters["categories"])))

        if sort == "oldest":
            return stmt.order_by(Proposal.created, Proposal.id)
        return stmt.order_by(Proposal.created.desc(), Proposal.id.desc())

    def _with_details(self, stmt):
        return stmt.options(
            selectinload(Proposal.speakers),
            selectinload(Proposal.formats),
            selectinload(Proposal.categories),
            selectinload(Proposal.ratings).selectinload(Rating.user),
        )

    def search(self, filters, sort, page, page_size) -> tuple[int, list[Proposal]]:
        stmt = self.select_proposals(filters, sort)
        total = count_rows(self.session, stmt)

        stmt = self._with_details(stmt).limit(page_size).offset((page - 1) * page_size)
        return total, list(self.session.scalars(stmt))

    def export(self, filters, sort):
        """Every matching proposal, loaded lazily so it can be streamed"""
        stmt = self._with_details(self.select_proposals(filters, sort))
        yield from self.session.scalars(stmt)

    def update_proposal(self, proposal_id, changes) -> Proposal:
        proposal = self.get_proposal(proposal_id)

        for field in EDITABLE_FIELDS:
            if field in changes:
                setattr(proposal, field, changes[field])
        if "formats" in changes:
            proposal.formats = event_formats(self.session, self.event, changes["formats"])
        if "categories" in changes:
            proposal.categories = event_categories(self.session, self.event, changes["categories"])

        commit_or_conflict(self.session)
        app.logger.info("Proposal %s updated by user %s", proposal.id, self.user.id)
        return proposal

    def bulk_update_status(self, filters, status) -> int:
        proposals = list(self.session.scalars(self.select_proposals(filters)))
        for proposal in proposals:
            proposal.status = status

        commit_or_conflict(self.session)
        app.logger.info(
            "Set %s proposals for event %s to %s", len(proposals), self.event.id, status
        )
        return len(proposals)

    def rate(self, proposal_id, rating, feeling) -> Rating | None:
        """Record this user's opinion of a proposal. No opinion at all removes the rating."""
        proposal = self.get_proposal(proposal_id)
        existing = Rating.get(self.user, proposal)

        if rating is None and feeling is None:
            if existing is not None:
                self.session.delete(existing)
                commit_or_conflict(self.session)
                app.logger.info("User %s removed their rating of proposal %s", self.user.id, proposal.id)
            return None

        if existing is None:
            existing = Rating(self.user, proposal, rating, feeling)
            self.session.add(existing)
        else:
            existing.rating = rating
            existing.feeling = feeling

        commit_or_conflict(self.session, "Proposal has already been rated")
        return existing

    def messages(self, proposal_id, channel="ORGANIZER") -> list[Message]:
        return Message.for_proposal(self.get_proposal(proposal_id), channel)

    def add_message(self, proposal_id, text, channel="ORGANIZER") -> Message:
        message = Message(self.user, self.get_proposal(proposal_id), text, channel)
        self.session.add(message)
        commit_or_conflict(self.session)
        return message

    def _own_message(self, proposal_id, message_id) -> Message:
        # Someone else's message is reported as missing, not forbidden
        message = Message.get_for_author(message_id, self.get_proposal(proposal_id), self.user)
        if message is None:
            raise MessageNotFound()
        return message

    def edit_message(self, proposal_id, message_id, text) -> Message:
        message = self._own_message(proposal_id, message_id)
        message.message = text
        commit_or_conflict(self.session)
        return message

    def delete_message(self, proposal_id, message_id) -> None:
        message = self._own_message(proposal_id, message_id)
        self.session.delete(message)
        commit_or_conflict(self.session)
