"""Submitting a talk to an event.

A proposal is a copy of the talk as it was when submitted, so organizers
review something that doesn't change under them. Submitting the same
talk again is the only way to update it.
"""

from flask import current_app as app

from apps.common import commit_or_conflict
from apps.common.errors import (
    EventNotFound,
    Forbidden,
    ProposalNotFound,
    TalkNotFound,
    ValidationFailed,
)
from models.cfp import Proposal
from models.event import Event
from models.talk import Talk

from . import event_categories, event_formats


class ProposalSubmission:
    def __init__(self, session):
        self.session = session

    def _talk_and_event(self, user, talk_id, event_id) -> tuple[Talk, Event]:
        talk = Talk.get_with_speakers(talk_id)
        if talk is None:
            raise TalkNotFound()
        if not talk.is_speaker(user):
            raise Forbidden()

        event = Event.get(event_id)
        if event is None:
            raise EventNotFound()
        if not event.is_cfp_open:
            raise Forbidden("CFP is closed")

        return talk, event

    def submit(self, user, talk_id, event_id, details) -> Proposal:
        """Create the proposal for this talk, or refresh it if it's already been submitted.

        `details` is the validated request: `formats` and `categories` are lists
        of ids (empty meaning none), and `comments` is only changed if present.
        """
        talk, event = self._talk_and_event(user, talk_id, event_id)

        if event.formats_required and not details["formats"]:
            raise ValidationFailed("formats", "Formats are required for the event")
        if event.categories_required and not details["categories"]:
            raise ValidationFailed("categories", "Categories are required for the event")

        formats = event_formats(self.session, event, details["formats"])
        categories = event_categories(self.session, event, details["categories"])

        # Any speaker of the talk updates the same proposal, even one added since it was submitted
        proposal = Proposal.for_talk_and_event(talk.id, event.id)

        if proposal is None:
            proposals = Proposal.for_user_and_event(user, event)
            if event.max_proposals and len(proposals) >= event.max_proposals:
                app.logger.warning(
                    "User %s already has %s proposals for event %s", user.id, len(proposals), event.id
                )
                raise Forbidden("Max proposals reached")

            proposal = Proposal(talk, event)
            self.session.add(proposal)
            created = True
        else:
            proposal.copy_talk(talk)
            created = False

        if "comments" in details:
            proposal.comments = details["comments"]
        proposal.formats = formats
        proposal.categories = categories

        commit_or_conflict(self.session, "Talk has already been submitted to the event")

        if created:
            app.logger.info("Talk %s submitted to event %s as proposal %s", talk.id, event.id, proposal.id)
        else:
            app.logger.info("Proposal %s updated from talk %s", proposal.id, talk.id)
        return proposal

    def unsubmit(self, user, talk_id, event_id) -> None:
        talk, event = self._talk_and_event(user, talk_id, event_id)

        proposal = Proposal.for_talk_and_event(talk.id, event.id)
        if proposal is None:
            raise ProposalNotFound()

        self.session.delete(proposal)
        commit_or_conflict(self.session)
        app.logger.info("Talk %s withdrawn from event %s", talk.id, event.id)
