from typing import ClassVar

from flask import current_app as app
from flask import request
from flask_restful import Resource
from sqlalchemy import or_, select

from apps.cfp.review import ProposalReview
from apps.common import commit_or_conflict, isoformat
from apps.common.access import (
    Capability,
    ROLE_CAPABILITIES,
    event_for,
    get_current_user,
    require_identity,
)
from apps.common.errors import Forbidden, ValidationFailed
from apps.common.json import stream_json
from apps.common.validation import (
    id_list,
    json_body,
    optional_bool,
    optional_choice,
    optional_datetime,
    optional_int,
    optional_string,
    page_args,
    required_string,
)
from main import db
from models.cfp import MAX_RATING, MIN_RATING, PROPOSAL_STATUSES, RATING_FEELINGS
from models.event import EVENT_TYPES, EVENT_VISIBILITIES, Event, EventCategory, EventFormat
from models.organization import OrganizationMember
from models.talk import TALK_LEVELS

from . import api
from .user import render_speaker

RATING_FILTERS = ["rated", "not-rated"]
SORT_ORDERS = ["newest", "oldest"]


def render_option(option):
    return {"id": option.id, "name": option.name, "description": option.description}


def render_event(event):
    return {
        "id": event.id,
        "name": event.name,
        "type": event.type,
        "visibility": event.visibility,
        "description": event.description,
        "address": event.address,
        "website": event.website,
        "contact": event.contact,
        "cfpStart": isoformat(event.cfp_start),
        "cfpEnd": isoformat(event.cfp_end),
        "isCfpOpen": event.is_cfp_open,
        "maxProposals": event.max_proposals,
        "formatsRequired": event.formats_required,
        "categoriesRequired": event.categories_required,
        "organizationId": event.organization_id,
        "formats": [render_option(f) for f in event.formats],
        "categories": [render_option(c) for c in event.categories],
    }


def render_rating(rating):
    return {
        "id": rating.id,
        "rating": rating.rating,
        "feeling": rating.feeling,
        "name": rating.user.name,
        "photoURL": rating.user.photo_url,
    }


def render_proposal(proposal, user):
    user_rating = proposal.get_user_rating(user)
    return {
        "id": proposal.id,
        "title": proposal.title,
        "abstract": proposal.abstract,
        "level": proposal.level,
        "language": proposal.language,
        "references": proposal.references,
        "comments": proposal.comments,
        "status": proposal.status,
        "createdAt": isoformat(proposal.created),
        "speakers": [render_speaker(s) for s in proposal.speakers],
        "formats": [render_option(f) for f in proposal.formats],
        "categories": [render_option(c) for c in proposal.categories],
        "ratings": [render_rating(r) for r in proposal.ratings],
        "ratingStats": proposal.rating_stats(),
        "userRating": (
            {"rating": user_rating.rating, "feeling": user_rating.feeling} if user_rating else {}
        ),
    }


def render_message(message, user):
    return {
        "id": message.id,
        "message": message.message,
        "createdAt": isoformat(message.created),
        "updatedAt": isoformat(message.modified),
        "name": message.user.name,
        "photoURL": message.user.photo_url,
        "me": message.user_id == user.id,
    }


def proposal_filters(source) -> dict:
    """Proposal filters, from a request body or query string"""
    filters = {
        "status": optional_choice(source, "status", PROPOSAL_STATUSES),
        "ratings": optional_choice(source, "ratings", RATING_FILTERS),
        "query": optional_string(source, "query"),
    }
    for field in ("formats", "categories"):
        value = source.get(field)
        # Query strings give ids as "1,2,3"
        if isinstance(value, str):
            try:
                value = [int(v) for v in value.split(",") if v.strip()]
            except ValueError:
                raise ValidationFailed(field, f"{field} must be a list of ids")
        filters[field] = id_list({field: value}, field)
    return filters


def query_filters() -> tuple[dict, str]:
    args = request.args.to_dict()
    sort = optional_choice(args, "sort", SORT_ORDERS) or "newest"
    return proposal_filters(args), sort


EVENT_FIELDS = {
    "name": "name",
    "type": "type",
    "visibility": "visibility",
    "description": "description",
    "address": "address",
    "website": "website",
    "contact": "contact",
    "maxProposals": "max_proposals",
    "formatsRequired": "formats_required",
    "categoriesRequired": "categories_required",
}

# A null for these leaves them unchanged rather than clearing them
REQUIRED_EVENT_FIELDS = {"name", "type", "visibility", "formatsRequired", "categoriesRequired"}


def event_changes(body, creating=False) -> dict:
    if creating or "name" in body:
        required_string(body, "name", "Name is required")
    optional_choice(body, "type", EVENT_TYPES)
    optional_choice(body, "visibility", EVENT_VISIBILITIES)
    for field in ("description", "address", "website", "contact"):
        optional_string(body, field)
    optional_int(body, "maxProposals", minimum=0)
    optional_bool(body, "formatsRequired")
    optional_bool(body, "categoriesRequired")

    changes = {
        attr: body[key]
        for key, attr in EVENT_FIELDS.items()
        if key in body and (body[key] is not None or key not in REQUIRED_EVENT_FIELDS)
    }

    if "cfpStart" in body:
        changes["cfp_start"] = optional_datetime(body, "cfpStart")
    if "cfpEnd" in body:
        changes["cfp_end"] = optional_datetime(body, "cfpEnd")
    check_cfp_window(changes.get("cfp_start"), changes.get("cfp_end"))
    return changes


def check_cfp_window(cfp_start, cfp_end):
    if cfp_start and cfp_end and cfp_start > cfp_end:
        raise ValidationFailed("cfpEnd", "CFP end must be after its start")


class OrganizerEvents(Resource):
    method_decorators: ClassVar = [require_identity]

    def get(self):
        user = get_current_user()
        organization_ids = select(OrganizationMember.organization_id).where(
            OrganizationMember.user_id == user.id
        )
        events = db.session.scalars(
            select(Event)
            .where(or_(Event.creator_id == user.id, Event.organization_id.in_(organization_ids)))
            .order_by(Event.created.desc(), Event.id.desc())
        )
        return [render_event(event) for event in events]

    def post(self):
        body = json_body()
        changes = event_changes(body, creating=True)
        organization_id = optional_int(body, "organizationId")

        user = get_current_user()

        event = Event(changes.pop("name"), changes.pop("type", "CONFERENCE"), creator=user)
        if organization_id is not None:
            member = OrganizationMember.get(organization_id, user.id)
            # Reviewers can't create events for the organization
            if member is None or Capability.MANAGE not in ROLE_CAPABILITIES.get(member.role, ()):
                raise Forbidden()
            event.organization = member.organization

        for attr, value in changes.items():
            setattr(event, attr, value)

        db.session.add(event)
        db.session.commit()

        app.logger.info("User %s created event %s", user.id, event.id)
        return render_event(event), 201


class OrganizerEvent(Resource):
    method_decorators: ClassVar = [require_identity]

    def get(self, event_id):
        user = get_current_user()
        return render_event(event_for(user, event_id, Capability.REVIEW))

    def patch(self, event_id):
        changes = event_changes(json_body())
        user = get_current_user()
        event = event_for(user, event_id, Capability.MANAGE)

        # Only one end of the window may be changing
        check_cfp_window(
            changes.get("cfp_start", event.cfp_start), changes.get("cfp_end", event.cfp_end)
        )

        for attr, value in changes.items():
            setattr(event, attr, value)
        db.session.commit()

        app.logger.info("User %s updated event %s", user.id, event.id)
        return "", 204


class EventOptions(Resource):
    """Formats or categories offered by an event"""

    method_decorators: ClassVar = [require_identity]
    model: ClassVar[type]

    def post(self, event_id):
        body = json_body()
        name = required_string(body, "name", "Name is required")
        description = optional_string(body, "description")

        user = get_current_user()
        event = event_for(user, event_id, Capability.MANAGE)

        option = self.model(event, name, description)
        db.session.add(option)
        db.session.commit()

        return render_option(option), 201


class EventFormats(EventOptions):
    model = EventFormat


class EventCategories(EventOptions):
    model = EventCategory


class EventProposals(Resource):
    method_decorators: ClassVar = [require_identity]

    def get(self, event_id):
        filters, sort = query_filters()
        page, page_size = page_args()

        user = get_current_user()
        event = event_for(user, event_id, Capability.REVIEW)

        total, proposals = ProposalReview(db.session, user, event).search(
            filters, sort, page, page_size
        )
        return {
            "total": total,
            "page": page,
            "pageSize": page_size,
            "proposals": [render_proposal(p, user) for p in proposals],
        }

    def patch(self, event_id):
        body = json_body()
        filters = body.get("filters") or {}
        data = body.get("data") or {}
        if not isinstance(filters, dict) or not isinstance(data, dict):
            raise ValidationFailed("body", "Invalid request body")
        filters = proposal_filters(filters)
        status = optional_choice(data, "status", PROPOSAL_STATUSES)
        if status is None:
            raise ValidationFailed("status", "Status is required")

        user = get_current_user()
        event = event_for(user, event_id, Capability.MANAGE)

        ProposalReview(db.session, user, event).bulk_update_status(filters, status)
        return "", 204


class EventProposalsExport(Resource):
    method_decorators: ClassVar = [require_identity]

    def post(self, event_id):
        filters, sort = query_filters()

        user = get_current_user()
        event = event_for(user, event_id, Capability.MANAGE)

        review = ProposalReview(db.session, user, event)
        app.logger.info("User %s exported proposals for event %s", user.id, event.id)
        return stream_json(render_proposal(p, user) for p in review.export(filters, sort))


class EventProposal(Resource):
    method_decorators: ClassVar = [require_identity]

    def patch(self, event_id, proposal_id):
        body = json_body()
        if "title" in body:
            required_string(body, "title", "Title is required")
        for field in ("abstract", "language", "references", "comments"):
            optional_string(body, field)
        optional_choice(body, "level", TALK_LEVELS)

        changes = {
            field: body[field]
            for field in ("title", "abstract", "level", "language", "references", "comments")
            if field in body
        }
        for field in ("formats", "categories"):
            if field in body:
                changes[field] = id_list(body, field)

        user = get_current_user()
        event = event_for(user, event_id, Capability.MANAGE)

        ProposalReview(db.session, user, event).update_proposal(proposal_id, changes)
        return "", 204


class ProposalRating(Resource):
    method_decorators: ClassVar = [require_identity]

    def put(self, event_id, proposal_id):
        body = json_body()
        rating = optional_int(body, "rating", minimum=MIN_RATING, maximum=MAX_RATING)
        feeling = optional_choice(body, "feeling", RATING_FEELINGS)

        user = get_current_user()
        event = event_for(user, event_id, Capability.REVIEW)

        ProposalReview(db.session, user, event).rate(proposal_id, rating, feeling)
        return "", 204


class ProposalMessages(Resource):
    method_decorators: ClassVar = [require_identity]

    def get(self, event_id, proposal_id):
        user = get_current_user()
        event = event_for(user, event_id, Capability.REVIEW)

        messages = ProposalReview(db.session, user, event).messages(proposal_id)
        return [render_message(m, user) for m in messages]

    def post(self, event_id, proposal_id):
        text = required_string(json_body(), "message", "Message is required")

        user = get_current_user()
        event = event_for(user, event_id, Capability.REVIEW)

        message = ProposalReview(db.session, user, event).add_message(proposal_id, text)
        return render_message(message, user)


class ProposalMessage(Resource):
    method_decorators: ClassVar = [require_identity]

    def patch(self, event_id, proposal_id, message_id):
        text = required_string(json_body(), "message", "Message is required")

        user = get_current_user()
        event = event_for(user, event_id, Capability.REVIEW)

        ProposalReview(db.session, user, event).edit_message(proposal_id, message_id, text)
        return "", 204

    def delete(self, event_id, proposal_id, message_id):
        user = get_current_user()
        event = event_for(user, event_id, Capability.REVIEW)

        ProposalReview(db.session, user, event).delete_message(proposal_id, message_id)
        return "", 204


EVENT_URL = "/organizer/events/<int:event_id>"
PROPOSAL_URL = EVENT_URL + "/proposals/<int:proposal_id>"

api.add_resource(OrganizerEvents, "/organizer/events")
api.add_resource(OrganizerEvent, EVENT_URL)
api.add_resource(EventFormats, EVENT_URL + "/formats")
api.add_resource(EventCategories, EVENT_URL + "/categories")
api.add_resource(EventProposals, EVENT_URL + "/proposals")
api.add_resource(EventProposalsExport, EVENT_URL + "/proposals/export")
api.add_resource(EventProposal, PROPOSAL_URL)
api.add_resource(ProposalRating, PROPOSAL_URL + "/rate")
api.add_resource(ProposalMessages, PROPOSAL_URL + "/messages")
api.add_resource(ProposalMessage, PROPOSAL_URL + "/messages/<int:message_id>")
