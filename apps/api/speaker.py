from typing import ClassVar

from flask import current_app as app
from flask_restful import Resource

from apps.cfp.submission import ProposalSubmission
from apps.common import commit_or_conflict, isoformat
from apps.common.access import get_current_user, require_identity
from apps.common.errors import Conflict, Forbidden, SpeakerNotFound, TalkNotFound
from apps.common.validation import (
    id_list,
    json_body,
    optional_choice,
    optional_string,
    required_string,
)
from main import db
from models.talk import TALK_LEVELS, Talk
from models.user import User

from . import api
from .user import render_speaker

TALK_FIELDS = ("title", "abstract", "level", "language", "references")


def render_talk(talk, with_proposals=False):
    data = {
        "id": talk.id,
        "title": talk.title,
        "abstract": talk.abstract,
        "level": talk.level,
        "language": talk.language,
        "references": talk.references,
        "createdAt": isoformat(talk.created),
        "updatedAt": isoformat(talk.modified),
        "speakers": [render_speaker(s) for s in talk.speakers],
    }
    if with_proposals:
        data["proposals"] = [
            {
                "id": p.id,
                "eventId": p.event_id,
                "eventName": p.event.name,
                "status": p.status,
                "createdAt": isoformat(p.created),
            }
            for p in talk.proposals
        ]
    return data


def talk_changes(body, creating=False):
    if creating or "title" in body:
        required_string(body, "title", "Title is required")
    optional_string(body, "abstract")
    optional_string(body, "language")
    optional_string(body, "references")
    optional_choice(body, "level", TALK_LEVELS)

    return {field: body[field] for field in TALK_FIELDS if field in body}


def talk_for_speaker(user, talk_id) -> Talk:
    talk = Talk.get_with_speakers(talk_id)
    if talk is None:
        raise TalkNotFound()
    if not talk.is_speaker(user):
        raise Forbidden()
    return talk


class SpeakerTalks(Resource):
    method_decorators: ClassVar = [require_identity]

    def get(self):
        user = get_current_user()
        return [render_talk(talk) for talk in Talk.for_speaker(user)]

    def post(self):
        changes = talk_changes(json_body(), creating=True)
        user = get_current_user()

        talk = Talk(changes.pop("title"), creator=user)
        for field, value in changes.items():
            setattr(talk, field, value)
        db.session.add(talk)
        db.session.commit()

        app.logger.info("User %s created talk %s", user.id, talk.id)
        return render_talk(talk), 201


class SpeakerTalk(Resource):
    method_decorators: ClassVar = [require_identity]

    def get(self, talk_id):
        user = get_current_user()
        return render_talk(talk_for_speaker(user, talk_id), with_proposals=True)

    def put(self, talk_id):
        changes = talk_changes(json_body())
        user = get_current_user()
        talk = talk_for_speaker(user, talk_id)

        for field, value in changes.items():
            setattr(talk, field, value)
        db.session.commit()

        return "", 204

    def delete(self, talk_id):
        user = get_current_user()
        talk = talk_for_speaker(user, talk_id)

        # Proposals keep their copy of the talk
        db.session.delete(talk)
        db.session.commit()

        app.logger.info("User %s deleted talk %s", user.id, talk_id)
        return "", 204


class TalkCoSpeaker(Resource):
    method_decorators: ClassVar = [require_identity]

    def _talk_and_speaker(self, talk_id, speaker_id) -> tuple[Talk, User]:
        user = get_current_user()

        talk = Talk.get_with_speakers(talk_id)
        if talk is None:
            raise TalkNotFound()
        speaker = db.session.get(User, speaker_id)
        if speaker is None:
            raise SpeakerNotFound()
        if not talk.is_speaker(user):
            raise Forbidden()

        return talk, speaker

    def put(self, talk_id, speaker_id):
        talk, speaker = self._talk_and_speaker(talk_id, speaker_id)
        if talk.is_speaker(speaker):
            raise Conflict("Speaker already attached to the talk")

        talk.speakers.append(speaker)
        commit_or_conflict(db.session, "Speaker already attached to the talk")
        return "", 204

    def delete(self, talk_id, speaker_id):
        talk, speaker = self._talk_and_speaker(talk_id, speaker_id)
        if not talk.is_speaker(speaker):
            raise Conflict("Speaker does not belong to the talk")

        talk.speakers.remove(speaker)
        db.session.commit()
        return "", 204


class TalkSubmission(Resource):
    method_decorators: ClassVar = [require_identity]

    def put(self, talk_id, event_id):
        body = json_body()
        details = {
            "formats": id_list(body, "formats"),
            "categories": id_list(body, "categories"),
        }
        if "comments" in body:
            details["comments"] = optional_string(body, "comments")

        user = get_current_user()
        ProposalSubmission(db.session).submit(user, talk_id, event_id, details)
        return "", 204

    def delete(self, talk_id, event_id):
        user = get_current_user()
        ProposalSubmission(db.session).unsubmit(user, talk_id, event_id)
        return "", 204


api.add_resource(SpeakerTalks, "/speaker/talks")
api.add_resource(SpeakerTalk, "/speaker/talks/<int:talk_id>")
api.add_resource(TalkCoSpeaker, "/speaker/talks/<int:talk_id>/speakers/<int:speaker_id>")
api.add_resource(TalkSubmission, "/speaker/talks/<int:talk_id>/submissions/<int:event_id>")
