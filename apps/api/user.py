from typing import ClassVar

from flask import current_app as app
from flask_login import current_user
from flask_restful import Resource

from apps.common import commit_or_conflict
from apps.common.access import current_uid, get_current_user, require_identity
from apps.common.validation import json_body, optional_string
from main import db
from models.user import User

from . import api

# Wire name -> User attribute
PROFILE_FIELDS = {
    "email": "email",
    "name": "name",
    "photoURL": "photo_url",
    "bio": "bio",
    "company": "company",
    "address": "address",
    "language": "language",
    "references": "references",
    "github": "github",
    "twitter": "twitter",
}


def render_speaker(user):
    data = {"id": user.id}
    for key, attr in PROFILE_FIELDS.items():
        data[key] = getattr(user, attr)
    return data


def render_user(user):
    data = render_speaker(user)
    data["uid"] = user.uid
    return data


def profile_changes(body):
    return {
        attr: optional_string(body, key) for key, attr in PROFILE_FIELDS.items() if key in body
    }


class CurrentUser(Resource):
    method_decorators: ClassVar = [require_identity]

    def get(self):
        return render_user(get_current_user())

    def post(self):
        """Create the user record for this identity, or refresh it"""
        changes = profile_changes(json_body())

        uid = current_uid()
        if current_user.is_authenticated:
            user = current_user._get_current_object()
        else:
            user = User(uid)
            db.session.add(user)
            app.logger.info("Creating user for uid %s", uid)

        for attr, value in changes.items():
            setattr(user, attr, value)
        commit_or_conflict(db.session, "User already exists")

        return render_user(user)

    def patch(self):
        changes = profile_changes(json_body())
        user = get_current_user()

        for attr, value in changes.items():
            setattr(user, attr, value)
        db.session.commit()

        return "", 204


api.add_resource(CurrentUser, "/me")
