import pytest

from models.cfp import Message
from tests._utils import (
    auth_headers,
    build_event,
    build_message,
    build_organization,
    build_proposal,
    build_talk,
    build_user,
)


def messages_url(event, proposal_id):
    return f"/api/organizer/events/{event.id}/proposals/{proposal_id}/messages"


@pytest.fixture
def organizer(db):
    return build_user(db)


@pytest.fixture
def event(db, organizer):
    return build_event(db, organizer)


@pytest.fixture
def proposal(db, event):
    return build_proposal(db, event, build_talk(db, build_user(db)))


def test_messages_require_a_token(client, event, proposal):
    rv = client.get(messages_url(event, proposal.id))
    assert rv.status_code == 401


def test_messages_unknown_user(app, client, event, proposal):
    rv = client.get(messages_url(event, proposal.id), headers=auth_headers(app, "unknown"))
    assert rv.status_code == 404
    assert rv.json["message"] == "User not found"


def test_messages_not_owner(app, client, db, event, proposal):
    rv = client.get(messages_url(event, proposal.id), headers=auth_headers(app, build_user(db)))
    assert rv.status_code == 403


def test_messages_organization_non_member(app, client, db):
    event = build_event(db, None, build_organization(db, [(build_user(db), "MEMBER")]))

    rv = client.get(messages_url(event, 1), headers=auth_headers(app, build_user(db)))
    assert rv.status_code == 403


def test_list_messages(app, client, db, organizer, event, proposal):
    other = build_user(db)
    message1 = build_message(db, organizer, proposal, "Hello world")
    message2 = build_message(db, other, proposal, "How are you ?")
    build_message(db, other, proposal, "Not for organizers", channel="SPEAKER")

    rv = client.get(messages_url(event, proposal.id), headers=auth_headers(app, organizer))
    assert rv.status_code == 200
    assert rv.json == [
        {
            "id": message1.id,
            "message": "Hello world",
            "createdAt": "2030-03-01T12:00:00.000Z",
            "updatedAt": "2030-03-01T12:00:00.000Z",
            "name": organizer.name,
            "photoURL": organizer.photo_url,
            "me": True,
        },
        {
            "id": message2.id,
            "message": "How are you ?",
            "createdAt": "2030-03-01T12:00:00.000Z",
            "updatedAt": "2030-03-01T12:00:00.000Z",
            "name": other.name,
            "photoURL": other.photo_url,
            "me": False,
        },
    ]


def test_post_message(app, client, db, organizer, event, proposal):
    rv = client.post(
        messages_url(event, proposal.id), json={"message": "Can you do Sunday?"}, headers=auth_headers(app, organizer)
    )
    assert rv.status_code == 200
    assert rv.json["message"] == "Can you do Sunday?"
    assert rv.json["me"] is True

    message = db.session.get(Message, rv.json["id"])
    assert message.user == organizer
    assert message.channel == "ORGANIZER"


@pytest.mark.parametrize("body", [{}, {"message": ""}, {"message": "   "}, {"message": None}])
def test_post_message_requires_text(app, client, organizer, event, proposal, body):
    rv = client.post(messages_url(event, proposal.id), json=body, headers=auth_headers(app, organizer))
    assert rv.status_code == 400
    assert rv.json["message"] == "Message is required"


def test_post_message_unknown_proposal(app, client, organizer, event):
    rv = client.post(messages_url(event, 999999), json={"message": "Hi"}, headers=auth_headers(app, organizer))
    assert rv.status_code == 404
    assert rv.json["message"] == "Proposal not found"


def test_edit_message(app, client, db, organizer, event, proposal):
    message = build_message(db, organizer, proposal, "Typo")

    rv = client.patch(
        f"{messages_url(event, proposal.id)}/{message.id}", json={"message": "Fixed"}, headers=auth_headers(app, organizer)
    )
    assert rv.status_code == 204
    assert message.message == "Fixed"

    rv = client.patch(
        f"{messages_url(event, proposal.id)}/{message.id}", json={"message": ""}, headers=auth_headers(app, organizer)
    )
    assert rv.status_code == 400


def test_delete_message(app, client, db, organizer, event, proposal):
    message = build_message(db, organizer, proposal, "Oops")
    message_id = message.id

    rv = client.delete(f"{messages_url(event, proposal.id)}/{message_id}", headers=auth_headers(app, organizer))
    assert rv.status_code == 204
    assert db.session.get(Message, message_id) is None


def test_other_users_messages_are_not_found(app, client, db, organizer, event, proposal):
    """A message by someone else looks missing rather than forbidden"""
    member = build_user(db)
    event.organization = build_organization(db, [(member, "MEMBER")])
    db.session.commit()
    message = build_message(db, organizer, proposal, "Mine")
    url = f"{messages_url(event, proposal.id)}/{message.id}"

    rv = client.patch(url, json={"message": "Yours now"}, headers=auth_headers(app, member))
    assert rv.status_code == 404
    assert rv.json["message"] == "Message not found"

    rv = client.delete(url, headers=auth_headers(app, member))
    assert rv.status_code == 404
    assert rv.json["message"] == "Message not found"

    assert message.message == "Mine"

    rv = client.delete(f"{messages_url(event, proposal.id)}/999999", headers=auth_headers(app, organizer))
    assert rv.status_code == 404


def test_message_on_another_proposal_is_not_found(app, client, db, organizer, event, proposal):
    other = build_proposal(db, event, build_talk(db, build_user(db)))
    message = build_message(db, organizer, other, "Elsewhere")

    rv = client.delete(f"{messages_url(event, proposal.id)}/{message.id}", headers=auth_headers(app, organizer))
    assert rv.status_code == 404
