from datetime import datetime, timedelta
from itertools import count

from models.cfp import Message, Proposal, Rating
from models.event import Event, EventCategory, EventFormat
from models.organization import Organization, OrganizationMember
from models.talk import Talk
from models.user import User, generate_api_token

_ids = count(1)


def auth_headers(app, user_or_uid):
    uid = getattr(user_or_uid, "uid", user_or_uid)
    return {"Authorization": f"Bearer {generate_api_token(app.config['SECRET_KEY'], uid)}"}


def build_user(db, uid=None, name=None):
    n = next(_ids)
    user = User(uid or f"uid-{n}", name or f"Speaker {n}", f"speaker{n}@example.net")
    user.photo_url = f"https://example.net/photos/{n}.png"
    user.bio = "Speaks at things"
    db.session.add(user)
    db.session.commit()
    return user


def build_event(db, creator=None, organization=None, **attrs):
    """A conference with an open CfP, unless told otherwise"""
    event = Event(f"Event {next(_ids)}", attrs.pop("type", "CONFERENCE"), creator=creator)
    event.organization = organization
    event.cfp_start = datetime.now() - timedelta(days=10)
    event.cfp_end = datetime.now() + timedelta(days=10)
    for attr, value in attrs.items():
        setattr(event, attr, value)
    db.session.add(event)
    db.session.commit()
    return event


def build_format(db, event, name="Talk"):
    fmt = EventFormat(event, name)
    db.session.add(fmt)
    db.session.commit()
    return fmt


def build_category(db, event, name="Web"):
    category = EventCategory(event, name)
    db.session.add(category)
    db.session.commit()
    return category


def build_organization(db, members=()):
    """`members` is a list of (user, role) pairs"""
    organization = Organization(f"Organization {next(_ids)}")
    for user, role in members:
        OrganizationMember(organization, user, role)
    db.session.add(organization)
    db.session.commit()
    return organization


def build_talk(db, speaker, **attrs):
    talk = Talk(f"Talk {next(_ids)}", creator=speaker, abstract="An abstract")
    talk.level = "INTERMEDIATE"
    talk.language = "English"
    for attr, value in attrs.items():
        setattr(talk, attr, value)
    db.session.add(talk)
    db.session.commit()
    return talk


def build_proposal(db, event, talk, **attrs):
    proposal = Proposal(talk, event)
    for attr, value in attrs.items():
        setattr(proposal, attr, value)
    db.session.add(proposal)
    db.session.commit()
    return proposal


def build_rating(db, user, proposal, rating, feeling):
    rating = Rating(user, proposal, rating, feeling)
    db.session.add(rating)
    db.session.commit()
    return rating


def build_message(db, user, proposal, text, channel="ORGANIZER"):
    message = Message(user, proposal, text, channel)
    db.session.add(message)
    db.session.commit()
    return message
