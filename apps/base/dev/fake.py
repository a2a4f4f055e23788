import random
from datetime import timedelta

from faker import Faker

from main import db
from models import naive_utcnow
from models.cfp import PROPOSAL_STATUSES, RATING_FEELINGS, Message, Proposal, Rating
from models.event import Event, EventCategory, EventFormat
from models.organization import Organization, OrganizationMember
from models.talk import TALK_LEVELS, Talk
from models.user import User


def random_state(states):
    cumulative = []
    p = 0
    for state, prob in states.items():
        cumulative.append((state, p + prob))
        p += prob
    assert round(p, 3) == 1

    r = random.random()
    for state, prob in cumulative:
        if r <= prob:
            return state
    assert False


def randombool(probability):
    return random.random() < probability


class FakeDataGenerator(object):
    def __init__(self):
        self.fake = Faker("en_GB")

    def get_or_create_user(self, uid, name):
        user = User.get_by_uid(uid)
        if not user:
            user = User(uid, name, f"{uid}@test.invalid")
            db.session.add(user)
        return user

    def run(self, speakers=40):
        organizer = self.get_or_create_user("organizer", "Test Organizer")
        member = self.get_or_create_user("member", "Test Member")
        reviewers = [self.get_or_create_user(f"reviewer{i}", f"Reviewer {i}") for i in range(5)]

        organization = Organization(self.fake.company())
        db.session.add(organization)
        OrganizationMember(organization, organizer, "OWNER")
        OrganizationMember(organization, member, "MEMBER")
        for reviewer in reviewers:
            OrganizationMember(organization, reviewer, "REVIEWER")

        now = naive_utcnow()
        conference = self.create_event("CONFERENCE", organizer)
        conference.organization = organization
        conference.cfp_start = now - timedelta(days=30)
        conference.cfp_end = now + timedelta(days=30)
        conference.max_proposals = 3

        meetup = self.create_event("MEETUP", organizer)
        meetup.visibility = "PUBLIC"

        for i in range(speakers):
            speaker = User(self.fake.uuid4(), self.fake.name(), self.fake.safe_email())
            speaker.bio = self.fake.text(max_nb_chars=300)
            speaker.company = self.fake.company()
            db.session.add(speaker)

            for _ in range(random.randint(0, 3)):
                talk = self.create_talk(speaker)
                for event in (conference, meetup):
                    if randombool(0.5):
                        self.create_proposal(talk, event, [organizer, member] + reviewers)

            db.session.commit()

        db.session.commit()

    def create_event(self, type, creator):
        event = Event(f"{self.fake.city()} {type.title()}", type, creator=creator)
        event.description = self.fake.text(max_nb_chars=500)
        event.address = self.fake.address()
        event.website = self.fake.url()
        for name in ("Talk", "Workshop", "Lightning talk"):
            EventFormat(event, name, self.fake.sentence())
        for _ in range(4):
            EventCategory(event, self.fake.word().title(), self.fake.sentence())

        db.session.add(event)
        return event

    def create_talk(self, speaker):
        talk = Talk(self.fake.sentence(nb_words=6, variable_nb_words=True), creator=speaker)
        talk.abstract = self.fake.text(max_nb_chars=1000)
        talk.level = random.choice(TALK_LEVELS)
        talk.language = random.choice(["English", "French"])
        db.session.add(talk)
        return talk

    def create_proposal(self, talk, event, reviewers):
        proposal = Proposal(talk, event)
        proposal.comments = self.fake.sentence() if randombool(0.3) else None
        proposal.formats = random.sample(event.formats, 1)
        proposal.categories = random.sample(event.categories, random.randint(1, 2))
        proposal.status = random_state(
            dict(zip(PROPOSAL_STATUSES, [0.5, 0.15, 0.25, 0.05, 0.05]))
        )

        for reviewer in random.sample(reviewers, random.randint(0, len(reviewers))):
            if randombool(0.1):
                Rating(reviewer, proposal, None, "NO_OPINION")
            else:
                Rating(reviewer, proposal, random.randint(0, 5), random.choice(RATING_FEELINGS))

            if randombool(0.2):
                Message(reviewer, proposal, self.fake.sentence())

        db.session.add(proposal)
        return proposal
