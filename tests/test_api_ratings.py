import pytest

from models.cfp import Rating
from tests._utils import (
    auth_headers,
    build_event,
    build_organization,
    build_proposal,
    build_rating,
    build_talk,
    build_user,
)


def rate_url(event, proposal_id):
    return f"/api/organizer/events/{event.id}/proposals/{proposal_id}/rate"


@pytest.fixture
def organizer(db):
    return build_user(db)


@pytest.fixture
def event(db, organizer):
    return build_event(db, organizer)


@pytest.fixture
def proposal(db, event):
    return build_proposal(db, event, build_talk(db, build_user(db)))


def test_rate_requires_a_token(client, event, proposal):
    rv = client.put(rate_url(event, proposal.id), json={"rating": 3})
    assert rv.status_code == 401


def test_rate_unknown_user(app, client, event, proposal):
    rv = client.put(rate_url(event, proposal.id), json={"rating": 3}, headers=auth_headers(app, "unknown"))
    assert rv.status_code == 404
    assert rv.json["message"] == "User not found"


def test_rate_not_owner(app, client, db, event, proposal):
    rv = client.put(rate_url(event, proposal.id), json={"rating": 3}, headers=auth_headers(app, build_user(db)))
    assert rv.status_code == 403


@pytest.mark.parametrize(
    "body",
    [
        {"feeling": "BAD_FEELING"},
        {"rating": 6},
        {"rating": -1},
        {"rating": "3"},
        {"rating": True},
    ],
)
def test_rate_invalid(app, client, organizer, event, body):
    # Validation happens before the proposal is looked up
    rv = client.put(rate_url(event, 999999), json=body, headers=auth_headers(app, organizer))
    assert rv.status_code == 400


def test_rate_unknown_proposal(app, client, organizer, event):
    rv = client.put(rate_url(event, 999999), json={"rating": 3}, headers=auth_headers(app, organizer))
    assert rv.status_code == 404
    assert rv.json["message"] == "Proposal not found"


def test_rate_round_trip(app, client, organizer, event, proposal):
    rv = client.put(
        rate_url(event, proposal.id),
        json={"rating": 3, "feeling": "NEUTRAL"},
        headers=auth_headers(app, organizer),
    )
    assert rv.status_code == 204

    rating = Rating.get(organizer, proposal)
    assert (rating.rating, rating.feeling) == (3, "NEUTRAL")

    rv = client.put(
        rate_url(event, proposal.id),
        json={"rating": 5, "feeling": "POSITIVE"},
        headers=auth_headers(app, organizer),
    )
    assert rv.status_code == 204
    assert Rating.query.filter_by(user_id=organizer.id, proposal_id=proposal.id).count() == 1
    rating = Rating.get(organizer, proposal)
    assert (rating.rating, rating.feeling) == (5, "POSITIVE")

    rv = client.put(
        rate_url(event, proposal.id),
        json={"rating": None, "feeling": None},
        headers=auth_headers(app, organizer),
    )
    assert rv.status_code == 204
    assert Rating.get(organizer, proposal) is None


def test_rating_with_no_values_deletes(app, client, db, organizer, event, proposal):
    build_rating(db, organizer, proposal, 1, "NEUTRAL")

    rv = client.put(rate_url(event, proposal.id), json={}, headers=auth_headers(app, organizer))
    assert rv.status_code == 204
    assert Rating.get(organizer, proposal) is None


def test_ratings_are_per_user(app, client, db, organizer, event, proposal):
    other = build_user(db)
    build_rating(db, other, proposal, 2, "NEGATIVE")

    rv = client.put(
        rate_url(event, proposal.id),
        json={"rating": None, "feeling": None},
        headers=auth_headers(app, organizer),
    )
    assert rv.status_code == 204

    rating = Rating.get(other, proposal)
    assert (rating.rating, rating.feeling) == (2, "NEGATIVE")


def test_reviewer_can_rate(app, client, db):
    reviewer = build_user(db)
    event = build_event(db, None, build_organization(db, [(reviewer, "REVIEWER")]))
    proposal = build_proposal(db, event, build_talk(db, build_user(db)))

    rv = client.put(
        rate_url(event, proposal.id), json={"feeling": "NO_OPINION"}, headers=auth_headers(app, reviewer)
    )
    assert rv.status_code == 204
    assert Rating.get(reviewer, proposal).feeling == "NO_OPINION"


def test_rating_a_proposal_of_another_event(app, client, db, organizer, event):
    other = build_proposal(db, build_event(db, build_user(db)), build_talk(db, build_user(db)))

    rv = client.put(rate_url(event, other.id), json={"rating": 1}, headers=auth_headers(app, organizer))
    assert rv.status_code == 404
