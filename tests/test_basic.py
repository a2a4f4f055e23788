from apps.base.dev.fake import FakeDataGenerator
from models.event import Event
from models.user import User, verify_api_token
from tests._utils import build_event, build_proposal, build_talk, build_user


def test_metrics(client, db):
    event = build_event(db, build_user(db))
    build_proposal(db, event, build_talk(db, build_user(db)), status="ACCEPTED")

    rv = client.get("/metrics")
    assert rv.status_code == 200
    assert 'cfp_proposals{status="ACCEPTED"} 1.0' in rv.get_data(as_text=True)


def test_security_headers(client):
    rv = client.get("/api/me")
    assert rv.headers["X-Frame-Options"] == "deny"
    assert rv.headers["X-Content-Type-Options"] == "nosniff"


def test_unknown_api_route(client):
    rv = client.get("/api/nothing-here")
    assert rv.status_code == 404


def test_dev_token(app, user):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["dev", "token", user.uid])
    assert result.exit_code == 0
    assert verify_api_token(app.config["SECRET_KEY"], result.output.strip()) == user.uid


def test_fake_data(app, db):
    FakeDataGenerator().run(speakers=5)

    assert User.get_by_uid("reviewer0") is not None
    organizer = User.get_by_uid("organizer")
    events = Event.query.filter_by(creator_id=organizer.id).all()
    assert sorted(e.type for e in events) == ["CONFERENCE", "MEETUP"]
    assert all(p.speakers for e in events for p in e.proposals)
