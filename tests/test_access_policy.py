import pytest

from apps.common.access import Capability, authorize, event_capabilities
from apps.common.errors import Forbidden
from tests._utils import build_event, build_organization, build_user


@pytest.fixture(scope="module")
def people(db):
    return {name: build_user(db, name=name) for name in ("creator", "owner", "member", "reviewer", "stranger")}


@pytest.fixture(scope="module")
def event(db, people):
    organization = build_organization(
        db,
        [
            (people["owner"], "OWNER"),
            (people["member"], "MEMBER"),
            (people["reviewer"], "REVIEWER"),
        ],
    )
    return build_event(db, people["creator"], organization)


@pytest.mark.parametrize(
    "who, capabilities",
    [
        ("creator", {Capability.REVIEW, Capability.MANAGE}),
        ("owner", {Capability.REVIEW, Capability.MANAGE}),
        ("member", {Capability.REVIEW, Capability.MANAGE}),
        ("reviewer", {Capability.REVIEW}),
        ("stranger", set()),
    ],
)
def test_event_capabilities(people, event, who, capabilities):
    assert event_capabilities(people[who], event) == capabilities


def test_creator_of_an_event_without_organization(db, people):
    event = build_event(db, people["creator"])
    assert event_capabilities(people["creator"], event) == set(Capability)
    assert event_capabilities(people["owner"], event) == set()


def test_organization_members_have_no_rights_over_other_events(db, people, event):
    other = build_event(db, people["stranger"], build_organization(db))
    assert event_capabilities(people["owner"], other) == set()


def test_authorize(people, event):
    authorize(people["reviewer"], event, Capability.REVIEW)

    with pytest.raises(Forbidden):
        authorize(people["reviewer"], event, Capability.MANAGE)

    with pytest.raises(Forbidden):
        authorize(people["stranger"], event, Capability.REVIEW)
