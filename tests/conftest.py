" PyTest Config. This contains global-level pytest fixtures. "
import os
import os.path
import shutil
import datetime

import pytest
from freezegun import freeze_time

from main import create_app, db as db_obj
from models.user import User

from tests._utils import build_user

# Tests run at a fixed time, in the middle of the CfP windows built by _utils
FAKE_NOW = datetime.datetime(2030, 3, 1, 12, 0)


@pytest.fixture(scope="module")
def app():
    """Fixture to provide an instance of the app.
    This will also create a Flask app_context and tear it down.

    This fixture is scoped to the module level, so the database is
    shared by the tests in a module.
    """
    if "SETTINGS_FILE" not in os.environ:
        root = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..")
        os.environ["SETTINGS_FILE"] = os.path.join(root, "config", "test.cfg")

    tmpdir = os.environ.get("TMPDIR", "/tmp")
    prometheus_dir = os.path.join(tmpdir, "cfp_test_prometheus")
    os.environ["PROMETHEUS_MULTIPROC_DIR"] = prometheus_dir

    if os.path.exists(prometheus_dir):
        shutil.rmtree(prometheus_dir)
    if not os.path.exists(prometheus_dir):
        os.mkdir(prometheus_dir)

    app = create_app()

    # Freeze time at FAKE_NOW
    freezer = freeze_time(FAKE_NOW)
    freezer.start()
    with app.app_context():
        db_obj.create_all()

        yield app

        db_obj.session.close()
        db_obj.drop_all()
    freezer.stop()


@pytest.fixture
def client(app):
    "Yield a test HTTP client for the app"
    yield app.test_client()


@pytest.fixture(scope="module")
def db(app):
    "Yield the DB object"
    yield db_obj


@pytest.fixture(scope="module")
def user(db):
    "Yield a test user. Note that this user will be identical across all tests in a module."
    user = User.get_by_uid("test-user")
    if not user:
        user = build_user(db, uid="test-user", name="Test User")

    yield user
