""" Development CLI tasks """
import click
from flask import current_app as app

from main import db
from models.user import User, generate_api_token

from . import dev_cli
from .fake import FakeDataGenerator


@dev_cli.command("createdb")
def create_db():
    """Create the database tables"""
    db.create_all()
    app.logger.info("Created database tables")


@dev_cli.command("data")
@click.option("-n", "--speakers", type=int, default=40, help="Number of speakers to create")
def dev_data(speakers):
    """Make fake users, organizations, events, talks, proposals and ratings"""
    fdg = FakeDataGenerator()
    fdg.run(speakers)


@dev_cli.command("token")
@click.argument("uid")
def token(uid):
    """Mint an API token for an external uid"""
    if User.get_by_uid(uid) is None:
        app.logger.warning("No user exists for uid %s yet, POST /api/me to create one", uid)

    click.echo(generate_api_token(app.config["SECRET_KEY"], uid))
