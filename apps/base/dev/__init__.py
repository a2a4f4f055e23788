""" CLI tasks for development: creating tables, generating fake data and minting tokens """
from flask.cli import AppGroup
from .. import base

dev_cli = AppGroup("dev")
base.cli.add_command(dev_cli)

from . import tasks  # noqa
