from flask import Blueprint

base = Blueprint("base", __name__, cli_group=None)

from . import dev  # noqa: F401
