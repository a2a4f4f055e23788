""" A middleware to export the requesting identity for logging.

    Werkzeug logs the request after the Flask app context has ended
    so we use Werkzeug's Local object to pass the external uid into the
    logging formatter.
"""

import logging
from werkzeug.local import Local, LocalManager

local = Local()
local_manager = LocalManager([local])


class ContextFormatter(logging.Formatter):
    """ A logging formatter which inserts the requesting uid
        into the logging record. """
    def format(self, record):
        record.user = getattr(local, 'uid', None)
        return logging.Formatter.format(self, record)


def set_user_id(uid):
    """ Remember the external uid of the request for later logging. """
    local.uid = uid


def create_logging_manager(app):
    app.wsgi_app = local_manager.make_middleware(app.wsgi_app)
