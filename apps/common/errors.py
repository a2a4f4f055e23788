"""HTTP errors raised by the API.

These are werkzeug exceptions, so flask-restful renders them as
``{"message": description}`` with the matching status code.
"""

from werkzeug import exceptions


class Unauthenticated(exceptions.Unauthorized):
    description = "Unauthorized"


class NotFound(exceptions.NotFound):
    entity = "Entity"

    def __init__(self, description=None):
        super().__init__(description or f"{self.entity} not found")


class UserNotFound(NotFound):
    entity = "User"


class EventNotFound(NotFound):
    entity = "Event"


class TalkNotFound(NotFound):
    entity = "Talk"


class SpeakerNotFound(NotFound):
    entity = "Speaker"


class ProposalNotFound(NotFound):
    entity = "Proposal"


class MessageNotFound(NotFound):
    entity = "Message"


class Forbidden(exceptions.Forbidden):
    def __init__(self, reason="Forbidden"):
        super().__init__(reason)
        self.reason = reason


class ValidationFailed(exceptions.BadRequest):
    def __init__(self, field, message):
        super().__init__(message)
        self.field = field


class Conflict(exceptions.Conflict):
    def __init__(self, message="Conflict"):
        super().__init__(message)
