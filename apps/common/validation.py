"""Request body validation.

These run before any lookups, so a malformed request is always a 400.
"""

from datetime import UTC

from dateutil import parser as dateparser
from flask import current_app as app
from flask import request

from .errors import ValidationFailed

# Largest value a BIGINT column holds
MAX_INT = 2**63 - 1


def json_body() -> dict:
    body = request.get_json(silent=True)
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise ValidationFailed("body", "Invalid request body")
    return body


def optional_string(body, field, label=None):
    value = body.get(field)
    if value is not None and not isinstance(value, str):
        raise ValidationFailed(field, f"{label or field} must be a string")
    return value


def required_string(body, field, message):
    value = optional_string(body, field)
    if value is None or not value.strip():
        raise ValidationFailed(field, message)
    return value


def optional_choice(body, field, choices, label=None):
    value = body.get(field)
    if value is not None and value not in choices:
        raise ValidationFailed(field, f"{label or field} must be one of {', '.join(choices)}")
    return value


def optional_int(body, field, minimum=None, maximum=None, label=None):
    value = body.get(field)
    if value is None:
        return None

    # bool is a subclass of int
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationFailed(field, f"{label or field} must be an integer")
    if not -MAX_INT <= value <= MAX_INT:
        raise ValidationFailed(field, f"{label or field} is out of range")
    if (minimum is not None and value < minimum) or (maximum is not None and value > maximum):
        raise ValidationFailed(field, f"{label or field} must be between {minimum} and {maximum}")
    return value


def optional_bool(body, field):
    value = body.get(field)
    if value is not None and not isinstance(value, bool):
        raise ValidationFailed(field, f"{field} must be a boolean")
    return value


def id_list(body, field) -> list[int]:
    """A list of ids. Null, an empty list and falsy entries all mean "none"."""
    value = body.get(field)
    if not value:
        return []
    if not isinstance(value, list):
        raise ValidationFailed(field, f"{field} must be a list of ids")

    ids = []
    for item in value:
        if not item:
            continue
        if isinstance(item, bool) or not isinstance(item, int):
            raise ValidationFailed(field, f"{field} must be a list of ids")
        if not 0 < item <= MAX_INT:
            raise ValidationFailed(field, f"{field} contains an invalid id")
        ids.append(item)
    return ids


def optional_datetime(body, field):
    """Parse an ISO 8601 timestamp into naive UTC"""
    value = body.get(field)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationFailed(field, f"{field} must be a date")

    try:
        dt = dateparser.isoparse(value)
    except ValueError:
        raise ValidationFailed(field, f"{field} must be a date")

    if dt.tzinfo is not None:
        dt = dt.astimezone(UTC).replace(tzinfo=None)
    return dt


def page_args() -> tuple[int, int]:
    try:
        page = int(request.args.get("page", 1))
        page_size = int(request.args.get("pageSize", app.config["DEFAULT_PAGE_SIZE"]))
    except ValueError:
        raise ValidationFailed("page", "Invalid page")

    if page < 1 or page_size < 1:
        raise ValidationFailed("page", "Invalid page")

    page_size = min(page_size, app.config["MAX_PAGE_SIZE"])
    if page * page_size > MAX_INT:
        raise ValidationFailed("page", "Invalid page")
    return page, page_size
