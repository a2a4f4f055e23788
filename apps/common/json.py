from datetime import datetime

from flask import Response, stream_with_context
from simplejson import JSONEncoder

from . import isoformat


class ExportEncoder(JSONEncoder):
    """Encodes generators as arrays, so large exports can be streamed"""

    def __init__(self, **kwargs):
        kwargs.setdefault("iterable_as_array", True)
        super().__init__(**kwargs)

    def default(self, obj):
        if isinstance(obj, datetime):
            return isoformat(obj)

        return JSONEncoder.default(self, obj)


def stream_json(iterable) -> Response:
    chunks = ExportEncoder().iterencode(iterable)
    return Response(stream_with_context(chunks), mimetype="application/json")
