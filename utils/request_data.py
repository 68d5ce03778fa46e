from flask import request

from security.errors import InvalidRequest


def json_body() -> dict:
    """Request JSON as a dict. No body (or unparseable JSON) reads as {}; arrays and scalars are rejected."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidRequest()
    return data
