# telehealthproj/http.py
"""
Request-body helpers shared by the JSON views.

Every endpoint takes a JSON object; anything else (a list, a bare string, a
field of the wrong type) is the client's mistake and becomes a 400, never a 500.
"""
import json

from django.http import JsonResponse


class BadRequest(Exception):
    """The request body is unusable; the message is returned with a 400."""


def error_response(message, status):
    return JsonResponse({"status": "error", "message": message}, status=status)


def read_json_object(request):
    try:
        payload = json.loads(request.body)
    except ValueError:
        raise BadRequest("Invalid JSON in request body.")
    if not isinstance(payload, dict):
        raise BadRequest("Request body must be a JSON object.")
    return payload


def optional_str(payload, key, default=None):
    value = payload.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise BadRequest(f"'{key}' must be a string.")
    return value


def optional_int(payload, key):
    value = payload.get(key)
    if value is None:
        return None
    # bool is an int subclass; true/false are not amounts or ids.
    if isinstance(value, bool) or not isinstance(value, int):
        raise BadRequest(f"'{key}' must be an integer.")
    return value


def optional_id(payload, key):
    """Accepts ids as JSON numbers or digit strings, the way clients tend to send them."""
    value = payload.get(key)
    if value is None or value == '':
        return None
    if isinstance(value, str) and value.isdigit():
        return int(value)
    if isinstance(value, bool) or not isinstance(value, int):
        raise BadRequest(f"'{key}' must be an id.")
    return value
