"""
Shared helpers for the API: serialization, JSON body parsing, error responses and token auth.
"""
import json
import logging
from datetime import date, datetime
from decimal import Decimal
from functools import wraps

from django.http import JsonResponse

from .constants import to_int
from .exceptions import FoodExpressError, ReferentialIntegrityError

logger = logging.getLogger(__name__)


class BadRequest(Exception):
    """Malformed request body; mapped to 400."""


def serialize_value(v):
    if v is None:
        return None
    if isinstance(v, Decimal):
        return str(v)
    if isinstance(v, (date, datetime)):
        return v.isoformat()
    if hasattr(v, 'pk'):
        return v.pk
    return v


def serialize_row(row):
    return {k: serialize_value(v) for k, v in row.items()}


def parse_json_body(request):
    """Return the request body as a dict. Raises BadRequest on invalid JSON or a non-object body."""
    if not request.body:
        return {}
    try:
        body = json.loads(request.body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise BadRequest('Invalid JSON')
    if not isinstance(body, dict):
        raise BadRequest('JSON body must be an object')
    return body


def require_int(body, key):
    value = body.get(key)
    if value is None or value == '':
        raise BadRequest(f'{key} required')
    try:
        return to_int(value)
    except (TypeError, ValueError):
        raise BadRequest(f'{key} must be an integer')


def error_response(exc):
    """Map a domain error or BadRequest to a JSON error response."""
    if isinstance(exc, BadRequest):
        return JsonResponse({'error': 'BAD_REQUEST', 'detail': str(exc)}, status=400)
    status = 500 if isinstance(exc, ReferentialIntegrityError) else 400
    if status == 500:
        logger.error('Integrity failure: %s', exc)
    body = {'error': exc.code, 'detail': str(exc)}
    if getattr(exc, 'details', None):
        body['context'] = {k: serialize_value(v) for k, v in exc.details.items()}
    return JsonResponse(body, status=status)


def domain_errors(view_func):
    """Decorator: turn FoodExpressError / BadRequest raised by the view into JSON responses."""
    @wraps(view_func)
    def wrapped(request, *args, **kwargs):
        try:
            return view_func(request, *args, **kwargs)
        except (FoodExpressError, BadRequest) as e:
            return error_response(e)
    return wrapped


def auth_required(view_func):
    """Decorator: set request.user from Authorization Bearer token (DRF Token only). Return 401 if invalid."""
    from rest_framework.authtoken.models import Token

    @wraps(view_func)
    def wrapped(request, *args, **kwargs):
        auth_header = request.META.get('HTTP_AUTHORIZATION')
        if not auth_header or not auth_header.startswith('Bearer '):
            return JsonResponse({'error': 'Authentication required'}, status=401)
        key = auth_header[7:].strip()
        try:
            token = Token.objects.select_related('user').get(key=key)
        except Token.DoesNotExist:
            return JsonResponse({'error': 'Invalid token'}, status=401)
        if not token.user.is_active:
            return JsonResponse({'error': 'Inactive user'}, status=401)
        request.user = token.user
        return view_func(request, *args, **kwargs)
    return wrapped
