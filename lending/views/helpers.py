"""
Shared plumbing for the JSON views
"""

import functools
import json
import logging

from django.core.exceptions import ValidationError
from django.http import JsonResponse

from lending.exceptions import (
    LedgerValidationError, NotFound, StorageError, error_code, error_message,
)
from lending.utils.helpers import parse_date


logger = logging.getLogger(__name__)


def api_view(view):
    """
    Translate ledger exceptions into JSON error responses

        ValidationError (and subclasses) -> 400 {"error", "code"}
        NotFound                         -> 404
        StorageError                     -> 503
    """
    @functools.wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            return view(request, *args, **kwargs)
        except NotFound as e:
            return error_response(e, status=404)
        except ValidationError as e:
            logger.info(f"Rejected {request.method} {request.path}: {error_message(e)}")
            return error_response(e, status=400)
        except StorageError as e:
            return error_response(e, status=503)
    return wrapper


def error_response(exc, status=400):
    return JsonResponse({'error': error_message(exc), 'code': error_code(exc)}, status=status)


def form_error_response(form):
    """400 with the first message of each invalid field."""
    errors = {field: [str(m) for m in messages] for field, messages in form.errors.items()}
    first = next(iter(errors.values()))[0] if errors else 'Invalid input'
    return JsonResponse({'error': first, 'code': 'invalid', 'fields': errors}, status=400)


def parse_body(request):
    """
    Request payload as a dict

    JSON bodies are decoded; form-encoded and multipart bodies come from
    request.POST so auction photos can travel alongside the fields.
    """
    if request.content_type == 'application/json':
        if not request.body:
            return {}
        try:
            data = json.loads(request.body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            raise LedgerValidationError("Request body is not valid JSON")
        if not isinstance(data, dict):
            raise LedgerValidationError("Request body must be a JSON object")
        return data
    return request.POST.dict()


def query_date(request, name='as_of', default=None):
    return parse_date(request.GET.get(name), default=default)


def query_flag(request, data, name):
    value = data.get(name, request.GET.get(name))
    if isinstance(value, bool):
        return value
    return str(value or '').lower() in ('1', 'true', 'yes', 'on')
