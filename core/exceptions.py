"""
API error normalisation.

Every error leaving the REST API is rendered as
``{"ok": false, "error": CODE, "message": ...}`` with a few
error-specific keys (``errors``, ``retry_after``, required vs actual
grants).  Handlers raise DRF exceptions; this module decides the shape.
"""
from __future__ import annotations

import logging
import math

from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.core.exceptions import ValidationError as DjangoValidationError
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)

# headers DRF attaches to error responses that must survive normalisation
PASSTHROUGH_HEADERS = ('WWW-Authenticate', 'Retry-After', 'Allow')


class AccessDenied(exceptions.PermissionDenied):
    """403 carrying the grants a route requires and the grants the caller holds."""

    def __init__(self, *, kind: str, required, actual):
        self.kind = kind
        self.required = sorted(required)
        self.actual = sorted(actual)
        noun = 'role' if kind == 'roles' else 'permission'
        super().__init__(f'Forbidden. You do not have the required {noun} to access this resource.')


class Conflict(exceptions.APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'The resource is in a state that does not allow this operation.'
    default_code = 'conflict'


def error_body(code: str, message, **extra) -> dict:
    body = {'ok': False, 'error': code, 'message': message}
    body.update(extra)
    return body


def _detail_text(detail) -> str:
    if isinstance(detail, (list, tuple)) and detail:
        return str(detail[0])
    if isinstance(detail, dict):
        return 'The given data was invalid.'
    return str(detail)


def api_exception_handler(exc, context):
    if isinstance(exc, DjangoValidationError):
        exc = exceptions.ValidationError(exc.messages)

    resp = drf_exception_handler(exc, context)
    if resp is None:
        view = context.get('view')
        logger.exception('unhandled error in %s', view.__class__.__name__ if view else 'view', exc_info=exc)
        return Response(error_body('SERVER_ERROR', 'Server error.'), status=500)

    if isinstance(exc, (exceptions.NotAuthenticated, exceptions.AuthenticationFailed)):
        if isinstance(exc, exceptions.NotAuthenticated):
            body = error_body('UNAUTHENTICATED', 'Unauthenticated.')
        else:
            body = error_body('UNAUTHENTICATED', _detail_text(exc.detail))
    elif isinstance(exc, AccessDenied):
        body = error_body(
            'FORBIDDEN', str(exc.detail),
            **{f'required_{exc.kind}': exc.required, f'your_{exc.kind}': exc.actual},
        )
    elif isinstance(exc, (exceptions.PermissionDenied, DjangoPermissionDenied)):
        body = error_body('FORBIDDEN', _detail_text(getattr(exc, 'detail', 'Forbidden.')))
    elif isinstance(exc, exceptions.Throttled):
        retry_after = int(math.ceil(exc.wait)) if exc.wait is not None else 60
        body = error_body('RATE_LIMIT_EXCEEDED', 'Too many requests. Please slow down.', retry_after=retry_after)
        resp['Retry-After'] = str(retry_after)
    elif isinstance(exc, exceptions.ValidationError):
        errors = exc.detail if isinstance(exc.detail, dict) else {'non_field_errors': exc.detail}
        body = error_body('VALIDATION_ERROR', _detail_text(exc.detail), errors=errors)
    elif isinstance(exc, (exceptions.NotFound, Http404)):
        body = error_body('NOT_FOUND', 'Not found.')
    elif isinstance(exc, Conflict):
        body = error_body('CONFLICT', _detail_text(exc.detail))
    else:
        detail = getattr(exc, 'detail', None)
        body = error_body(getattr(exc, 'default_code', 'api_error').upper(), _detail_text(detail or str(exc)))

    normalised = Response(body, status=resp.status_code)
    for header in PASSTHROUGH_HEADERS:
        if header in resp:
            normalised[header] = resp[header]
    return normalised
