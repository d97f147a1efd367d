"""
Error taxonomy and the single place where failures are translated.

Data-access functions raise :class:`ClinicError` subclasses for domain
problems and are wrapped with :func:`translate_errors`, which turns
database failures into :class:`RepositoryError` after logging them.  The
DRF ``EXCEPTION_HANDLER`` below renders every error as the same
success/message envelope the reception screens expect.
"""
from __future__ import annotations

import functools
import logging

from django.db import DatabaseError
from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class ClinicError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Request could not be processed'
    default_code = 'clinic_error'


class NotFound(ClinicError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Record not found'
    default_code = 'not_found'


class Conflict(ClinicError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Record conflicts with existing data'
    default_code = 'conflict'


class RuleViolation(ClinicError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Business rule violated'
    default_code = 'rule_violation'


class RepositoryError(ClinicError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = 'Database operation failed'
    default_code = 'repository_error'


def translate_errors(message: str):
    """Wrap a data-access function so database failures surface uniformly.

    Domain errors pass through untouched.  ``DatabaseError`` is logged with
    its traceback and re-raised as ``RepositoryError(message)``.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except ClinicError:
                raise
            except DatabaseError as exc:
                logger.exception("%s failed: %s", func.__qualname__, message)
                raise RepositoryError(message) from exc
        return wrapper
    return decorator


def _message_from(data) -> str:
    if isinstance(data, dict):
        if 'detail' in data:
            return str(data['detail'])
        for key, value in data.items():
            first = value[0] if isinstance(value, list) and value else value
            return f"{key}: {first}"
    if isinstance(data, list) and data:
        return str(data[0])
    return str(data)


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        request = context.get('request')
        logger.error("Unhandled error on %s", getattr(request, 'path', '?'), exc_info=exc)
        return Response(
            {'success': False, 'message': 'Internal server error', 'error': {'code': 'server_error'}},
            status=500,
        )

    code = 'api_error'
    if isinstance(exc, APIException):
        codes = exc.get_codes()
        code = codes if isinstance(codes, str) else getattr(exc, 'default_code', code)

    error: dict[str, object] = {'code': code}
    if isinstance(exc, ValidationError) and isinstance(resp.data, dict):
        error['fields'] = resp.data
    return Response(
        {'success': False, 'message': _message_from(resp.data), 'error': error},
        status=resp.status_code,
        headers={k: v for k, v in resp.items()},
    )
