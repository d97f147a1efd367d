import pytest
from django.db import DatabaseError
from rest_framework.exceptions import ValidationError

from clinicadmin.exceptions import NotFound, RepositoryError, api_exception_handler, translate_errors


@translate_errors('Failed to load things')
def broken():
    raise DatabaseError('disk I/O error')


@translate_errors('Failed to load things')
def missing():
    raise NotFound('Thing not found')


@translate_errors('Failed to load things')
def fine(x):
    return x * 2


def test_database_errors_become_repository_errors():
    with pytest.raises(RepositoryError) as info:
        broken()
    assert str(info.value.detail) == 'Failed to load things'
    assert info.value.status_code == 500
    assert isinstance(info.value.__cause__, DatabaseError)


def test_domain_errors_pass_through():
    with pytest.raises(NotFound):
        missing()
    assert fine(2) == 4


def test_handler_renders_domain_errors():
    resp = api_exception_handler(NotFound('Doctor not found'), {})
    assert resp.status_code == 404
    assert resp.data == {'success': False, 'message': 'Doctor not found', 'error': {'code': 'not_found'}}


def test_handler_reports_field_errors():
    resp = api_exception_handler(ValidationError({'name': ['Name is required']}), {})
    assert resp.status_code == 400
    assert resp.data['message'] == 'name: Name is required'
    assert resp.data['error']['fields'] == {'name': ['Name is required']}


def test_handler_hides_unexpected_errors():
    resp = api_exception_handler(ValueError('boom'), {'request': None})
    assert resp.status_code == 500
    assert resp.data['error'] == {'code': 'server_error'}
    assert 'boom' not in resp.data['message']
