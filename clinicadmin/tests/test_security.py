import pytest
from django.urls import reverse
from django.utils.crypto import get_random_string
from rest_framework.test import APIClient

from clinicadmin.models import User

pytestmark = pytest.mark.django_db


def login(client, username, password, **extra):
    return client.post(reverse('login_view'), {'username': username, 'password': password, **extra}, format='json')


def test_no_role_bypass_in_login(receptionist):
    r = login(APIClient(), 'reception1', 'P@ssw0rd1', role='super')
    assert r.status_code == 200
    assert r.data['role'] == 'reception'
    receptionist.refresh_from_db()
    assert receptionist.role == 'reception'


def test_login_returns_jwt_and_legacy_token(receptionist):
    r = login(APIClient(), 'reception1', 'P@ssw0rd1')
    assert r.data['success'] is True
    assert r.data['token']
    assert r.data['jwt_access'] and r.data['jwt_refresh']
    assert r.data['user']['username'] == 'reception1'


def test_wrong_password_is_rejected(receptionist):
    r = login(APIClient(), 'reception1', 'nope')
    assert r.status_code == 400
    assert r.data == {'success': False, 'message': 'Invalid username or password'}


def test_token_and_bearer_headers_authenticate(receptionist):
    client = APIClient()
    tokens = login(client, 'reception1', 'P@ssw0rd1').data

    client.credentials(HTTP_AUTHORIZATION=f"Token {tokens['token']}")
    assert client.get(reverse('doctor_lookup')).status_code == 200

    client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['jwt_access']}")
    assert client.get(reverse('doctor_lookup')).status_code == 200


def test_logout_blacklists_refresh_token(receptionist):
    client = APIClient()
    tokens = login(client, 'reception1', 'P@ssw0rd1').data
    client.force_authenticate(user=receptionist)
    r = client.post(reverse('jwt_logout'), {'refresh': tokens['jwt_refresh']}, format='json')
    assert r.data == {'success': True, 'blacklisted': 1}
    r = client.post(reverse('jwt_logout'), {'refresh': tokens['jwt_refresh']}, format='json')
    assert r.status_code == 400


def test_anonymous_requests_are_refused(db):
    r = APIClient().get(reverse('doctors'))
    assert r.status_code in (401, 403)


@pytest.mark.parametrize('name', ['doctors', 'schedules', 'history_search', 'service_category_grants'])
def test_reception_cannot_reach_admin_endpoints(api_desk, name):
    assert api_desk.get(reverse(name)).status_code == 403


def test_admin_cannot_run_super_maintenance(api_admin):
    assert api_admin.post(reverse('history_cleanup'), {}, format='json').status_code == 403


def test_specialization_create_needs_admin(api_desk, api_admin):
    assert api_desk.get(reverse('specializations')).status_code == 200
    assert api_desk.post(reverse('specializations'), {'name': 'Cardiology'}, format='json').status_code == 403
    assert api_admin.post(reverse('specializations'), {'name': 'Cardiology'}, format='json').status_code == 201


def test_request_id_is_echoed(db):
    r = APIClient().get(reverse('healthz'), HTTP_X_REQUEST_ID='abc123')
    assert r.status_code == 200
    assert r.json() == {'success': True, 'db': True}
    assert r['X-Request-ID'] == 'abc123'


def test_request_id_is_generated(db):
    r = APIClient().get(reverse('healthz'))
    assert r['X-Request-ID']


def test_user_roles(db):
    u = User.objects.create_user(username='x', password='P@ssw0rd1')
    assert u.role == 'reception'
    assert u.display_name == 'x'


def test_session_post_needs_csrf_token(receptionist, patient, plans):
    client = APIClient(enforce_csrf_checks=True)
    assert client.login(username='reception1', password='P@ssw0rd1')
    payload = {
        'PatientId': patient.pk,
        'PrimaryInsuranceId': plans['primary'].provider_id,
        'PrimaryPlanId': plans['primary'].pk,
        'PrimaryPolicyNumber': 'POL1001',
    }

    r = client.post(reverse('reception_insurance_save'), payload, format='json')
    assert r.status_code == 403
    assert 'CSRF' in r.data['message']

    csrf = get_random_string(32)
    client.cookies['csrftoken'] = csrf
    r = client.post(reverse('reception_insurance_save'), payload, format='json', HTTP_X_CSRFTOKEN=csrf)
    assert r.status_code == 200, r.data
    assert r.data['data']['PrimaryInsuranceId'] == plans['primary'].provider_id
