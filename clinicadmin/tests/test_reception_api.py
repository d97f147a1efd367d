from decimal import Decimal

import pytest
from django.urls import reverse
from rest_framework.test import APIClient

from clinicadmin.models import Department, InsurancePlan, PatientInsurance, Service
from clinicadmin.services import doctor_departments as dept_svc
from clinicadmin.services import doctor_service_categories as grant_svc
from clinicadmin.services import doctors as doctor_svc
from clinicadmin.services.reception import load_departments, split_amount

pytestmark = pytest.mark.django_db


def plan(percent, deductible='0'):
    return InsurancePlan(coverage_percent=Decimal(percent), deductible=Decimal(deductible))


# ---------------------------------------------------------------------
# Amount split
# ---------------------------------------------------------------------
def test_split_without_insurance():
    split = split_amount(Decimal('250000'), None, None)
    assert split['patientShare'] == Decimal('250000.00')
    assert split['insuranceShare'] == Decimal('0')


def test_split_applies_deductible_then_supplementary():
    split = split_amount(Decimal('1000'), plan('50', '200'), plan('50'))
    assert split['insuranceShare'] == Decimal('400.00')
    assert split['supplementaryShare'] == Decimal('300.00')
    assert split['patientShare'] == Decimal('300.00')


def test_split_deductible_above_total():
    split = split_amount(Decimal('100'), plan('70', '500'), None)
    assert split['insuranceShare'] == Decimal('0.00')
    assert split['patientShare'] == Decimal('100.00')


def test_split_rounds_half_up():
    split = split_amount(Decimal('333.33'), plan('50'), None)
    assert split['insuranceShare'] == Decimal('166.67')
    assert split['patientShare'] == Decimal('166.66')


# ---------------------------------------------------------------------
# Department load
# ---------------------------------------------------------------------
def test_department_load_lists_active_doctors(api_desk, clinic, department, doctor):
    dept_svc.assign_department(doctor.pk, department.pk, role='Attending')
    r = api_desk.post(reverse('reception_department_load'), {'clinicId': clinic.pk}, format='json')
    assert r.status_code == 200
    assert r.data['data'] == [{
        'id': department.pk,
        'name': 'Cardiology',
        'code': 'CAR',
        'clinicId': clinic.pk,
        'clinicName': 'Central Clinic',
        'doctors': [{'id': doctor.pk, 'fullName': 'Sara Ahmadi', 'role': 'Attending'}],
    }]


def test_department_load_is_cached_until_invalidated(clinic, department):
    assert [d['name'] for d in load_departments()] == ['Cardiology']
    Department.objects.create(name='Surgery', clinic=clinic)
    assert [d['name'] for d in load_departments()] == ['Cardiology']
    dept_svc.invalidate_lookup_cache()
    assert [d['name'] for d in load_departments()] == ['Cardiology', 'Surgery']


def test_department_load_skips_deleted_departments(clinic, department):
    Department.objects.create(name='Closed', clinic=clinic, is_deleted=True)
    assert [d['name'] for d in load_departments(clinic.pk)] == ['Cardiology']


def test_department_load_drops_doctor_after_delete(clinic, department, doctor, django_capture_on_commit_callbacks):
    dept_svc.assign_department(doctor.pk, department.pk)
    assert [x['id'] for x in load_departments()[0]['doctors']] == [doctor.pk]

    with django_capture_on_commit_callbacks(execute=True):
        doctor_svc.soft_delete_doctor(doctor.pk)
    assert load_departments()[0]['doctors'] == []

    with django_capture_on_commit_callbacks(execute=True):
        doctor_svc.restore_doctor(doctor.pk)
    assert [x['id'] for x in load_departments()[0]['doctors']] == [doctor.pk]


def test_department_load_drops_deactivated_doctor(clinic, department, doctor, django_capture_on_commit_callbacks):
    dept_svc.assign_department(doctor.pk, department.pk)
    assert len(load_departments(clinic.pk)[0]['doctors']) == 1
    with django_capture_on_commit_callbacks(execute=True):
        doctor_svc.update_doctor(doctor.pk, {'is_active': False})
    assert load_departments(clinic.pk)[0]['doctors'] == []


# ---------------------------------------------------------------------
# Service calculate
# ---------------------------------------------------------------------
@pytest.fixture
def covered(patient, plans):
    PatientInsurance.objects.create(patient=patient, plan=plans['primary'], is_primary=True)
    PatientInsurance.objects.create(patient=patient, plan=plans['supplementary'], is_primary=False)
    return patient


def test_calculate_splits_total(api_desk, covered, service, plans):
    r = api_desk.post(reverse('reception_service_calculate'),
                      {'patientId': covered.pk, 'serviceIds': [service.pk]}, format='json')
    assert r.status_code == 200
    data = r.data['data']
    assert data['totalAmount'] == '1000000.00'
    assert data['insuranceShare'] == '700000.00'
    assert data['supplementaryShare'] == '270000.00'
    assert data['patientShare'] == '30000.00'
    assert data['primaryPlanId'] == plans['primary'].pk
    assert data['items'][0]['serviceCode'] == 'ECG01'


def test_calculate_counts_each_service_once(api_desk, patient, service, category):
    other = Service.objects.create(title='Echo', service_code='ECHO1', price=Decimal('500000'), category=category)
    r = api_desk.post(reverse('reception_service_calculate'),
                      {'patientId': patient.pk, 'serviceIds': [service.pk, other.pk, service.pk]}, format='json')
    assert r.data['data']['totalAmount'] == '1500000.00'
    assert r.data['data']['patientShare'] == '1500000.00'


def test_calculate_unknown_service(api_desk, patient):
    r = api_desk.post(reverse('reception_service_calculate'),
                      {'patientId': patient.pk, 'serviceIds': [999]}, format='json')
    assert r.status_code == 404
    assert r.data['success'] is False


def test_calculate_checks_doctor_authorization(api_desk, patient, doctor, service, category):
    payload = {'patientId': patient.pk, 'serviceIds': [service.pk], 'doctorId': doctor.pk}
    r = api_desk.post(reverse('reception_service_calculate'), payload, format='json')
    assert r.status_code == 400
    assert r.data['error']['code'] == 'rule_violation'

    grant_svc.grant_service_category(doctor.pk, category.pk)
    r = api_desk.post(reverse('reception_service_calculate'), payload, format='json')
    assert r.status_code == 200


def test_reception_requires_login(patient):
    r = APIClient().post(reverse('reception_department_load'), {}, format='json')
    assert r.status_code in (401, 403)
