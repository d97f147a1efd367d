from datetime import timedelta
from decimal import Decimal

import pytest
from django.core.cache import cache
from django.utils import timezone
from rest_framework.test import APIClient

from clinicadmin.models import (
    Appointment, Clinic, Department, Doctor, InsurancePlan, InsuranceProvider, Patient, Service,
    ServiceCategory, User,
)


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


# ---------------------------------------------------------------------
# Users and clients
# ---------------------------------------------------------------------
@pytest.fixture
def staff_admin(db):
    return User.objects.create_user(username='admin1', password='P@ssw0rd1', role='admin',
                                    first_name='Nima', last_name='Admin')


@pytest.fixture
def receptionist(db):
    return User.objects.create_user(username='reception1', password='P@ssw0rd1', role='reception')


@pytest.fixture
def superadmin(db):
    return User.objects.create_user(username='super1', password='P@ssw0rd1', role='super')


def _client(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def api_admin(staff_admin):
    return _client(staff_admin)


@pytest.fixture
def api_desk(receptionist):
    return _client(receptionist)


@pytest.fixture
def api_super(superadmin):
    return _client(superadmin)


# ---------------------------------------------------------------------
# Clinic data
# ---------------------------------------------------------------------
@pytest.fixture
def clinic(db):
    return Clinic.objects.create(name='Central Clinic')


@pytest.fixture
def department(clinic):
    return Department.objects.create(name='Cardiology', code='CAR', clinic=clinic)


@pytest.fixture
def category(department):
    return ServiceCategory.objects.create(title='Cardiac visit', department=department)


@pytest.fixture
def service(category):
    return Service.objects.create(title='ECG', service_code='ECG01', price=Decimal('1000000'), category=category)


@pytest.fixture
def doctor(clinic):
    return Doctor.objects.create(first_name='Sara', last_name='Ahmadi', national_code='1234567890',
                                 medical_council_code='MC-1001', clinic=clinic)


@pytest.fixture
def patient(db):
    return Patient.objects.create(first_name='Ali', last_name='Rahimi', national_code='0012345678')


@pytest.fixture
def future_appointment(doctor, patient):
    def make(**kwargs):
        kwargs.setdefault('appointment_date', timezone.now() + timedelta(days=2))
        return Appointment.objects.create(doctor=doctor, patient=patient, **kwargs)
    return make


@pytest.fixture
def providers(db):
    return {
        'tamin': InsuranceProvider.objects.create(name='Social Security', code='TAMIN'),
        'salamat': InsuranceProvider.objects.create(name='Health Insurance', code='SALAMAT'),
        'dana': InsuranceProvider.objects.create(name='Dana', code='DANA'),
    }


@pytest.fixture
def plans(providers):
    return {
        'primary': InsurancePlan.objects.create(provider=providers['tamin'], plan_code='T1', name='Basic',
                                                insurance_type='primary', coverage_percent=Decimal('70')),
        'primary_other': InsurancePlan.objects.create(provider=providers['salamat'], plan_code='S1', name='Basic',
                                                      insurance_type='primary', coverage_percent=Decimal('65')),
        'supplementary': InsurancePlan.objects.create(provider=providers['dana'], plan_code='D1', name='Gold',
                                                      insurance_type='supplementary',
                                                      coverage_percent=Decimal('90')),
    }
