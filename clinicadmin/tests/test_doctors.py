"""
Doctor registry tests: create, search, soft delete and restore.
"""
import pytest
from django.urls import reverse

from clinicadmin.exceptions import Conflict, NotFound
from clinicadmin.models import Clinic, Doctor, Specialization
from clinicadmin.services import doctors as svc

pytestmark = pytest.mark.django_db


def new_doctor_payload(**extra):
    payload = {
        'firstName': 'Reza',
        'lastName': 'Karimi',
        'nationalCode': '1234567899',
        'medicalCouncilCode': 'MC-2000',
        'degree': 'specialist',
        'gender': 'male',
    }
    payload.update(extra)
    return payload


def test_create_doctor_returns_active_record(api_admin):
    cardio = Specialization.objects.create(name='Cardiology')
    r = api_admin.post(reverse('doctors'), new_doctor_payload(specializationIds=[cardio.pk]), format='json')
    assert r.status_code == 201
    data = r.data['data']
    assert data['fullName'] == 'Reza Karimi'
    assert data['isActive'] is True
    assert [s['name'] for s in data['specializations']] == ['Cardiology']


def test_create_doctor_strips_markup_from_names(api_admin):
    r = api_admin.post(reverse('doctors'), new_doctor_payload(firstName='<b>Reza</b>'), format='json')
    assert r.status_code == 201
    assert Doctor.objects.get(pk=r.data['data']['id']).first_name == 'Reza'


def test_duplicate_medical_council_code_is_a_conflict(api_admin, doctor):
    r = api_admin.post(reverse('doctors'), new_doctor_payload(medicalCouncilCode=doctor.medical_council_code),
                       format='json')
    assert r.status_code == 409
    assert r.data['success'] is False
    assert r.data['error']['code'] == 'conflict'
    assert Doctor.objects.count() == 1


def test_invalid_national_code_reports_field(api_admin):
    r = api_admin.post(reverse('doctors'), new_doctor_payload(nationalCode='12ab'), format='json')
    assert r.status_code == 400
    assert 'nationalCode' in r.data['error']['fields']


def test_reception_cannot_create_doctor(api_desk):
    r = api_desk.post(reverse('doctors'), new_doctor_payload(), format='json')
    assert r.status_code == 403


def test_search_filters_and_paginates(api_admin, doctor):
    Doctor.objects.create(first_name='Reza', last_name='Karimi', medical_council_code='MC-2')
    Doctor.objects.create(first_name='Leila', last_name='Moradi', medical_council_code='MC-3')

    r = api_admin.get(reverse('doctors'), {'q': 'Ahma'})
    assert r.status_code == 200
    assert r.data['pagination']['total'] == 1
    assert r.data['data'][0]['id'] == doctor.pk

    r = api_admin.get(reverse('doctors'), {'page': 1, 'pageSize': 2})
    assert r.data['pagination'] == {'total': 3, 'page': 1, 'pageSize': 2}
    assert [d['lastName'] for d in r.data['data']] == ['Ahmadi', 'Karimi']


def test_search_hides_deleted_doctors(doctor):
    svc.soft_delete_doctor(doctor.pk)
    items, total = svc.search_doctors()
    assert items == [] and total == 0


def test_soft_delete_and_restore(api_admin, doctor):
    assert api_admin.delete(reverse('doctor_detail', args=[doctor.pk])).status_code == 200
    doctor.refresh_from_db()
    assert doctor.is_deleted is True
    assert doctor.deleted_at is not None

    assert api_admin.get(reverse('doctor_detail', args=[doctor.pk])).status_code == 404
    assert api_admin.post(reverse('doctor_restore', args=[doctor.pk])).status_code == 200
    assert api_admin.get(reverse('doctor_detail', args=[doctor.pk])).status_code == 200


def test_delete_twice_reports_not_found(api_admin, doctor):
    api_admin.delete(reverse('doctor_detail', args=[doctor.pk]))
    r = api_admin.delete(reverse('doctor_detail', args=[doctor.pk]))
    assert r.status_code == 404


def test_delete_refused_with_upcoming_appointments(doctor, future_appointment):
    future_appointment()
    with pytest.raises(Conflict):
        svc.soft_delete_doctor(doctor.pk)
    info = svc.dependency_info(doctor.pk)
    assert info['canDelete'] is False
    assert info['futureAppointments'] == 1
    assert 'reason' in info


def test_cancelled_appointments_do_not_block_delete(doctor, future_appointment):
    future_appointment(status='cancelled')
    assert svc.can_delete(doctor.pk) is True
    assert svc.soft_delete_doctor(doctor.pk) is True


def test_update_keeps_codes_unique(doctor):
    other = Doctor.objects.create(first_name='Reza', last_name='Karimi', medical_council_code='MC-2')
    with pytest.raises(Conflict):
        svc.update_doctor(other.pk, {'medical_council_code': doctor.medical_council_code})
    updated = svc.update_doctor(doctor.pk, {'medical_council_code': doctor.medical_council_code, 'bio': 'Cardiac'})
    assert updated.bio == 'Cardiac'


def test_update_unknown_doctor_raises_not_found():
    with pytest.raises(NotFound):
        svc.update_doctor(999, {'first_name': 'X'})


def test_blank_codes_never_exist(doctor):
    assert svc.medical_council_code_exists('') is False
    assert svc.national_code_exists('   ') is False
    assert svc.national_code_exists(doctor.national_code) is True
    assert svc.national_code_exists(doctor.national_code, exclude_id=doctor.pk) is False


def test_code_check_endpoint(api_admin, doctor):
    r = api_admin.get(reverse('doctor_code_check'), {'medicalCouncilCode': 'MC-1001'})
    assert r.data['data']['medicalCouncilCodeExists'] is True
    r = api_admin.get(reverse('doctor_code_check'), {'medicalCouncilCode': 'MC-1001', 'excludeId': doctor.pk})
    assert r.data['data']['medicalCouncilCodeExists'] is False


def test_stats_count_alive_and_active(api_admin, doctor):
    Doctor.objects.create(first_name='A', last_name='B', is_active=False)
    Doctor.objects.create(first_name='C', last_name='D', is_deleted=True)
    r = api_admin.get(reverse('doctor_stats'))
    assert r.data['data'] == {'total': 2, 'active': 1}


def test_lookup_is_open_to_reception(api_desk, doctor):
    r = api_desk.get(reverse('doctor_lookup'))
    assert r.status_code == 200
    assert r.data['data'] == [{'id': doctor.pk, 'fullName': 'Sara Ahmadi'}]


def test_update_replaces_specializations(api_admin, doctor):
    a = Specialization.objects.create(name='Cardiology')
    b = Specialization.objects.create(name='Neurology')
    api_admin.put(reverse('doctor_detail', args=[doctor.pk]), {'specializationIds': [a.pk]}, format='json')
    r = api_admin.put(reverse('doctor_detail', args=[doctor.pk]), {'specializationIds': [b.pk]}, format='json')
    assert r.status_code == 200
    assert [s['name'] for s in r.data['data']['specializations']] == ['Neurology']


def test_update_with_unknown_specialization_keeps_doctor_unchanged(api_admin, doctor):
    cardio = Specialization.objects.create(name='Cardiology')
    svc.update_doctor_with_specializations(doctor.pk, {}, [cardio.pk])
    r = api_admin.put(reverse('doctor_detail', args=[doctor.pk]),
                      {'firstName': 'Changed', 'specializationIds': [999999]}, format='json')
    assert r.status_code == 404
    doctor.refresh_from_db()
    assert doctor.first_name == 'Sara'
    assert list(doctor.specializations.values_list('name', flat=True)) == ['Cardiology']


def test_update_without_specialization_ids_leaves_links(doctor):
    cardio = Specialization.objects.create(name='Cardiology')
    svc.update_doctor_with_specializations(doctor.pk, {}, [cardio.pk])
    svc.update_doctor_with_specializations(doctor.pk, {'first_name': 'Sarah'}, None)
    doctor.refresh_from_db()
    assert doctor.first_name == 'Sarah'
    assert doctor.specializations.count() == 1


def test_unknown_clinic_is_rejected(api_admin):
    r = api_admin.post(reverse('doctors'), new_doctor_payload(clinicId=987654), format='json')
    assert r.status_code == 400
    assert 'clinicId' in r.data['error']['fields']
    assert Doctor.objects.count() == 0


def test_deleted_clinic_is_rejected_on_update(api_admin, doctor):
    other = Clinic.objects.create(name='Old Branch', is_deleted=True)
    r = api_admin.put(reverse('doctor_detail', args=[doctor.pk]), {'clinicId': other.pk}, format='json')
    assert r.status_code == 400
    doctor.refresh_from_db()
    assert doctor.clinic_id != other.pk


def test_search_by_unknown_specialization_is_not_found(api_admin, doctor):
    gone = Specialization.objects.create(name='Dermatology', is_deleted=True)
    r = api_admin.get(reverse('doctors'), {'specializationId': gone.pk})
    assert r.status_code == 404
    assert r.data['error']['code'] == 'not_found'
