"""
Reception insurance form: change detection, workflow states and saving.
"""
from datetime import timedelta

import pytest
from django.core.cache import cache
from django.urls import reverse
from django.utils import timezone

from clinicadmin.exceptions import NotFound, RuleViolation
from clinicadmin.models import PatientInsurance
from clinicadmin.services import insurance_form as form
from clinicadmin.services.insurance_form import FormState

pytestmark = pytest.mark.django_db


def form_payload(patient, plans, **extra):
    payload = {
        'PatientId': patient.pk,
        'PrimaryInsuranceId': plans['primary'].provider_id,
        'PrimaryPlanId': plans['primary'].pk,
        'PrimaryPolicyNumber': 'POL1001',
        'PrimaryCardNumber': '1000200030',
    }
    payload.update(extra)
    return payload


@pytest.fixture
def insured(patient, plans):
    PatientInsurance.objects.create(patient=patient, plan=plans['primary'], policy_number='POL1001',
                                    card_number='1000200030', is_primary=True)
    return patient


# ---------------------------------------------------------------------
# Change detection and states
# ---------------------------------------------------------------------
def test_detect_changes_treats_blank_and_missing_alike():
    original = {'PrimaryPolicyNumber': 'ABC', 'PrimaryCardNumber': '', 'SupplementaryPlanId': None}
    assert form.detect_changes(original, {'PrimaryPolicyNumber': ' ABC '}) == []
    assert form.detect_changes(original, {'PrimaryPolicyNumber': 'XYZ', 'SupplementaryPlanId': 3}) == [
        'PrimaryPolicyNumber', 'SupplementaryPlanId',
    ]


def test_transition_table():
    assert form.can_transition(FormState.IDLE, FormState.LOADING)
    assert form.can_transition(FormState.EDITING, FormState.SAVING)
    assert not form.can_transition(FormState.IDLE, FormState.SAVING)
    assert not form.can_transition(FormState.SUCCESS, FormState.SAVING)
    assert not form.can_transition(FormState.ERROR, FormState.SUCCESS)


def test_illegal_move_is_refused(patient):
    assert form.form_state(patient.pk) is FormState.IDLE
    with pytest.raises(RuleViolation):
        form.move_to(patient.pk, FormState.SUCCESS)
    assert form.form_state(patient.pk) is FormState.IDLE


def test_snapshot_tampering_is_detected():
    token = form.sign_snapshot({'PrimaryPolicyNumber': 'ABC'})
    assert form.read_snapshot(token)['PrimaryPolicyNumber'] == 'ABC'
    with pytest.raises(RuleViolation):
        form.read_snapshot(token + 'x')


# ---------------------------------------------------------------------
# Load
# ---------------------------------------------------------------------
def test_load_returns_current_values(insured, plans):
    data = form.load_form(insured.pk)
    assert data['PatientName'] == 'Ali Rahimi'
    assert data['PrimaryInsuranceId'] == plans['primary'].provider_id
    assert data['PrimaryPolicyNumber'] == 'POL1001'
    assert data['SupplementaryPlanId'] is None
    assert data['state'] == 'editing'
    assert form.form_state(insured.pk) is FormState.EDITING


def test_load_missing_patient_ends_in_error_and_can_retry():
    with pytest.raises(NotFound):
        form.load_form(4242)
    assert form.form_state(4242) is FormState.ERROR
    with pytest.raises(NotFound):
        form.load_form(4242)


def test_load_endpoint_rejects_bad_ids(api_desk):
    for bad in (0, -3, 'abc'):
        r = api_desk.post(reverse('reception_insurance_load'), {'patientId': bad}, format='json')
        assert r.status_code == 400
        assert r.data == {'success': False, 'message': 'Invalid patient id'}


def test_load_endpoint(api_desk, insured):
    r = api_desk.post(reverse('reception_insurance_load'), {'patientId': insured.pk}, format='json')
    assert r.status_code == 200
    assert r.data['success'] is True
    assert r.data['data']['PatientId'] == insured.pk
    assert r.data['data']['snapshot']


# ---------------------------------------------------------------------
# Save
# ---------------------------------------------------------------------
def test_save_creates_primary_and_supplementary(api_desk, patient, plans, receptionist):
    expiry = (timezone.localdate() + timedelta(days=200)).isoformat()
    payload = form_payload(patient, plans,
                           SupplementaryInsuranceId=plans['supplementary'].provider_id,
                           SupplementaryPlanId=plans['supplementary'].pk,
                           SupplementaryPolicyNumber='DANA77',
                           SupplementaryExpiryDate=expiry)
    r = api_desk.post(reverse('reception_insurance_save'), payload, format='json')
    assert r.status_code == 200, r.data
    data = r.data['data']
    assert data['PrimaryInsuranceId'] == plans['primary'].provider_id
    assert data['SupplementaryInsuranceId'] == plans['supplementary'].provider_id
    assert 'SupplementaryExpiryDate' in data['ChangedFields']

    rows = PatientInsurance.objects.alive().filter(patient=patient)
    assert rows.count() == 2
    assert rows.get(is_primary=True).created_by == receptionist
    assert form.form_state(patient.pk) is FormState.SUCCESS


def test_save_without_changes_is_refused(api_desk, insured, plans):
    r = api_desk.post(reverse('reception_insurance_save'), form_payload(insured, plans), format='json')
    assert r.status_code == 400
    assert r.data['message'] == 'No changes to save'


def test_changing_plan_replaces_the_row(api_desk, insured, plans):
    old = PatientInsurance.objects.get(patient=insured)
    payload = form_payload(insured, plans, PrimaryInsuranceId=plans['primary_other'].provider_id,
                           PrimaryPlanId=plans['primary_other'].pk)
    r = api_desk.post(reverse('reception_insurance_save'), payload, format='json')
    assert r.status_code == 200
    old.refresh_from_db()
    assert old.is_deleted and not old.is_active
    current = PatientInsurance.objects.alive().get(patient=insured, is_primary=True)
    assert current.plan == plans['primary_other']


def test_removing_supplementary_hides_it(insured, plans):
    PatientInsurance.objects.create(patient=insured, plan=plans['supplementary'], policy_number='DANA77',
                                    is_primary=False)
    values = form_payload(insured, plans, PrimaryPlan=plans['primary'], SupplementaryPlan=None)
    data = form.save_form(insured.pk, values)
    assert data['ChangedFields'] == ['SupplementaryInsuranceId', 'SupplementaryPlanId', 'SupplementaryPolicyNumber']
    assert not PatientInsurance.objects.alive().filter(patient=insured, is_primary=False).exists()


def test_stale_snapshot_is_a_conflict(api_desk, insured, plans):
    snapshot = form.load_form(insured.pk)['snapshot']
    PatientInsurance.objects.filter(patient=insured).update(policy_number='OTHER9')
    payload = form_payload(insured, plans, PrimaryPolicyNumber='NEW123', snapshot=snapshot)
    r = api_desk.post(reverse('reception_insurance_save'), payload, format='json')
    assert r.status_code == 409
    assert 'another user' in r.data['message']


def test_fresh_snapshot_saves(api_desk, insured, plans):
    snapshot = form.load_form(insured.pk)['snapshot']
    payload = form_payload(insured, plans, PrimaryPolicyNumber='NEW123', snapshot=snapshot)
    r = api_desk.post(reverse('reception_insurance_save'), payload, format='json')
    assert r.status_code == 200
    assert r.data['data']['ChangedFields'] == ['PrimaryPolicyNumber']


def test_concurrent_save_is_refused(api_desk, patient, plans):
    cache.add(f'insurance:form:lock:{patient.pk}', 'held', 30)
    r = api_desk.post(reverse('reception_insurance_save'), form_payload(patient, plans), format='json')
    assert r.status_code == 409
    assert PatientInsurance.objects.count() == 0


def test_lock_is_released_after_failure(api_desk, insured, plans):
    api_desk.post(reverse('reception_insurance_save'), form_payload(insured, plans), format='json')
    assert cache.get(f'insurance:form:lock:{insured.pk}') is None


# ---------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------
@pytest.mark.parametrize('extra, field', [
    ({'PrimaryInsuranceId': None}, 'PrimaryInsuranceId'),
    ({'PrimaryPlanId': None}, 'PrimaryPlanId'),
    ({'PrimaryPolicyNumber': 'PO-1'}, 'PrimaryPolicyNumber'),
    ({'PrimaryCardNumber': '12a4'}, 'PrimaryCardNumber'),
    ({'PrimaryPolicyNumber': 'AB'}, 'PrimaryPolicyNumber'),
])
def test_invalid_fields_are_reported(api_desk, patient, plans, extra, field):
    r = api_desk.post(reverse('reception_insurance_save'), form_payload(patient, plans, **extra), format='json')
    assert r.status_code == 400
    assert field in r.data['error']['fields']


def test_supplementary_must_differ_from_primary(api_desk, patient, plans):
    payload = form_payload(patient, plans, SupplementaryInsuranceId=plans['primary'].provider_id,
                           SupplementaryPlanId=plans['supplementary'].pk)
    r = api_desk.post(reverse('reception_insurance_save'), payload, format='json')
    assert r.status_code == 400
    assert 'SupplementaryInsuranceId' in r.data['error']['fields']


def test_expired_supplementary_is_rejected(api_desk, patient, plans):
    payload = form_payload(patient, plans,
                           SupplementaryInsuranceId=plans['supplementary'].provider_id,
                           SupplementaryPlanId=plans['supplementary'].pk,
                           SupplementaryExpiryDate=(timezone.localdate() - timedelta(days=1)).isoformat())
    r = api_desk.post(reverse('reception_insurance_save'), payload, format='json')
    assert r.status_code == 400
    assert 'SupplementaryExpiryDate' in r.data['error']['fields']


def test_plan_must_belong_to_insurer(api_desk, patient, plans):
    payload = form_payload(patient, plans, PrimaryPlanId=plans['primary_other'].pk)
    r = api_desk.post(reverse('reception_insurance_save'), payload, format='json')
    assert r.status_code == 400
    assert 'PrimaryPlanId' in r.data['error']['fields']


def test_supplementary_plan_cannot_be_primary(api_desk, patient, plans):
    payload = form_payload(patient, plans, PrimaryInsuranceId=plans['supplementary'].provider_id,
                           PrimaryPlanId=plans['supplementary'].pk)
    r = api_desk.post(reverse('reception_insurance_save'), payload, format='json')
    assert r.status_code == 400


def test_load_while_another_desk_saves_leaves_state_alone(insured):
    form.move_to(insured.pk, FormState.EDITING)
    form.move_to(insured.pk, FormState.SAVING)
    data = form.load_form(insured.pk)
    assert data['state'] == 'saving'
    assert data['PrimaryPolicyNumber'] == 'POL1001'
    assert data['snapshot']
    assert form.form_state(insured.pk) is FormState.SAVING
