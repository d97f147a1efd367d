"""
Reception insurance form: load, change detection, workflow state and save.

The front desk edits a patient's primary and supplementary insurance in
one form.  The form's workflow state is kept per patient in the cache so
that the server refuses out-of-order operations, and a cache lock keeps
two saves for the same patient from running at once.  The values handed
out on load are signed; on save they are compared with both the
submission (to find what changed) and the database (to catch edits made
by someone else in the meantime).
"""
from __future__ import annotations

import enum
import logging
from typing import Any, Optional

from django.conf import settings
from django.core import signing
from django.core.cache import cache
from django.db import transaction
from django.utils import timezone

from clinicadmin.exceptions import Conflict, NotFound, RuleViolation, translate_errors
from clinicadmin.models import InsurancePlan, Patient, PatientInsurance
from clinicadmin.services.common import iso, stamp_create

logger = logging.getLogger(__name__)

FORM_FIELDS = (
    'PrimaryInsuranceId',
    'PrimaryPlanId',
    'PrimaryPolicyNumber',
    'PrimaryCardNumber',
    'SupplementaryInsuranceId',
    'SupplementaryPlanId',
    'SupplementaryPolicyNumber',
    'SupplementaryExpiryDate',
)
SNAPSHOT_SALT = 'clinicadmin.insurance-form'
STATE_TTL_SECONDS = 3600


class FormState(str, enum.Enum):
    IDLE = 'idle'
    LOADING = 'loading'
    EDITING = 'editing'
    SAVING = 'saving'
    ERROR = 'error'
    SUCCESS = 'success'


TRANSITIONS: dict[FormState, frozenset[FormState]] = {
    FormState.IDLE: frozenset({FormState.LOADING, FormState.EDITING, FormState.ERROR}),
    FormState.LOADING: frozenset({FormState.IDLE, FormState.EDITING, FormState.ERROR}),
    FormState.EDITING: frozenset({FormState.SAVING, FormState.IDLE, FormState.ERROR}),
    FormState.SAVING: frozenset({FormState.SUCCESS, FormState.ERROR, FormState.EDITING}),
    FormState.ERROR: frozenset({FormState.IDLE, FormState.EDITING}),
    FormState.SUCCESS: frozenset({FormState.IDLE, FormState.EDITING}),
}


def can_transition(current: FormState, target: FormState) -> bool:
    return target in TRANSITIONS[current]


def _state_key(patient_id: int) -> str:
    return f'insurance:form:state:{patient_id}'


def _lock_key(patient_id: int) -> str:
    return f'insurance:form:lock:{patient_id}'


def form_state(patient_id: int) -> FormState:
    return FormState(cache.get(_state_key(patient_id), FormState.IDLE.value))


def move_to(patient_id: int, target: FormState) -> FormState:
    """Move the patient's form to ``target``; illegal moves are refused."""
    current = form_state(patient_id)
    if current is not target and not can_transition(current, target):
        raise RuleViolation(f'Cannot go from {current.value} to {target.value}')
    cache.set(_state_key(patient_id), target.value, STATE_TTL_SECONDS)
    return target


# ---------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------
def _active(patient: Patient, *, primary: bool) -> Optional[PatientInsurance]:
    return (PatientInsurance.objects.alive()
            .select_related('plan', 'plan__provider')
            .filter(patient=patient, is_primary=primary, is_active=True)
            .order_by('-created_at')
            .first())


def current_values(patient: Patient) -> dict[str, Any]:
    primary = _active(patient, primary=True)
    supplementary = _active(patient, primary=False)
    return {
        'PrimaryInsuranceId': primary.plan.provider_id if primary else None,
        'PrimaryPlanId': primary.plan_id if primary else None,
        'PrimaryPolicyNumber': primary.policy_number if primary else '',
        'PrimaryCardNumber': primary.card_number if primary else '',
        'SupplementaryInsuranceId': supplementary.plan.provider_id if supplementary else None,
        'SupplementaryPlanId': supplementary.plan_id if supplementary else None,
        'SupplementaryPolicyNumber': supplementary.policy_number if supplementary else '',
        'SupplementaryExpiryDate': iso(supplementary.expiry_date) if supplementary else None,
    }


def normalize(values: dict[str, Any]) -> dict[str, Any]:
    """Bring submitted and stored values to one comparable shape."""
    out = {}
    for field in FORM_FIELDS:
        value = values.get(field)
        if hasattr(value, 'isoformat'):
            value = value.isoformat()
        elif isinstance(value, str):
            value = value.strip()
        if value in ('', 0):
            value = None
        out[field] = value
    return out


def detect_changes(original: dict[str, Any], submitted: dict[str, Any]) -> list[str]:
    """Return the names of the fields whose value differs."""
    before, after = normalize(original), normalize(submitted)
    return [field for field in FORM_FIELDS if before[field] != after[field]]


def sign_snapshot(values: dict[str, Any]) -> str:
    return signing.dumps(normalize(values), salt=SNAPSHOT_SALT)


def read_snapshot(token: str) -> dict[str, Any]:
    try:
        return signing.loads(token, salt=SNAPSHOT_SALT)
    except signing.BadSignature as exc:
        raise RuleViolation('Form snapshot is invalid; reload the form') from exc


def _patient(patient_id: int) -> Patient:
    patient = Patient.objects.alive().filter(pk=patient_id).first()
    if patient is None:
        raise NotFound('Patient not found')
    return patient


# ---------------------------------------------------------------------
# Load / save
# ---------------------------------------------------------------------
def _form_payload(patient: Patient, values: dict[str, Any], state: FormState) -> dict[str, Any]:
    return {
        'PatientId': patient.pk,
        'PatientName': patient.full_name,
        **values,
        'snapshot': sign_snapshot(values),
        'state': state.value,
    }


@translate_errors('Failed to load patient insurance')
def load_form(patient_id: int) -> dict[str, Any]:
    current = form_state(patient_id)
    if current is FormState.SAVING:
        # another desk holds the save; read without touching the shared state
        patient = _patient(patient_id)
        return _form_payload(patient, current_values(patient), current)
    if not can_transition(current, FormState.LOADING) and can_transition(current, FormState.IDLE):
        move_to(patient_id, FormState.IDLE)
    move_to(patient_id, FormState.LOADING)
    try:
        patient = _patient(patient_id)
        values = current_values(patient)
    except Exception:
        move_to(patient_id, FormState.ERROR)
        raise
    move_to(patient_id, FormState.EDITING)
    return _form_payload(patient, values, FormState.EDITING)


def _upsert(patient: Patient, existing: Optional[PatientInsurance], plan: InsurancePlan, *,
            primary: bool, policy_number: str, card_number: str = '', expiry_date=None,
            user=None) -> PatientInsurance:
    if existing is not None and existing.plan_id != plan.pk:
        existing.is_active = False
        existing.soft_delete(user)
        existing.stamp_update(user)
        existing.save()
        existing = None
    if existing is None:
        existing = PatientInsurance(patient=patient, plan=plan, is_primary=primary)
        stamp_create(existing, user)
    else:
        existing.stamp_update(user)
    existing.policy_number = policy_number or ''
    existing.card_number = card_number or ''
    existing.expiry_date = expiry_date
    existing.is_active = True
    existing.save()
    return existing


@transaction.atomic
def _persist(patient: Patient, values: dict[str, Any], *, user=None) -> dict[str, Any]:
    primary_plan = values['PrimaryPlan']
    primary = _upsert(
        patient, _active(patient, primary=True), primary_plan, primary=True,
        policy_number=values.get('PrimaryPolicyNumber'),
        card_number=values.get('PrimaryCardNumber'),
        user=user,
    )
    supplementary_current = _active(patient, primary=False)
    supplementary_plan = values.get('SupplementaryPlan')
    if supplementary_plan is not None:
        supplementary = _upsert(
            patient, supplementary_current, supplementary_plan, primary=False,
            policy_number=values.get('SupplementaryPolicyNumber'),
            expiry_date=values.get('SupplementaryExpiryDate'),
            user=user,
        )
    else:
        supplementary = None
        if supplementary_current is not None:
            supplementary_current.is_active = False
            supplementary_current.soft_delete(user)
            supplementary_current.stamp_update(user)
            supplementary_current.save()
    return {
        'PatientId': patient.pk,
        'PrimaryInsuranceId': primary.plan.provider_id,
        'SupplementaryInsuranceId': supplementary.plan.provider_id if supplementary else None,
        'SavedAt': timezone.now().isoformat(),
    }


@translate_errors('Failed to save patient insurance')
def save_form(patient_id: int, values: dict[str, Any], *, snapshot: Optional[str] = None,
              user=None) -> dict[str, Any]:
    """Validated ``values`` in, saved summary out.

    ``values`` must carry the resolved ``PrimaryPlan``/``SupplementaryPlan``
    objects in addition to the raw form fields.
    """
    if not cache.add(_lock_key(patient_id), timezone.now().isoformat(), settings.INSURANCE_SAVE_LOCK_SECONDS):
        raise Conflict('A save for this patient is already in progress')
    try:
        patient = _patient(patient_id)
        persisted = current_values(patient)
        if snapshot:
            original = read_snapshot(snapshot)
            if detect_changes(original, persisted):
                raise Conflict('Insurance data was changed by another user; reload the form')
        else:
            original = persisted
        changed = detect_changes(original, values)
        if not changed:
            raise RuleViolation('No changes to save')

        if form_state(patient_id) is not FormState.EDITING:
            move_to(patient_id, FormState.EDITING)
        move_to(patient_id, FormState.SAVING)
        try:
            data = _persist(patient, values, user=user)
        except Exception:
            move_to(patient_id, FormState.ERROR)
            raise
        move_to(patient_id, FormState.SUCCESS)
        logger.info("insurance for patient %s saved, changed=%s", patient_id, changed)
        data['ChangedFields'] = changed
        return data
    finally:
        cache.delete(_lock_key(patient_id))
