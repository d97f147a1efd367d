"""Lookups and price calculation used by the reception desk."""
from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from django.conf import settings
from django.core.cache import cache
from django.db.models import Prefetch

from clinicadmin.exceptions import NotFound, RuleViolation, translate_errors
from clinicadmin.models import Department, DoctorDepartment, InsurancePlan, Patient, PatientInsurance, Service
from clinicadmin.services.common import LOOKUP_CACHE_PREFIX
from clinicadmin.services.doctor_service_categories import has_access_to_service

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')
HUNDRED = Decimal('100')


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def department_cache_key(clinic_id: Optional[int]) -> str:
    return f'{LOOKUP_CACHE_PREFIX}:{clinic_id or "all"}'


@translate_errors('Failed to load departments')
def load_departments(clinic_id: Optional[int] = None) -> list[dict]:
    """Active departments with their active doctors, cached per clinic."""
    key = department_cache_key(clinic_id)
    cached = cache.get(key)
    if cached is not None:
        return cached

    links = (DoctorDepartment.objects
             .filter(is_deleted=False, is_active=True, doctor__is_deleted=False, doctor__is_active=True)
             .select_related('doctor')
             .order_by('doctor__last_name', 'doctor__first_name'))
    qs = (Department.objects.alive()
          .filter(is_active=True, clinic__is_deleted=False)
          .select_related('clinic')
          .prefetch_related(Prefetch('doctor_links', queryset=links, to_attr='active_links'))
          .order_by('name'))
    if clinic_id:
        qs = qs.filter(clinic_id=clinic_id)

    data = [{
        'id': d.id,
        'name': d.name,
        'code': d.code,
        'clinicId': d.clinic_id,
        'clinicName': d.clinic.name,
        'doctors': [{'id': link.doctor.id, 'fullName': link.doctor.full_name, 'role': link.role}
                    for link in d.active_links],
    } for d in qs]
    cache.set(key, data, settings.LOOKUP_CACHE_SECONDS)
    return data


def _plan_for(patient: Patient, *, primary: bool) -> Optional[InsurancePlan]:
    pi = (PatientInsurance.objects.alive()
          .select_related('plan')
          .filter(patient=patient, is_primary=primary, is_active=True, plan__is_active=True)
          .order_by('-created_at')
          .first())
    return pi.plan if pi else None


def split_amount(total: Decimal, primary: Optional[InsurancePlan],
                 supplementary: Optional[InsurancePlan]) -> dict[str, Decimal]:
    """Split ``total`` between primary insurer, supplementary insurer and patient.

    The primary plan covers its percentage of what exceeds its deductible;
    the supplementary plan covers its percentage of what is left.
    """
    insurance_share = Decimal('0')
    if primary is not None:
        covered_base = max(total - primary.deductible, Decimal('0'))
        insurance_share = _money(covered_base * primary.coverage_percent / HUNDRED)
    remainder = total - insurance_share
    supplementary_share = Decimal('0')
    if supplementary is not None:
        supplementary_share = _money(remainder * supplementary.coverage_percent / HUNDRED)
    return {
        'totalAmount': _money(total),
        'insuranceShare': insurance_share,
        'supplementaryShare': supplementary_share,
        'patientShare': _money(remainder - supplementary_share),
    }


@translate_errors('Failed to calculate services')
def calculate_services(patient_id: int, service_ids: Iterable[int], *, doctor_id: Optional[int] = None) -> dict:
    patient = Patient.objects.alive().filter(pk=patient_id).first()
    if patient is None:
        raise NotFound('Patient not found')
    wanted = list(dict.fromkeys(service_ids))
    if not wanted:
        raise RuleViolation('Select at least one service')
    services = {s.pk: s for s in Service.objects.alive().filter(pk__in=wanted, is_active=True)}
    missing = [sid for sid in wanted if sid not in services]
    if missing:
        raise NotFound(f'Unknown or inactive services: {missing}')
    if doctor_id:
        denied = [sid for sid in wanted if not has_access_to_service(doctor_id, sid)]
        if denied:
            raise RuleViolation(f'Doctor is not authorized for services: {denied}')

    total = sum((services[sid].price for sid in wanted), Decimal('0'))
    primary = _plan_for(patient, primary=True)
    supplementary = _plan_for(patient, primary=False)
    split = split_amount(total, primary, supplementary)
    logger.debug("calculated %s for patient %s", split, patient_id)
    return {
        'patientId': patient.pk,
        'items': [{'serviceId': sid, 'title': services[sid].title, 'serviceCode': services[sid].service_code,
                   'price': str(services[sid].price)} for sid in wanted],
        'primaryPlanId': primary.pk if primary else None,
        'supplementaryPlanId': supplementary.pk if supplementary else None,
        **{k: str(v) for k, v in split.items()},
    }
