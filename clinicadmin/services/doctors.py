from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone

from clinicadmin.exceptions import Conflict, NotFound, translate_errors
from clinicadmin.models import Appointment, Doctor
from clinicadmin.services.common import clean_text, invalidate_lookup_cache, iso, paginate, stamp_create

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    'first_name', 'last_name', 'doctor_code', 'degree', 'graduation_year', 'university',
    'gender', 'date_of_birth', 'home_address', 'office_address', 'experience_years',
    'profile_image_url', 'phone_number', 'national_code', 'medical_council_code', 'email',
    'license_number', 'bio', 'clinic_id',
)
TEXT_FIELDS = {'first_name', 'last_name', 'university', 'home_address', 'office_address', 'bio'}


def format_doctor(d: Doctor, *, detail: bool = False) -> dict:
    data = {
        'id': d.id,
        'firstName': d.first_name,
        'lastName': d.last_name,
        'fullName': d.full_name,
        'doctorCode': d.doctor_code,
        'nationalCode': d.national_code,
        'medicalCouncilCode': d.medical_council_code,
        'clinicId': d.clinic_id,
        'isActive': d.is_active,
        'isDeleted': d.is_deleted,
    }
    if detail:
        data.update({
            'degree': d.degree,
            'graduationYear': d.graduation_year,
            'university': d.university,
            'gender': d.gender,
            'dateOfBirth': iso(d.date_of_birth),
            'homeAddress': d.home_address,
            'officeAddress': d.office_address,
            'experienceYears': d.experience_years,
            'profileImageUrl': d.profile_image_url,
            'phoneNumber': d.phone_number,
            'email': d.email,
            'licenseNumber': d.license_number,
            'bio': d.bio,
            'specializations': [{'id': s.id, 'name': s.name} for s in d.specializations.all()],
            'createdAt': iso(d.created_at),
            'updatedAt': iso(d.updated_at),
        })
    return data


def future_appointments(qs=None):
    """Non-cancelled appointments from now on."""
    qs = qs if qs is not None else Appointment.objects.all()
    return (qs.filter(is_deleted=False, appointment_date__gte=timezone.now())
            .exclude(status='cancelled'))


@translate_errors('Failed to load doctor')
def get_doctor(doctor_id: int, *, include_deleted: bool = False) -> Optional[Doctor]:
    qs = Doctor.objects.all() if include_deleted else Doctor.objects.alive()
    return qs.prefetch_related('specializations').filter(pk=doctor_id).first()


def require_doctor(doctor_id: int) -> Doctor:
    doctor = get_doctor(doctor_id)
    if doctor is None:
        raise NotFound('Doctor not found')
    return doctor


@translate_errors('Failed to check medical council code')
def medical_council_code_exists(code: Optional[str], *, exclude_id: Optional[int] = None) -> bool:
    if not code or not code.strip():
        return False
    qs = Doctor.objects.alive().filter(medical_council_code=code.strip())
    if exclude_id:
        qs = qs.exclude(pk=exclude_id)
    return qs.exists()


@translate_errors('Failed to check national code')
def national_code_exists(code: Optional[str], *, exclude_id: Optional[int] = None) -> bool:
    if not code or not code.strip():
        return False
    qs = Doctor.objects.alive().filter(national_code=code.strip())
    if exclude_id:
        qs = qs.exclude(pk=exclude_id)
    return qs.exists()


def _check_unique_codes(values: dict[str, Any], exclude_id: Optional[int] = None) -> None:
    if medical_council_code_exists(values.get('medical_council_code'), exclude_id=exclude_id):
        raise Conflict('A doctor with this medical council code already exists')
    if national_code_exists(values.get('national_code'), exclude_id=exclude_id):
        raise Conflict('A doctor with this national code already exists')


def _apply(doctor: Doctor, values: dict[str, Any]) -> None:
    for field in EDITABLE_FIELDS:
        if field not in values:
            continue
        value = values[field]
        if field in TEXT_FIELDS:
            value = clean_text(value)
        elif isinstance(value, str):
            value = value.strip()
        setattr(doctor, field, value)


@translate_errors('Failed to create doctor')
def create_doctor(values: dict[str, Any], *, user=None) -> Doctor:
    _check_unique_codes(values)
    doctor = Doctor()
    _apply(doctor, values)
    stamp_create(doctor, user)
    doctor.is_active = True
    doctor.is_deleted = False
    doctor.save()
    logger.info("doctor %s created", doctor.pk)
    return doctor


@translate_errors('Failed to update doctor')
def update_doctor(doctor_id: int, values: dict[str, Any], *, user=None) -> Doctor:
    doctor = require_doctor(doctor_id)
    _check_unique_codes(values, exclude_id=doctor.pk)
    _apply(doctor, values)
    if 'is_active' in values:
        doctor.is_active = bool(values['is_active'])
    doctor.stamp_update(user)
    doctor.save()
    transaction.on_commit(invalidate_lookup_cache)
    return doctor


@translate_errors('Failed to delete doctor')
def soft_delete_doctor(doctor_id: int, *, user=None) -> bool:
    doctor = Doctor.objects.filter(pk=doctor_id).first()
    if doctor is None or doctor.is_deleted:
        return False
    if future_appointments(doctor.appointments.all()).exists():
        raise Conflict('Doctor has upcoming appointments and cannot be deleted')
    doctor.soft_delete(user)
    doctor.save(update_fields=['is_deleted', 'deleted_at', 'deleted_by'])
    transaction.on_commit(invalidate_lookup_cache)
    logger.info("doctor %s soft-deleted", doctor.pk)
    return True


@translate_errors('Failed to restore doctor')
def restore_doctor(doctor_id: int, *, user=None) -> bool:
    doctor = Doctor.objects.filter(pk=doctor_id).first()
    if doctor is None or not doctor.is_deleted:
        return False
    doctor.restore()
    doctor.stamp_update(user)
    doctor.save()
    transaction.on_commit(invalidate_lookup_cache)
    logger.info("doctor %s restored", doctor.pk)
    return True


@translate_errors('Failed to search doctors')
def search_doctors(*, term: Optional[str] = None, clinic_id: Optional[int] = None,
                   department_id: Optional[int] = None, specialization_id: Optional[int] = None,
                   is_active: Optional[bool] = None, page: Optional[int] = None,
                   page_size: Optional[int] = None) -> tuple[list[Doctor], int]:
    qs = Doctor.objects.alive()
    if term:
        term = term.strip()
        qs = qs.filter(
            Q(first_name__icontains=term)
            | Q(last_name__icontains=term)
            | Q(national_code__icontains=term)
            | Q(medical_council_code__icontains=term)
        )
    if clinic_id:
        qs = qs.filter(
            Q(clinic_id=clinic_id)
            | Q(department_links__department__clinic_id=clinic_id,
                department_links__is_deleted=False,
                department_links__is_active=True)
        )
    if department_id:
        qs = qs.filter(department_links__department_id=department_id,
                       department_links__is_deleted=False)
    if specialization_id:
        qs = qs.filter(specializations__id=specialization_id)
    if is_active is not None:
        qs = qs.filter(is_active=is_active)
    qs = qs.distinct().order_by('last_name', 'first_name', 'id')
    return paginate(qs, page, page_size)


@translate_errors('Failed to load doctor lookup')
def active_doctors_for(*, clinic_id: Optional[int] = None, department_id: Optional[int] = None) -> list[Doctor]:
    qs = Doctor.objects.alive().filter(is_active=True)
    if clinic_id:
        qs = qs.filter(
            Q(clinic_id=clinic_id)
            | Q(department_links__department__clinic_id=clinic_id, department_links__is_deleted=False)
        )
    if department_id:
        qs = qs.filter(department_links__department_id=department_id,
                       department_links__is_deleted=False,
                       department_links__is_active=True)
    return list(qs.distinct().order_by('last_name', 'first_name'))


@translate_errors('Failed to count doctors')
def count_doctors() -> int:
    return Doctor.objects.alive().count()


@translate_errors('Failed to count active doctors')
def count_active_doctors() -> int:
    return Doctor.objects.alive().filter(is_active=True).count()


@translate_errors('Failed to load doctor dependencies')
def dependency_info(doctor_id: int) -> dict:
    doctor = require_doctor(doctor_id)
    upcoming = future_appointments(doctor.appointments.all()).count()
    info = {
        'doctorId': doctor.pk,
        'activeDepartments': doctor.department_links.filter(is_deleted=False, is_active=True).count(),
        'activeServiceCategories': doctor.service_category_links.filter(is_deleted=False, is_active=True).count(),
        'schedules': doctor.schedules.filter(is_deleted=False).count(),
        'futureAppointments': upcoming,
        'totalAppointments': doctor.appointments.filter(is_deleted=False).count(),
    }
    info['canDelete'] = upcoming == 0
    if not info['canDelete']:
        info['reason'] = 'Doctor has upcoming appointments'
    return info


def can_delete(doctor_id: int) -> bool:
    return dependency_info(doctor_id)['canDelete']


@translate_errors('Failed to build active doctors report')
def active_doctors_report(*, clinic_id: Optional[int] = None, department_id: Optional[int] = None,
                          date_from: Optional[datetime] = None, date_to: Optional[datetime] = None) -> list[dict]:
    window = Q(appointments__is_deleted=False)
    if date_from:
        window &= Q(appointments__appointment_date__gte=date_from)
    if date_to:
        window &= Q(appointments__appointment_date__lte=date_to)
    doctors = active_doctors_for(clinic_id=clinic_id, department_id=department_id)
    counts = dict(
        Doctor.objects.filter(pk__in=[d.pk for d in doctors])
        .annotate(n=Count('appointments', filter=window))
        .values_list('pk', 'n')
    )
    return [
        {**format_doctor(d), 'appointmentCount': counts.get(d.pk, 0)}
        for d in doctors
    ]


@transaction.atomic
def create_doctor_with_specializations(values: dict[str, Any], specialization_ids: list[int], *, user=None) -> Doctor:
    from clinicadmin.services.specializations import set_doctor_specializations
    doctor = create_doctor(values, user=user)
    if specialization_ids:
        set_doctor_specializations(doctor.pk, specialization_ids)
    return doctor


@transaction.atomic
def update_doctor_with_specializations(doctor_id: int, values: dict[str, Any],
                                       specialization_ids: Optional[list[int]], *, user=None) -> Doctor:
    """Update the doctor and, when ``specialization_ids`` is given, replace its specializations.

    Both writes share one transaction; an unknown specialization id rolls back the field changes.
    """
    from clinicadmin.services.specializations import set_doctor_specializations
    doctor = update_doctor(doctor_id, values, user=user)
    if specialization_ids is not None:
        set_doctor_specializations(doctor.pk, specialization_ids)
    return doctor
