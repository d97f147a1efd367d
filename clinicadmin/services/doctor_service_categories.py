"""
Service-category authorizations: which doctor may perform which services.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from clinicadmin.exceptions import Conflict, NotFound, RuleViolation, translate_errors
from clinicadmin.models import Doctor, DoctorServiceCategory, Service, ServiceCategory
from clinicadmin.services.assignment_history import record_assignment
from clinicadmin.services.common import clean_text, iso, paginate, stamp_create
from clinicadmin.services.doctors import future_appointments, require_doctor

logger = logging.getLogger(__name__)


def format_grant(link: DoctorServiceCategory) -> dict:
    category = link.service_category
    return {
        'doctorId': link.doctor_id,
        'doctorName': link.doctor.full_name,
        'serviceCategoryId': link.service_category_id,
        'serviceCategoryTitle': category.title,
        'departmentId': category.department_id,
        'departmentName': category.department.name,
        'authorizationLevel': link.authorization_level,
        'isActive': link.is_active,
        'grantedDate': iso(link.granted_date),
        'expiryDate': iso(link.expiry_date),
        'certificateNumber': link.certificate_number,
        'notes': link.notes,
        'createdAt': iso(link.created_at),
    }


def _snapshot(link: DoctorServiceCategory) -> dict:
    return {
        'authorizationLevel': link.authorization_level,
        'isActive': link.is_active,
        'grantedDate': iso(link.granted_date),
        'expiryDate': iso(link.expiry_date),
        'certificateNumber': link.certificate_number,
    }


def _grants():
    return (DoctorServiceCategory.objects.alive()
            .select_related('doctor', 'service_category', 'service_category__department'))


def _search(qs, term: Optional[str]):
    if term:
        qs = qs.filter(
            Q(service_category__title__icontains=term)
            | Q(service_category__department__name__icontains=term)
            | Q(authorization_level__icontains=term)
            | Q(certificate_number__icontains=term)
        )
    return qs


def _valid_grants():
    now = timezone.now()
    return (DoctorServiceCategory.objects.alive()
            .filter(is_active=True)
            .filter(Q(expiry_date__isnull=True) | Q(expiry_date__gt=now)))


@translate_errors('Failed to load doctor service categories')
def list_doctor_service_categories(doctor_id: int, *, term: Optional[str] = None, page: Optional[int] = None,
                                   page_size: Optional[int] = None) -> tuple[list[DoctorServiceCategory], int]:
    qs = _search(_grants().filter(doctor_id=doctor_id), term)
    return paginate(qs.order_by('-created_at'), page, page_size)


def _filtered(*, term, doctor_id, category_id, is_active):
    qs = _search(_grants(), term)
    if doctor_id:
        qs = qs.filter(doctor_id=doctor_id)
    if category_id:
        qs = qs.filter(service_category_id=category_id)
    if is_active is not None:
        qs = qs.filter(is_active=is_active)
    return qs


@translate_errors('Failed to load service category grants')
def list_all_doctor_service_categories(*, term: Optional[str] = None, doctor_id: Optional[int] = None,
                                       category_id: Optional[int] = None, is_active: Optional[bool] = None,
                                       page: Optional[int] = None,
                                       page_size: Optional[int] = None) -> tuple[list[DoctorServiceCategory], int]:
    qs = _filtered(term=term, doctor_id=doctor_id, category_id=category_id, is_active=is_active)
    return paginate(qs.order_by('-created_at'), page, page_size)


@translate_errors('Failed to count service category grants')
def count_doctor_service_categories(*, term: Optional[str] = None, doctor_id: Optional[int] = None,
                                    category_id: Optional[int] = None, is_active: Optional[bool] = None) -> int:
    return _filtered(term=term, doctor_id=doctor_id, category_id=category_id, is_active=is_active).count()


@translate_errors('Failed to load service category grant')
def get_doctor_service_category(doctor_id: int, category_id: int) -> Optional[DoctorServiceCategory]:
    return _grants().filter(doctor_id=doctor_id, service_category_id=category_id).first()


@translate_errors('Failed to check category access')
def has_access_to_category(doctor_id: int, category_id: int) -> bool:
    return _valid_grants().filter(doctor_id=doctor_id, service_category_id=category_id).exists()


@translate_errors('Failed to check service access')
def has_access_to_service(doctor_id: int, service_id: int) -> bool:
    service = Service.objects.alive().filter(pk=service_id).only('category_id').first()
    if service is None:
        return False
    return has_access_to_category(doctor_id, service.category_id)


@translate_errors('Failed to load authorized doctors')
def authorized_doctors(category_id: int) -> list[Doctor]:
    doctor_ids = _valid_grants().filter(service_category_id=category_id).values('doctor_id')
    return list(Doctor.objects.alive()
                .filter(is_active=True, pk__in=doctor_ids)
                .order_by('last_name', 'first_name'))


@translate_errors('Failed to load service categories')
def service_categories_for_department(department_id: int) -> list[ServiceCategory]:
    return list(ServiceCategory.objects.alive()
                .filter(department_id=department_id, is_active=True)
                .order_by('title'))


@translate_errors('Failed to grant service category')
@transaction.atomic
def grant_service_category(doctor_id: int, category_id: int, *, authorization_level: str = '',
                           granted_date=None, expiry_date=None, certificate_number: str = '',
                           notes: str = '', user=None) -> DoctorServiceCategory:
    doctor = require_doctor(doctor_id)
    category = (ServiceCategory.objects.alive()
                .select_related('department').filter(pk=category_id).first())
    if category is None:
        raise NotFound('Service category not found')
    if granted_date and expiry_date and expiry_date <= granted_date:
        raise RuleViolation('Expiry date must be after the granted date')

    link = (DoctorServiceCategory.objects.select_for_update()
            .filter(doctor=doctor, service_category=category).first())
    if link is not None and not link.is_deleted:
        raise Conflict('This service category is already granted to the doctor')

    now = timezone.now()
    if link is None:
        link = DoctorServiceCategory(doctor=doctor, service_category=category)
        stamp_create(link, user)
    else:
        link.restore()
        link.stamp_update(user)
    link.authorization_level = clean_text(authorization_level)
    link.granted_date = granted_date or now
    link.expiry_date = expiry_date
    link.certificate_number = clean_text(certificate_number)
    link.notes = clean_text(notes)
    link.is_active = True
    link.save()

    record_assignment(
        doctor=doctor, department=category.department, user=user,
        action_type='service_category_granted',
        action_title=f'Granted {category.title}',
        service_categories=category.title,
        notes=link.notes,
        new_data=_snapshot(link),
        importance='important',
    )
    return link


@translate_errors('Failed to update service category grant')
@transaction.atomic
def update_doctor_service_category(doctor_id: int, category_id: int, values: dict[str, Any], *,
                                   user=None) -> DoctorServiceCategory:
    link = get_doctor_service_category(doctor_id, category_id)
    if link is None:
        raise NotFound('Service category grant not found')
    before = _snapshot(link)
    for field in ('authorization_level', 'certificate_number', 'notes'):
        if field in values:
            setattr(link, field, clean_text(values[field]))
    for field in ('is_active', 'granted_date', 'expiry_date'):
        if field in values:
            setattr(link, field, values[field])
    if link.granted_date and link.expiry_date and link.expiry_date <= link.granted_date:
        raise RuleViolation('Expiry date must be after the granted date')
    link.stamp_update(user)
    link.save()

    record_assignment(
        doctor=link.doctor, department=link.service_category.department, user=user,
        action_type='service_category_updated',
        action_title=f'Grant for {link.service_category.title} updated',
        service_categories=link.service_category.title,
        previous_data=before,
        new_data=_snapshot(link),
    )
    return link


@translate_errors('Failed to revoke service category')
@transaction.atomic
def revoke_service_category(doctor_id: int, category_id: int, *, notes: str = '', user=None) -> bool:
    link = get_doctor_service_category(doctor_id, category_id)
    if link is None:
        return False
    upcoming = future_appointments(link.doctor.appointments.filter(service_category_id=category_id))
    if upcoming.exists():
        raise Conflict('Doctor has upcoming appointments in this service category')
    before = _snapshot(link)
    link.soft_delete(user)
    link.is_active = False
    link.stamp_update(user)
    link.save()

    record_assignment(
        doctor=link.doctor, department=link.service_category.department, user=user,
        action_type='service_category_revoked',
        action_title=f'Revoked {link.service_category.title}',
        service_categories=link.service_category.title,
        notes=notes,
        previous_data=before,
        importance='critical',
    )
    logger.info("doctor %s lost service category %s", doctor_id, category_id)
    return True
