"""
Doctor to department assignments.

A doctor can work in several departments.  Removing an assignment only
hides it; re-assigning the same pair revives the hidden row so the pair
stays unique.  Every change is written to the assignment history.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from clinicadmin.exceptions import Conflict, NotFound, RuleViolation, translate_errors
from clinicadmin.models import Department, Doctor, DoctorDepartment
from clinicadmin.services.assignment_history import record_assignment
from clinicadmin.services.common import clean_text, invalidate_lookup_cache, iso, paginate, stamp_create
from clinicadmin.services.doctors import future_appointments, require_doctor

logger = logging.getLogger(__name__)


def format_doctor_department(link: DoctorDepartment) -> dict:
    dept = link.department
    return {
        'doctorId': link.doctor_id,
        'departmentId': link.department_id,
        'departmentName': dept.name,
        'departmentCode': dept.code,
        'clinicId': dept.clinic_id,
        'clinicName': dept.clinic.name if dept.clinic_id else None,
        'role': link.role,
        'isActive': link.is_active,
        'startDate': iso(link.start_date),
        'endDate': iso(link.end_date),
        'createdAt': iso(link.created_at),
    }


def _snapshot(link: DoctorDepartment) -> dict:
    return {
        'role': link.role,
        'isActive': link.is_active,
        'startDate': iso(link.start_date),
        'endDate': iso(link.end_date),
    }


def _links():
    return (DoctorDepartment.objects.alive()
            .select_related('department', 'department__clinic', 'doctor'))


@translate_errors('Failed to load doctor departments')
def list_doctor_departments(doctor_id: int, *, term: Optional[str] = None, page: Optional[int] = None,
                            page_size: Optional[int] = None) -> tuple[list[DoctorDepartment], int]:
    qs = _links().filter(doctor_id=doctor_id)
    if term:
        qs = qs.filter(
            Q(department__name__icontains=term)
            | Q(department__description__icontains=term)
            | Q(department__clinic__name__icontains=term)
        )
    return paginate(qs.order_by('department__name', 'created_at'), page, page_size)


@translate_errors('Failed to load doctor department')
def get_doctor_department(doctor_id: int, department_id: int) -> Optional[DoctorDepartment]:
    return _links().filter(doctor_id=doctor_id, department_id=department_id).first()


@translate_errors('Failed to check doctor department')
def is_doctor_in_department(doctor_id: int, department_id: int) -> bool:
    return DoctorDepartment.objects.alive().filter(
        doctor_id=doctor_id, department_id=department_id, is_active=True
    ).exists()


@translate_errors('Failed to load departments of doctor')
def doctor_departments(doctor_id: int) -> list[Department]:
    return list(Department.objects.alive()
                .filter(doctor_links__doctor_id=doctor_id,
                        doctor_links__is_deleted=False,
                        doctor_links__is_active=True)
                .select_related('clinic')
                .order_by('name'))


@translate_errors('Failed to load doctors of department')
def active_doctors_for_department(department_id: int) -> list[Doctor]:
    return list(Doctor.objects.alive()
                .filter(is_active=True,
                        department_links__department_id=department_id,
                        department_links__is_deleted=False,
                        department_links__is_active=True)
                .distinct()
                .order_by('last_name', 'first_name'))


@translate_errors('Failed to assign department')
@transaction.atomic
def assign_department(doctor_id: int, department_id: int, *, role: str = '',
                      start_date: Optional[date] = None, end_date: Optional[date] = None,
                      notes: str = '', user=None) -> DoctorDepartment:
    doctor = require_doctor(doctor_id)
    department = Department.objects.alive().filter(pk=department_id).first()
    if department is None:
        raise NotFound('Department not found')

    link = DoctorDepartment.objects.select_for_update().filter(doctor=doctor, department=department).first()
    if link is not None and not link.is_deleted:
        raise Conflict('Doctor is already assigned to this department')

    now = timezone.now()
    if link is None:
        link = DoctorDepartment(doctor=doctor, department=department)
        stamp_create(link, user)
    else:
        link.restore()
        link.stamp_update(user)
    link.role = clean_text(role)
    link.start_date = start_date or now.date()
    link.end_date = end_date
    link.is_active = True
    link.save()

    record_assignment(
        doctor=doctor, department=department, user=user,
        action_type='department_assigned',
        action_title=f'Assigned to {department.name}',
        action_description=link.role,
        notes=notes,
        new_data=_snapshot(link),
        importance='important',
    )
    transaction.on_commit(invalidate_lookup_cache)
    return link


@translate_errors('Failed to update doctor department')
@transaction.atomic
def update_doctor_department(doctor_id: int, department_id: int, values: dict[str, Any], *,
                             user=None) -> DoctorDepartment:
    link = get_doctor_department(doctor_id, department_id)
    if link is None:
        raise NotFound('Department assignment not found')
    before = _snapshot(link)
    if 'role' in values:
        link.role = clean_text(values['role'])
    if 'is_active' in values:
        link.is_active = values['is_active']
    if 'start_date' in values:
        link.start_date = values['start_date']
    if 'end_date' in values:
        link.end_date = values['end_date']
    if link.start_date and link.end_date and link.end_date < link.start_date:
        raise RuleViolation('End date cannot be before start date')
    link.stamp_update(user)
    link.save()

    record_assignment(
        doctor=link.doctor, department=link.department, user=user,
        action_type='department_updated',
        action_title=f'Assignment to {link.department.name} updated',
        notes=values.get('notes', ''),
        previous_data=before,
        new_data=_snapshot(link),
    )
    transaction.on_commit(invalidate_lookup_cache)
    return link


@translate_errors('Failed to remove department')
@transaction.atomic
def remove_department(doctor_id: int, department_id: int, *, notes: str = '', user=None) -> bool:
    link = get_doctor_department(doctor_id, department_id)
    if link is None:
        return False
    if future_appointments(link.doctor.appointments.all()).exists():
        raise Conflict('Doctor has upcoming appointments; reschedule them before removing the department')
    before = _snapshot(link)
    link.soft_delete(user)
    link.is_active = False
    link.stamp_update(user)
    link.save()

    record_assignment(
        doctor=link.doctor, department=link.department, user=user,
        action_type='department_removed',
        action_title=f'Removed from {link.department.name}',
        notes=notes,
        previous_data=before,
        importance='important',
    )
    transaction.on_commit(invalidate_lookup_cache)
    logger.info("doctor %s removed from department %s", doctor_id, department_id)
    return True
