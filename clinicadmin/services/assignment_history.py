"""
Doctor assignment history: an append-mostly journal of staffing changes.

Every department or service-category change is recorded here with the
before/after snapshot so that administrators can audit who changed what.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Optional

from django.conf import settings
from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone

from clinicadmin.exceptions import NotFound, translate_errors
from clinicadmin.models import Department, Doctor, DoctorAssignmentHistory
from clinicadmin.services.common import SYSTEM_USER_NAME, acting_user, iso, paginate, user_name
from clinicadmin.services.notify import broadcast

logger = logging.getLogger(__name__)

IMPORTANCE_LEVELS = [c[0] for c in DoctorAssignmentHistory.IMPORTANCE_CHOICES]


def format_history(h: DoctorAssignmentHistory) -> dict:
    return {
        'id': h.id,
        'doctorId': h.doctor_id,
        'actionType': h.action_type,
        'actionTitle': h.action_title,
        'actionDescription': h.action_description,
        'actionDate': iso(h.action_date),
        'departmentId': h.department_id,
        'departmentName': h.department_name,
        'serviceCategories': h.service_categories,
        'performedById': h.performed_by_id,
        'performedByName': h.performed_by_name,
        'notes': h.notes,
        'previousData': h.previous_data,
        'newData': h.new_data,
        'importance': h.importance,
    }


@translate_errors('Failed to record assignment history')
def record_assignment(*, doctor: Doctor, action_type: str, action_title: str,
                      action_description: str = '', department: Optional[Department] = None,
                      service_categories: str = '', notes: str = '',
                      previous_data: Optional[dict[str, Any]] = None,
                      new_data: Optional[dict[str, Any]] = None,
                      importance: str = 'normal', user=None) -> DoctorAssignmentHistory:
    now = timezone.now()
    actor = acting_user(user)
    entry = DoctorAssignmentHistory.objects.create(
        doctor=doctor,
        action_type=action_type,
        action_title=action_title,
        action_description=action_description,
        action_date=now,
        department=department,
        department_name=department.name if department else '',
        service_categories=service_categories,
        performed_by=actor,
        performed_by_name=user_name(actor),
        notes=notes,
        previous_data=previous_data,
        new_data=new_data,
        importance=importance,
        created_at=now,
        created_by=actor,
    )
    logger.info("history %s recorded for doctor %s by %s", action_type, doctor.pk, entry.performed_by_name)
    payload = {
        'doctorId': doctor.pk,
        'historyId': entry.pk,
        'actionType': action_type,
        'importance': importance,
        'ts': now.isoformat(),
    }
    transaction.on_commit(lambda: broadcast('assignment.changed', payload))
    return entry


@translate_errors('Failed to load history record')
def get_history(history_id: int) -> Optional[DoctorAssignmentHistory]:
    return (DoctorAssignmentHistory.objects.alive()
            .select_related('doctor', 'department')
            .filter(pk=history_id).first())


@translate_errors('Failed to update history record')
def update_history(history_id: int, values: dict[str, Any], *, user=None) -> DoctorAssignmentHistory:
    entry = get_history(history_id)
    if entry is None:
        raise NotFound('History record not found')
    for field in ('action_title', 'action_description', 'notes', 'importance'):
        if field in values:
            setattr(entry, field, values[field])
    entry.stamp_update(user)
    entry.save()
    return entry


@translate_errors('Failed to delete history record')
def delete_history(history_id: int, *, user=None) -> bool:
    entry = get_history(history_id)
    if entry is None:
        return False
    entry.soft_delete(user)
    entry.save(update_fields=['is_deleted', 'deleted_at', 'deleted_by'])
    return True


def _alive():
    return DoctorAssignmentHistory.objects.alive().select_related('doctor', 'department')


def _in_window(qs, date_from: Optional[datetime], date_to: Optional[datetime]):
    if date_from:
        qs = qs.filter(action_date__gte=date_from)
    if date_to:
        qs = qs.filter(action_date__lte=date_to)
    return qs


@translate_errors('Failed to load doctor history')
def doctor_history(doctor_id: int, *, page: int = 1, page_size: int = 20) -> tuple[list[DoctorAssignmentHistory], int]:
    qs = _alive().filter(doctor_id=doctor_id).order_by('-action_date')
    return paginate(qs, page, page_size, default_size=20)


@translate_errors('Failed to load history by action type')
def history_by_action_type(action_type: str, *, date_from=None, date_to=None) -> list[DoctorAssignmentHistory]:
    qs = _in_window(_alive().filter(action_type=action_type), date_from, date_to)
    return list(qs.order_by('-action_date'))


@translate_errors('Failed to load history by importance')
def history_by_importance(importance: str, *, date_from=None, date_to=None) -> list[DoctorAssignmentHistory]:
    qs = _in_window(_alive().filter(importance=importance), date_from, date_to)
    return list(qs.order_by('-action_date'))


@translate_errors('Failed to load history by department')
def history_by_department(department_id: int, *, date_from=None, date_to=None) -> list[DoctorAssignmentHistory]:
    qs = _in_window(_alive().filter(department_id=department_id), date_from, date_to)
    return list(qs.order_by('-action_date'))


@translate_errors('Failed to load history by performer')
def history_by_performer(user_id: int, *, date_from=None, date_to=None) -> list[DoctorAssignmentHistory]:
    qs = _in_window(_alive().filter(performed_by_id=user_id), date_from, date_to)
    return list(qs.order_by('-action_date'))


@translate_errors('Failed to search history')
def search_history(*, term: Optional[str] = None, doctor_id: Optional[int] = None,
                   action_type: Optional[str] = None, importance: Optional[str] = None,
                   department_id: Optional[int] = None, performed_by: Optional[int] = None,
                   date_from: Optional[datetime] = None, date_to: Optional[datetime] = None,
                   page: Optional[int] = None, page_size: Optional[int] = None) -> tuple[list[DoctorAssignmentHistory], int]:
    qs = _alive()
    if term:
        qs = qs.filter(
            Q(action_title__icontains=term)
            | Q(action_description__icontains=term)
            | Q(department_name__icontains=term)
            | Q(performed_by_name__icontains=term)
            | Q(notes__icontains=term)
        )
    if doctor_id:
        qs = qs.filter(doctor_id=doctor_id)
    if action_type:
        qs = qs.filter(action_type=action_type)
    if importance:
        qs = qs.filter(importance=importance)
    if department_id:
        qs = qs.filter(department_id=department_id)
    if performed_by:
        qs = qs.filter(performed_by_id=performed_by)
    qs = _in_window(qs, date_from, date_to)
    return paginate(qs.order_by('-action_date'), page, page_size)


def _counts(qs, field: str) -> dict[str, int]:
    rows = qs.values(field).annotate(n=Count('id')).order_by(field)
    return {(r[field] or ''): r['n'] for r in rows}


@translate_errors('Failed to compute history statistics')
def history_stats(*, date_from: Optional[datetime] = None, date_to: Optional[datetime] = None) -> dict:
    qs = _in_window(DoctorAssignmentHistory.objects.alive(), date_from, date_to)
    by_importance = {level: 0 for level in IMPORTANCE_LEVELS}
    by_importance.update(_counts(qs, 'importance'))
    return {
        'total': qs.count(),
        'byImportance': by_importance,
        'byActionType': _counts(qs, 'action_type'),
        'byDepartment': _counts(qs, 'department_name'),
        'byUser': _counts(qs, 'performed_by_name'),
    }


@translate_errors('Failed to clean up old history')
def cleanup_old_history(older_than_days: Optional[int] = None) -> int:
    """Soft-delete history older than the retention window; return the count."""
    days = older_than_days if older_than_days is not None else settings.CLINIC_HISTORY_RETENTION_DAYS
    cutoff = timezone.now() - timedelta(days=days)
    count = (DoctorAssignmentHistory.objects.alive()
             .filter(action_date__lt=cutoff)
             .update(is_deleted=True, deleted_at=timezone.now(), deleted_by=None,
                     updated_at=timezone.now()))
    logger.info("%s soft-deleted %d history rows older than %s", SYSTEM_USER_NAME, count, cutoff.date())
    return count
