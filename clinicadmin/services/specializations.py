from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from django.db import transaction

from clinicadmin.exceptions import Conflict, NotFound, translate_errors
from clinicadmin.models import DoctorSpecialization, Specialization
from clinicadmin.services.common import clean_text, stamp_create
from clinicadmin.services.doctors import require_doctor

logger = logging.getLogger(__name__)


def format_specialization(s: Specialization, *, doctor_count: Optional[int] = None) -> dict:
    data = {
        'id': s.id,
        'name': s.name,
        'description': s.description,
        'isActive': s.is_active,
        'displayOrder': s.display_order,
        'isDeleted': s.is_deleted,
    }
    if doctor_count is not None:
        data['activeDoctorCount'] = doctor_count
    return data


@translate_errors('Failed to load specializations')
def active_specializations() -> list[Specialization]:
    return list(Specialization.objects.alive().filter(is_active=True).order_by('display_order', 'name'))


@translate_errors('Failed to load specializations')
def all_specializations() -> list[Specialization]:
    return list(Specialization.objects.alive().order_by('display_order', 'name'))


@translate_errors('Failed to load specialization')
def get_specialization(specialization_id: int) -> Optional[Specialization]:
    return Specialization.objects.alive().filter(pk=specialization_id).first()


@translate_errors('Failed to check specialization')
def specialization_exists(specialization_id: int) -> bool:
    return Specialization.objects.alive().filter(pk=specialization_id).exists()


@translate_errors('Failed to check specialization name')
def specialization_name_exists(name: str, *, exclude_id: Optional[int] = None) -> bool:
    if not name or not name.strip():
        return False
    qs = Specialization.objects.alive().filter(name__iexact=name.strip())
    if exclude_id:
        qs = qs.exclude(pk=exclude_id)
    return qs.exists()


@translate_errors('Failed to count doctors for specialization')
def active_doctor_count(specialization_id: int) -> int:
    return (DoctorSpecialization.objects
            .filter(specialization_id=specialization_id, doctor__is_deleted=False, doctor__is_active=True)
            .count())


@translate_errors('Failed to create specialization')
def create_specialization(values: dict[str, Any], *, user=None) -> Specialization:
    name = clean_text(values.get('name'))
    if specialization_name_exists(name):
        raise Conflict('A specialization with this name already exists')
    spec = Specialization(
        name=name,
        description=clean_text(values.get('description')),
        is_active=values.get('is_active', True),
        display_order=values.get('display_order') or 0,
    )
    stamp_create(spec, user)
    spec.save()
    return spec


@translate_errors('Failed to update specialization')
def update_specialization(specialization_id: int, values: dict[str, Any], *, user=None) -> Specialization:
    spec = get_specialization(specialization_id)
    if spec is None:
        raise NotFound('Specialization not found')
    if 'name' in values:
        name = clean_text(values['name'])
        if specialization_name_exists(name, exclude_id=spec.pk):
            raise Conflict('A specialization with this name already exists')
        spec.name = name
    if 'description' in values:
        spec.description = clean_text(values['description'])
    if 'is_active' in values:
        spec.is_active = values['is_active']
    if 'display_order' in values:
        spec.display_order = values['display_order']
    spec.stamp_update(user)
    spec.save()
    return spec


@translate_errors('Failed to delete specialization')
def soft_delete_specialization(specialization_id: int, *, user=None) -> bool:
    spec = get_specialization(specialization_id)
    if spec is None:
        return False
    spec.soft_delete(user)
    spec.save(update_fields=['is_deleted', 'deleted_at', 'deleted_by'])
    return True


@translate_errors('Failed to restore specialization')
def restore_specialization(specialization_id: int, *, user=None) -> bool:
    spec = Specialization.objects.deleted().filter(pk=specialization_id).first()
    if spec is None:
        return False
    if specialization_name_exists(spec.name):
        raise Conflict('Another specialization already uses this name')
    spec.restore()
    spec.stamp_update(user)
    spec.save()
    return True


@translate_errors('Failed to load doctor specializations')
def doctor_specializations(doctor_id: int) -> list[Specialization]:
    return list(Specialization.objects.alive()
                .filter(doctor_links__doctor_id=doctor_id)
                .order_by('display_order', 'name'))


@translate_errors('Failed to load specializations')
def specializations_by_ids(ids: Iterable[int]) -> list[Specialization]:
    return list(Specialization.objects.alive().filter(pk__in=list(ids)).order_by('display_order', 'name'))


@translate_errors('Failed to update doctor specializations')
@transaction.atomic
def set_doctor_specializations(doctor_id: int, specialization_ids: Iterable[int]) -> list[Specialization]:
    """Replace the doctor's specializations with exactly ``specialization_ids``."""
    doctor = require_doctor(doctor_id)
    wanted = set(specialization_ids)
    found = specializations_by_ids(wanted)
    missing = wanted - {s.pk for s in found}
    if missing:
        raise NotFound(f"Unknown specialization ids: {sorted(missing)}")
    DoctorSpecialization.objects.filter(doctor=doctor).exclude(specialization_id__in=wanted).delete()
    existing = set(DoctorSpecialization.objects.filter(doctor=doctor).values_list('specialization_id', flat=True))
    DoctorSpecialization.objects.bulk_create([
        DoctorSpecialization(doctor=doctor, specialization_id=sid) for sid in wanted - existing
    ])
    logger.info("doctor %s specializations set to %s", doctor.pk, sorted(wanted))
    return found
