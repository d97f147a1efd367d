"""
Doctor schedules and appointment slot generation.

A schedule owns work days (Sunday = 0) and each work day owns time
ranges.  Slots are generated on demand from those ranges and filtered
against booked appointments and blocked periods; nothing is
pre-materialised except blocks.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Iterable, Optional

from django.db import transaction
from django.utils import timezone

from clinicadmin.exceptions import Conflict, NotFound, RuleViolation, translate_errors
from clinicadmin.models import Appointment, DoctorSchedule, DoctorTimeRange, DoctorTimeSlot, DoctorWorkDay
from clinicadmin.services.common import iso, stamp_create
from clinicadmin.services.doctors import future_appointments, require_doctor

logger = logging.getLogger(__name__)

BLOCK_CHUNK_MINUTES = 30

SCHEDULE_FIELDS = (
    'appointment_duration', 'default_start_time', 'default_end_time', 'is_active',
    'max_appointments_per_day', 'min_advance_booking_days', 'max_advance_booking_days',
    'allow_same_day_booking', 'consultation_fee', 'cancellation_fee', 'cancellation_notice_hours',
    'allow_emergency_booking', 'allow_walk_in_patients', 'max_walk_in_patients_per_day',
)


@dataclass(frozen=True)
class Slot:
    start: time
    end: time
    duration: int

    def as_dict(self) -> dict:
        return {
            'startTime': self.start.strftime('%H:%M'),
            'endTime': self.end.strftime('%H:%M'),
            'duration': self.duration,
        }


def day_of_week(day: date) -> int:
    """Sunday-based weekday index (Sunday = 0 .. Saturday = 6)."""
    return (day.weekday() + 1) % 7


def format_schedule(s: DoctorSchedule) -> dict:
    return {
        'id': s.id,
        'doctorId': s.doctor_id,
        'appointmentDuration': s.appointment_duration,
        'defaultStartTime': s.default_start_time.strftime('%H:%M') if s.default_start_time else None,
        'defaultEndTime': s.default_end_time.strftime('%H:%M') if s.default_end_time else None,
        'isActive': s.is_active,
        'maxAppointmentsPerDay': s.max_appointments_per_day,
        'minAdvanceBookingDays': s.min_advance_booking_days,
        'maxAdvanceBookingDays': s.max_advance_booking_days,
        'allowSameDayBooking': s.allow_same_day_booking,
        'consultationFee': str(s.consultation_fee),
        'cancellationFee': str(s.cancellation_fee),
        'cancellationNoticeHours': s.cancellation_notice_hours,
        'allowEmergencyBooking': s.allow_emergency_booking,
        'allowWalkInPatients': s.allow_walk_in_patients,
        'maxWalkInPatientsPerDay': s.max_walk_in_patients_per_day,
        'workDays': [
            {
                'dayOfWeek': wd.day_of_week,
                'isActive': wd.is_active,
                'timeRanges': [
                    {
                        'startTime': tr.start_time.strftime('%H:%M'),
                        'endTime': tr.end_time.strftime('%H:%M'),
                        'isActive': tr.is_active,
                    }
                    for tr in wd.time_ranges.all() if not tr.is_deleted
                ],
            }
            for wd in s.work_days.all()
        ],
    }


def format_block(slot: DoctorTimeSlot) -> dict:
    return {
        'id': slot.id,
        'date': iso(slot.appointment_date),
        'startTime': slot.start_time.strftime('%H:%M'),
        'endTime': slot.end_time.strftime('%H:%M'),
        'duration': slot.duration,
        'reason': slot.reason,
    }


def _schedules():
    return (DoctorSchedule.objects.alive()
            .prefetch_related('work_days', 'work_days__time_ranges'))


@translate_errors('Failed to load schedule')
def get_schedule(doctor_id: int) -> Optional[DoctorSchedule]:
    return _schedules().filter(doctor_id=doctor_id).first()


@translate_errors('Failed to load schedules')
def list_schedules() -> list[DoctorSchedule]:
    return list(_schedules().select_related('doctor').order_by('doctor__last_name', 'doctor__first_name'))


def _replace_work_days(schedule: DoctorSchedule, work_days: Iterable[dict[str, Any]]) -> None:
    schedule.work_days.all().delete()
    seen: set[int] = set()
    for wd in work_days:
        dow = wd['day_of_week']
        if dow in seen:
            raise RuleViolation(f'Day {dow} appears more than once')
        seen.add(dow)
        day = DoctorWorkDay.objects.create(schedule=schedule, day_of_week=dow, is_active=wd.get('is_active', True))
        for tr in wd.get('time_ranges') or []:
            if tr['start_time'] >= tr['end_time']:
                raise RuleViolation('Time range start must be before its end')
            DoctorTimeRange.objects.create(
                work_day=day,
                start_time=tr['start_time'],
                end_time=tr['end_time'],
                is_active=tr.get('is_active', True),
            )


def _apply(schedule: DoctorSchedule, values: dict[str, Any]) -> None:
    for field in SCHEDULE_FIELDS:
        if field in values and values[field] is not None:
            setattr(schedule, field, values[field])
    if schedule.appointment_duration < 1:
        raise RuleViolation('Appointment duration must be positive')
    if (schedule.default_start_time and schedule.default_end_time
            and schedule.default_start_time >= schedule.default_end_time):
        raise RuleViolation('Default start time must be before default end time')


@translate_errors('Failed to create schedule')
@transaction.atomic
def create_schedule(doctor_id: int, values: dict[str, Any], *,
                    work_days: Optional[Iterable[dict[str, Any]]] = None, user=None) -> DoctorSchedule:
    doctor = require_doctor(doctor_id)
    if DoctorSchedule.objects.alive().filter(doctor=doctor).exists():
        raise Conflict('Doctor already has a schedule')
    schedule = DoctorSchedule(doctor=doctor)
    _apply(schedule, values)
    stamp_create(schedule, user)
    schedule.save()
    if work_days:
        _replace_work_days(schedule, work_days)
    logger.info("schedule %s created for doctor %s", schedule.pk, doctor.pk)
    return get_schedule(doctor.pk)


@translate_errors('Failed to update schedule')
@transaction.atomic
def update_schedule(schedule_id: int, values: dict[str, Any], *,
                    work_days: Optional[Iterable[dict[str, Any]]] = None, user=None) -> DoctorSchedule:
    schedule = DoctorSchedule.objects.alive().filter(pk=schedule_id).first()
    if schedule is None:
        raise NotFound('Schedule not found')
    _apply(schedule, values)
    schedule.stamp_update(user)
    schedule.save()
    if work_days is not None:
        _replace_work_days(schedule, work_days)
    return get_schedule(schedule.doctor_id)


@translate_errors('Failed to delete schedule')
def delete_schedule(schedule_id: int, *, user=None) -> bool:
    schedule = DoctorSchedule.objects.alive().filter(pk=schedule_id).first()
    if schedule is None:
        return False
    if has_active_appointments(schedule.doctor_id):
        raise Conflict('Doctor has upcoming appointments; the schedule cannot be deleted')
    schedule.soft_delete(user)
    schedule.save(update_fields=['is_deleted', 'deleted_at', 'deleted_by'])
    return True


@translate_errors('Failed to check appointments')
def has_active_appointments(doctor_id: int) -> bool:
    return future_appointments(Appointment.objects.filter(doctor_id=doctor_id)).exists()


def _overlaps(start: time, end: time, other_start: time, other_end: time) -> bool:
    return start < other_end and other_start < end


@translate_errors('Failed to compute available slots')
def available_slots(doctor_id: int, day: date) -> list[Slot]:
    schedule = (DoctorSchedule.objects.alive()
                .filter(doctor_id=doctor_id, is_active=True).first())
    if schedule is None:
        return []

    ranges = (DoctorTimeRange.objects
              .filter(work_day__schedule=schedule,
                      work_day__day_of_week=day_of_week(day),
                      work_day__is_active=True,
                      is_active=True, is_deleted=False)
              .order_by('start_time'))

    booked: list[tuple[time, time]] = []
    step = timedelta(minutes=schedule.appointment_duration)
    for appt in (Appointment.objects
                 .filter(doctor_id=doctor_id, is_deleted=False, appointment_date__date=day)
                 .exclude(status='cancelled')):
        start = timezone.localtime(appt.appointment_date)
        booked.append((start.time(), (start + step).time()))
    blocked = [
        (b.start_time, b.end_time)
        for b in DoctorTimeSlot.objects.alive().filter(doctor_id=doctor_id, appointment_date=day, status='blocked')
    ]
    taken = booked + blocked

    slots: list[Slot] = []
    for tr in ranges:
        current = datetime.combine(day, tr.start_time)
        range_end = datetime.combine(day, tr.end_time)
        while current < range_end:
            slot_end = current + step
            if slot_end > range_end:
                break
            start_t, end_t = current.time(), slot_end.time()
            if not any(_overlaps(start_t, end_t, s, e) for s, e in taken):
                slots.append(Slot(start_t, end_t, schedule.appointment_duration))
            current = slot_end
    slots.sort(key=lambda s: s.start)
    return slots


def _chunks(start: datetime, end: datetime) -> Iterable[tuple[datetime, datetime]]:
    current = start
    while current < end:
        midnight = datetime.combine(current.date() + timedelta(days=1), time.min, tzinfo=current.tzinfo)
        chunk_end = min(current + timedelta(minutes=BLOCK_CHUNK_MINUTES), end, midnight)
        yield current, chunk_end
        current = chunk_end


@translate_errors('Failed to block time range')
@transaction.atomic
def block_time_range(doctor_id: int, start: datetime, end: datetime, *, reason: str = '',
                     user=None) -> list[DoctorTimeSlot]:
    if start >= end:
        raise RuleViolation('Start time must be before end time')
    doctor = require_doctor(doctor_id)
    clash = (Appointment.objects
             .filter(doctor=doctor, is_deleted=False, appointment_date__gte=start, appointment_date__lt=end)
             .exclude(status='cancelled'))
    if clash.exists():
        raise Conflict('Appointments already exist in this time range')

    start, end = timezone.localtime(start), timezone.localtime(end)
    blocks = []
    for chunk_start, chunk_end in _chunks(start, end):
        slot = DoctorTimeSlot(
            doctor=doctor,
            appointment_date=chunk_start.date(),
            start_time=chunk_start.time(),
            # a chunk cut at midnight ends at the last representable time of the day
            end_time=chunk_end.time() if chunk_end.date() == chunk_start.date() else time.max,
            duration=int((chunk_end - chunk_start).total_seconds() // 60),
            status='blocked',
            reason=reason,
        )
        stamp_create(slot, user)
        blocks.append(slot)
    DoctorTimeSlot.objects.bulk_create(blocks)
    logger.info("blocked %d slots for doctor %s between %s and %s", len(blocks), doctor.pk, start, end)
    return blocks


@translate_errors('Failed to load blocked time ranges')
def blocked_time_ranges(doctor_id: int, *, date_from: Optional[date] = None,
                        date_to: Optional[date] = None) -> list[DoctorTimeSlot]:
    qs = DoctorTimeSlot.objects.alive().filter(doctor_id=doctor_id, status='blocked')
    if date_from:
        qs = qs.filter(appointment_date__gte=date_from)
    if date_to:
        qs = qs.filter(appointment_date__lte=date_to)
    return list(qs.order_by('appointment_date', 'start_time'))
