"""
Database models for the clinic administration backend.

The schema covers clinic staffing (doctors, departments, service-category
authorizations, schedules and an assignment history), the reception data
needed by the front desk (patients, insurance) and the bookings that
schedules are checked against.  Almost every table carries audit fields
and a soft-delete flag: medical records are hidden, never destroyed.
"""
from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone


# ---------------------------------------------------------------------
# Abstract bases
# ---------------------------------------------------------------------
class SoftDeleteQuerySet(models.QuerySet):
    def alive(self):
        return self.filter(is_deleted=False)

    def deleted(self):
        return self.filter(is_deleted=True)


class TrackedModel(models.Model):
    """Audit trail columns stamped on create and update."""
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )
    updated_at = models.DateTimeField(null=True, blank=True)
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )

    class Meta:
        abstract = True

    def stamp_update(self, user=None) -> None:
        self.updated_at = timezone.now()
        self.updated_by = user if getattr(user, 'pk', None) else None


class SoftDeleteModel(models.Model):
    """Rows are flagged deleted instead of being removed."""
    is_deleted = models.BooleanField(default=False, db_index=True)
    deleted_at = models.DateTimeField(null=True, blank=True)
    deleted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )

    objects = SoftDeleteQuerySet.as_manager()

    class Meta:
        abstract = True

    def soft_delete(self, user=None) -> None:
        self.is_deleted = True
        self.deleted_at = timezone.now()
        self.deleted_by = user if getattr(user, 'pk', None) else None

    def restore(self) -> None:
        self.is_deleted = False
        self.deleted_at = None
        self.deleted_by = None


class AuditedModel(TrackedModel, SoftDeleteModel):
    class Meta:
        abstract = True


# ---------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------
class User(AbstractUser):
    """Staff account with a role.

    ``reception`` works the front desk, ``admin`` manages staffing and
    ``super`` can do everything including history maintenance.
    """
    ROLE_CHOICES = [
        ('reception', 'Receptionist'),
        ('admin', 'Administrator'),
        ('super', 'Super Administrator'),
    ]
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default='reception')

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"

    @property
    def display_name(self) -> str:
        return self.get_full_name() or self.username


# ---------------------------------------------------------------------
# Organisation
# ---------------------------------------------------------------------
class Clinic(AuditedModel):
    name = models.CharField(max_length=200)
    address = models.CharField(max_length=500, blank=True)
    phone_number = models.CharField(max_length=50, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)

    def __str__(self) -> str:
        return self.name


class Department(AuditedModel):
    name = models.CharField(max_length=200)
    code = models.CharField(max_length=20, blank=True)
    clinic = models.ForeignKey(Clinic, on_delete=models.PROTECT, related_name='departments')
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        indexes = [models.Index(fields=['clinic', 'is_active'])]

    def __str__(self) -> str:
        return self.name


class ServiceCategory(AuditedModel):
    """A billable grouping of services; doctors are authorized per category."""
    title = models.CharField(max_length=200)
    department = models.ForeignKey(Department, on_delete=models.PROTECT, related_name='service_categories')
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        verbose_name_plural = 'service categories'

    def __str__(self) -> str:
        return self.title


class Service(AuditedModel):
    title = models.CharField(max_length=250)
    service_code = models.CharField(max_length=50, db_index=True)
    price = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal('0'))
    description = models.CharField(max_length=1000, blank=True)
    category = models.ForeignKey(ServiceCategory, on_delete=models.PROTECT, related_name='services')
    is_active = models.BooleanField(default=True)
    notes = models.TextField(blank=True)

    def __str__(self) -> str:
        return f"{self.title} ({self.service_code})"


class Specialization(AuditedModel):
    name = models.CharField(max_length=100)
    description = models.CharField(max_length=500, blank=True)
    is_active = models.BooleanField(default=True)
    display_order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ['display_order', 'name']

    def __str__(self) -> str:
        return self.name


# ---------------------------------------------------------------------
# Doctors
# ---------------------------------------------------------------------
class Doctor(AuditedModel):
    DEGREE_CHOICES = [
        ('general', 'General Practitioner'),
        ('specialist', 'Specialist'),
        ('subspecialist', 'Sub-specialist'),
        ('fellowship', 'Fellowship'),
        ('other', 'Other'),
    ]
    GENDER_CHOICES = [
        ('male', 'Male'),
        ('female', 'Female'),
    ]

    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    doctor_code = models.CharField(max_length=20, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    degree = models.CharField(max_length=20, choices=DEGREE_CHOICES, default='general')
    graduation_year = models.PositiveIntegerField(null=True, blank=True)
    university = models.CharField(max_length=200, blank=True)
    gender = models.CharField(max_length=10, choices=GENDER_CHOICES, blank=True)
    date_of_birth = models.DateField(null=True, blank=True)
    home_address = models.CharField(max_length=500, blank=True)
    office_address = models.CharField(max_length=500, blank=True)
    experience_years = models.PositiveIntegerField(null=True, blank=True)
    profile_image_url = models.CharField(max_length=500, blank=True)
    phone_number = models.CharField(max_length=50, blank=True)
    national_code = models.CharField(max_length=10, blank=True, db_index=True)
    medical_council_code = models.CharField(max_length=20, blank=True, db_index=True,
                                            help_text="Medical council registration number")
    email = models.EmailField(max_length=100, blank=True)
    license_number = models.CharField(max_length=50, blank=True)
    bio = models.CharField(max_length=2000, blank=True)
    clinic = models.ForeignKey(Clinic, null=True, blank=True, on_delete=models.SET_NULL, related_name='doctors')
    specializations = models.ManyToManyField(
        Specialization, through='DoctorSpecialization', related_name='doctors', blank=True
    )

    class Meta:
        indexes = [models.Index(fields=['last_name', 'first_name'])]

    def __str__(self) -> str:
        return self.full_name

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class DoctorSpecialization(models.Model):
    doctor = models.ForeignKey(Doctor, on_delete=models.CASCADE, related_name='specialization_links')
    specialization = models.ForeignKey(Specialization, on_delete=models.CASCADE, related_name='doctor_links')
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        unique_together = ('doctor', 'specialization')


class DoctorDepartment(AuditedModel):
    """A doctor working in a department.  Removal soft-deletes the link."""
    doctor = models.ForeignKey(Doctor, on_delete=models.CASCADE, related_name='department_links')
    department = models.ForeignKey(Department, on_delete=models.CASCADE, related_name='doctor_links')
    role = models.CharField(max_length=100, blank=True)
    is_active = models.BooleanField(default=True)
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)

    class Meta:
        unique_together = ('doctor', 'department')

    def __str__(self) -> str:
        return f"{self.doctor_id} @ {self.department_id}"


class DoctorServiceCategory(AuditedModel):
    """Authorization of a doctor to perform the services of a category."""
    doctor = models.ForeignKey(Doctor, on_delete=models.CASCADE, related_name='service_category_links')
    service_category = models.ForeignKey(ServiceCategory, on_delete=models.CASCADE, related_name='doctor_links')
    authorization_level = models.CharField(max_length=50, blank=True)
    is_active = models.BooleanField(default=True)
    granted_date = models.DateTimeField(null=True, blank=True)
    expiry_date = models.DateTimeField(null=True, blank=True)
    certificate_number = models.CharField(max_length=100, blank=True)
    notes = models.CharField(max_length=500, blank=True)

    class Meta:
        unique_together = ('doctor', 'service_category')

    def __str__(self) -> str:
        return f"{self.doctor_id} -> {self.service_category_id}"


# ---------------------------------------------------------------------
# Schedules
# ---------------------------------------------------------------------
class DoctorSchedule(AuditedModel):
    doctor = models.ForeignKey(Doctor, on_delete=models.CASCADE, related_name='schedules')
    appointment_duration = models.PositiveIntegerField(default=30, help_text="Slot length in minutes")
    default_start_time = models.TimeField(null=True, blank=True)
    default_end_time = models.TimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    max_appointments_per_day = models.PositiveIntegerField(default=50)
    min_advance_booking_days = models.PositiveIntegerField(default=1)
    max_advance_booking_days = models.PositiveIntegerField(default=90)
    allow_same_day_booking = models.BooleanField(default=True)
    consultation_fee = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal('0'))
    cancellation_fee = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal('0'))
    cancellation_notice_hours = models.PositiveIntegerField(default=24)
    allow_emergency_booking = models.BooleanField(default=True)
    allow_walk_in_patients = models.BooleanField(default=False)
    max_walk_in_patients_per_day = models.PositiveIntegerField(default=5)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['doctor'], condition=models.Q(is_deleted=False), name='one_live_schedule_per_doctor'
            ),
        ]

    def __str__(self) -> str:
        return f"schedule #{self.pk} for doctor {self.doctor_id}"


class DoctorWorkDay(models.Model):
    # Sunday = 0 .. Saturday = 6
    DAY_CHOICES = [
        (0, 'Sunday'),
        (1, 'Monday'),
        (2, 'Tuesday'),
        (3, 'Wednesday'),
        (4, 'Thursday'),
        (5, 'Friday'),
        (6, 'Saturday'),
    ]
    schedule = models.ForeignKey(DoctorSchedule, on_delete=models.CASCADE, related_name='work_days')
    day_of_week = models.PositiveSmallIntegerField(choices=DAY_CHOICES)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ['day_of_week']


class DoctorTimeRange(models.Model):
    work_day = models.ForeignKey(DoctorWorkDay, on_delete=models.CASCADE, related_name='time_ranges')
    start_time = models.TimeField()
    end_time = models.TimeField()
    is_active = models.BooleanField(default=True)
    is_deleted = models.BooleanField(default=False)

    class Meta:
        ordering = ['start_time']


class Patient(SoftDeleteModel):
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    national_code = models.CharField(max_length=10, blank=True, db_index=True)
    phone_number = models.CharField(max_length=50, blank=True)
    date_of_birth = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    def __str__(self) -> str:
        return self.full_name

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Appointment(SoftDeleteModel):
    STATUS_CHOICES = [
        ('scheduled', 'Scheduled'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
        ('no_show', 'No show'),
    ]
    doctor = models.ForeignKey(Doctor, on_delete=models.CASCADE, related_name='appointments')
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='appointments')
    service_category = models.ForeignKey(
        ServiceCategory, null=True, blank=True, on_delete=models.SET_NULL, related_name='appointments'
    )
    appointment_date = models.DateTimeField(db_index=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='scheduled', db_index=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        indexes = [models.Index(fields=['doctor', 'appointment_date'])]


class DoctorTimeSlot(AuditedModel):
    STATUS_CHOICES = [
        ('available', 'Available'),
        ('booked', 'Booked'),
        ('blocked', 'Blocked'),
    ]
    doctor = models.ForeignKey(Doctor, on_delete=models.CASCADE, related_name='time_slots')
    appointment_date = models.DateField(db_index=True)
    start_time = models.TimeField()
    end_time = models.TimeField()
    duration = models.PositiveIntegerField(help_text="Minutes")
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='available')
    reason = models.CharField(max_length=500, blank=True)
    appointment = models.ForeignKey(Appointment, null=True, blank=True, on_delete=models.SET_NULL, related_name='+')

    class Meta:
        indexes = [models.Index(fields=['doctor', 'appointment_date', 'status'])]


# ---------------------------------------------------------------------
# Assignment history
# ---------------------------------------------------------------------
class DoctorAssignmentHistory(AuditedModel):
    IMPORTANCE_CHOICES = [
        ('normal', 'Normal'),
        ('important', 'Important'),
        ('critical', 'Critical'),
        ('security', 'Security'),
    ]
    doctor = models.ForeignKey(Doctor, on_delete=models.CASCADE, related_name='assignment_history')
    action_type = models.CharField(max_length=50, db_index=True)
    action_title = models.CharField(max_length=200)
    action_description = models.CharField(max_length=1000, blank=True)
    action_date = models.DateTimeField(default=timezone.now, db_index=True)
    department = models.ForeignKey(Department, null=True, blank=True, on_delete=models.SET_NULL, related_name='+')
    department_name = models.CharField(max_length=200, blank=True)
    service_categories = models.CharField(max_length=2000, blank=True)
    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )
    performed_by_name = models.CharField(max_length=200, blank=True)
    notes = models.CharField(max_length=1000, blank=True)
    previous_data = models.JSONField(null=True, blank=True)
    new_data = models.JSONField(null=True, blank=True)
    importance = models.CharField(max_length=10, choices=IMPORTANCE_CHOICES, default='normal', db_index=True)

    class Meta:
        verbose_name_plural = 'doctor assignment history'
        indexes = [models.Index(fields=['doctor', 'action_date'])]

    def __str__(self) -> str:
        return f"{self.action_type}: {self.action_title}"


# ---------------------------------------------------------------------
# Insurance
# ---------------------------------------------------------------------
class InsuranceProvider(models.Model):
    name = models.CharField(max_length=200)
    code = models.CharField(max_length=20, blank=True)
    is_active = models.BooleanField(default=True)

    def __str__(self) -> str:
        return self.name


class InsurancePlan(models.Model):
    TYPE_CHOICES = [
        ('primary', 'Primary'),
        ('supplementary', 'Supplementary'),
    ]
    provider = models.ForeignKey(InsuranceProvider, on_delete=models.PROTECT, related_name='plans')
    plan_code = models.CharField(max_length=20)
    name = models.CharField(max_length=200)
    insurance_type = models.CharField(max_length=15, choices=TYPE_CHOICES, default='primary')
    coverage_percent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0'))
    deductible = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal('0'))
    is_active = models.BooleanField(default=True)

    def __str__(self) -> str:
        return f"{self.provider} / {self.name}"


class PatientInsurance(AuditedModel):
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='insurances')
    plan = models.ForeignKey(InsurancePlan, on_delete=models.PROTECT, related_name='patient_insurances')
    policy_number = models.CharField(max_length=50, blank=True)
    card_number = models.CharField(max_length=50, blank=True)
    is_primary = models.BooleanField(default=True)
    expiry_date = models.DateField(null=True, blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        indexes = [models.Index(fields=['patient', 'is_primary', 'is_active'])]
