"""
Django admin registrations.

Soft-deleted rows stay visible here (filter on ``is_deleted``) so that
superusers can inspect or restore them by hand.
"""

from django.contrib import admin
from django.db import transaction

from .models import (
    Appointment,
    Clinic,
    Department,
    Doctor,
    DoctorAssignmentHistory,
    DoctorDepartment,
    DoctorSchedule,
    DoctorServiceCategory,
    DoctorTimeRange,
    DoctorTimeSlot,
    DoctorWorkDay,
    InsurancePlan,
    InsuranceProvider,
    Patient,
    PatientInsurance,
    Service,
    ServiceCategory,
    Specialization,
    User,
)
from .services.common import invalidate_lookup_cache


class LookupCacheAdmin(admin.ModelAdmin):
    """Drops the reception department lists after edits."""

    def save_model(self, request, obj, form, change):
        super().save_model(request, obj, form, change)
        transaction.on_commit(invalidate_lookup_cache)

    def delete_model(self, request, obj):
        super().delete_model(request, obj)
        transaction.on_commit(invalidate_lookup_cache)


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'role', 'is_staff', 'is_superuser')
    list_filter = ('role',)
    search_fields = ('username', 'first_name', 'last_name')


@admin.register(Clinic)
class ClinicAdmin(LookupCacheAdmin):
    list_display = ('id', 'name', 'phone_number', 'is_active', 'is_deleted')
    list_filter = ('is_active', 'is_deleted')
    search_fields = ('name',)


@admin.register(Department)
class DepartmentAdmin(LookupCacheAdmin):
    list_display = ('id', 'name', 'code', 'clinic', 'is_active', 'is_deleted')
    list_filter = ('clinic', 'is_active', 'is_deleted')
    search_fields = ('name', 'code')


@admin.register(ServiceCategory)
class ServiceCategoryAdmin(admin.ModelAdmin):
    list_display = ('id', 'title', 'department', 'is_active', 'is_deleted')
    list_filter = ('department', 'is_active')
    search_fields = ('title',)


@admin.register(Service)
class ServiceAdmin(admin.ModelAdmin):
    list_display = ('id', 'title', 'service_code', 'price', 'category', 'is_active')
    list_filter = ('category', 'is_active')
    search_fields = ('title', 'service_code')


@admin.register(Specialization)
class SpecializationAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'display_order', 'is_active', 'is_deleted')
    search_fields = ('name',)


@admin.register(Doctor)
class DoctorAdmin(LookupCacheAdmin):
    list_display = ('id', 'last_name', 'first_name', 'medical_council_code', 'clinic', 'is_active', 'is_deleted')
    list_filter = ('is_active', 'is_deleted', 'degree', 'clinic')
    search_fields = ('first_name', 'last_name', 'national_code', 'medical_council_code')


@admin.register(DoctorDepartment)
class DoctorDepartmentAdmin(LookupCacheAdmin):
    list_display = ('doctor', 'department', 'role', 'is_active', 'is_deleted', 'start_date', 'end_date')
    list_filter = ('department', 'is_active', 'is_deleted')


@admin.register(DoctorServiceCategory)
class DoctorServiceCategoryAdmin(admin.ModelAdmin):
    list_display = ('doctor', 'service_category', 'authorization_level', 'is_active', 'expiry_date', 'is_deleted')
    list_filter = ('service_category', 'is_active', 'is_deleted')
    search_fields = ('certificate_number',)


class DoctorTimeRangeInline(admin.TabularInline):
    model = DoctorTimeRange
    extra = 0


@admin.register(DoctorWorkDay)
class DoctorWorkDayAdmin(admin.ModelAdmin):
    list_display = ('schedule', 'day_of_week', 'is_active')
    inlines = [DoctorTimeRangeInline]


class DoctorWorkDayInline(admin.TabularInline):
    model = DoctorWorkDay
    extra = 0


@admin.register(DoctorSchedule)
class DoctorScheduleAdmin(admin.ModelAdmin):
    list_display = ('id', 'doctor', 'appointment_duration', 'is_active', 'is_deleted')
    list_filter = ('is_active', 'is_deleted')
    inlines = [DoctorWorkDayInline]


@admin.register(DoctorTimeSlot)
class DoctorTimeSlotAdmin(admin.ModelAdmin):
    list_display = ('doctor', 'appointment_date', 'start_time', 'end_time', 'status', 'reason')
    list_filter = ('status', 'appointment_date')


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'doctor', 'patient', 'appointment_date', 'status')
    list_filter = ('status',)


@admin.register(DoctorAssignmentHistory)
class DoctorAssignmentHistoryAdmin(admin.ModelAdmin):
    list_display = ('action_date', 'doctor', 'action_type', 'importance', 'department_name', 'performed_by_name')
    list_filter = ('importance', 'action_type', 'is_deleted')
    search_fields = ('action_title', 'action_description', 'notes', 'performed_by_name')


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('id', 'last_name', 'first_name', 'national_code', 'phone_number')
    search_fields = ('first_name', 'last_name', 'national_code', 'phone_number')


@admin.register(InsuranceProvider)
class InsuranceProviderAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'code', 'is_active')


@admin.register(InsurancePlan)
class InsurancePlanAdmin(admin.ModelAdmin):
    list_display = ('id', 'provider', 'name', 'insurance_type', 'coverage_percent', 'deductible', 'is_active')
    list_filter = ('insurance_type', 'provider')


@admin.register(PatientInsurance)
class PatientInsuranceAdmin(admin.ModelAdmin):
    list_display = ('patient', 'plan', 'is_primary', 'policy_number', 'expiry_date', 'is_active', 'is_deleted')
    list_filter = ('is_primary', 'is_active', 'is_deleted')
