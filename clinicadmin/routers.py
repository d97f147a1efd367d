"""
URL mappings for the clinic administration API.

Admin endpoints live under ``/api/``; the reception desk keeps the
``/Reception/...`` paths its screens already call.  Trailing slashes are
deliberately omitted.
"""
from django.urls import include, path

from .auth_views import jwt_logout_view, jwt_refresh_view, login_view
from .views import assignments, doctors, health, history, reception, schedules, specializations

urlpatterns = [
    path('metrics', include('django_prometheus.urls')),
    path('healthz', health.healthz, name='healthz'),

    # Authentication
    path('api/auth/login', login_view, name='login_view'),
    path('api/auth/refresh', jwt_refresh_view, name='jwt_refresh'),
    path('api/auth/logout', jwt_logout_view, name='jwt_logout'),

    # Doctors
    path('api/doctors', doctors.doctors, name='doctors'),
    path('api/doctors/lookup', doctors.doctor_lookup, name='doctor_lookup'),
    path('api/doctors/stats', doctors.doctor_stats, name='doctor_stats'),
    path('api/doctors/report', doctors.active_doctors_report, name='doctor_report'),
    path('api/doctors/code-check', doctors.code_check, name='doctor_code_check'),
    path('api/doctors/<int:pk>', doctors.doctor_detail, name='doctor_detail'),
    path('api/doctors/<int:pk>/restore', doctors.doctor_restore, name='doctor_restore'),
    path('api/doctors/<int:pk>/dependencies', doctors.doctor_dependencies, name='doctor_dependencies'),

    # Department assignments
    path('api/doctors/<int:pk>/departments', assignments.doctor_departments, name='doctor_departments'),
    path('api/doctors/<int:pk>/departments/<int:department_id>', assignments.doctor_department_detail,
         name='doctor_department_detail'),
    path('api/departments/<int:department_id>/doctors', assignments.department_doctors, name='department_doctors'),
    path('api/departments/<int:department_id>/service-categories', assignments.department_service_categories,
         name='department_service_categories'),

    # Service-category grants
    path('api/doctors/<int:pk>/service-categories', assignments.doctor_service_categories,
         name='doctor_service_categories'),
    path('api/doctors/<int:pk>/service-categories/<int:category_id>', assignments.doctor_service_category_detail,
         name='doctor_service_category_detail'),
    path('api/doctors/<int:pk>/access', assignments.access_check, name='doctor_access'),
    path('api/service-categories/grants', assignments.service_category_grants, name='service_category_grants'),
    path('api/service-categories/<int:category_id>/doctors', assignments.authorized_doctors,
         name='authorized_doctors'),

    # Schedules
    path('api/schedules', schedules.schedules, name='schedules'),
    path('api/schedules/<int:schedule_id>', schedules.schedule_detail, name='schedule_detail'),
    path('api/doctors/<int:pk>/schedule', schedules.doctor_schedule, name='doctor_schedule'),
    path('api/doctors/<int:pk>/slots', schedules.available_slots, name='doctor_slots'),
    path('api/doctors/<int:pk>/blocked', schedules.blocked_ranges, name='doctor_blocked'),

    # Assignment history
    path('api/history', history.search_history, name='history_search'),
    path('api/history/stats', history.history_stats, name='history_stats'),
    path('api/history/cleanup', history.history_cleanup, name='history_cleanup'),
    path('api/history/<int:history_id>', history.history_detail, name='history_detail'),
    path('api/doctors/<int:pk>/history', history.doctor_history, name='doctor_history'),
    path('api/departments/<int:department_id>/history', history.department_history, name='department_history'),
    path('api/users/<int:user_id>/history', history.performer_history, name='performer_history'),

    # Specializations
    path('api/specializations', specializations.specializations, name='specializations'),
    path('api/specializations/<int:spec_id>', specializations.specialization_detail, name='specialization_detail'),
    path('api/specializations/<int:spec_id>/restore', specializations.specialization_restore,
         name='specialization_restore'),
    path('api/doctors/<int:pk>/specializations', specializations.doctor_specializations,
         name='doctor_specializations'),

    # Reception desk
    path('Reception/Insurance/Load', reception.insurance_load, name='reception_insurance_load'),
    path('Reception/Insurance/Save', reception.insurance_save, name='reception_insurance_save'),
    path('Reception/Department/Load', reception.department_load, name='reception_department_load'),
    path('Reception/Service/Calculate', reception.service_calculate, name='reception_service_calculate'),
]
