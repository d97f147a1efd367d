"""Clinic administration application.

Holds the staffing schema (doctors, departments, service-category
authorizations, schedules, assignment history), the data-access services
over it, and the reception-desk endpoints.
"""
