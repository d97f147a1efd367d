"""
Management command to populate the database with demo data.
"""
from datetime import time, timedelta
from decimal import Decimal

from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from clinicadmin.models import (
    Appointment, Clinic, Department, Doctor, DoctorSchedule, InsurancePlan, InsuranceProvider,
    Patient, PatientInsurance, Service, ServiceCategory, Specialization, User,
)
from clinicadmin.services.doctor_departments import assign_department
from clinicadmin.services.doctor_service_categories import grant_service_category
from clinicadmin.services.schedules import create_schedule
from clinicadmin.services.specializations import set_doctor_specializations


class Command(BaseCommand):
    help = 'Populate database with demo data'

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write('Creating demo data...')

        users = self.create_users()
        admin = users[0]

        clinic = self.create_clinic(admin)
        departments = self.create_departments(clinic, admin)
        categories = self.create_service_categories(departments, admin)
        self.create_services(categories, admin)
        specializations = self.create_specializations(admin)
        doctors = self.create_doctors(clinic, admin)

        self.assign_doctors(doctors, departments, categories, specializations, admin)
        self.create_schedules(doctors, admin)

        patients = self.create_patients()
        self.create_insurance(patients, admin)
        self.create_appointments(doctors, patients, categories)

        self.stdout.write(self.style.SUCCESS('Demo data created.'))

    def create_users(self):
        users = []
        for username, role in [('admin1', 'admin'), ('reception1', 'reception'), ('super', 'super')]:
            user, _ = User.objects.get_or_create(
                username=username,
                defaults={'password': make_password('123456'), 'role': role,
                          'first_name': username.rstrip('1').capitalize()},
            )
            users.append(user)
            self.stdout.write(f'User: {user.username} ({user.role})')
        return users

    def create_clinic(self, admin):
        clinic, _ = Clinic.objects.get_or_create(
            name='Central Clinic',
            defaults={'address': '12 Valiasr St.', 'phone_number': '021-5550000', 'created_by': admin},
        )
        return clinic

    def create_departments(self, clinic, admin):
        departments = []
        for code, name in [('INT', 'Internal Medicine'), ('SUR', 'Surgery'), ('PED', 'Pediatrics')]:
            dept, _ = Department.objects.get_or_create(
                clinic=clinic, code=code, defaults={'name': name, 'created_by': admin})
            departments.append(dept)
            self.stdout.write(f'Department: {dept.name}')
        return departments

    def create_service_categories(self, departments, admin):
        categories = []
        for dept in departments:
            for title in ('Visit', 'Procedures'):
                cat, _ = ServiceCategory.objects.get_or_create(
                    department=dept, title=f'{dept.name} {title}', defaults={'created_by': admin})
                categories.append(cat)
        return categories

    def create_services(self, categories, admin):
        for i, cat in enumerate(categories, start=1):
            for j, price in enumerate((Decimal('850000'), Decimal('1200000')), start=1):
                Service.objects.get_or_create(
                    category=cat, service_code=f'S{i:02d}{j}',
                    defaults={'title': f'{cat.title} #{j}', 'price': price, 'created_by': admin},
                )

    def create_specializations(self, admin):
        specs = []
        for order, name in enumerate(['Cardiology', 'Neurology', 'Orthopedics', 'Pediatrics'], start=1):
            spec, _ = Specialization.objects.get_or_create(
                name=name, defaults={'display_order': order, 'created_by': admin})
            specs.append(spec)
        return specs

    def create_doctors(self, clinic, admin):
        doctors = []
        rows = [
            ('Sara', 'Ahmadi', '1234567890', 'MC-1001', 'female', 'specialist'),
            ('Reza', 'Karimi', '1234567891', 'MC-1002', 'male', 'general'),
            ('Leila', 'Moradi', '1234567892', 'MC-1003', 'female', 'subspecialist'),
        ]
        for first, last, national, council, gender, degree in rows:
            doctor, _ = Doctor.objects.get_or_create(
                medical_council_code=council,
                defaults={'first_name': first, 'last_name': last, 'national_code': national,
                          'gender': gender, 'degree': degree, 'clinic': clinic, 'created_by': admin},
            )
            doctors.append(doctor)
            self.stdout.write(f'Doctor: {doctor.full_name}')
        return doctors

    def assign_doctors(self, doctors, departments, categories, specializations, admin):
        for i, doctor in enumerate(doctors):
            dept = departments[i % len(departments)]
            if not doctor.department_links.filter(department=dept).exists():
                assign_department(doctor.pk, dept.pk, role='Attending', user=admin)
            for cat in [c for c in categories if c.department_id == dept.pk]:
                if not doctor.service_category_links.filter(service_category=cat).exists():
                    grant_service_category(doctor.pk, cat.pk, authorization_level='Full', user=admin)
            set_doctor_specializations(doctor.pk, [specializations[i % len(specializations)].pk])

    def create_schedules(self, doctors, admin):
        # Saturday to Wednesday, morning and afternoon
        work_days = [
            {'day_of_week': dow, 'time_ranges': [
                {'start_time': time(8, 30), 'end_time': time(12, 0)},
                {'start_time': time(14, 0), 'end_time': time(17, 0)},
            ]}
            for dow in (6, 0, 1, 2, 3)
        ]
        for doctor in doctors:
            if DoctorSchedule.objects.alive().filter(doctor=doctor).exists():
                continue
            create_schedule(doctor.pk, {'appointment_duration': 20, 'consultation_fee': Decimal('900000')},
                            work_days=work_days, user=admin)

    def create_patients(self):
        patients = []
        for i, (first, last) in enumerate([('Ali', 'Rahimi'), ('Maryam', 'Hosseini'), ('Hamed', 'Jafari')]):
            patient, _ = Patient.objects.get_or_create(
                national_code=f'00{i}1234567'[:10],
                defaults={'first_name': first, 'last_name': last, 'phone_number': f'0912000000{i}'},
            )
            patients.append(patient)
        return patients

    def create_insurance(self, patients, admin):
        tamin, _ = InsuranceProvider.objects.get_or_create(code='TAMIN', defaults={'name': 'Social Security'})
        salamat, _ = InsuranceProvider.objects.get_or_create(code='SALAMAT', defaults={'name': 'Health Insurance'})
        dana, _ = InsuranceProvider.objects.get_or_create(code='DANA', defaults={'name': 'Dana Supplementary'})
        basic, _ = InsurancePlan.objects.get_or_create(
            provider=tamin, plan_code='T-BASIC',
            defaults={'name': 'Basic', 'coverage_percent': Decimal('70'), 'insurance_type': 'primary'})
        InsurancePlan.objects.get_or_create(
            provider=salamat, plan_code='S-BASIC',
            defaults={'name': 'Basic', 'coverage_percent': Decimal('65'), 'insurance_type': 'primary'})
        gold, _ = InsurancePlan.objects.get_or_create(
            provider=dana, plan_code='D-GOLD',
            defaults={'name': 'Gold', 'coverage_percent': Decimal('90'), 'insurance_type': 'supplementary'})
        for patient in patients[:2]:
            if not patient.insurances.exists():
                PatientInsurance.objects.create(patient=patient, plan=basic, policy_number='POL1001',
                                                card_number='1000200030', is_primary=True, created_by=admin)
        first = patients[0]
        if not first.insurances.filter(is_primary=False).exists():
            PatientInsurance.objects.create(
                patient=first, plan=gold, policy_number='DANA77', is_primary=False,
                expiry_date=timezone.localdate() + timedelta(days=365), created_by=admin)

    def create_appointments(self, doctors, patients, categories):
        tomorrow = timezone.localtime() + timedelta(days=1)
        start = tomorrow.replace(hour=9, minute=0, second=0, microsecond=0)
        for i, doctor in enumerate(doctors):
            Appointment.objects.get_or_create(
                doctor=doctor, patient=patients[i % len(patients)],
                appointment_date=start + timedelta(minutes=20 * i),
                defaults={'service_category': categories[0]},
            )
