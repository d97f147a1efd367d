import bleach
from rest_framework import serializers

from clinicadmin.models import Clinic, Doctor

# camelCase request key -> model field
DOCTOR_FIELD_MAP = {
    'firstName': 'first_name',
    'lastName': 'last_name',
    'doctorCode': 'doctor_code',
    'degree': 'degree',
    'graduationYear': 'graduation_year',
    'university': 'university',
    'gender': 'gender',
    'dateOfBirth': 'date_of_birth',
    'homeAddress': 'home_address',
    'officeAddress': 'office_address',
    'experienceYears': 'experience_years',
    'profileImageUrl': 'profile_image_url',
    'phoneNumber': 'phone_number',
    'nationalCode': 'national_code',
    'medicalCouncilCode': 'medical_council_code',
    'email': 'email',
    'licenseNumber': 'license_number',
    'bio': 'bio',
    'clinicId': 'clinic_id',
    'isActive': 'is_active',
}


class DoctorWriteSerializer(serializers.Serializer):
    firstName = serializers.CharField(max_length=100)
    lastName = serializers.CharField(max_length=100)
    doctorCode = serializers.CharField(max_length=20, required=False, allow_blank=True)
    degree = serializers.ChoiceField(choices=[c[0] for c in Doctor.DEGREE_CHOICES], required=False)
    graduationYear = serializers.IntegerField(min_value=1900, max_value=2100, required=False, allow_null=True)
    university = serializers.CharField(max_length=200, required=False, allow_blank=True)
    gender = serializers.ChoiceField(choices=[c[0] for c in Doctor.GENDER_CHOICES], required=False, allow_blank=True)
    dateOfBirth = serializers.DateField(required=False, allow_null=True)
    homeAddress = serializers.CharField(max_length=500, required=False, allow_blank=True)
    officeAddress = serializers.CharField(max_length=500, required=False, allow_blank=True)
    experienceYears = serializers.IntegerField(min_value=0, max_value=80, required=False, allow_null=True)
    profileImageUrl = serializers.CharField(max_length=500, required=False, allow_blank=True)
    phoneNumber = serializers.CharField(max_length=50, required=False, allow_blank=True)
    nationalCode = serializers.RegexField(r'^\d{10}$', required=False, allow_blank=True,
                                          error_messages={'invalid': 'National code must be 10 digits'})
    medicalCouncilCode = serializers.CharField(max_length=20, required=False, allow_blank=True)
    email = serializers.EmailField(max_length=100, required=False, allow_blank=True)
    licenseNumber = serializers.CharField(max_length=50, required=False, allow_blank=True)
    bio = serializers.CharField(max_length=2000, required=False, allow_blank=True)
    clinicId = serializers.IntegerField(required=False, allow_null=True)
    isActive = serializers.BooleanField(required=False)
    specializationIds = serializers.ListField(child=serializers.IntegerField(min_value=1), required=False)

    def validate_firstName(self, v):
        v = bleach.clean((v or '').strip(), strip=True)
        if not v:
            raise serializers.ValidationError('First name is required')
        return v

    def validate_lastName(self, v):
        v = bleach.clean((v or '').strip(), strip=True)
        if not v:
            raise serializers.ValidationError('Last name is required')
        return v

    def validate_clinicId(self, v):
        if v is not None and not Clinic.objects.alive().filter(pk=v).exists():
            raise serializers.ValidationError('Clinic not found')
        return v

    def to_values(self) -> dict:
        vd = self.validated_data
        return {DOCTOR_FIELD_MAP[k]: v for k, v in vd.items() if k in DOCTOR_FIELD_MAP}


class DoctorSearchSerializer(serializers.Serializer):
    q = serializers.CharField(required=False, allow_blank=True, max_length=200)
    clinicId = serializers.IntegerField(required=False, min_value=1)
    departmentId = serializers.IntegerField(required=False, min_value=1)
    specializationId = serializers.IntegerField(required=False, min_value=1)
    isActive = serializers.BooleanField(required=False, allow_null=True, default=None)
    page = serializers.IntegerField(required=False, min_value=1)
    pageSize = serializers.IntegerField(required=False, min_value=1, max_value=100)


class DoctorReportSerializer(serializers.Serializer):
    clinicId = serializers.IntegerField(required=False, min_value=1)
    departmentId = serializers.IntegerField(required=False, min_value=1)
    dateFrom = serializers.DateTimeField(required=False)
    dateTo = serializers.DateTimeField(required=False)
