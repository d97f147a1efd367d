from rest_framework import serializers


class DepartmentAssignSerializer(serializers.Serializer):
    departmentId = serializers.IntegerField(min_value=1)
    role = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    startDate = serializers.DateField(required=False, allow_null=True)
    endDate = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True, default='')

    def validate(self, attrs):
        start, end = attrs.get('startDate'), attrs.get('endDate')
        if start and end and end < start:
            raise serializers.ValidationError({'endDate': 'End date cannot be before start date'})
        return attrs


class DepartmentAssignmentUpdateSerializer(serializers.Serializer):
    role = serializers.CharField(max_length=100, required=False, allow_blank=True)
    isActive = serializers.BooleanField(required=False)
    startDate = serializers.DateField(required=False, allow_null=True)
    endDate = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True)

    FIELD_MAP = {'role': 'role', 'isActive': 'is_active', 'startDate': 'start_date',
                 'endDate': 'end_date', 'notes': 'notes'}

    def to_values(self) -> dict:
        return {self.FIELD_MAP[k]: v for k, v in self.validated_data.items()}


class ServiceCategoryGrantSerializer(serializers.Serializer):
    serviceCategoryId = serializers.IntegerField(min_value=1)
    authorizationLevel = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')
    grantedDate = serializers.DateTimeField(required=False, allow_null=True)
    expiryDate = serializers.DateTimeField(required=False, allow_null=True)
    certificateNumber = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    notes = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')

    def validate(self, attrs):
        granted, expiry = attrs.get('grantedDate'), attrs.get('expiryDate')
        if granted and expiry and expiry <= granted:
            raise serializers.ValidationError({'expiryDate': 'Expiry date must be after the granted date'})
        return attrs


class ServiceCategoryGrantUpdateSerializer(serializers.Serializer):
    authorizationLevel = serializers.CharField(max_length=50, required=False, allow_blank=True)
    isActive = serializers.BooleanField(required=False)
    grantedDate = serializers.DateTimeField(required=False, allow_null=True)
    expiryDate = serializers.DateTimeField(required=False, allow_null=True)
    certificateNumber = serializers.CharField(max_length=100, required=False, allow_blank=True)
    notes = serializers.CharField(max_length=500, required=False, allow_blank=True)

    FIELD_MAP = {'authorizationLevel': 'authorization_level', 'isActive': 'is_active',
                 'grantedDate': 'granted_date', 'expiryDate': 'expiry_date',
                 'certificateNumber': 'certificate_number', 'notes': 'notes'}

    def to_values(self) -> dict:
        return {self.FIELD_MAP[k]: v for k, v in self.validated_data.items()}


class GrantListQuerySerializer(serializers.Serializer):
    q = serializers.CharField(required=False, allow_blank=True, max_length=200)
    doctorId = serializers.IntegerField(required=False, min_value=1)
    serviceCategoryId = serializers.IntegerField(required=False, min_value=1)
    isActive = serializers.BooleanField(required=False, allow_null=True, default=None)
    page = serializers.IntegerField(required=False, min_value=1)
    pageSize = serializers.IntegerField(required=False, min_value=1, max_value=100)
