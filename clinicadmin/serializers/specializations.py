import bleach
from rest_framework import serializers


class SpecializationSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    description = serializers.CharField(max_length=500, required=False, allow_blank=True)
    isActive = serializers.BooleanField(required=False)
    displayOrder = serializers.IntegerField(min_value=0, required=False)

    FIELD_MAP = {'name': 'name', 'description': 'description', 'isActive': 'is_active',
                 'displayOrder': 'display_order'}

    def validate_name(self, v):
        v = bleach.clean((v or '').strip(), strip=True)
        if len(v) < 2:
            raise serializers.ValidationError('Name must be at least 2 characters')
        return v

    def to_values(self) -> dict:
        return {self.FIELD_MAP[k]: v for k, v in self.validated_data.items()}


class DoctorSpecializationsSerializer(serializers.Serializer):
    specializationIds = serializers.ListField(child=serializers.IntegerField(min_value=1), allow_empty=True)
