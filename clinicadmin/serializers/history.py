from rest_framework import serializers

from clinicadmin.models import DoctorAssignmentHistory

IMPORTANCE = [c[0] for c in DoctorAssignmentHistory.IMPORTANCE_CHOICES]


class HistorySearchSerializer(serializers.Serializer):
    q = serializers.CharField(required=False, allow_blank=True, max_length=200)
    doctorId = serializers.IntegerField(required=False, min_value=1)
    actionType = serializers.CharField(required=False, allow_blank=True, max_length=50)
    importance = serializers.ChoiceField(choices=IMPORTANCE, required=False)
    departmentId = serializers.IntegerField(required=False, min_value=1)
    performedBy = serializers.IntegerField(required=False, min_value=1)
    dateFrom = serializers.DateTimeField(required=False)
    dateTo = serializers.DateTimeField(required=False)
    page = serializers.IntegerField(required=False, min_value=1)
    pageSize = serializers.IntegerField(required=False, min_value=1, max_value=100)


class HistoryUpdateSerializer(serializers.Serializer):
    actionTitle = serializers.CharField(max_length=200, required=False)
    actionDescription = serializers.CharField(max_length=1000, required=False, allow_blank=True)
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True)
    importance = serializers.ChoiceField(choices=IMPORTANCE, required=False)

    FIELD_MAP = {'actionTitle': 'action_title', 'actionDescription': 'action_description',
                 'notes': 'notes', 'importance': 'importance'}

    def to_values(self) -> dict:
        return {self.FIELD_MAP[k]: v for k, v in self.validated_data.items()}


class StatsQuerySerializer(serializers.Serializer):
    dateFrom = serializers.DateTimeField(required=False)
    dateTo = serializers.DateTimeField(required=False)


class CleanupSerializer(serializers.Serializer):
    olderThanDays = serializers.IntegerField(min_value=1, required=False)
