from rest_framework import serializers


class TimeRangeSerializer(serializers.Serializer):
    startTime = serializers.TimeField()
    endTime = serializers.TimeField()
    isActive = serializers.BooleanField(required=False, default=True)

    def validate(self, attrs):
        if attrs['startTime'] >= attrs['endTime']:
            raise serializers.ValidationError('Time range start must be before its end')
        return attrs


class WorkDaySerializer(serializers.Serializer):
    dayOfWeek = serializers.IntegerField(min_value=0, max_value=6, help_text="Sunday = 0")
    isActive = serializers.BooleanField(required=False, default=True)
    timeRanges = TimeRangeSerializer(many=True, required=False, default=list)


class ScheduleSerializer(serializers.Serializer):
    appointmentDuration = serializers.IntegerField(min_value=5, max_value=480, required=False)
    defaultStartTime = serializers.TimeField(required=False, allow_null=True)
    defaultEndTime = serializers.TimeField(required=False, allow_null=True)
    isActive = serializers.BooleanField(required=False)
    maxAppointmentsPerDay = serializers.IntegerField(min_value=1, required=False)
    minAdvanceBookingDays = serializers.IntegerField(min_value=0, required=False)
    maxAdvanceBookingDays = serializers.IntegerField(min_value=0, required=False)
    allowSameDayBooking = serializers.BooleanField(required=False)
    consultationFee = serializers.DecimalField(max_digits=18, decimal_places=2, min_value=0, required=False)
    cancellationFee = serializers.DecimalField(max_digits=18, decimal_places=2, min_value=0, required=False)
    cancellationNoticeHours = serializers.IntegerField(min_value=0, required=False)
    allowEmergencyBooking = serializers.BooleanField(required=False)
    allowWalkInPatients = serializers.BooleanField(required=False)
    maxWalkInPatientsPerDay = serializers.IntegerField(min_value=0, required=False)
    workDays = WorkDaySerializer(many=True, required=False)

    FIELD_MAP = {
        'appointmentDuration': 'appointment_duration',
        'defaultStartTime': 'default_start_time',
        'defaultEndTime': 'default_end_time',
        'isActive': 'is_active',
        'maxAppointmentsPerDay': 'max_appointments_per_day',
        'minAdvanceBookingDays': 'min_advance_booking_days',
        'maxAdvanceBookingDays': 'max_advance_booking_days',
        'allowSameDayBooking': 'allow_same_day_booking',
        'consultationFee': 'consultation_fee',
        'cancellationFee': 'cancellation_fee',
        'cancellationNoticeHours': 'cancellation_notice_hours',
        'allowEmergencyBooking': 'allow_emergency_booking',
        'allowWalkInPatients': 'allow_walk_in_patients',
        'maxWalkInPatientsPerDay': 'max_walk_in_patients_per_day',
    }

    def validate(self, attrs):
        start, end = attrs.get('defaultStartTime'), attrs.get('defaultEndTime')
        if start and end and start >= end:
            raise serializers.ValidationError({'defaultEndTime': 'Default end time must be after the start time'})
        days = [wd['dayOfWeek'] for wd in attrs.get('workDays') or []]
        if len(days) != len(set(days)):
            raise serializers.ValidationError({'workDays': 'Each day of week may appear only once'})
        return attrs

    def to_values(self) -> dict:
        return {self.FIELD_MAP[k]: v for k, v in self.validated_data.items() if k in self.FIELD_MAP}

    def work_days(self):
        if 'workDays' not in self.validated_data:
            return None
        return [
            {
                'day_of_week': wd['dayOfWeek'],
                'is_active': wd.get('isActive', True),
                'time_ranges': [
                    {'start_time': tr['startTime'], 'end_time': tr['endTime'], 'is_active': tr.get('isActive', True)}
                    for tr in wd.get('timeRanges') or []
                ],
            }
            for wd in self.validated_data['workDays']
        ]


class BlockRangeSerializer(serializers.Serializer):
    start = serializers.DateTimeField()
    end = serializers.DateTimeField()
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if attrs['start'] >= attrs['end']:
            raise serializers.ValidationError('Start time must be before end time')
        return attrs


class DateRangeQuerySerializer(serializers.Serializer):
    dateFrom = serializers.DateField(required=False)
    dateTo = serializers.DateField(required=False)
