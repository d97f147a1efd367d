"""
Validators for the reception desk endpoints.

Field names follow the reception screens (PascalCase), so the same
payload the browser posts can be validated as-is.
"""
from django.utils import timezone
from rest_framework import serializers

from clinicadmin.models import InsurancePlan, InsuranceProvider

POLICY_RE = r'^[a-zA-Z0-9]+$'
CARD_RE = r'^[0-9]+$'


class PatientIdSerializer(serializers.Serializer):
    patientId = serializers.IntegerField()


class DepartmentLoadSerializer(serializers.Serializer):
    clinicId = serializers.IntegerField(required=False, allow_null=True, min_value=1)


class ServiceCalculateSerializer(serializers.Serializer):
    patientId = serializers.IntegerField(min_value=1)
    serviceIds = serializers.ListField(child=serializers.IntegerField(min_value=1), allow_empty=False)
    doctorId = serializers.IntegerField(required=False, allow_null=True, min_value=1)


class InsuranceFormSerializer(serializers.Serializer):
    PatientId = serializers.IntegerField(min_value=1)
    PrimaryInsuranceId = serializers.IntegerField(required=False, allow_null=True)
    PrimaryPlanId = serializers.IntegerField(required=False, allow_null=True)
    PrimaryPolicyNumber = serializers.RegexField(
        POLICY_RE, min_length=3, max_length=50, required=False, allow_blank=True,
        error_messages={'invalid': 'Policy number may contain only letters and digits'})
    PrimaryCardNumber = serializers.RegexField(
        CARD_RE, min_length=3, max_length=50, required=False, allow_blank=True,
        error_messages={'invalid': 'Card number may contain only digits'})
    SupplementaryInsuranceId = serializers.IntegerField(required=False, allow_null=True)
    SupplementaryPlanId = serializers.IntegerField(required=False, allow_null=True)
    SupplementaryPolicyNumber = serializers.RegexField(
        POLICY_RE, min_length=3, max_length=50, required=False, allow_blank=True,
        error_messages={'invalid': 'Policy number may contain only letters and digits'})
    SupplementaryExpiryDate = serializers.DateField(required=False, allow_null=True)
    snapshot = serializers.CharField(required=False, allow_blank=True)

    def _plan(self, plan_id, provider_id, insurance_type, field):
        plan = (InsurancePlan.objects.select_related('provider')
                .filter(pk=plan_id, is_active=True, provider__is_active=True).first())
        if plan is None:
            raise serializers.ValidationError({field: 'Insurance plan not found'})
        if plan.provider_id != provider_id:
            raise serializers.ValidationError({field: 'Plan does not belong to the selected insurer'})
        if plan.insurance_type != insurance_type:
            raise serializers.ValidationError({field: f'Plan is not a {insurance_type} plan'})
        return plan

    def validate(self, attrs):
        errors = {}
        primary_provider = attrs.get('PrimaryInsuranceId')
        supplementary_provider = attrs.get('SupplementaryInsuranceId')

        if not primary_provider:
            errors['PrimaryInsuranceId'] = 'Primary insurer is required'
        elif not InsuranceProvider.objects.filter(pk=primary_provider, is_active=True).exists():
            errors['PrimaryInsuranceId'] = 'Primary insurer not found'
        elif not attrs.get('PrimaryPlanId'):
            errors['PrimaryPlanId'] = 'Primary plan is required'

        if supplementary_provider:
            if supplementary_provider == primary_provider:
                errors['SupplementaryInsuranceId'] = 'Supplementary insurer must differ from the primary insurer'
            elif not attrs.get('SupplementaryPlanId'):
                errors['SupplementaryPlanId'] = 'Supplementary plan is required'
        expiry = attrs.get('SupplementaryExpiryDate')
        if expiry and expiry < timezone.localdate():
            errors['SupplementaryExpiryDate'] = 'Supplementary insurance has expired'
        if errors:
            raise serializers.ValidationError(errors)

        attrs['PrimaryPlan'] = self._plan(attrs['PrimaryPlanId'], primary_provider, 'primary', 'PrimaryPlanId')
        attrs['SupplementaryPlan'] = None
        if supplementary_provider:
            attrs['SupplementaryPlan'] = self._plan(
                attrs['SupplementaryPlanId'], supplementary_provider, 'supplementary', 'SupplementaryPlanId')
        return attrs
