"""
Reception desk endpoints.

Paths and payload keys match what the reception screens post, so they
use ``/Reception/...`` routes instead of the ``/api/`` prefix.  Browser
sessions must send the CSRF token (``csrfmiddlewaretoken`` form field or
``X-CSRFToken`` header); API clients authenticate with a token instead.
"""
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from clinicadmin.permissions import IsReceptionOrAdmin
from clinicadmin.serializers.reception import (
    DepartmentLoadSerializer,
    InsuranceFormSerializer,
    PatientIdSerializer,
    ServiceCalculateSerializer,
)
from clinicadmin.services import insurance_form, reception


@api_view(['POST'])
@permission_classes([IsReceptionOrAdmin])
def insurance_load(request):
    s = PatientIdSerializer(data=request.data)
    if not s.is_valid() or s.validated_data['patientId'] <= 0:
        return Response({'success': False, 'message': 'Invalid patient id'}, status=400)
    data = insurance_form.load_form(s.validated_data['patientId'])
    return Response({'success': True, 'data': data, 'message': 'Insurance data loaded'})


@api_view(['POST'])
@permission_classes([IsReceptionOrAdmin])
def insurance_save(request):
    s = InsuranceFormSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    data = insurance_form.save_form(vd['PatientId'], vd, snapshot=vd.get('snapshot') or None, user=request.user)
    return Response({'success': True, 'message': 'Insurance data saved', 'data': data})


@api_view(['POST'])
@permission_classes([IsReceptionOrAdmin])
def department_load(request):
    s = DepartmentLoadSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    data = reception.load_departments(s.validated_data.get('clinicId'))
    return Response({'success': True, 'data': data, 'message': f'{len(data)} departments'})


@api_view(['POST'])
@permission_classes([IsReceptionOrAdmin])
def service_calculate(request):
    s = ServiceCalculateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    data = reception.calculate_services(vd['patientId'], vd['serviceIds'], doctor_id=vd.get('doctorId'))
    return Response({'success': True, 'data': data, 'message': 'Calculation complete'})
