from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from clinicadmin.exceptions import NotFound
from clinicadmin.permissions import IsAdminRole, IsReceptionOrAdmin
from clinicadmin.serializers.common import page_payload
from clinicadmin.serializers.doctors import DoctorReportSerializer, DoctorSearchSerializer, DoctorWriteSerializer
from clinicadmin.services import doctors as svc
from clinicadmin.services.specializations import specialization_exists


@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def doctors(request):
    """List/search doctors (GET) or create one (POST).

    Query params for GET:
      - q: matches first/last name, national code and council code
      - clinicId, departmentId, specializationId, isActive
      - page, pageSize
    """
    if request.method == 'POST':
        s = DoctorWriteSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        doctor = svc.create_doctor_with_specializations(
            s.to_values(), s.validated_data.get('specializationIds') or [], user=request.user)
        return Response({'success': True, 'message': 'Doctor created', 'data': svc.format_doctor(doctor, detail=True)},
                        status=status.HTTP_201_CREATED)

    q = DoctorSearchSerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    if vd.get('specializationId') and not specialization_exists(vd['specializationId']):
        raise NotFound('Specialization not found')
    items, total = svc.search_doctors(
        term=(vd.get('q') or '').strip() or None,
        clinic_id=vd.get('clinicId'),
        department_id=vd.get('departmentId'),
        specialization_id=vd.get('specializationId'),
        is_active=vd.get('isActive'),
        page=vd.get('page'),
        page_size=vd.get('pageSize'),
    )
    return Response(page_payload([svc.format_doctor(d) for d in items], total, vd.get('page'), vd.get('pageSize')))


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAdminRole])
def doctor_detail(request, pk: int):
    if request.method == 'DELETE':
        if not svc.soft_delete_doctor(pk, user=request.user):
            raise NotFound('Doctor not found')
        return Response({'success': True, 'message': 'Doctor deleted'})

    if request.method == 'PUT':
        s = DoctorWriteSerializer(data=request.data, partial=True)
        s.is_valid(raise_exception=True)
        doctor = svc.update_doctor_with_specializations(
            pk, s.to_values(), s.validated_data.get('specializationIds'), user=request.user)
        doctor = svc.get_doctor(doctor.pk)
        return Response({'success': True, 'message': 'Doctor updated', 'data': svc.format_doctor(doctor, detail=True)})

    doctor = svc.get_doctor(pk)
    if doctor is None:
        raise NotFound('Doctor not found')
    return Response({'success': True, 'data': svc.format_doctor(doctor, detail=True)})


@api_view(['POST'])
@permission_classes([IsAdminRole])
def doctor_restore(request, pk: int):
    if not svc.restore_doctor(pk, user=request.user):
        raise NotFound('No deleted doctor with this id')
    return Response({'success': True, 'message': 'Doctor restored'})


@api_view(['GET'])
@permission_classes([IsAdminRole])
def doctor_dependencies(request, pk: int):
    return Response({'success': True, 'data': svc.dependency_info(pk)})


@api_view(['GET'])
@permission_classes([IsReceptionOrAdmin])
def doctor_lookup(request):
    """Active doctors for dropdowns; filter with clinicId / departmentId."""
    q = DoctorReportSerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    items = svc.active_doctors_for(clinic_id=q.validated_data.get('clinicId'),
                                   department_id=q.validated_data.get('departmentId'))
    return Response({'success': True, 'data': [{'id': d.id, 'fullName': d.full_name} for d in items]})


@api_view(['GET'])
@permission_classes([IsAdminRole])
def doctor_stats(request):
    return Response({'success': True, 'data': {
        'total': svc.count_doctors(),
        'active': svc.count_active_doctors(),
    }})


@api_view(['GET'])
@permission_classes([IsAdminRole])
def active_doctors_report(request):
    q = DoctorReportSerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    data = svc.active_doctors_report(clinic_id=vd.get('clinicId'), department_id=vd.get('departmentId'),
                                     date_from=vd.get('dateFrom'), date_to=vd.get('dateTo'))
    return Response({'success': True, 'data': data})


@api_view(['GET'])
@permission_classes([IsAdminRole])
def code_check(request):
    """Is a medical council / national code already taken?

    Query params: medicalCouncilCode or nationalCode, optional excludeId.
    """
    try:
        exclude = int(request.query_params.get('excludeId')) if request.query_params.get('excludeId') else None
    except ValueError:
        return Response({'success': False, 'message': 'excludeId must be an integer'}, status=400)
    council = request.query_params.get('medicalCouncilCode') or request.query_params.get('medical_council_code')
    national = request.query_params.get('nationalCode') or request.query_params.get('national_code')
    return Response({'success': True, 'data': {
        'medicalCouncilCodeExists': svc.medical_council_code_exists(council, exclude_id=exclude),
        'nationalCodeExists': svc.national_code_exists(national, exclude_id=exclude),
    }})
