from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from clinicadmin.exceptions import NotFound
from clinicadmin.permissions import IsAdminRole, IsReceptionOrAdmin
from clinicadmin.serializers.specializations import DoctorSpecializationsSerializer, SpecializationSerializer
from clinicadmin.services import specializations as svc
from clinicadmin.services.doctors import require_doctor


@api_view(['GET', 'POST'])
@permission_classes([IsReceptionOrAdmin])
def specializations(request):
    """GET lists active specializations (``all=1`` includes inactive); POST creates one."""
    if request.method == 'POST':
        if not IsAdminRole().has_permission(request, None):
            return Response({'success': False, 'message': 'Administrator role required'}, status=403)
        s = SpecializationSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        spec = svc.create_specialization(s.to_values(), user=request.user)
        return Response({'success': True, 'message': 'Specialization created', 'data': svc.format_specialization(spec)},
                        status=status.HTTP_201_CREATED)

    include_all = (request.query_params.get('all') or '0') in ['1', 'true', 'True']
    items = svc.all_specializations() if include_all else svc.active_specializations()
    return Response({'success': True, 'data': [svc.format_specialization(x) for x in items]})


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAdminRole])
def specialization_detail(request, spec_id: int):
    if request.method == 'DELETE':
        if not svc.soft_delete_specialization(spec_id, user=request.user):
            raise NotFound('Specialization not found')
        return Response({'success': True, 'message': 'Specialization deleted'})

    if request.method == 'PUT':
        s = SpecializationSerializer(data=request.data, partial=True)
        s.is_valid(raise_exception=True)
        spec = svc.update_specialization(spec_id, s.to_values(), user=request.user)
        return Response({'success': True, 'message': 'Specialization updated', 'data': svc.format_specialization(spec)})

    spec = svc.get_specialization(spec_id)
    if spec is None:
        raise NotFound('Specialization not found')
    return Response({'success': True, 'data': svc.format_specialization(
        spec, doctor_count=svc.active_doctor_count(spec.pk))})


@api_view(['POST'])
@permission_classes([IsAdminRole])
def specialization_restore(request, spec_id: int):
    if not svc.restore_specialization(spec_id, user=request.user):
        raise NotFound('No deleted specialization with this id')
    return Response({'success': True, 'message': 'Specialization restored'})


@api_view(['GET', 'PUT'])
@permission_classes([IsAdminRole])
def doctor_specializations(request, pk: int):
    require_doctor(pk)
    if request.method == 'PUT':
        s = DoctorSpecializationsSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        svc.set_doctor_specializations(pk, s.validated_data['specializationIds'])
    items = svc.doctor_specializations(pk)
    return Response({'success': True, 'data': [svc.format_specialization(x) for x in items]})
