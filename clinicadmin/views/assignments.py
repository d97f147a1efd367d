"""
Doctor assignment endpoints: department links and service-category grants.
"""
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from clinicadmin.exceptions import NotFound
from clinicadmin.permissions import IsAdminRole, IsReceptionOrAdmin
from clinicadmin.serializers.assignments import (
    DepartmentAssignmentUpdateSerializer,
    DepartmentAssignSerializer,
    GrantListQuerySerializer,
    ServiceCategoryGrantSerializer,
    ServiceCategoryGrantUpdateSerializer,
)
from clinicadmin.serializers.common import PageQuerySerializer, page_payload
from clinicadmin.services import doctor_departments as dept_svc
from clinicadmin.services import doctor_service_categories as grant_svc
from clinicadmin.services.doctors import require_doctor


# ---------------------------------------------------------------------
# Departments
# ---------------------------------------------------------------------
@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def doctor_departments(request, pk: int):
    if request.method == 'POST':
        s = DepartmentAssignSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        vd = s.validated_data
        link = dept_svc.assign_department(
            pk, vd['departmentId'], role=vd['role'], start_date=vd.get('startDate'),
            end_date=vd.get('endDate'), notes=vd['notes'], user=request.user)
        return Response({'success': True, 'message': 'Department assigned',
                         'data': dept_svc.format_doctor_department(link)}, status=status.HTTP_201_CREATED)

    require_doctor(pk)
    q = PageQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    items, total = dept_svc.list_doctor_departments(
        pk, term=(vd.get('q') or '').strip() or None, page=vd.get('page'), page_size=vd.get('pageSize'))
    return Response(page_payload([dept_svc.format_doctor_department(x) for x in items], total,
                                 vd.get('page'), vd.get('pageSize')))


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAdminRole])
def doctor_department_detail(request, pk: int, department_id: int):
    if request.method == 'DELETE':
        notes = (request.data.get('notes') or '') if hasattr(request.data, 'get') else ''
        if not dept_svc.remove_department(pk, department_id, notes=notes, user=request.user):
            raise NotFound('Department assignment not found')
        return Response({'success': True, 'message': 'Department removed'})

    if request.method == 'PUT':
        s = DepartmentAssignmentUpdateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        link = dept_svc.update_doctor_department(pk, department_id, s.to_values(), user=request.user)
        return Response({'success': True, 'message': 'Assignment updated',
                         'data': dept_svc.format_doctor_department(link)})

    link = dept_svc.get_doctor_department(pk, department_id)
    if link is None:
        raise NotFound('Department assignment not found')
    return Response({'success': True, 'data': dept_svc.format_doctor_department(link)})


@api_view(['GET'])
@permission_classes([IsReceptionOrAdmin])
def department_doctors(request, department_id: int):
    """Active doctors working in a department."""
    items = dept_svc.active_doctors_for_department(department_id)
    return Response({'success': True, 'data': [{'id': d.id, 'fullName': d.full_name} for d in items]})


@api_view(['GET'])
@permission_classes([IsReceptionOrAdmin])
def department_service_categories(request, department_id: int):
    items = grant_svc.service_categories_for_department(department_id)
    return Response({'success': True, 'data': [{'id': c.id, 'title': c.title} for c in items]})


# ---------------------------------------------------------------------
# Service categories
# ---------------------------------------------------------------------
@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def doctor_service_categories(request, pk: int):
    if request.method == 'POST':
        s = ServiceCategoryGrantSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        vd = s.validated_data
        link = grant_svc.grant_service_category(
            pk, vd['serviceCategoryId'],
            authorization_level=vd['authorizationLevel'],
            granted_date=vd.get('grantedDate'),
            expiry_date=vd.get('expiryDate'),
            certificate_number=vd['certificateNumber'],
            notes=vd['notes'],
            user=request.user,
        )
        return Response({'success': True, 'message': 'Service category granted',
                         'data': grant_svc.format_grant(link)}, status=status.HTTP_201_CREATED)

    require_doctor(pk)
    q = PageQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    items, total = grant_svc.list_doctor_service_categories(
        pk, term=(vd.get('q') or '').strip() or None, page=vd.get('page'), page_size=vd.get('pageSize'))
    return Response(page_payload([grant_svc.format_grant(x) for x in items], total,
                                 vd.get('page'), vd.get('pageSize')))


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAdminRole])
def doctor_service_category_detail(request, pk: int, category_id: int):
    if request.method == 'DELETE':
        notes = (request.data.get('notes') or '') if hasattr(request.data, 'get') else ''
        if not grant_svc.revoke_service_category(pk, category_id, notes=notes, user=request.user):
            raise NotFound('Service category grant not found')
        return Response({'success': True, 'message': 'Service category revoked'})

    if request.method == 'PUT':
        s = ServiceCategoryGrantUpdateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        link = grant_svc.update_doctor_service_category(pk, category_id, s.to_values(), user=request.user)
        return Response({'success': True, 'message': 'Grant updated', 'data': grant_svc.format_grant(link)})

    link = grant_svc.get_doctor_service_category(pk, category_id)
    if link is None:
        raise NotFound('Service category grant not found')
    return Response({'success': True, 'data': grant_svc.format_grant(link)})


@api_view(['GET'])
@permission_classes([IsAdminRole])
def service_category_grants(request):
    """All grants across doctors with filters: q, doctorId, serviceCategoryId, isActive."""
    q = GrantListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    items, total = grant_svc.list_all_doctor_service_categories(
        term=(vd.get('q') or '').strip() or None,
        doctor_id=vd.get('doctorId'),
        category_id=vd.get('serviceCategoryId'),
        is_active=vd.get('isActive'),
        page=vd.get('page'),
        page_size=vd.get('pageSize'),
    )
    return Response(page_payload([grant_svc.format_grant(x) for x in items], total,
                                 vd.get('page'), vd.get('pageSize')))


@api_view(['GET'])
@permission_classes([IsReceptionOrAdmin])
def access_check(request, pk: int):
    """Query params: serviceCategoryId or serviceId."""
    try:
        category_id = int(request.query_params.get('serviceCategoryId') or 0)
        service_id = int(request.query_params.get('serviceId') or 0)
    except ValueError:
        return Response({'success': False, 'message': 'Ids must be integers'}, status=400)
    if not (category_id or service_id):
        return Response({'success': False, 'message': 'serviceCategoryId or serviceId is required'}, status=400)
    data = {}
    if category_id:
        data['serviceCategoryAccess'] = grant_svc.has_access_to_category(pk, category_id)
    if service_id:
        data['serviceAccess'] = grant_svc.has_access_to_service(pk, service_id)
    return Response({'success': True, 'data': data})


@api_view(['GET'])
@permission_classes([IsReceptionOrAdmin])
def authorized_doctors(request, category_id: int):
    items = grant_svc.authorized_doctors(category_id)
    return Response({'success': True, 'data': [{'id': d.id, 'fullName': d.full_name} for d in items]})
