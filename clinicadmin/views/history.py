from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from clinicadmin.exceptions import NotFound
from clinicadmin.permissions import IsAdminRole, IsSuper
from clinicadmin.serializers.common import PageQuerySerializer, page_payload
from clinicadmin.serializers.history import (
    CleanupSerializer,
    HistorySearchSerializer,
    HistoryUpdateSerializer,
    StatsQuerySerializer,
)
from clinicadmin.services import assignment_history as svc
from clinicadmin.services.doctors import require_doctor


@api_view(['GET'])
@permission_classes([IsAdminRole])
def doctor_history(request, pk: int):
    require_doctor(pk)
    q = PageQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    page, page_size = q.validated_data.get('page') or 1, q.validated_data.get('pageSize') or 20
    items, total = svc.doctor_history(pk, page=page, page_size=page_size)
    return Response(page_payload([svc.format_history(h) for h in items], total, page, page_size))


@api_view(['GET'])
@permission_classes([IsAdminRole])
def search_history(request):
    """Search the assignment history.

    Query params: q, doctorId, actionType, importance, departmentId,
    performedBy, dateFrom, dateTo, page, pageSize.
    """
    q = HistorySearchSerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    items, total = svc.search_history(
        term=(vd.get('q') or '').strip() or None,
        doctor_id=vd.get('doctorId'),
        action_type=vd.get('actionType') or None,
        importance=vd.get('importance'),
        department_id=vd.get('departmentId'),
        performed_by=vd.get('performedBy'),
        date_from=vd.get('dateFrom'),
        date_to=vd.get('dateTo'),
        page=vd.get('page'),
        page_size=vd.get('pageSize'),
    )
    return Response(page_payload([svc.format_history(h) for h in items], total, vd.get('page'), vd.get('pageSize')))


@api_view(['GET'])
@permission_classes([IsAdminRole])
def history_stats(request):
    q = StatsQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    return Response({'success': True, 'data': svc.history_stats(
        date_from=q.validated_data.get('dateFrom'), date_to=q.validated_data.get('dateTo'))})


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAdminRole])
def history_detail(request, history_id: int):
    if request.method == 'DELETE':
        if not svc.delete_history(history_id, user=request.user):
            raise NotFound('History record not found')
        return Response({'success': True, 'message': 'History record deleted'})

    if request.method == 'PUT':
        s = HistoryUpdateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        entry = svc.update_history(history_id, s.to_values(), user=request.user)
        return Response({'success': True, 'message': 'History record updated', 'data': svc.format_history(entry)})

    entry = svc.get_history(history_id)
    if entry is None:
        raise NotFound('History record not found')
    return Response({'success': True, 'data': svc.format_history(entry)})


@api_view(['POST'])
@permission_classes([IsSuper])
def history_cleanup(request):
    s = CleanupSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    count = svc.cleanup_old_history(s.validated_data.get('olderThanDays'))
    return Response({'success': True, 'message': f'{count} records archived', 'count': count})


@api_view(['GET'])
@permission_classes([IsAdminRole])
def department_history(request, department_id: int):
    """History of one department, newest first; optional dateFrom / dateTo."""
    q = StatsQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    items = svc.history_by_department(department_id, date_from=q.validated_data.get('dateFrom'),
                                      date_to=q.validated_data.get('dateTo'))
    return Response({'success': True, 'data': [svc.format_history(h) for h in items]})


@api_view(['GET'])
@permission_classes([IsAdminRole])
def performer_history(request, user_id: int):
    """Changes made by one staff member; optional dateFrom / dateTo."""
    q = StatsQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    items = svc.history_by_performer(user_id, date_from=q.validated_data.get('dateFrom'),
                                     date_to=q.validated_data.get('dateTo'))
    return Response({'success': True, 'data': [svc.format_history(h) for h in items]})
