from datetime import date

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from clinicadmin.exceptions import NotFound
from clinicadmin.permissions import IsAdminRole, IsReceptionOrAdmin
from clinicadmin.serializers.schedules import BlockRangeSerializer, DateRangeQuerySerializer, ScheduleSerializer
from clinicadmin.services import schedules as svc


@api_view(['GET'])
@permission_classes([IsAdminRole])
def schedules(request):
    return Response({'success': True, 'data': [svc.format_schedule(s) for s in svc.list_schedules()]})


@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def doctor_schedule(request, pk: int):
    if request.method == 'POST':
        s = ScheduleSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        schedule = svc.create_schedule(pk, s.to_values(), work_days=s.work_days(), user=request.user)
        return Response({'success': True, 'message': 'Schedule created', 'data': svc.format_schedule(schedule)},
                        status=status.HTTP_201_CREATED)

    schedule = svc.get_schedule(pk)
    if schedule is None:
        raise NotFound('Doctor has no schedule')
    return Response({'success': True, 'data': svc.format_schedule(schedule)})


@api_view(['PUT', 'DELETE'])
@permission_classes([IsAdminRole])
def schedule_detail(request, schedule_id: int):
    if request.method == 'DELETE':
        if not svc.delete_schedule(schedule_id, user=request.user):
            raise NotFound('Schedule not found')
        return Response({'success': True, 'message': 'Schedule deleted'})

    s = ScheduleSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    schedule = svc.update_schedule(schedule_id, s.to_values(), work_days=s.work_days(), user=request.user)
    return Response({'success': True, 'message': 'Schedule updated', 'data': svc.format_schedule(schedule)})


@api_view(['GET'])
@permission_classes([IsReceptionOrAdmin])
def available_slots(request, pk: int):
    """Free slots for one day.  Query param: date=YYYY-MM-DD."""
    raw = request.query_params.get('date')
    try:
        day = date.fromisoformat(raw) if raw else None
    except ValueError:
        day = None
    if day is None:
        return Response({'success': False, 'message': 'date must be YYYY-MM-DD'}, status=400)
    slots = svc.available_slots(pk, day)
    return Response({'success': True, 'date': day.isoformat(), 'data': [s.as_dict() for s in slots]})


@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def blocked_ranges(request, pk: int):
    if request.method == 'POST':
        s = BlockRangeSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        vd = s.validated_data
        blocks = svc.block_time_range(pk, vd['start'], vd['end'], reason=vd['reason'], user=request.user)
        return Response({'success': True, 'message': f'{len(blocks)} slots blocked',
                         'data': [svc.format_block(b) for b in blocks]}, status=status.HTTP_201_CREATED)

    q = DateRangeQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    items = svc.blocked_time_ranges(pk, date_from=q.validated_data.get('dateFrom'),
                                    date_to=q.validated_data.get('dateTo'))
    return Response({'success': True, 'data': [svc.format_block(b) for b in items]})
