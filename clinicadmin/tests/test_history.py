from datetime import timedelta
from io import StringIO

import pytest
from django.core.management import call_command
from django.db import transaction
from django.urls import reverse
from django.utils import timezone

from clinicadmin.exceptions import NotFound
from clinicadmin.models import DoctorAssignmentHistory
from clinicadmin.services import assignment_history as svc

pytestmark = pytest.mark.django_db


@pytest.fixture
def entries(doctor, department, staff_admin):
    return [
        svc.record_assignment(doctor=doctor, department=department, user=staff_admin,
                              action_type='department_assigned', action_title='Assigned to Cardiology',
                              importance='important'),
        svc.record_assignment(doctor=doctor, action_type='service_category_revoked',
                              action_title='Revoked ECG', importance='critical', notes='Licence lapsed'),
    ]


def test_record_without_user_is_attributed_to_system(entries):
    assert entries[1].performed_by is None
    assert entries[1].performed_by_name == 'System'
    assert entries[0].performed_by_name == 'Nima Admin'


def test_stats_include_every_importance_level(entries):
    stats = svc.history_stats()
    assert stats['total'] == 2
    assert stats['byImportance'] == {'normal': 0, 'important': 1, 'critical': 1, 'security': 0}
    assert stats['byActionType'] == {'department_assigned': 1, 'service_category_revoked': 1}
    assert stats['byDepartment'] == {'Cardiology': 1, '': 1}
    assert stats['byUser'] == {'Nima Admin': 1, 'System': 1}


def test_search_by_term_and_filters(entries, department):
    items, total = svc.search_history(term='lapsed')
    assert total == 1 and items[0].pk == entries[1].pk
    items, total = svc.search_history(department_id=department.pk)
    assert [h.pk for h in items] == [entries[0].pk]
    assert svc.history_by_importance('critical') == [entries[1]]
    assert svc.history_by_action_type('department_assigned') == [entries[0]]


def test_date_window(entries):
    DoctorAssignmentHistory.objects.filter(pk=entries[0].pk).update(action_date=timezone.now() - timedelta(days=10))
    recent = svc.history_by_importance('important', date_from=timezone.now() - timedelta(days=1))
    assert recent == []


def test_doctor_history_is_newest_first(doctor, entries):
    items, total = svc.doctor_history(doctor.pk)
    assert total == 2
    assert items[0].pk == entries[1].pk


def test_update_and_delete(entries, staff_admin):
    entry = svc.update_history(entries[0].pk, {'notes': 'Checked'}, user=staff_admin)
    assert entry.notes == 'Checked'
    assert entry.updated_by == staff_admin
    assert svc.delete_history(entries[0].pk) is True
    assert svc.get_history(entries[0].pk) is None
    assert svc.delete_history(entries[0].pk) is False
    with pytest.raises(NotFound):
        svc.update_history(entries[0].pk, {'notes': 'again'})


def test_cleanup_archives_old_rows(entries):
    DoctorAssignmentHistory.objects.filter(pk=entries[0].pk).update(action_date=timezone.now() - timedelta(days=400))
    assert svc.cleanup_old_history(365) == 1
    old = DoctorAssignmentHistory.objects.get(pk=entries[0].pk)
    assert old.is_deleted is True
    assert old.deleted_by is None
    assert svc.cleanup_old_history(365) == 0


def test_cleanup_command(entries):
    DoctorAssignmentHistory.objects.filter(pk=entries[1].pk).update(action_date=timezone.now() - timedelta(days=40))
    out = StringIO()
    call_command('cleanup_history', '--days', '30', stdout=out)
    assert 'Archived 1' in out.getvalue()


def test_cleanup_endpoint_is_super_only(api_admin, api_super, entries):
    url = reverse('history_cleanup')
    assert api_admin.post(url, {'olderThanDays': 30}, format='json').status_code == 403
    r = api_super.post(url, {'olderThanDays': 30}, format='json')
    assert r.status_code == 200
    assert r.data['count'] == 0


def test_history_endpoints(api_admin, doctor, entries):
    r = api_admin.get(reverse('doctor_history', args=[doctor.pk]))
    assert r.data['pagination'] == {'total': 2, 'page': 1, 'pageSize': 20}

    r = api_admin.get(reverse('history_search'), {'importance': 'critical'})
    assert r.data['data'][0]['actionTitle'] == 'Revoked ECG'

    r = api_admin.get(reverse('history_search'), {'importance': 'bogus'})
    assert r.status_code == 400

    r = api_admin.get(reverse('history_stats'))
    assert r.data['data']['total'] == 2


def test_filters_by_department_and_performer(entries, department, staff_admin):
    assert svc.history_by_department(department.pk) == [entries[0]]
    assert svc.history_by_performer(staff_admin.pk) == [entries[0]]
    later = timezone.now() + timedelta(days=1)
    assert svc.history_by_department(department.pk, date_from=later) == []
    assert svc.history_by_performer(staff_admin.pk, date_to=later) == [entries[0]]


def test_department_and_performer_endpoints(api_admin, api_desk, entries, department, staff_admin):
    r = api_admin.get(reverse('department_history', args=[department.pk]))
    assert r.status_code == 200
    assert [h['id'] for h in r.data['data']] == [entries[0].pk]

    r = api_admin.get(reverse('performer_history', args=[staff_admin.pk]))
    assert [h['performedByName'] for h in r.data['data']] == ['Nima Admin']

    r = api_admin.get(reverse('performer_history', args=[staff_admin.pk]), {'dateFrom': 'yesterday'})
    assert r.status_code == 400

    assert api_desk.get(reverse('department_history', args=[department.pk])).status_code == 403


@pytest.fixture
def sent(monkeypatch):
    events = []
    monkeypatch.setattr(svc, 'broadcast', lambda event, payload: events.append((event, payload)))
    return events


def test_broadcast_waits_for_commit(doctor, sent, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        entry = svc.record_assignment(doctor=doctor, action_type='department_assigned',
                                      action_title='Assigned to Cardiology')
        assert sent == []
    assert len(sent) == 1
    event, payload = sent[0]
    assert event == 'assignment.changed'
    assert payload['historyId'] == entry.pk
    assert payload['doctorId'] == doctor.pk


def test_rolled_back_change_is_not_broadcast(doctor, department, sent, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        with pytest.raises(RuntimeError):
            with transaction.atomic():
                svc.record_assignment(doctor=doctor, department=department,
                                      action_type='department_assigned', action_title='Assigned')
                raise RuntimeError('boom')
    assert sent == []
    assert not DoctorAssignmentHistory.objects.filter(doctor=doctor).exists()
