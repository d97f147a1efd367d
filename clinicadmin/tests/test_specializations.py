"""
Specialization catalogue and doctor specialization links.

Written with DRF's APITestCase so each test runs against fresh fixtures
created in ``setUp``.
"""
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from clinicadmin.exceptions import Conflict, NotFound
from clinicadmin.models import Doctor, Specialization, User
from clinicadmin.services import specializations as svc


class SpecializationAPITests(APITestCase):
    def setUp(self) -> None:
        self.admin = User.objects.create_user(username='admin1', password='P@ssw0rd1', role='admin')
        self.client.force_authenticate(user=self.admin)
        self.cardio = Specialization.objects.create(name='Cardiology', display_order=2)
        self.neuro = Specialization.objects.create(name='Neurology', display_order=1)
        self.doctor = Doctor.objects.create(first_name='Sara', last_name='Ahmadi')

    def test_list_is_ordered_by_display_order(self):
        r = self.client.get(reverse('specializations'))
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual([s['name'] for s in r.data['data']], ['Neurology', 'Cardiology'])

    def test_inactive_hidden_unless_all(self):
        Specialization.objects.create(name='Dermatology', is_active=False)
        r = self.client.get(reverse('specializations'))
        self.assertEqual(len(r.data['data']), 2)
        r = self.client.get(reverse('specializations'), {'all': '1'})
        self.assertEqual(len(r.data['data']), 3)

    def test_duplicate_name_is_a_conflict(self):
        r = self.client.post(reverse('specializations'), {'name': 'cardiology'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_409_CONFLICT)

    def test_short_name_is_rejected(self):
        r = self.client.post(reverse('specializations'), {'name': 'X'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('name', r.data['error']['fields'])

    def test_delete_and_restore(self):
        url = reverse('specialization_detail', args=[self.cardio.pk])
        self.assertEqual(self.client.delete(url).status_code, status.HTTP_200_OK)
        self.assertEqual(self.client.get(url).status_code, status.HTTP_404_NOT_FOUND)
        r = self.client.post(reverse('specialization_restore', args=[self.cardio.pk]))
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(self.client.get(url).status_code, status.HTTP_200_OK)

    def test_restore_refused_when_name_reused(self):
        svc.soft_delete_specialization(self.cardio.pk)
        Specialization.objects.create(name='Cardiology')
        with self.assertRaises(Conflict):
            svc.restore_specialization(self.cardio.pk)

    def test_doctor_specializations_are_replaced(self):
        url = reverse('doctor_specializations', args=[self.doctor.pk])
        self.client.put(url, {'specializationIds': [self.cardio.pk, self.neuro.pk]}, format='json')
        r = self.client.put(url, {'specializationIds': [self.neuro.pk]}, format='json')
        self.assertEqual([s['name'] for s in r.data['data']], ['Neurology'])

    def test_unknown_specialization_ids(self):
        with self.assertRaises(NotFound):
            svc.set_doctor_specializations(self.doctor.pk, [self.cardio.pk, 999])
        self.assertEqual(svc.doctor_specializations(self.doctor.pk), [])

    def test_active_doctor_count(self):
        svc.set_doctor_specializations(self.doctor.pk, [self.cardio.pk])
        Doctor.objects.filter(pk=self.doctor.pk).update(is_active=False)
        self.assertEqual(svc.active_doctor_count(self.cardio.pk), 0)
        r = self.client.get(reverse('specialization_detail', args=[self.cardio.pk]))
        self.assertEqual(r.data['data']['activeDoctorCount'], 0)

    def test_exists_ignores_deleted(self):
        self.assertTrue(svc.specialization_exists(self.cardio.pk))
        svc.soft_delete_specialization(self.cardio.pk)
        self.assertFalse(svc.specialization_exists(self.cardio.pk))
        self.assertFalse(svc.specialization_exists(999))
        r = self.client.get(reverse('doctors'), {'specializationId': self.cardio.pk})
        self.assertEqual(r.status_code, status.HTTP_404_NOT_FOUND)
        r = self.client.get(reverse('doctors'), {'specializationId': self.neuro.pk})
        self.assertEqual(r.status_code, status.HTTP_200_OK)
