from unittest.mock import AsyncMock, patch

from django.test import TestCase

from appointments.models import Appointment
from appointments.tests.helpers import make_appointment, make_user
from videocalls.daily import DailyClient
from videocalls.models import VideoCall
from videocalls.tests.fakes import FakeDailyAPI


@patch('videocalls.services.send_video_call_ready_notification', new_callable=AsyncMock)
class VideoCallViewTests(TestCase):
    def setUp(self):
        self.patient = make_user('patient')
        self.doctor = make_user('doctor', role='doctor')
        self.appointment = make_appointment(self.patient, self.doctor)
        self.api = FakeDailyAPI()
        patcher = patch('videocalls.views.get_daily_client', side_effect=lambda: self.api.client())
        patcher.start()
        self.addCleanup(patcher.stop)

    def url(self, suffix=''):
        return f'/api/appointments/{self.appointment.pk}/video-call/{suffix}'

    def test_patient_creates_call(self, mock_notify):
        self.client.force_login(self.patient)

        response = self.client.post(self.url())

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body['call']['status'], 'scheduled')
        self.assertEqual(body['call']['id'], str(VideoCall.objects.get().pk))

    def test_unpaid_appointment_is_refused(self, mock_notify):
        Appointment.objects.filter(pk=self.appointment.pk).update(payment_status='pending')
        self.client.force_login(self.patient)

        response = self.client.post(self.url())

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()['message'], 'Payment required before joining video call')
        self.assertFalse(VideoCall.objects.exists())

    def test_anonymous_is_refused(self, mock_notify):
        self.assertEqual(self.client.post(self.url()).status_code, 401)

    def test_doctor_gets_owner_token(self, mock_notify):
        self.client.force_login(self.doctor)
        self.client.post(self.url())

        response = self.client.get(self.url('token/'))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['token'], f'tok-{self.doctor.pk}-True')

    def test_token_before_call_exists(self, mock_notify):
        self.client.force_login(self.patient)
        self.assertEqual(self.client.get(self.url('token/')).status_code, 404)

    def test_missing_api_key_is_reported(self, mock_notify):
        self.client.force_login(self.patient)

        with patch('videocalls.views.get_daily_client', return_value=DailyClient(api_key='')):
            response = self.client.post(self.url())

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()['message'], 'Daily.co API key not configured')
        self.assertEqual(self.api.requests, [])
