from datetime import timedelta
from unittest.mock import AsyncMock, patch

from django.db import DatabaseError
from django.test import TestCase

from appointments.tests.helpers import aware, make_appointment, make_user
from videocalls.services import VideoCallError, create_video_call, get_call_token
from videocalls.tests.fakes import FakeDailyAPI


@patch('videocalls.services.send_video_call_ready_notification', new_callable=AsyncMock)
class CreateVideoCallTests(TestCase):
    def setUp(self):
        self.patient = make_user('patient', full_name='Pat')
        self.doctor = make_user('doctor', role='doctor', full_name='Dr. Doe')
        self.start = aware(2026, 3, 2, 10, 0)
        self.appointment = make_appointment(self.patient, self.doctor, starts_at=self.start)
        self.api = FakeDailyAPI()

    async def test_provisions_room_and_scheduled_call(self, mock_notify):
        call = await create_video_call(self.appointment, client=self.api.client())

        self.assertEqual(call.status, 'scheduled')
        self.assertTrue(call.room_name.startswith(f'appointment-{self.appointment.pk}-'))
        room = self.api.rooms[call.room_name]
        self.assertEqual(call.room_url, room['url'])
        self.assertEqual(room['config']['exp'], int((self.start + timedelta(hours=2)).timestamp()))
        payload = mock_notify.await_args.args[0]
        self.assertEqual(payload['roomUrl'], call.room_url)
        self.assertEqual(payload['doctorName'], 'Dr. Doe')

    async def test_existing_call_is_reused(self, mock_notify):
        first = await create_video_call(self.appointment, client=self.api.client())
        second = await create_video_call(self.appointment, client=self.api.client())

        self.assertEqual(first.pk, second.pk)
        self.assertEqual(len(self.api.rooms), 1)
        mock_notify.assert_awaited_once()

    async def test_room_is_deleted_when_record_cannot_be_stored(self, mock_notify):
        with patch('videocalls.services.VideoCall.objects.create', side_effect=DatabaseError('down')):
            with self.assertRaisesMessage(VideoCallError, 'Failed to create call record'):
                await create_video_call(self.appointment, client=self.api.client())

        self.assertEqual(self.api.rooms, {})
        mock_notify.assert_not_awaited()

    async def test_token_is_owner_for_doctor_only(self, mock_notify):
        await create_video_call(self.appointment, client=self.api.client())

        _, doctor_token = await get_call_token(self.appointment, self.doctor, client=self.api.client())
        _, patient_token = await get_call_token(self.appointment, self.patient, client=self.api.client())

        self.assertEqual(doctor_token, f'tok-{self.doctor.pk}-True')
        self.assertEqual(patient_token, f'tok-{self.patient.pk}-False')

    async def test_token_requires_existing_call(self, mock_notify):
        with self.assertRaisesMessage(VideoCallError, 'Call not found'):
            await get_call_token(self.appointment, self.patient, client=self.api.client())
