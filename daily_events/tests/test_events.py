import base64
import hashlib
import hmac
import json
from unittest.mock import patch

from django.test import TestCase, override_settings

from appointments.tests.helpers import make_appointment, make_user
from daily_events.views import signature_is_valid
from videocalls.models import VideoCall

SECRET = base64.b64encode(b'webhook-secret').decode()


def sign(body, timestamp='1767225600'):
    digest = hmac.new(b'webhook-secret', f'{timestamp}.'.encode() + body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


@patch('videocalls.admission.publish_call_update')
class DailyEventSinkTests(TestCase):
    def setUp(self):
        appointment = make_appointment(make_user('patient'), make_user('doctor', role='doctor'))
        self.call = VideoCall.objects.create(appointment=appointment, room_name='appointment-9-1', status='active')

    def post(self, event, **headers):
        return self.client.post('/daily/events', data=json.dumps(event), content_type='application/json', **headers)

    def test_meeting_ended_ends_call(self, mock_publish):
        response = self.post({'type': 'meeting.ended', 'payload': {'room': 'appointment-9-1'}})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], 'success')
        self.call.refresh_from_db()
        self.assertEqual(self.call.status, 'ended')
        self.assertIsNotNone(self.call.ended_at)

    def test_other_events_are_acknowledged(self, mock_publish):
        response = self.post({'type': 'participant.joined', 'payload': {'room': 'appointment-9-1'}})

        self.assertEqual(response.status_code, 200)
        self.call.refresh_from_db()
        self.assertEqual(self.call.status, 'active')

    def test_unknown_room_is_acknowledged(self, mock_publish):
        response = self.post({'type': 'meeting.ended', 'payload': {'room': 'nope'}})
        self.assertEqual(response.status_code, 200)

    def test_invalid_json_is_acknowledged(self, mock_publish):
        response = self.client.post('/daily/events', data='{', content_type='application/json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], 'error')

    def test_non_object_body_is_acknowledged(self, mock_publish):
        response = self.post(['meeting.ended'])

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['message'], 'Request body must be a JSON object.')
        self.call.refresh_from_db()
        self.assertEqual(self.call.status, 'active')

    @override_settings(DAILY_WEBHOOK_SECRET=SECRET)
    def test_signed_delivery_is_accepted(self, mock_publish):
        body = json.dumps({'type': 'meeting.ended', 'payload': {'room': 'appointment-9-1'}}).encode()

        response = self.client.post(
            '/daily/events', data=body, content_type='application/json',
            HTTP_X_WEBHOOK_TIMESTAMP='1767225600', HTTP_X_WEBHOOK_SIGNATURE=sign(body),
        )

        self.assertEqual(response.status_code, 200)
        self.call.refresh_from_db()
        self.assertEqual(self.call.status, 'ended')

    @override_settings(DAILY_WEBHOOK_SECRET=SECRET)
    def test_bad_signature_is_rejected(self, mock_publish):
        response = self.post(
            {'type': 'meeting.ended', 'payload': {'room': 'appointment-9-1'}},
            HTTP_X_WEBHOOK_TIMESTAMP='1767225600', HTTP_X_WEBHOOK_SIGNATURE='forged',
        )

        self.assertEqual(response.status_code, 401)
        self.call.refresh_from_db()
        self.assertEqual(self.call.status, 'active')


class SignatureTests(TestCase):
    def test_missing_headers_fail(self):
        self.assertFalse(signature_is_valid(SECRET, None, b'{}', 'x'))
        self.assertFalse(signature_is_valid(SECRET, '1', b'{}', None))

    def test_round_trip(self):
        self.assertTrue(signature_is_valid(SECRET, '42', b'{}', sign(b'{}', '42')))
