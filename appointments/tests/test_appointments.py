import json
from datetime import date, time, timedelta
from unittest.mock import AsyncMock, patch

from django.test import TestCase

from appointments.exceptions import AppointmentError, CallNotAvailable
from appointments.models import Appointment
from appointments.services import can_join_call, is_appointment_time, update_status
from appointments.tests.helpers import aware, make_appointment, make_user


class JoinWindowTests(TestCase):
    def setUp(self):
        self.patient = make_user('patient')
        self.doctor = make_user('doctor', role='doctor')
        self.start = aware(2026, 3, 2, 10, 0)
        self.appointment = make_appointment(self.patient, self.doctor, starts_at=self.start)

    def test_window_opens_fifteen_minutes_early(self):
        self.assertTrue(is_appointment_time(self.appointment, self.start - timedelta(minutes=15)))
        self.assertFalse(is_appointment_time(self.appointment, self.start - timedelta(minutes=16)))

    def test_window_closes_forty_five_minutes_after_start(self):
        self.assertTrue(is_appointment_time(self.appointment, self.start + timedelta(minutes=45)))
        self.assertFalse(is_appointment_time(self.appointment, self.start + timedelta(minutes=46)))


class CanJoinCallTests(TestCase):
    def setUp(self):
        self.patient = make_user('patient')
        self.doctor = make_user('doctor', role='doctor')
        self.stranger = make_user('stranger')
        self.appointment = make_appointment(self.patient, self.doctor)

    def assertRefused(self, message, appointment_id=None, user=None):
        with self.assertRaisesMessage(CallNotAvailable, message):
            can_join_call(appointment_id or self.appointment.pk, user or self.patient)

    def test_both_participants_may_join(self):
        self.assertEqual(can_join_call(self.appointment.pk, self.patient), self.appointment)
        self.assertEqual(can_join_call(self.appointment.pk, self.doctor), self.appointment)

    def test_unknown_appointment(self):
        self.assertRefused("Appointment not found", appointment_id=999999)

    def test_in_clinic_appointment(self):
        Appointment.objects.filter(pk=self.appointment.pk).update(appt_type='in_clinic')
        self.assertRefused("This is not a video appointment")

    def test_not_accepted(self):
        Appointment.objects.filter(pk=self.appointment.pk).update(status='pending')
        self.assertRefused("Appointment not accepted yet")

    def test_unpaid(self):
        Appointment.objects.filter(pk=self.appointment.pk).update(payment_status='pending')
        self.assertRefused("Payment required before joining video call")

    def test_stranger(self):
        self.assertRefused("Unauthorized", user=self.stranger)

    def test_outside_window(self):
        Appointment.objects.filter(pk=self.appointment.pk).update(appt_date=date(2020, 1, 1))
        self.assertRefused("Call is not available at this time")


class UpdateStatusTests(TestCase):
    def setUp(self):
        self.patient = make_user('patient')
        self.doctor = make_user('doctor', role='doctor')
        self.appointment = make_appointment(self.patient, self.doctor, status='pending')

    def test_doctor_accepts(self):
        update_status(self.appointment, self.doctor, 'accepted')
        self.appointment.refresh_from_db()
        self.assertEqual(self.appointment.status, 'accepted')

    def test_patient_cannot_change_status(self):
        with self.assertRaisesMessage(AppointmentError, "Unauthorized"):
            update_status(self.appointment, self.patient, 'accepted')

    def test_invalid_transition(self):
        with self.assertRaises(AppointmentError):
            update_status(self.appointment, self.doctor, 'completed')


class BookAppointmentViewTests(TestCase):
    def setUp(self):
        self.patient = make_user('patient', full_name='Pat')
        self.doctor = make_user('doctor', role='doctor', full_name='Dr. Who')

    def _book(self, **payload):
        body = {'doctor_id': self.doctor.pk, 'appt_type': 'video', 'appt_date': '2026-05-04', 'appt_time': '09:30'}
        body.update(payload)
        return self.client.post('/api/appointments/', data=json.dumps(body), content_type='application/json')

    def _set_status(self, appointment, body):
        return self.client.post(
            f'/api/appointments/{appointment.pk}/status/',
            data=json.dumps(body), content_type='application/json',
        )

    @patch('appointments.views.send_appointment_created_notification', new_callable=AsyncMock)
    def test_books_and_notifies(self, mock_notify):
        self.client.force_login(self.patient)

        response = self._book()

        self.assertEqual(response.status_code, 201)
        appointment = Appointment.objects.get()
        self.assertEqual(appointment.appt_time, time(9, 30))
        self.assertEqual(appointment.status, 'pending')
        payload = mock_notify.await_args.args[0]
        self.assertEqual(payload['appointmentId'], appointment.pk)
        self.assertEqual(payload['doctorName'], 'Dr. Who')
        self.assertEqual(payload['appointmentType'], 'video')

    @patch('appointments.views.send_appointment_created_notification', new_callable=AsyncMock)
    def test_rejects_non_doctor(self, mock_notify):
        self.client.force_login(self.patient)

        response = self._book(doctor_id=self.patient.pk)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], "Doctor not found")
        mock_notify.assert_not_awaited()

    def test_requires_login(self):
        self.assertEqual(self._book().status_code, 401)

    @patch('appointments.views.send_appointment_status_changed_notification', new_callable=AsyncMock)
    def test_doctor_updates_status(self, mock_notify):
        appointment = make_appointment(self.patient, self.doctor, status='pending')
        self.client.force_login(self.doctor)

        response = self._set_status(appointment, {'status': 'accepted'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['appointment']['status'], 'accepted')
        payload = mock_notify.await_args.args[0]
        self.assertEqual(payload['status'], 'accepted')
        self.assertEqual(payload['patientName'], 'Pat')

    @patch('appointments.views.send_appointment_status_changed_notification', new_callable=AsyncMock)
    def test_rejection_is_sent_as_declined(self, mock_notify):
        appointment = make_appointment(self.patient, self.doctor, status='pending')
        self.client.force_login(self.doctor)

        self._set_status(appointment, {'status': 'rejected'})

        self.assertEqual(mock_notify.await_args.args[0]['status'], 'declined')

    @patch('appointments.views.send_appointment_status_changed_notification', new_callable=AsyncMock)
    def test_completion_sends_no_email(self, mock_notify):
        appointment = make_appointment(self.patient, self.doctor, status='accepted')
        self.client.force_login(self.doctor)

        response = self._set_status(appointment, {'status': 'completed'})

        self.assertEqual(response.status_code, 200)
        mock_notify.assert_not_awaited()

    def test_status_body_must_be_an_object(self):
        appointment = make_appointment(self.patient, self.doctor, status='pending')
        self.client.force_login(self.doctor)

        response = self._set_status(appointment, ['accepted'])

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], 'Request body must be a JSON object.')
        appointment.refresh_from_db()
        self.assertEqual(appointment.status, 'pending')

    def test_status_must_be_a_string(self):
        appointment = make_appointment(self.patient, self.doctor, status='pending')
        self.client.force_login(self.doctor)

        response = self._set_status(appointment, {'status': 1})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], "'status' must be a string.")

    def test_numeric_date_is_a_bad_request(self):
        self.client.force_login(self.patient)

        response = self._book(appt_date=20260301)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], "'appt_date' must be a string.")
        self.assertFalse(Appointment.objects.exists())

    def test_malformed_date(self):
        self.client.force_login(self.patient)

        response = self._book(appt_date='01/03/2026')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], "Invalid appointment date or time")
