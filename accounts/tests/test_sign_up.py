import json
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.db import DatabaseError
from django.test import TestCase

from accounts.models import Profile
from accounts.services import sign_up


class SignUpTests(TestCase):
    def test_sign_up_fills_in_profile(self):
        user = sign_up('ada@example.com', 'Secret123!', '  Ada Lovelace ', ' 555-0100 ')

        profile = Profile.objects.get(user=user)
        self.assertEqual(profile.full_name, 'Ada Lovelace')
        self.assertEqual(profile.phone, '555-0100')
        self.assertEqual(profile.role, 'patient')

    def test_missing_profile_is_created(self):
        with patch('accounts.signals.Profile.objects.get_or_create'):
            user = sign_up('grace@example.com', 'Secret123!', 'Grace Hopper')

        profile = Profile.objects.get(user=user)
        self.assertEqual(profile.full_name, 'Grace Hopper')
        self.assertIsNone(profile.phone)

    @patch('telehealthproj.retry.time.sleep')
    def test_profile_write_retries_three_times_then_gives_up(self, mock_sleep):
        with patch('accounts.services.write_profile', side_effect=DatabaseError('not ready')) as mock_write:
            user = sign_up('alan@example.com', 'Secret123!', 'Alan Turing')

        self.assertEqual(mock_write.call_count, 3)
        self.assertEqual([c.args[0] for c in mock_sleep.call_args_list], [0.5, 0.5])
        self.assertTrue(get_user_model().objects.filter(pk=user.pk).exists())

    @patch('telehealthproj.retry.time.sleep')
    def test_profile_write_recovers_on_second_attempt(self, mock_sleep):
        from accounts.services import write_profile as real_write

        calls = []

        def flaky(*args):
            calls.append(args)
            if len(calls) == 1:
                raise DatabaseError('not ready')
            return real_write(*args)

        with patch('accounts.services.write_profile', side_effect=flaky):
            user = sign_up('kat@example.com', 'Secret123!', 'Katherine Johnson')

        self.assertEqual(len(calls), 2)
        mock_sleep.assert_called_once_with(0.5)
        self.assertEqual(Profile.objects.get(user=user).full_name, 'Katherine Johnson')


class SignUpViewTests(TestCase):
    def _post(self, payload):
        return self.client.post('/api/auth/sign-up/', data=json.dumps(payload), content_type='application/json')

    def test_creates_account(self):
        response = self._post({'email': 'New@Example.com', 'password': 'Secret123!', 'full_name': 'New User'})

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['status'], 'success')
        self.assertTrue(get_user_model().objects.filter(username='new@example.com').exists())

    def test_requires_name(self):
        response = self._post({'email': 'x@example.com', 'password': 'Secret123!', 'full_name': '  '})
        self.assertEqual(response.status_code, 400)

    def test_non_object_body(self):
        response = self._post(['x@example.com', 'Secret123!'])

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], 'Request body must be a JSON object.')

    def test_non_string_field(self):
        response = self._post({'email': 42, 'password': 'Secret123!', 'full_name': 'Num'})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], "'email' must be a string.")

    def test_rejects_duplicate_email(self):
        get_user_model().objects.create_user(username='dup@example.com', password='x')
        response = self._post({'email': 'dup@example.com', 'password': 'Secret123!', 'full_name': 'Dup'})
        self.assertEqual(response.status_code, 400)
