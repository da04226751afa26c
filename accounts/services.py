# accounts/services.py
import logging

from django.contrib.auth import get_user_model
from django.db import transaction

from telehealthproj.retry import RetryPolicy, fixed_backoff
from .models import Profile

logger = logging.getLogger(__name__)

PROFILE_WRITE_ATTEMPTS = 3
PROFILE_WRITE_DELAY = 0.5


def _log_profile_failure(error):
    # The user can complete their profile later; sign-up itself has succeeded.
    logger.error(f"[Accounts] Giving up on profile update after {PROFILE_WRITE_ATTEMPTS} attempts: {error}")
    return None


profile_write_policy = RetryPolicy(
    max_attempts=PROFILE_WRITE_ATTEMPTS,
    backoff=fixed_backoff(PROFILE_WRITE_DELAY),
    fallback=_log_profile_failure,
)


def write_profile(user, full_name, phone):
    """Update the user's profile, creating it as a patient profile if it does not exist yet."""
    phone = phone or None
    updated = Profile.objects.filter(user=user).update(full_name=full_name, phone=phone)
    if updated:
        return
    Profile.objects.update_or_create(
        user=user,
        defaults={'full_name': full_name, 'phone': phone, 'role': 'patient'},
    )


def sign_up(email, password, full_name, phone=None):
    """
    Creates the account, then writes the profile details under a bounded retry policy.
    A profile that still cannot be written after all attempts does not fail sign-up.
    """
    User = get_user_model()
    with transaction.atomic():
        user = User.objects.create_user(username=email, email=email, password=password)
    logger.info(f"[Accounts] Created user {user.pk} for {email}")

    profile_write_policy.run(write_profile, user, full_name.strip(), (phone or '').strip())
    return user
