# appointments/exceptions.py
"""
Exceptions raised by the appointment services.

Views translate these into JSON error responses; the message is safe to show
to the end user.
"""


class AppointmentError(Exception):
    """Base class for appointment-related failures."""


class CallNotAvailable(AppointmentError):
    """The user may not join the appointment's video call right now."""
