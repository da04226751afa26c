# prescriptions/services.py
import logging
import uuid

from django.contrib.auth import get_user_model
from django.core.exceptions import PermissionDenied

from appointments.models import Appointment
from notifications.client import participant_fields
from .models import Prescription

logger = logging.getLogger(__name__)

MEDICINE_FIELDS = ('name', 'dosage', 'frequency', 'duration', 'instructions')
TEXT_FIELDS = ('patient_name', 'patient_age', 'patient_address', 'observations', 'doctor_signature')


class PrescriptionError(Exception):
    """The request was refused; the message is safe to show the user."""


class PrescriptionNotFound(PrescriptionError):
    pass


def clean_medicines(medicines):
    if not isinstance(medicines, list):
        raise PrescriptionError("Medicines must be a list")
    cleaned = []
    for position, medicine in enumerate(medicines, 1):
        if not isinstance(medicine, dict):
            raise PrescriptionError(f"Medicine {position} must be an object")
        entry = {}
        for field in MEDICINE_FIELDS:
            value = medicine.get(field) or ''
            if not isinstance(value, str):
                raise PrescriptionError(f"Medicine {position}: '{field}' must be a string")
            entry[field] = value.strip()
        if not entry['name']:
            raise PrescriptionError(f"Medicine {position} needs a name")
        cleaned.append(entry)
    return cleaned


def _clean_fields(data, partial):
    fields = {}
    for field in TEXT_FIELDS:
        if field not in data:
            continue
        value = data[field] if data[field] is not None else ''
        if not isinstance(value, str):
            raise PrescriptionError(f"'{field}' must be a string")
        fields[field] = value.strip()
    if 'medicines' in data:
        fields['medicines'] = clean_medicines(data['medicines'])
    elif not partial:
        fields['medicines'] = []
    return fields


def create_prescription(doctor, data, patient_id=None, appointment_id=None):
    """
    Written by a doctor either for one of their appointments (the patient
    comes from it) or directly for a patient they have seen.
    """
    if not doctor.profile.is_doctor:
        raise PermissionDenied("Only doctors can write prescriptions")

    appointment = None
    if appointment_id is not None:
        try:
            appointment = Appointment.objects.select_related('patient').get(pk=appointment_id)
        except Appointment.DoesNotExist:
            raise PrescriptionNotFound("Appointment not found")
        if not appointment.is_doctor(doctor):
            raise PermissionDenied("You can only prescribe for your own appointments")
        if patient_id is not None and patient_id != appointment.patient_id:
            raise PrescriptionError("Patient does not match the appointment")
        patient = appointment.patient
    else:
        if patient_id is None:
            raise PrescriptionError("patient_id or appointment_id is required")
        try:
            patient = get_user_model().objects.get(pk=patient_id)
        except get_user_model().DoesNotExist:
            raise PrescriptionNotFound("Patient not found")
        if not Appointment.objects.filter(patient=patient, doctor=doctor).exists():
            raise PermissionDenied("You can only prescribe for your own patients")

    prescription = Prescription.objects.create(
        appointment=appointment, doctor=doctor, patient=patient, **_clean_fields(data, partial=False),
    )
    logger.info(f"[Prescriptions] Doctor {doctor.pk} wrote prescription {prescription.pk} for patient {patient.pk}")
    return prescription


def get_prescription_for(prescription_id, user):
    try:
        prescription = Prescription.objects.select_related('patient', 'doctor').get(pk=prescription_id)
    except Prescription.DoesNotExist:
        raise PrescriptionNotFound("Prescription not found")
    if not prescription.is_participant(user):
        raise PermissionDenied("You don't have access to this prescription")
    return prescription


def list_prescriptions(user, appointment_id=None, patient_id=None):
    """Doctors see what they wrote, patients what was written for them; newest first."""
    if user.profile.is_doctor:
        prescriptions = Prescription.objects.filter(doctor=user)
        if patient_id is not None:
            prescriptions = prescriptions.filter(patient_id=patient_id)
    else:
        prescriptions = Prescription.objects.filter(patient=user)
    if appointment_id is not None:
        prescriptions = prescriptions.filter(appointment_id=appointment_id)
    return list(prescriptions)


def update_prescription(prescription_id, user, data):
    prescription = get_prescription_for(prescription_id, user)
    if prescription.doctor_id != user.pk:
        raise PermissionDenied("Only the prescribing doctor can edit this prescription")

    fields = _clean_fields(data, partial=True)
    if not fields:
        raise PrescriptionError("Nothing to update")
    for field, value in fields.items():
        setattr(prescription, field, value)
    prescription.save(update_fields=[*fields, 'updated_at'])
    logger.info(f"[Prescriptions] Prescription {prescription.pk} updated ({', '.join(fields)})")
    return prescription


def share_prescription(prescription_id, user):
    """Returns the prescription's share token, creating it on first use."""
    prescription = get_prescription_for(prescription_id, user)
    if prescription.share_token:
        return prescription.share_token

    Prescription.objects.filter(pk=prescription.pk, share_token__isnull=True).update(share_token=uuid.uuid4().hex)
    prescription.refresh_from_db(fields=['share_token'])
    logger.info(f"[Prescriptions] User {user.pk} shared prescription {prescription.pk}")
    return prescription.share_token


def get_shared_prescription(token):
    try:
        return Prescription.objects.get(share_token=token)
    except Prescription.DoesNotExist:
        raise PrescriptionNotFound("Prescription not found")


def serialize_prescription(prescription):
    return {
        'id': str(prescription.pk),
        'appointment_id': prescription.appointment_id,
        'doctor_id': prescription.doctor_id,
        'patient_id': prescription.patient_id,
        'patient_name': prescription.patient_name,
        'patient_age': prescription.patient_age,
        'patient_address': prescription.patient_address,
        'observations': prescription.observations,
        'medicines': prescription.medicines,
        'doctor_signature': prescription.doctor_signature,
        'created_at': prescription.created_at.isoformat(),
        'updated_at': prescription.updated_at.isoformat(),
    }


def prescription_created_payload(prescription):
    payload = {'prescriptionId': str(prescription.pk)}
    payload.update(participant_fields(prescription.patient, prescription.doctor))
    if prescription.appointment_id:
        payload['appointmentId'] = prescription.appointment_id
    return payload
