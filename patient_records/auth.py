"""
Authorization checks guarding every mutation and sensitive read.

The functions here only read the store. Each returns the record it validated or
raises `NotFound` / `Unauthorized`; callers chain them before writing anything,
so the first failing check decides the error and nothing needs undoing.
"""
# patient_records/auth.py

import logging

from patient_records.errors import NotFound, PatientAccessDenied, Unauthorized

logger = logging.getLogger(__name__)


def check_password(record, supplied) -> bool:
    """Compares a supplied password with the stored one, verbatim."""
    return record.password == supplied


def _authorize(table, kind, record_id, password):
    record = table.get(record_id)
    if record is None:
        raise NotFound(kind, record_id)
    if not check_password(record, password):
        logger.warning("Rejected password for %s %s", kind, record_id)
        raise Unauthorized(
            f"{kind.capitalize()} access unauthorized, password does not match, try again"
        )
    return record


def authorize_hospital(store, hospital_id, password):
    """Returns the hospital if `password` is its password."""
    return _authorize(store.hospitals, 'hospital', hospital_id, password)


def authorize_doctor(store, doctor_id, password):
    """Returns the doctor if `password` is their password."""
    return _authorize(store.doctors, 'doctor', doctor_id, password)


def authorize_patient(store, patient_id, password):
    """Returns the patient if `password` is their password."""
    return _authorize(store.patients, 'patient', patient_id, password)


def authorize_relationship(store, doctor_id, patient_id):
    """Returns the patient if the doctor is already one of their attending doctors.

    Raises:
        NotFound: If the patient does not exist.
        PatientAccessDenied: If the doctor is not assigned to the patient.
    """
    patient = store.patients.get(patient_id)
    if patient is None:
        raise NotFound('patient', patient_id)
    if doctor_id not in patient.doctor_ids:
        logger.warning("Doctor %s has no access to patient %s", doctor_id, patient_id)
        raise PatientAccessDenied(doctor_id, patient_id)
    return patient


def authorize_hospital_doctor(store, hospital_id, doctor_id, password):
    """Checks the hospital password and that the doctor works at that hospital.

    Returns:
        tuple: The `(hospital, doctor)` records.
    """
    hospital = authorize_hospital(store, hospital_id, password)
    doctor = store.doctors.get(doctor_id)
    if doctor is None:
        raise NotFound('doctor', doctor_id)
    if doctor.hospital_id != hospital.id or doctor.id not in hospital.doctor_ids:
        logger.warning("Doctor %s does not belong to hospital %s", doctor_id, hospital_id)
        raise Unauthorized(f"Doctor {doctor_id} does not belong to hospital {hospital_id}")
    return hospital, doctor
