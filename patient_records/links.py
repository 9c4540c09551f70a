"""
Maintains the back-references between hospitals, doctors and patients.

Every relationship is stored on both records. The helpers here write side A and
then side B inside a single store transaction, so a failed write of either side
leaves both untouched. Linking a pair that is already linked changes nothing.
"""
# patient_records/links.py

import logging

logger = logging.getLogger(__name__)


def _add_unique(ids, new_id) -> bool:
    """Appends `new_id` unless it is already present. Returns True if appended."""
    if new_id in ids:
        return False
    ids.append(new_id)
    return True


def link_doctor_patient(store, doctor, patient):
    """Puts the patient under the doctor's care, on both records.

    Returns:
        tuple: The updated `(doctor, patient)`.
    """
    with store.transaction():
        if _add_unique(doctor.patient_ids, patient.id):
            store.doctors.put(doctor.id, doctor)
        if _add_unique(patient.doctor_ids, doctor.id):
            store.patients.put(patient.id, patient)
    logger.info("Linked doctor %s and patient %s", doctor.id, patient.id)
    return doctor, patient


def link_patient_hospital(store, patient, hospital):
    """Affiliates the patient with the hospital, on both records.

    Returns:
        tuple: The updated `(patient, hospital)`.
    """
    with store.transaction():
        if _add_unique(hospital.patient_ids, patient.id):
            store.hospitals.put(hospital.id, hospital)
        if _add_unique(patient.hospital_ids, hospital.id):
            store.patients.put(patient.id, patient)
    logger.info("Linked patient %s and hospital %s", patient.id, hospital.id)
    return patient, hospital


def attach_doctor_to_hospital(store, doctor, hospital):
    """Makes `hospital` the doctor's hospital. The last attachment wins.

    The doctor is dropped from the `doctor_ids` of the hospital they leave.

    Returns:
        tuple: The updated `(doctor, hospital)`.
    """
    with store.transaction():
        if doctor.hospital_id != hospital.id:
            previous = store.hospitals.get(doctor.hospital_id)
            if previous is not None and doctor.id in previous.doctor_ids:
                previous.doctor_ids.remove(doctor.id)
                store.hospitals.put(previous.id, previous)
        if _add_unique(hospital.doctor_ids, doctor.id):
            store.hospitals.put(hospital.id, hospital)
        doctor.hospital_id = hospital.id
        store.doctors.put(doctor.id, doctor)
    logger.info("Attached doctor %s to hospital %s", doctor.id, hospital.id)
    return doctor, hospital


def _duplicates(kind, record_id, field, ids):
    seen = set()
    problems = []
    for other_id in ids:
        if other_id in seen:
            problems.append(f"{kind} {record_id} lists {other_id} twice in {field}")
        seen.add(other_id)
    return problems


def find_inconsistencies(store) -> list:
    """Checks every back-reference in the store.

    Returns:
        list: One message per broken reference; empty when the store is consistent.
    """
    problems = []
    with store.lock:
        hospitals = dict(store.hospitals.scan())
        doctors = dict(store.doctors.scan())
        patients = dict(store.patients.scan())

    shared_ids = (
        (hospitals.keys() & doctors.keys())
        | (hospitals.keys() & patients.keys())
        | (doctors.keys() & patients.keys())
    )
    for shared in sorted(shared_ids):
        problems.append(f"id {shared} is used by more than one record type")

    for hospital in hospitals.values():
        problems += _duplicates('hospital', hospital.id, 'doctor_ids', hospital.doctor_ids)
        problems += _duplicates('hospital', hospital.id, 'patient_ids', hospital.patient_ids)
        for doctor_id in hospital.doctor_ids:
            doctor = doctors.get(doctor_id)
            if doctor is None:
                problems.append(f"hospital {hospital.id} lists unknown doctor {doctor_id}")
            elif doctor.hospital_id != hospital.id:
                problems.append(f"hospital {hospital.id} lists doctor {doctor_id} who works at {doctor.hospital_id}")
        for patient_id in hospital.patient_ids:
            patient = patients.get(patient_id)
            if patient is None:
                problems.append(f"hospital {hospital.id} lists unknown patient {patient_id}")
            elif hospital.id not in patient.hospital_ids:
                problems.append(f"patient {patient_id} does not list hospital {hospital.id}")

    for doctor in doctors.values():
        problems += _duplicates('doctor', doctor.id, 'patient_ids', doctor.patient_ids)
        hospital = hospitals.get(doctor.hospital_id)
        if hospital is None:
            problems.append(f"doctor {doctor.id} works at unknown hospital {doctor.hospital_id}")
        elif doctor.id not in hospital.doctor_ids:
            problems.append(f"hospital {hospital.id} does not list doctor {doctor.id}")
        for patient_id in doctor.patient_ids:
            patient = patients.get(patient_id)
            if patient is None:
                problems.append(f"doctor {doctor.id} lists unknown patient {patient_id}")
            elif doctor.id not in patient.doctor_ids:
                problems.append(f"patient {patient_id} does not list doctor {doctor.id}")

    for patient in patients.values():
        problems += _duplicates('patient', patient.id, 'doctor_ids', patient.doctor_ids)
        problems += _duplicates('patient', patient.id, 'hospital_ids', patient.hospital_ids)
        for doctor_id in patient.doctor_ids:
            doctor = doctors.get(doctor_id)
            if doctor is None:
                problems.append(f"patient {patient.id} lists unknown doctor {doctor_id}")
            elif patient.id not in doctor.patient_ids:
                problems.append(f"doctor {doctor_id} does not list patient {patient.id}")
        for hospital_id in patient.hospital_ids:
            hospital = hospitals.get(hospital_id)
            if hospital is None:
                problems.append(f"patient {patient.id} lists unknown hospital {hospital_id}")
            elif patient.id not in hospital.patient_ids:
                problems.append(f"hospital {hospital_id} does not list patient {patient.id}")

    if problems:
        logger.warning("Found %d inconsistent references", len(problems))
    return problems
