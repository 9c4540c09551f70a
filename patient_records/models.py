"""
This module defines the record types managed by the patient records store.

These classes structure the data handled by `PatientRecordsService` and kept in
the `RecordStore` tables. Relationship lists hold the IDs of related records of
another type; they are kept symmetric by `patient_records.links`.
"""
# patient_records/models.py

from patient_records.config import MASK


class Hospital:
    """Represents a hospital.

    Attributes:
        id (int): Allocator-assigned unique ID.
        name (str): The hospital's display name.
        address (str): The hospital's street address.
        password (str): Opaque secret compared verbatim on every gated call.
        patient_ids (list[int]): IDs of patients affiliated with the hospital.
        doctor_ids (list[int]): IDs of doctors currently attached to the hospital.
    """
    kind = 'hospital'

    def __init__(self, id, name, address, password, patient_ids=None, doctor_ids=None):
        self.id = id
        self.name = name
        self.address = address
        self.password = password
        self.patient_ids = list(patient_ids or [])
        self.doctor_ids = list(doctor_ids or [])

    def masked(self):
        """Returns a copy fit for public display."""
        return Hospital(self.id, self.name, self.address, MASK, self.patient_ids, self.doctor_ids)


class Doctor:
    """Represents a doctor attached to exactly one hospital.

    Attributes:
        id (int): Allocator-assigned unique ID.
        name (str): The doctor's name.
        password (str): Opaque secret.
        hospital_id (int): The hospital the doctor currently works at.
        patient_ids (list[int]): IDs of patients under this doctor's care.
    """
    kind = 'doctor'

    def __init__(self, id, name, password, hospital_id, patient_ids=None):
        self.id = id
        self.name = name
        self.password = password
        self.hospital_id = hospital_id
        self.patient_ids = list(patient_ids or [])

    def masked(self):
        return Doctor(self.id, self.name, MASK, self.hospital_id, self.patient_ids)


class Patient:
    """Represents a patient and their medical history.

    Attributes:
        id (int): Allocator-assigned unique ID.
        name (str): The patient's name.
        history (str): Free-text medical log; entries are only ever appended.
        password (str): Opaque secret.
        doctor_ids (list[int]): IDs of attending doctors.
        hospital_ids (list[int]): IDs of hospitals the patient is affiliated with.
    """
    kind = 'patient'

    def __init__(self, id, name, history, password, doctor_ids=None, hospital_ids=None):
        self.id = id
        self.name = name
        self.history = history
        self.password = password
        self.doctor_ids = list(doctor_ids or [])
        self.hospital_ids = list(hospital_ids or [])

    def masked(self, keep_history=False):
        """Returns a display copy; the history is hidden unless `keep_history` is set."""
        history = self.history if keep_history else MASK
        return Patient(self.id, self.name, history, MASK, self.doctor_ids, self.hospital_ids)
