"""
This module provides the record operations of the patient records application.

It defines the `PatientRecordsService` class, which is responsible for:
- Creating hospitals, doctors and patients with fresh IDs from the store.
- Editing names, addresses and passwords behind the owner's password.
- Assigning doctors to patients and affiliating patients and doctors with hospitals.
- Appending doctor-authored entries to a patient's medical history.
- Public reads (with secrets masked) and password-gated detail reads.

Every mutating operation runs its checks and writes inside one store transaction,
so an operation either completes or leaves the store as it found it.
"""
# patient_records/service.py

import logging
from datetime import datetime

from patient_records import auth, links
from patient_records.errors import AlreadyExists, InvalidPayload, NotFound
from patient_records.models import Doctor, Hospital, Patient
from patient_records.store import RecordStore

logger = logging.getLogger(__name__)


class PatientRecordsService:
    """Manages the record operations for hospitals, doctors and patients."""

    def __init__(self, store=None):
        """Initializes the service over `store`, opening the default data file if none is given."""
        self._store = store if store is not None else RecordStore.open()

    @property
    def store(self):
        return self._store

    def _insert_new(self, table, record):
        """Stores a freshly built record; its ID must not be taken yet."""
        if table.put(record.id, record) is not None:
            logger.error("Allocator handed out id %s which is already used", record.id)
            raise AlreadyExists(record.kind, record.id)
        return record

    # Hospitals

    def create_hospital(self, name: str, address: str, password: str) -> Hospital:
        """Registers a new hospital.

        Args:
            name (str): The hospital's name.
            address (str): The hospital's address.
            password (str): The password guarding the hospital's operations.

        Returns:
            Hospital: The stored hospital.
        """
        with self._store.transaction():
            hospital = Hospital(self._store.next_id(), name, address, password)
            self._insert_new(self._store.hospitals, hospital)
        logger.info("Created hospital %s", hospital.id)
        return hospital

    def edit_hospital(self, hospital_id: int, password: str, name=None, address=None, new_password=None) -> Hospital:
        """Updates a hospital's name, address or password. Blank fields are left as they are.

        Returns:
            Hospital: The updated hospital.
        """
        with self._store.transaction():
            hospital = auth.authorize_hospital(self._store, hospital_id, password)
            hospital.name = name or hospital.name
            hospital.address = address or hospital.address
            hospital.password = new_password or hospital.password
            self._store.hospitals.put(hospital.id, hospital)
        return hospital

    def get_hospital(self, hospital_id: int) -> Hospital:
        hospital = self._store.hospitals.get(hospital_id)
        if hospital is None:
            raise NotFound('hospital', hospital_id)
        return hospital.masked()

    def list_hospitals(self) -> list:
        """Returns every hospital with its password masked.

        Raises:
            NotFound: If no hospital has been registered yet.
        """
        hospitals = [hospital.masked() for _, hospital in self._store.hospitals.scan()]
        if not hospitals:
            raise NotFound('hospital', message="no hospitals found")
        return hospitals

    def find_hospitals(self, search: str) -> list:
        """Finds hospitals whose name contains `search`, ignoring case.

        Raises:
            NotFound: If no hospital name matches.
        """
        query = search.lower()
        matches = [
            hospital.masked()
            for _, hospital in self._store.hospitals.scan()
            if query in hospital.name.lower()
        ]
        if not matches:
            raise NotFound('hospital', message=f"No hospitals for name: {query} could be found")
        return matches

    def get_doctors_for_hospital(self, hospital_id: int) -> list:
        with self._store.lock:
            hospital = self._store.hospitals.get(hospital_id)
            if hospital is None:
                raise NotFound('hospital', hospital_id)
            return self._collect(self._store.doctors, hospital.doctor_ids)

    # Doctors

    def create_doctor(self, hospital_id: int, hospital_password: str, name: str, password: str) -> Doctor:
        """Creates a doctor working at the given hospital.

        Args:
            hospital_id (int): The hospital the doctor joins.
            hospital_password (str): The hospital's password.
            name (str): The doctor's name.
            password (str): The doctor's own password.

        Returns:
            Doctor: The stored doctor.
        """
        with self._store.transaction():
            hospital = auth.authorize_hospital(self._store, hospital_id, hospital_password)
            doctor = Doctor(self._store.next_id(), name, password, hospital.id)
            self._insert_new(self._store.doctors, doctor)
            doctor, _ = links.attach_doctor_to_hospital(self._store, doctor, hospital)
        logger.info("Created doctor %s at hospital %s", doctor.id, hospital.id)
        return doctor

    def edit_doctor(self, doctor_id: int, password: str, name=None, new_password=None) -> Doctor:
        with self._store.transaction():
            doctor = auth.authorize_doctor(self._store, doctor_id, password)
            doctor.name = name or doctor.name
            doctor.password = new_password or doctor.password
            self._store.doctors.put(doctor.id, doctor)
        return doctor

    def transfer_doctor(self, doctor_id: int, doctor_password: str, hospital_id: int, hospital_password: str) -> Doctor:
        """Moves a doctor to another hospital. Needs both the doctor's and the new hospital's password.

        The doctor keeps their patients; the patients keep their earlier hospital affiliations.

        Returns:
            Doctor: The updated doctor.
        """
        with self._store.transaction():
            doctor = auth.authorize_doctor(self._store, doctor_id, doctor_password)
            hospital = auth.authorize_hospital(self._store, hospital_id, hospital_password)
            doctor, _ = links.attach_doctor_to_hospital(self._store, doctor, hospital)
        return doctor

    def get_doctor(self, doctor_id: int) -> Doctor:
        doctor = self._store.doctors.get(doctor_id)
        if doctor is None:
            raise NotFound('doctor', doctor_id)
        return doctor.masked()

    def get_patients_for_doctor(self, doctor_id: int, doctor_password: str) -> list:
        """Lists the doctor's patients (history and password masked)."""
        with self._store.lock:
            doctor = auth.authorize_doctor(self._store, doctor_id, doctor_password)
            return self._collect(self._store.patients, doctor.patient_ids)

    def get_doctor_patients(self, hospital_id: int, hospital_password: str, doctor_id: int) -> list:
        """Lists the patients of a doctor working at the hospital, for the hospital's staff."""
        with self._store.lock:
            _, doctor = auth.authorize_hospital_doctor(self._store, hospital_id, doctor_id, hospital_password)
            return self._collect(self._store.patients, doctor.patient_ids)

    # Patients

    def create_patient(self, name: str, history: str, password: str) -> Patient:
        """Creates a patient who is not yet affiliated with any hospital or doctor.

        Args:
            name (str): The patient's name.
            history (str): The opening entry of the medical history.
            password (str): The patient's password.

        Returns:
            Patient: The stored patient.
        """
        with self._store.transaction():
            patient = Patient(self._store.next_id(), name, history, password)
            self._insert_new(self._store.patients, patient)
        logger.info("Created patient %s", patient.id)
        return patient

    def register_patient(self, hospital_id: int, hospital_password: str, name: str, history: str, password: str) -> Patient:
        """Creates a patient and affiliates them with the hospital that registers them."""
        with self._store.transaction():
            hospital = auth.authorize_hospital(self._store, hospital_id, hospital_password)
            patient = self.create_patient(name, history, password)
            patient, _ = links.link_patient_hospital(self._store, patient, hospital)
        return patient

    def admit_patient(self, hospital_id: int, hospital_password: str, patient_id: int, patient_password: str) -> Patient:
        """Affiliates an existing patient with a hospital; both passwords are required."""
        with self._store.transaction():
            hospital = auth.authorize_hospital(self._store, hospital_id, hospital_password)
            patient = auth.authorize_patient(self._store, patient_id, patient_password)
            patient, _ = links.link_patient_hospital(self._store, patient, hospital)
        return patient

    def edit_patient(self, patient_id: int, password: str, name=None, new_password=None) -> Patient:
        with self._store.transaction():
            patient = auth.authorize_patient(self._store, patient_id, password)
            patient.name = name or patient.name
            patient.password = new_password or patient.password
            self._store.patients.put(patient.id, patient)
        return patient

    def get_patient(self, patient_id: int) -> Patient:
        """Public view of a patient: password and history are masked."""
        patient = self._store.patients.get(patient_id)
        if patient is None:
            raise NotFound('patient', patient_id)
        return patient.masked()

    def get_hospitals_for_patient(self, patient_id: int, patient_password: str) -> list:
        with self._store.lock:
            patient = auth.authorize_patient(self._store, patient_id, patient_password)
            return self._collect(self._store.hospitals, patient.hospital_ids)

    # Doctor and patient

    def assign_doctor_to_patient(self, doctor_id: int, doctor_password: str, patient_id: int, patient_password: str):
        """Assigns a doctor to a patient and affiliates the patient with the doctor's hospital.

        Both the doctor's and the patient's passwords are required. Assigning an
        existing pair again changes nothing.

        Args:
            doctor_id (int): The ID of the doctor.
            doctor_password (str): The doctor's password.
            patient_id (int): The ID of the patient.
            patient_password (str): The patient's password.

        Returns:
            tuple: The updated `(doctor, patient)`, masked.
        """
        with self._store.transaction():
            doctor = auth.authorize_doctor(self._store, doctor_id, doctor_password)
            patient = auth.authorize_patient(self._store, patient_id, patient_password)
            hospital = self._store.hospitals.get(doctor.hospital_id)
            if hospital is None:
                raise NotFound('hospital', doctor.hospital_id)
            doctor, patient = links.link_doctor_patient(self._store, doctor, patient)
            patient, _ = links.link_patient_hospital(self._store, patient, hospital)
        logger.info("Assigned patient %s to doctor %s", patient.id, doctor.id)
        return doctor.masked(), patient.masked()

    def update_patient_history(self, doctor_id: int, doctor_password: str, patient_id: int, text: str) -> Patient:
        """Appends an entry to a patient's history on behalf of one of their doctors.

        Each entry records when it was written and by which doctor; earlier
        entries are never changed.

        Args:
            doctor_id (int): The ID of the writing doctor.
            doctor_password (str): The doctor's password.
            patient_id (int): The ID of the patient.
            text (str): The entry to append.

        Returns:
            Patient: The patient with the full history and a masked password.
        """
        with self._store.transaction():
            doctor = auth.authorize_doctor(self._store, doctor_id, doctor_password)
            patient = auth.authorize_relationship(self._store, doctor.id, patient_id)
            timestamp = datetime.now().isoformat()
            patient.history = f"{patient.history} \n Doctor {doctor.id} : {doctor.name} at {timestamp} \n {text}"
            self._store.patients.put(patient.id, patient)
        logger.info("Doctor %s updated the history of patient %s", doctor.id, patient.id)
        return patient.masked(keep_history=True)

    def get_patient_info(self, doctor_id: int, doctor_password: str, patient_id: int) -> Patient:
        """Full patient record for one of the patient's doctors (password masked)."""
        with self._store.lock:
            doctor = auth.authorize_doctor(self._store, doctor_id, doctor_password)
            patient = auth.authorize_relationship(self._store, doctor.id, patient_id)
        return patient.masked(keep_history=True)

    # Sessions and housekeeping

    def authenticate(self, kind: str, record_id: int, password: str):
        """Checks a sign-in attempt and returns the signed-in record, masked.

        Args:
            kind (str): 'hospital', 'doctor' or 'patient'.
            record_id (int): The record's ID.
            password (str): The record's password.
        """
        authorize = {
            'hospital': auth.authorize_hospital,
            'doctor': auth.authorize_doctor,
            'patient': auth.authorize_patient,
        }.get(kind)
        if authorize is None:
            raise InvalidPayload(f"Unknown account type: {kind}")
        record = authorize(self._store, record_id, password)
        if kind == 'patient':
            return record.masked(keep_history=True)
        return record.masked()

    def check_consistency(self) -> list:
        """Lists every broken back-reference in the store (empty when consistent)."""
        return links.find_inconsistencies(self._store)

    def _collect(self, table, ids) -> list:
        records = []
        for record_id in ids:
            record = table.get(record_id)
            if record is not None:
                records.append(record.masked())
        return records
