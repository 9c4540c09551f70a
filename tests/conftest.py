"""
Pytest configuration file for the Patient Records test suite.

This file defines the shared fixtures used across the test files:
- An isolated Fernet encryptor so tests never touch a real key.
- Temporary data and key files, so tests do not interfere with each other or
  with production data.
- Stores and services built on top of them, plus a service with one hospital.
"""
import pytest
from cryptography.fernet import Fernet

from patient_records import config
from patient_records.service import PatientRecordsService
from patient_records.store import RecordStore


@pytest.fixture(autouse=True)
def isolated_files(tmp_path, monkeypatch):
    """Points the default data and key files into the test's temporary directory."""
    monkeypatch.setattr(config, "DATA_FILE", str(tmp_path / "records.json"))
    monkeypatch.setattr(config, "KEY_FILE", str(tmp_path / "secret.key"))


@pytest.fixture
def encryptor():
    """Provides a Fernet instance with a throwaway key."""
    return Fernet(Fernet.generate_key())


@pytest.fixture
def data_file(tmp_path):
    return str(tmp_path / "records.json")


@pytest.fixture
def store(data_file, encryptor):
    """A file-backed store in the temporary directory."""
    return RecordStore(data_file, encryptor)


@pytest.fixture
def service(store):
    return PatientRecordsService(store)


@pytest.fixture
def hospital_service(service):
    """
    Provides a service with one registered hospital.

    Returns:
        tuple: The `PatientRecordsService` and the created `Hospital`
               (whose password is "h1").
    """
    hospital = service.create_hospital("General Hospital", "1 Main Street", "h1")
    return service, hospital


@pytest.fixture
def care_team(hospital_service):
    """
    Provides a hospital with one doctor (password "d1") and one unassigned
    patient (password "p1").

    Returns:
        tuple: `(service, hospital, doctor, patient)`.
    """
    service, hospital = hospital_service
    doctor = service.create_doctor(hospital.id, "h1", "Dr Grey", "d1")
    patient = service.create_patient("Pat Doe", "Initial history", "p1")
    return service, hospital, doctor, patient
