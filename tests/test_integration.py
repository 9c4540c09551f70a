"""
Integration tests for the Patient Records application.

These tests drive `PatientRecordsService` operations end to end over a real
store, checking that authorization, relationship maintenance and storage work
together for each workflow.
"""
import pytest

from patient_records import config
from patient_records.errors import (
    AlreadyExists,
    InvalidPayload,
    NotFound,
    PatientAccessDenied,
    RecordTooLargeError,
    Unauthorized,
)
from patient_records.models import Hospital


def _raw(service, kind, record_id):
    """Reads a record straight from the store, secrets included."""
    return service.store.table_for(kind).get(record_id)


# Creation

def test_created_records_start_with_empty_relationships(service):
    hospital = service.create_hospital("General Hospital", "1 Main Street", "h1")
    patient = service.create_patient("Pat Doe", "Initial history", "p1")

    stored_hospital = _raw(service, "hospital", hospital.id)
    assert (stored_hospital.name, stored_hospital.address, stored_hospital.password) == ("General Hospital", "1 Main Street", "h1")
    assert stored_hospital.doctor_ids == [] and stored_hospital.patient_ids == []

    stored_patient = _raw(service, "patient", patient.id)
    assert (stored_patient.name, stored_patient.history, stored_patient.password) == ("Pat Doe", "Initial history", "p1")
    assert stored_patient.doctor_ids == [] and stored_patient.hospital_ids == []


def test_ids_are_unique_across_record_types(hospital_service):
    service, hospital = hospital_service
    ids = [hospital.id]
    for i in range(4):
        ids.append(service.create_doctor(hospital.id, "h1", f"Doctor {i}", "pass").id)
        ids.append(service.create_patient(f"Patient {i}", "Healthy", "pw").id)
        ids.append(service.create_hospital(f"Hospital {i}", "Somewhere", "pw").id)
    assert len(set(ids)) == len(ids)
    assert ids == sorted(ids)


def test_create_doctor_under_hospital(hospital_service):
    service, hospital = hospital_service
    doctor = service.create_doctor(hospital.id, "h1", "Dr Grey", "d1")
    assert doctor.hospital_id == hospital.id
    assert _raw(service, "hospital", hospital.id).doctor_ids == [doctor.id]
    assert _raw(service, "doctor", doctor.id).patient_ids == []


def test_create_doctor_requires_hospital_password(hospital_service):
    service, hospital = hospital_service
    with pytest.raises(Unauthorized):
        service.create_doctor(hospital.id, "wrong", "Dr Grey", "d1")
    with pytest.raises(NotFound):
        service.create_doctor(999, "h1", "Dr Grey", "d1")
    assert len(service.store.doctors) == 0
    assert _raw(service, "hospital", hospital.id).doctor_ids == []


def test_register_patient_links_hospital(hospital_service):
    service, hospital = hospital_service
    patient = service.register_patient(hospital.id, "h1", "Pat Doe", "Initial history", "p1")
    assert patient.hospital_ids == [hospital.id]
    assert _raw(service, "hospital", hospital.id).patient_ids == [patient.id]
    with pytest.raises(Unauthorized):
        service.register_patient(hospital.id, "nope", "Sam Roe", "Initial history", "p2")
    assert len(service.store.patients) == 1


def test_occupied_fresh_id_signals_allocator_bug(service):
    service.store.hospitals.put(0, Hospital(0, "Squatter", "Nowhere", "pw"))
    with pytest.raises(AlreadyExists):
        service.create_hospital("General Hospital", "1 Main Street", "h1")
    assert service.store.hospitals.get(0).name == "Squatter"
    assert len(service.store.hospitals) == 1


# Edits

def test_edit_hospital_with_correct_password(hospital_service):
    service, hospital = hospital_service
    updated = service.edit_hospital(hospital.id, "h1", name="City Hospital", new_password="h2")
    assert updated.name == "City Hospital"
    assert updated.address == "1 Main Street"
    assert service.authenticate("hospital", hospital.id, "h2").name == "City Hospital"
    with pytest.raises(Unauthorized):
        service.authenticate("hospital", hospital.id, "h1")


@pytest.mark.parametrize("kind", ["hospital", "doctor", "patient"])
def test_edit_with_wrong_password_changes_nothing(care_team, kind):
    service, hospital, doctor, patient = care_team
    record_id = {"hospital": hospital.id, "doctor": doctor.id, "patient": patient.id}[kind]
    edit = getattr(service, f"edit_{kind}")
    before = service.store._data[f"{kind}s"][str(record_id)].copy()

    with pytest.raises(Unauthorized):
        edit(record_id, "wrong", name="Someone Else")
    assert service.store._data[f"{kind}s"][str(record_id)] == before


def test_edit_keeps_relationships(care_team):
    service, _, doctor, patient = care_team
    service.assign_doctor_to_patient(doctor.id, "d1", patient.id, "p1")
    edited = service.edit_patient(patient.id, "p1", name="Pat Smith")
    assert edited.doctor_ids == [doctor.id]
    assert edited.history == "Initial history"
    assert service.edit_doctor(doctor.id, "d1", new_password="d2").patient_ids == [patient.id]


# Assignment

def test_assign_doctor_to_patient_links_both_sides_and_hospital(care_team):
    service, hospital, doctor, patient = care_team
    assigned_doctor, assigned_patient = service.assign_doctor_to_patient(doctor.id, "d1", patient.id, "p1")

    assert assigned_doctor.patient_ids == [patient.id]
    assert assigned_patient.doctor_ids == [doctor.id]
    assert _raw(service, "doctor", doctor.id).patient_ids == [patient.id]
    assert _raw(service, "patient", patient.id).doctor_ids == [doctor.id]
    assert _raw(service, "patient", patient.id).hospital_ids == [hospital.id]
    assert _raw(service, "hospital", hospital.id).patient_ids == [patient.id]


def test_assign_twice_is_idempotent(care_team):
    service, hospital, doctor, patient = care_team
    service.assign_doctor_to_patient(doctor.id, "d1", patient.id, "p1")
    service.assign_doctor_to_patient(doctor.id, "d1", patient.id, "p1")
    assert _raw(service, "doctor", doctor.id).patient_ids == [patient.id]
    assert _raw(service, "patient", patient.id).doctor_ids == [doctor.id]
    assert _raw(service, "hospital", hospital.id).patient_ids == [patient.id]


def test_assign_with_wrong_patient_password_changes_nothing(care_team):
    service, hospital, doctor, patient = care_team
    service.assign_doctor_to_patient(doctor.id, "d1", patient.id, "p1")
    with pytest.raises(Unauthorized):
        service.assign_doctor_to_patient(doctor.id, "d1", patient.id, "wrong")
    assert _raw(service, "doctor", doctor.id).patient_ids == [patient.id]
    assert _raw(service, "patient", patient.id).doctor_ids == [doctor.id]


def test_assign_checks_doctor_before_patient(care_team):
    service, _, doctor, patient = care_team
    with pytest.raises(Unauthorized) as exc_info:
        service.assign_doctor_to_patient(doctor.id, "wrong", patient.id, "wrong")
    assert "Doctor" in exc_info.value.message
    with pytest.raises(NotFound) as exc_info:
        service.assign_doctor_to_patient(doctor.id, "d1", 999, "p1")
    assert exc_info.value.entity == "patient"


def test_assignment_symmetry_across_many_pairs(hospital_service):
    service, hospital = hospital_service
    doctors = [service.create_doctor(hospital.id, "h1", f"Doctor {i}", "pass") for i in range(3)]
    patients = [service.create_patient(f"Patient {i}", "Healthy", "pw") for i in range(3)]
    for i, doctor in enumerate(doctors):
        for patient in patients[: i + 1]:
            service.assign_doctor_to_patient(doctor.id, "pass", patient.id, "pw")

    for doctor in doctors:
        stored_doctor = _raw(service, "doctor", doctor.id)
        for patient in patients:
            stored_patient = _raw(service, "patient", patient.id)
            assert (patient.id in stored_doctor.patient_ids) == (doctor.id in stored_patient.doctor_ids)
    assert service.check_consistency() == []


def test_admit_patient_requires_both_passwords(care_team):
    service, hospital, _, patient = care_team
    with pytest.raises(Unauthorized):
        service.admit_patient(hospital.id, "h1", patient.id, "wrong")
    admitted = service.admit_patient(hospital.id, "h1", patient.id, "p1")
    assert admitted.hospital_ids == [hospital.id]
    assert _raw(service, "hospital", hospital.id).patient_ids == [patient.id]


def test_transfer_doctor_moves_to_new_hospital(care_team):
    service, hospital, doctor, patient = care_team
    other = service.create_hospital("Other Hospital", "2 Side Street", "o1")
    service.assign_doctor_to_patient(doctor.id, "d1", patient.id, "p1")

    with pytest.raises(Unauthorized):
        service.transfer_doctor(doctor.id, "d1", other.id, "h1")
    moved = service.transfer_doctor(doctor.id, "d1", other.id, "o1")

    assert moved.hospital_id == other.id
    assert moved.patient_ids == [patient.id]
    assert _raw(service, "hospital", other.id).doctor_ids == [doctor.id]
    assert _raw(service, "hospital", hospital.id).doctor_ids == []
    assert service.check_consistency() == []


# History

def test_history_appends_in_order(care_team):
    service, _, doctor, patient = care_team
    service.assign_doctor_to_patient(doctor.id, "d1", patient.id, "p1")
    for entry in ["First visit", "Second visit", "Third visit"]:
        service.update_patient_history(doctor.id, "d1", patient.id, entry)

    history = _raw(service, "patient", patient.id).history
    assert history.startswith("Initial history")
    assert history.startswith(f"Initial history \n Doctor {doctor.id} : Dr Grey at ")
    assert history.count(f"Doctor {doctor.id} : Dr Grey at") == 3
    assert history.endswith(" \n Third visit")
    positions = [history.index(entry) for entry in ["First visit", "Second visit", "Third visit"]]
    assert positions == sorted(positions)


def test_history_requires_assignment_and_password(care_team):
    service, _, doctor, patient = care_team
    with pytest.raises(PatientAccessDenied):
        service.update_patient_history(doctor.id, "d1", patient.id, "Unauthorized note")
    service.assign_doctor_to_patient(doctor.id, "d1", patient.id, "p1")
    with pytest.raises(Unauthorized):
        service.update_patient_history(doctor.id, "wrong", patient.id, "Unauthorized note")
    assert _raw(service, "patient", patient.id).history == "Initial history"


def test_history_over_size_limit_is_rejected_whole(care_team):
    service, _, doctor, patient = care_team
    service.assign_doctor_to_patient(doctor.id, "d1", patient.id, "p1")
    with pytest.raises(RecordTooLargeError):
        service.update_patient_history(doctor.id, "d1", patient.id, "x" * config.MAX_RECORD_SIZE)
    assert isinstance(RecordTooLargeError("patient", 1, 2, 1), InvalidPayload)
    assert _raw(service, "patient", patient.id).history == "Initial history"


# Reads

def test_public_reads_mask_secrets(care_team):
    service, hospital, doctor, patient = care_team
    assert service.get_hospital(hospital.id).password == config.MASK
    assert service.get_doctor(doctor.id).password == config.MASK
    public_patient = service.get_patient(patient.id)
    assert public_patient.password == config.MASK
    assert public_patient.history == config.MASK
    assert _raw(service, "patient", patient.id).password == "p1"


def test_get_by_id_unknown_raises_not_found(service):
    for getter, kind in [(service.get_hospital, "hospital"), (service.get_doctor, "doctor"), (service.get_patient, "patient")]:
        with pytest.raises(NotFound) as exc_info:
            getter(42)
        assert exc_info.value.entity == kind
        assert exc_info.value.entity_id == 42


def test_get_patient_info_requires_assignment(care_team):
    service, _, doctor, patient = care_team
    with pytest.raises(PatientAccessDenied):
        service.get_patient_info(doctor.id, "d1", patient.id)

    service.assign_doctor_to_patient(doctor.id, "d1", patient.id, "p1")
    info = service.get_patient_info(doctor.id, "d1", patient.id)
    assert info.history == "Initial history"
    assert info.password == config.MASK


def test_unassigned_doctor_cannot_read_other_patient(care_team):
    service, hospital, doctor, patient = care_team
    other_doctor = service.create_doctor(hospital.id, "h1", "Dr House", "d2")
    service.assign_doctor_to_patient(doctor.id, "d1", patient.id, "p1")
    with pytest.raises(PatientAccessDenied):
        service.get_patient_info(other_doctor.id, "d2", patient.id)


def test_list_and_find_hospitals(service):
    with pytest.raises(NotFound):
        service.list_hospitals()
    service.create_hospital("General Hospital", "1 Main Street", "h1")
    service.create_hospital("St. Mary's Clinic", "2 Side Street", "h2")

    assert [h.name for h in service.list_hospitals()] == ["General Hospital", "St. Mary's Clinic"]
    assert all(h.password == config.MASK for h in service.list_hospitals())
    assert [h.name for h in service.find_hospitals("GENERAL")] == ["General Hospital"]
    assert len(service.find_hospitals("")) == 2
    with pytest.raises(NotFound):
        service.find_hospitals("dental")


def test_relationship_listings(care_team):
    service, hospital, doctor, patient = care_team
    assert service.get_patients_for_doctor(doctor.id, "d1") == []
    service.assign_doctor_to_patient(doctor.id, "d1", patient.id, "p1")

    patients = service.get_patients_for_doctor(doctor.id, "d1")
    assert [p.id for p in patients] == [patient.id]
    assert patients[0].history == config.MASK
    assert [d.id for d in service.get_doctors_for_hospital(hospital.id)] == [doctor.id]
    assert [h.id for h in service.get_hospitals_for_patient(patient.id, "p1")] == [hospital.id]
    assert [p.id for p in service.get_doctor_patients(hospital.id, "h1", doctor.id)] == [patient.id]

    with pytest.raises(Unauthorized):
        service.get_patients_for_doctor(doctor.id, "wrong")
    with pytest.raises(Unauthorized):
        service.get_hospitals_for_patient(patient.id, "wrong")
    with pytest.raises(NotFound):
        service.get_doctors_for_hospital(999)


def test_authenticate_returns_masked_record(care_team):
    service, hospital, doctor, patient = care_team
    assert service.authenticate("hospital", hospital.id, "h1").password == config.MASK
    assert service.authenticate("doctor", doctor.id, "d1").name == "Dr Grey"
    signed_in = service.authenticate("patient", patient.id, "p1")
    assert signed_in.history == "Initial history"
    assert signed_in.password == config.MASK
    with pytest.raises(Unauthorized):
        service.authenticate("doctor", doctor.id, "p1")


def test_authenticate_rejects_unknown_account_type(care_team):
    service, hospital, _, _ = care_team
    with pytest.raises(InvalidPayload) as exc_info:
        service.authenticate("nurse", hospital.id, "h1")
    assert exc_info.value.kind == "InvalidPayload"
    assert "nurse" in str(exc_info.value)
