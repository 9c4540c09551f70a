"""
Shape checks for incoming payloads.

The façade runs these before calling `PatientRecordsService`; the service itself
trusts payload shape and only checks existence and authorization. Each function
returns a list of problems, empty when the payload is acceptable.
"""
# patient_records/validation.py

MIN_NAME_LENGTH = 3
MIN_ADDRESS_LENGTH = 3
MIN_HISTORY_LENGTH = 6
MIN_DOCTOR_PASSWORD_LENGTH = 4


def _min_length(label, value, minimum):
    if len((value or '').strip()) < minimum:
        return [f"{label} must be at least {minimum} characters."]
    return []


def _required(label, value):
    if not value:
        return [f"{label} is required."]
    return []


def validate_hospital_payload(name, address, password) -> list:
    return (
        _min_length("Name", name, MIN_NAME_LENGTH)
        + _min_length("Address", address, MIN_ADDRESS_LENGTH)
        + _required("Password", password)
    )


def validate_doctor_payload(name, password) -> list:
    return (
        _min_length("Name", name, MIN_NAME_LENGTH)
        + _min_length("Password", password, MIN_DOCTOR_PASSWORD_LENGTH)
    )


def validate_patient_payload(name, history, password) -> list:
    return (
        _min_length("Name", name, MIN_NAME_LENGTH)
        + _min_length("History", history, MIN_HISTORY_LENGTH)
        + _required("Password", password)
    )


def validate_edit_payload(name=None, new_password=None, address=None) -> list:
    """Checks the optional fields of an edit; blank fields mean 'leave unchanged'."""
    problems = []
    if name:
        problems += _min_length("Name", name, MIN_NAME_LENGTH)
    if address:
        problems += _min_length("Address", address, MIN_ADDRESS_LENGTH)
    if not name and not new_password and not address:
        problems.append("Nothing to change.")
    return problems


def validate_history_entry(text) -> list:
    if not (text or '').strip():
        return ["History entry cannot be empty."]
    return []
