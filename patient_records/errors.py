"""
Error types raised by the patient records core.

`RecordsError` and its subclasses are the recoverable outcomes of an operation;
the request façade catches them and shows the message. The corruption and
exhaustion errors at the bottom signal a broken store and are left to propagate.
"""
# patient_records/errors.py


class RecordsError(Exception):
    """Base class for errors surfaced to callers of the service."""
    kind = 'Error'

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class NotFound(RecordsError):
    """Raised when no record exists under the requested ID, or a search matches nothing."""
    kind = 'NotFound'

    def __init__(self, entity, entity_id=None, message=None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(message or f"{entity} of id: {entity_id} not found")


class Unauthorized(RecordsError):
    """Raised when a password does not match or a relationship is missing."""
    kind = 'Unauthorized'


class PatientAccessDenied(Unauthorized):
    """Raised when a doctor acts on a patient who has not been assigned to them."""

    def __init__(self, doctor_id, patient_id):
        self.doctor_id = doctor_id
        self.patient_id = patient_id
        super().__init__(
            f"Patient access unauthorized, doctor {doctor_id} is not assigned to patient {patient_id}"
        )


class InvalidPayload(RecordsError):
    """Raised when a request is malformed or the store refuses a write."""
    kind = 'InvalidPayload'


class RecordTooLargeError(InvalidPayload):
    """Raised when an encoded record exceeds the configured size ceiling."""

    def __init__(self, entity, entity_id, size, limit):
        self.size = size
        self.limit = limit
        super().__init__(f"{entity} {entity_id} encodes to {size} bytes, limit is {limit}")


class StorageWriteError(InvalidPayload):
    """Raised when the data file could not be written; the change was rolled back."""


class AlreadyExists(RecordsError):
    """Raised when a freshly allocated ID is already occupied (allocator bug)."""
    kind = 'AlreadyExists'

    def __init__(self, entity, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"Could not add {entity}: id {entity_id} is already taken")


class CorruptRecordError(Exception):
    """A stored record could not be decoded."""


class CorruptStoreError(Exception):
    """The data file could not be decrypted or parsed."""


class IdExhaustedError(OverflowError):
    """The ID counter ran past the 64-bit range."""
