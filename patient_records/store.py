"""
This module provides the persistent storage layer for the patient records core.

It defines the `RecordStore` class, which is responsible for:
- Issuing globally unique, increasing IDs from a single counter cell.
- Keeping three ID-keyed record tables (hospitals, doctors, patients).
- Encoding records to bounded JSON and decoding them back.
- Loading and saving everything to an encrypted JSON file (`patient_records.json`).
- Grouping writes into transactions that are saved once or rolled back whole.

All table access goes through `RecordStore.lock`, so one store can be shared by
the threads that serve Streamlit sessions.
"""
# patient_records/store.py

import copy
import json
import logging
import os
import threading
from contextlib import contextmanager

from cryptography.fernet import InvalidToken

from patient_records import config
from patient_records.encryption import get_encryptor
from patient_records.errors import (
    CorruptRecordError,
    CorruptStoreError,
    IdExhaustedError,
    RecordsError,
    RecordTooLargeError,
    StorageWriteError,
)
from patient_records.models import Doctor, Hospital, Patient

logger = logging.getLogger(__name__)

TABLES = {
    'hospitals': Hospital,
    'doctors': Doctor,
    'patients': Patient,
}


def encode_record(record) -> bytes:
    """Encodes a record to compact JSON, enforcing `config.MAX_RECORD_SIZE`.

    Raises:
        RecordTooLargeError: If the encoded form is over the ceiling.
    """
    encoded = json.dumps(record.__dict__, separators=(',', ':'), sort_keys=True).encode()
    if len(encoded) > config.MAX_RECORD_SIZE:
        raise RecordTooLargeError(record.kind, record.id, len(encoded), config.MAX_RECORD_SIZE)
    return encoded


def decode_record(record_cls, row):
    """Builds a record object from its stored form.

    Raises:
        CorruptRecordError: If the row does not match the record's fields.
    """
    try:
        return record_cls(**row)
    except TypeError as e:
        logger.error("Stored %s row is corrupt: %r", record_cls.kind, row)
        raise CorruptRecordError(f"Cannot decode {record_cls.kind} row: {e}") from e


class RecordTable:
    """One ID-keyed table of records inside a `RecordStore`."""

    def __init__(self, store, name, record_cls):
        self._store = store
        self.name = name
        self.record_cls = record_cls

    @property
    def _rows(self):
        # Looked up on every access: a rollback swaps out the store's data.
        return self._store._data[self.name]

    def get(self, record_id):
        """Returns the record stored under `record_id`, or None."""
        with self._store.lock:
            row = self._rows.get(str(record_id))
            if row is None:
                return None
            return decode_record(self.record_cls, row)

    def put(self, record_id, record):
        """Inserts or overwrites a record.

        Returns:
            The previous record under `record_id`, or None if this was an insert.
        """
        if record.id != record_id:
            raise ValueError(f"{record.kind} id {record.id} does not match key {record_id}")
        encoded = encode_record(record)
        with self._store.transaction():
            previous = self.get(record_id)
            self._rows[str(record_id)] = json.loads(encoded)
        return previous

    def scan(self) -> list:
        """Returns every `(id, record)` pair, ordered by ID."""
        with self._store.lock:
            rows = sorted(self._rows.items(), key=lambda item: int(item[0]))
            return [(int(key), decode_record(self.record_cls, row)) for key, row in rows]

    def __contains__(self, record_id):
        with self._store.lock:
            return str(record_id) in self._rows

    def __len__(self):
        with self._store.lock:
            return len(self._rows)


class RecordStore:
    """Owns the ID counter and the three record tables.

    A store built with `data_file=None` lives only in memory; `RecordStore.open`
    builds one backed by the encrypted data file.
    """

    def __init__(self, data_file=None, encryptor=None):
        self.data_file = data_file
        self._encryptor = encryptor
        if data_file and encryptor is None:
            self._encryptor = get_encryptor()
        self.lock = threading.RLock()
        self._depth = 0
        self._data = self._load_data()
        self.hospitals = RecordTable(self, 'hospitals', Hospital)
        self.doctors = RecordTable(self, 'doctors', Doctor)
        self.patients = RecordTable(self, 'patients', Patient)

    @classmethod
    def open(cls, data_file=None, key_file=None):
        """Opens the store kept in `data_file` (default `config.DATA_FILE`)."""
        return cls(data_file or config.DATA_FILE, get_encryptor(key_file))

    @staticmethod
    def _empty():
        return {'next_id': config.FIRST_ID, 'hospitals': {}, 'doctors': {}, 'patients': {}}

    def _load_data(self):
        """Loads and decrypts the data file.

        Returns:
            dict: The stored data, or a fresh structure if there is no file yet.

        Raises:
            CorruptStoreError: If the file exists but cannot be decrypted or parsed.
        """
        if not self.data_file:
            return self._empty()
        try:
            with open(self.data_file, 'rb') as f:
                encrypted_data = f.read()
        except FileNotFoundError:
            logger.info("Data file %s not found, starting with an empty store", self.data_file)
            return self._empty()
        if not encrypted_data:
            return self._empty()

        try:
            data = json.loads(self._encryptor.decrypt(encrypted_data).decode())
        except (InvalidToken, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error("Could not read data file %s (%s)", self.data_file, type(e).__name__)
            raise CorruptStoreError(f"Data file {self.data_file} cannot be read") from e
        if not isinstance(data, dict) or not isinstance(data.get('next_id'), int):
            logger.error("Data file %s has no ID counter", self.data_file)
            raise CorruptStoreError(f"Data file {self.data_file} has no ID counter")

        for table in TABLES:
            data.setdefault(table, {})
        logger.debug("Loaded %s", self.data_file)
        return data

    def _save_data(self):
        """Encrypts and saves the current data, replacing the file in one step."""
        if not self.data_file:
            return
        data_to_encrypt = json.dumps(self._data, indent=4)
        encrypted_data = self._encryptor.encrypt(data_to_encrypt.encode())
        tmp_file = f"{self.data_file}.tmp"
        with open(tmp_file, 'w') as f:
            f.write(encrypted_data.decode())
        os.replace(tmp_file, self.data_file)
        logger.debug("Saved %s", self.data_file)

    @contextmanager
    def transaction(self):
        """Groups writes so they are saved together or not at all.

        Re-entrant: only the outermost transaction snapshots, saves and rolls back.

        Raises:
            StorageWriteError: If the data file could not be written.
        """
        with self.lock:
            if self._depth:
                self._depth += 1
                try:
                    yield self
                finally:
                    self._depth -= 1
                return

            snapshot = copy.deepcopy(self._data)
            self._depth = 1
            try:
                try:
                    yield self
                except BaseException as e:
                    self._data = snapshot
                    if isinstance(e, RecordsError):
                        logger.debug("Rolled back: %s", e)
                    else:
                        logger.warning("Rolled back after %s", type(e).__name__)
                    raise
                try:
                    self._save_data()
                except OSError as e:
                    self._data = snapshot
                    logger.warning("Rolled back, could not write %s: %s", self.data_file, e)
                    raise StorageWriteError(f"Could not save records: {e}") from e
            finally:
                self._depth = 0

    def next_id(self) -> int:
        """Issues the next ID. IDs are shared by all record types and never reissued.

        Raises:
            IdExhaustedError: If the counter has run out of 64-bit IDs.
        """
        with self.transaction():
            current = self._data['next_id']
            if current > config.MAX_ID:
                raise IdExhaustedError("Cannot increment ids")
            self._data['next_id'] = current + 1
        return current

    def table_for(self, kind) -> RecordTable:
        """Returns the table for a record kind ('hospital', 'doctor' or 'patient')."""
        return {
            'hospital': self.hospitals,
            'doctor': self.doctors,
            'patient': self.patients,
        }[kind]
