"""
This module handles the encryption key for the records data file.

It uses the `cryptography` library (Fernet symmetric encryption) so that the data
at rest (`patient_records.json`) is unreadable without the key. The module is responsible for:
- Generating a secret key if one does not already exist.
- Storing and loading the key from `config.KEY_FILE`.
- Building the `Fernet` instance the `RecordStore` encrypts and decrypts with.

Security Note: the key file is critical. It must be kept secure and should not be
committed to version control.
"""
# patient_records/encryption.py

import logging

from cryptography.fernet import Fernet

from patient_records import config

logger = logging.getLogger(__name__)


def write_key(key_file=None) -> bytes:
    """Generates a new Fernet key and saves it to `key_file`.

    Returns:
        bytes: The generated key.
    """
    key = Fernet.generate_key()
    with open(key_file or config.KEY_FILE, "wb") as f:
        f.write(key)
    return key


def load_key(key_file=None) -> bytes:
    """Loads the Fernet key from `key_file`.

    Returns:
        bytes: The encryption key.
    """
    with open(key_file or config.KEY_FILE, "rb") as f:
        return f.read().strip()


def get_encryptor(key_file=None) -> Fernet:
    """Returns a Fernet instance, generating the key file on first run."""
    key_file = key_file or config.KEY_FILE
    try:
        key = load_key(key_file)
    except FileNotFoundError:
        logger.info("Encryption key %s not found, generating a new one", key_file)
        key = write_key(key_file)
    return Fernet(key)


# This allows the script to be run directly to generate a key if needed.
if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    get_encryptor()
    print(f"Encryption key is ready in '{config.KEY_FILE}'.")
