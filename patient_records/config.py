"""
Settings for the patient records store.

Values are module constants so tests can monkeypatch them. The Streamlit entry
point may point the store at other files through `st.secrets`.
"""
# patient_records/config.py

# Encrypted data file holding the ID counter and all three record tables.
DATA_FILE = 'records.json'

# Fernet key used to encrypt DATA_FILE. Keep it out of version control.
KEY_FILE = 'secret.key'

# Ceiling on the encoded size of a single record, in bytes.
MAX_RECORD_SIZE = 1024

# The first ID handed out by a fresh store.
FIRST_ID = 0

# Largest ID the allocator may issue (unsigned 64-bit).
MAX_ID = 2**64 - 1

# Placeholder shown instead of secrets on public reads.
MASK = '-'
