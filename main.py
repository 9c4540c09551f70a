"""
This is the main entry point for the Patient Records Streamlit application.

This script handles the following key responsibilities:
- Sets the page configuration and logging for the app.
- Initializes the `PatientRecordsService` over the encrypted record store.
- Manages the session state that tracks who is signed in.
- Routes the user to the public pages or to their dashboard.
"""
# main.py

import logging

import streamlit as st

from patient_records.service import PatientRecordsService
from patient_records.store import RecordStore
import gui

st.set_page_config(
    page_title="Patient Records",
    layout="wide"
)


def _secret(name, default=None):
    """Reads a value from `.streamlit/secrets.toml`, if that file exists."""
    if st.secrets.load_if_toml_exists():
        return st.secrets.get(name, default)
    return default


# Service Initialization
@st.cache_resource
def get_records_service():
    """
    Initializes and returns the PatientRecordsService shared by all sessions.

    This function is decorated with `@st.cache_resource` so the service and its
    store are created once and shared across sessions and reruns. The data and
    key file locations may be set as `DATA_FILE` and `KEY_FILE` secrets;
    otherwise the defaults in `patient_records.config` apply.

    Returns:
        PatientRecordsService: The singleton service instance.
    """
    logging.basicConfig(
        level=_secret("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    store = RecordStore.open(_secret("DATA_FILE"), _secret("KEY_FILE"))
    return PatientRecordsService(store)


service = get_records_service()

# Session State Management
if 'current_user' not in st.session_state:
    st.session_state.current_user = None
if 'current_role' not in st.session_state:
    st.session_state.current_role = None
if 'password' not in st.session_state:
    st.session_state.password = None
if 'auth_page' not in st.session_state:
    st.session_state.auth_page = 'welcome'

# Main App Router
if st.session_state.current_user:
    gui.show_main_app(service)
elif st.session_state.auth_page == 'welcome':
    gui.show_welcome_page()
elif st.session_state.auth_page == 'login':
    gui.show_login_form(service)
elif st.session_state.auth_page == 'register':
    gui.show_register_form(service)
elif st.session_state.auth_page == 'directory':
    gui.show_directory(service)
