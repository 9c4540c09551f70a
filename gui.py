"""
This module defines the graphical user interface for the Patient Records application using Streamlit.

It renders the public pages (welcome, hospital directory, registration, sign-in) and one
dashboard per signed-in record type (hospital, doctor, patient). Form input is checked
with `patient_records.validation` before the service is called, and errors raised by the
service are shown to the user as-is.

The main entry point for signed-in users is `show_main_app`.
"""
# gui.py

import streamlit as st
import pandas as pd

from patient_records.errors import RecordsError
from patient_records import validation

ROLES = ["hospital", "doctor", "patient"]


def set_page_welcome():
    st.session_state.auth_page = 'welcome'

def set_page_login():
    st.session_state.auth_page = 'login'

def set_page_register():
    st.session_state.auth_page = 'register'

def set_page_directory():
    st.session_state.auth_page = 'directory'


def _show_problems(problems):
    """Displays validation problems. Returns True if there were any."""
    for problem in problems:
        st.error(problem)
    return bool(problems)


def _run(action, success_message=None):
    """Calls a service operation, showing its error instead of raising.

    Args:
        action (callable): A zero-argument callable wrapping the service call.
        success_message (str or callable, optional): Shown on success; a callable
            receives the result and returns the message.

    Returns:
        The result of `action`, or None if the service refused the operation.
    """
    try:
        result = action()
    except RecordsError as e:
        st.error(f"{e.kind}: {e.message}")
        return None
    if success_message:
        st.success(success_message(result) if callable(success_message) else success_message)
    return result


def _hospitals_frame(hospitals):
    return pd.DataFrame([
        {
            "ID": h.id,
            "Name": h.name,
            "Address": h.address,
            "Doctors": len(h.doctor_ids),
            "Patients": len(h.patient_ids),
        }
        for h in hospitals
    ])

def _doctors_frame(doctors):
    return pd.DataFrame([
        {"ID": d.id, "Name": d.name, "Hospital": d.hospital_id, "Patients": len(d.patient_ids)}
        for d in doctors
    ])

def _patients_frame(patients):
    return pd.DataFrame([
        {"ID": p.id, "Name": p.name, "Doctors": len(p.doctor_ids), "Hospitals": len(p.hospital_ids)}
        for p in patients
    ])


def _render_history(history):
    """Shows a patient's history, one block per entry."""
    if not history or history == '-':
        st.info("No history available.")
        return
    st.text(history)


# Public pages

def show_welcome_page():
    """Displays the welcome screen with the public entry points."""
    col1, col2, col3 = st.columns([1, 2, 1])
    with col2:
        st.markdown("<h1 style='text-align: center;'>Patient Records</h1>", unsafe_allow_html=True)
        st.markdown("<p style='text-align: center;'>Hospitals, doctors and patients in one place.</p>", unsafe_allow_html=True)
        st.info("Sign in with the ID you were given when your record was created.")

        st.button("Sign In", on_click=set_page_login, use_container_width=True, type="primary")
        st.button("Register", on_click=set_page_register, use_container_width=True)
        st.button("Hospital Directory", on_click=set_page_directory, use_container_width=True)


def show_directory(service):
    """Displays the public hospital directory with a name search.

    Args:
        service: The main application service instance.
    """
    st.button("← Back to Welcome", on_click=set_page_welcome)
    st.markdown("## Hospital Directory")
    search = st.text_input("Search by name")
    try:
        hospitals = service.find_hospitals(search) if search else service.list_hospitals()
    except RecordsError as e:
        st.info(e.message)
        return
    st.dataframe(_hospitals_frame(hospitals), hide_index=True, use_container_width=True)

    hospital_id = st.selectbox("Show doctors of", [h.id for h in hospitals], format_func=lambda i: next(h.name for h in hospitals if h.id == i))
    if hospital_id is not None:
        doctors = service.get_doctors_for_hospital(hospital_id)
        if doctors:
            st.dataframe(_doctors_frame(doctors), hide_index=True, use_container_width=True)
        else:
            st.caption("No doctors listed yet.")


def show_login_form(service):
    """Displays the sign-in form and starts a session for the chosen record.

    Args:
        service: The main application service instance.
    """
    st.button("← Back to Welcome", on_click=set_page_welcome)
    col1, col2, col3 = st.columns([1, 2, 1])
    with col2:
        st.markdown("<h2 style='text-align: center;'>Sign In</h2>", unsafe_allow_html=True)
        with st.form("login_form"):
            role = st.selectbox("Sign in as", ROLES)
            record_id = st.number_input("ID", min_value=0, step=1, format="%d")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Sign In", use_container_width=True)

            if submitted:
                if not password:
                    st.error("Password is required.")
                    return
                try:
                    record = service.authenticate(role, int(record_id), password)
                except RecordsError as e:
                    st.error(e.message)
                    return
                st.session_state.current_user = record
                st.session_state.current_role = role
                st.session_state.password = password
                st.session_state.auth_page = 'welcome'
                st.rerun()


def show_register_form(service):
    """Displays the registration forms for new hospitals and new patients.

    Doctors are created by their hospital from the hospital dashboard.

    Args:
        service: The main application service instance.
    """
    st.button("← Back to Welcome", on_click=set_page_welcome)
    st.markdown("## Register")
    hospital_tab, patient_tab = st.tabs(["New Hospital", "New Patient"])

    with hospital_tab:
        with st.form("register_hospital_form"):
            name = st.text_input("Hospital Name")
            address = st.text_input("Address")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Register Hospital", use_container_width=True)
            if submitted and not _show_problems(validation.validate_hospital_payload(name, address, password)):
                _run(
                    lambda: service.create_hospital(name.strip(), address.strip(), password),
                    lambda h: f"Hospital {h.name} registered. Its ID is {h.id}.",
                )

    with patient_tab:
        with st.form("register_patient_form"):
            name = st.text_input("Full Name")
            history = st.text_area("Medical History", help="A short summary, at least 6 characters.")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Register Patient", use_container_width=True)
            if submitted and not _show_problems(validation.validate_patient_payload(name, history, password)):
                _run(
                    lambda: service.create_patient(name.strip(), history.strip(), password),
                    lambda p: f"Patient {p.name} registered. Your ID is {p.id}.",
                )


# Signed-in pages

def show_main_app(service):
    """Routes a signed-in session to the dashboard of its record type.

    Args:
        service: The main application service instance.
    """
    user = st.session_state.current_user
    role = st.session_state.current_role

    st.markdown(f"## {role.capitalize()} Dashboard: {user.name}")
    st.caption(f"{role.capitalize()} ID: {user.id}")
    if st.button("Sign Out"):
        st.session_state.current_user = None
        st.session_state.current_role = None
        st.session_state.password = None
        st.session_state.auth_page = 'welcome'
        st.rerun()
    st.divider()

    if role == 'hospital':
        _render_hospital_dashboard(service, user)
    elif role == 'doctor':
        _render_doctor_dashboard(service, user)
    else:
        _render_patient_dashboard(service, user)


def _render_hospital_dashboard(service, hospital):
    password = st.session_state.password
    staff_tab, patients_tab, profile_tab = st.tabs(["Doctors", "Patients", "Profile"])

    with staff_tab:
        doctors = service.get_doctors_for_hospital(hospital.id)
        if doctors:
            st.dataframe(_doctors_frame(doctors), hide_index=True, use_container_width=True)
            doctor_id = st.selectbox("View patients of", [d.id for d in doctors], key="hospital_doctor_select")
            patients = _run(lambda: service.get_doctor_patients(hospital.id, password, doctor_id))
            if patients:
                st.dataframe(_patients_frame(patients), hide_index=True, use_container_width=True)
            elif patients is not None:
                st.caption("This doctor has no patients yet.")
        else:
            st.info("No doctors yet.")

        with st.expander("Add a Doctor"):
            with st.form("add_doctor_form", clear_on_submit=True):
                name = st.text_input("Doctor Name")
                doctor_password = st.text_input("Doctor Password", type="password")
                if st.form_submit_button("Add Doctor"):
                    if not _show_problems(validation.validate_doctor_payload(name, doctor_password)):
                        _run(
                            lambda: service.create_doctor(hospital.id, password, name.strip(), doctor_password),
                            lambda d: f"Doctor {d.name} added with ID {d.id}.",
                        )

    with patients_tab:
        current = _run(lambda: service.get_hospital(hospital.id))
        if current and current.patient_ids:
            patients = [service.get_patient(pid) for pid in current.patient_ids]
            st.dataframe(_patients_frame(patients), hide_index=True, use_container_width=True)
        else:
            st.info("No patients yet.")

        with st.expander("Register a New Patient"):
            with st.form("hospital_register_patient_form", clear_on_submit=True):
                name = st.text_input("Patient Name")
                history = st.text_area("Medical History")
                patient_password = st.text_input("Patient Password", type="password")
                if st.form_submit_button("Register Patient"):
                    if not _show_problems(validation.validate_patient_payload(name, history, patient_password)):
                        _run(
                            lambda: service.register_patient(hospital.id, password, name.strip(), history.strip(), patient_password),
                            lambda p: f"Patient {p.name} registered with ID {p.id}.",
                        )

        with st.expander("Admit an Existing Patient"):
            with st.form("admit_patient_form", clear_on_submit=True):
                patient_id = st.number_input("Patient ID", min_value=0, step=1, format="%d")
                patient_password = st.text_input("Patient Password", type="password")
                if st.form_submit_button("Admit Patient"):
                    _run(
                        lambda: service.admit_patient(hospital.id, password, int(patient_id), patient_password),
                        lambda p: f"Patient {p.name} admitted.",
                    )

    with profile_tab:
        _render_edit_form(
            "edit_hospital_form",
            lambda name, new_password, address: service.edit_hospital(
                hospital.id, password, name=name, address=address, new_password=new_password
            ),
            with_address=True,
        )


def _render_doctor_dashboard(service, doctor):
    password = st.session_state.password
    patients_tab, record_tab, profile_tab = st.tabs(["My Patients", "Patient Record", "Profile"])

    with patients_tab:
        patients = _run(lambda: service.get_patients_for_doctor(doctor.id, password)) or []
        if patients:
            st.dataframe(_patients_frame(patients), hide_index=True, use_container_width=True)
        else:
            st.info("No patients assigned yet.")

        with st.expander("Take On a Patient"):
            st.caption("The patient must enter their own password to consent.")
            with st.form("assign_patient_form", clear_on_submit=True):
                patient_id = st.number_input("Patient ID", min_value=0, step=1, format="%d")
                patient_password = st.text_input("Patient Password", type="password")
                if st.form_submit_button("Assign"):
                    _run(
                        lambda: service.assign_doctor_to_patient(doctor.id, password, int(patient_id), patient_password),
                        lambda result: f"Patient {result[1].name} is now under your care.",
                    )

    with record_tab:
        patient_id = st.number_input("Patient ID", min_value=0, step=1, format="%d", key="record_patient_id")
        patient = None
        if st.toggle("Open record", key="open_record"):
            patient = _run(lambda: service.get_patient_info(doctor.id, password, int(patient_id)))
        if patient:
            st.markdown(f"### {patient.name}")
            _render_history(patient.history)
            with st.form("history_form", clear_on_submit=True):
                entry = st.text_area("New history entry")
                if st.form_submit_button("Append to History"):
                    if not _show_problems(validation.validate_history_entry(entry)):
                        _run(
                            lambda: service.update_patient_history(doctor.id, password, patient.id, entry.strip()),
                            "History updated.",
                        )

    with profile_tab:
        current = _run(lambda: service.get_doctor(doctor.id))
        if current:
            hospital = _run(lambda: service.get_hospital(current.hospital_id))
            if hospital:
                st.write(f"Works at **{hospital.name}** (ID {hospital.id})")
        _render_edit_form(
            "edit_doctor_form",
            lambda name, new_password, _address: service.edit_doctor(doctor.id, password, name=name, new_password=new_password),
        )
        with st.expander("Move to Another Hospital"):
            with st.form("transfer_doctor_form", clear_on_submit=True):
                hospital_id = st.number_input("Hospital ID", min_value=0, step=1, format="%d")
                hospital_password = st.text_input("Hospital Password", type="password")
                if st.form_submit_button("Move"):
                    _run(
                        lambda: service.transfer_doctor(doctor.id, password, int(hospital_id), hospital_password),
                        "Hospital changed.",
                    )


def _render_patient_dashboard(service, patient):
    password = st.session_state.password
    history_tab, care_tab, profile_tab = st.tabs(["My History", "My Care", "Profile"])

    with history_tab:
        current = _run(lambda: service.authenticate('patient', patient.id, password))
        if current:
            _render_history(current.history)

    with care_tab:
        hospitals = _run(lambda: service.get_hospitals_for_patient(patient.id, password)) or []
        st.markdown("#### Hospitals")
        if hospitals:
            st.dataframe(_hospitals_frame(hospitals), hide_index=True, use_container_width=True)
        else:
            st.caption("Not affiliated with any hospital yet.")
        st.markdown("#### Doctors")
        doctors = [service.get_doctor(did) for did in (current.doctor_ids if current else [])]
        if doctors:
            st.dataframe(_doctors_frame(doctors), hide_index=True, use_container_width=True)
        else:
            st.caption("No doctors assigned yet.")

    with profile_tab:
        _render_edit_form(
            "edit_patient_form",
            lambda name, new_password, _address: service.edit_patient(patient.id, password, name=name, new_password=new_password),
        )


def _render_edit_form(form_key, save, with_address=False):
    """Renders a profile edit form; blank fields are left unchanged.

    Args:
        form_key (str): Unique key for the form.
        save (callable): Called with `(name, new_password, address)`.
        with_address (bool): Whether to offer the address field.
    """
    with st.form(form_key, clear_on_submit=True):
        name = st.text_input("New Name")
        address = st.text_input("New Address") if with_address else None
        new_password = st.text_input("New Password", type="password")
        if st.form_submit_button("Save Changes"):
            if not _show_problems(validation.validate_edit_payload(name, new_password, address)):
                updated = _run(lambda: save(name.strip() or None, new_password or None, (address or '').strip() or None), "Profile updated.")
                if updated is not None:
                    if new_password:
                        st.session_state.password = new_password
                    st.session_state.current_user = updated.masked()
