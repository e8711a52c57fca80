import streamlit as st
from datetime import datetime

from infrastructure.observability import setup_observability
setup_observability()

from utils import session_manager
from use_cases import auth_flow, bootstrap, route_guard
from views import login_view, section_view, settings_view

# --- PAGE SETUP ---
st.set_page_config(page_title="OpsPanel Admin", layout="wide", initial_sidebar_state="expanded")

# Health Check (Basic load-balancer heartbeat)
if st.query_params.get("health") == "1":
    st.write({"status": "ok", "version": "1.0", "uptime": datetime.utcnow().isoformat()})
    st.stop()

# --- STARTUP ORCHESTRATION ---
startup_result = bootstrap.run_startup()
if startup_result.status == "STOP":
    st.error("The panel could not start: session storage is unavailable.")
    st.stop()

auth_session = st.session_state.auth_session
reset_flow = st.session_state.reset_flow
session_manager.sync_browser_token()

# --- ROUTE GUARD (evaluated on every run) ---
requested_page = st.query_params.get("page") or st.session_state.page
auth_result = auth_flow.ensure_authenticated_session(auth_session, requested_page)

if auth_result.status == "LOADING":
    with st.spinner("Loading..."):
        st.empty()
    st.stop()

if auth_result.status == "STOP":
    if st.query_params.get("page") != route_guard.LOGIN_PAGE:
        st.query_params["page"] = route_guard.LOGIN_PAGE
    login_view.render_auth_screen(auth_session, reset_flow)
    st.stop()

if auth_result.page == route_guard.NOT_FOUND_PAGE:
    section_view.render_not_found()
    st.stop()

# Leaving the login screen abandons any half-finished recovery attempt.
reset_flow.close()
if st.query_params.get("page") != auth_result.page:
    st.query_params["page"] = auth_result.page

try:
    import sentry_sdk
    if sentry_sdk.Hub.current.client:
        sentry_sdk.set_user({"username": auth_result.identity, "role": auth_session.current().user.role})
except (ImportError, AttributeError):
    pass

# --- SIDEBAR ---
with st.sidebar:
    st.markdown("### OpsPanel")
    st.caption(auth_result.identity)
    for page in route_guard.PROTECTED_PAGES:
        label = section_view.SECTION_TITLES[page]
        if st.button(label, key=f"nav_{page}", use_container_width=True,
                     type="primary" if page == auth_result.page else "secondary"):
            session_manager.navigate(page)
            st.rerun()
    st.divider()
    if st.button("Logout", key="logout_btn", type="secondary"):
        session_manager.logout()

session_manager.flush_notifications()

if auth_result.page == "settings":
    settings_view.render_settings(auth_session)
else:
    section_view.render_section(auth_result.page)
