import json

import pandas as pd
import streamlit as st

import auth
from infrastructure.repositories.sqlite_audit_repository import AuditAction
from utils import session_manager

AUDIT_COLUMNS = ["ID", "Time (UTC)", "Actor", "Role", "Action", "Target", "Details", "Result"]


def _format_details(raw):
    if not raw:
        return ""
    try:
        details = json.loads(raw)
    except ValueError:
        # log_action cuts oversized metadata mid-document
        return raw
    if not isinstance(details, dict):
        return raw
    return ", ".join(f"{k}={v}" for k, v in details.items())


def build_audit_frame(rows) -> pd.DataFrame:
    df = pd.DataFrame(rows, columns=AUDIT_COLUMNS)
    if not df.empty:
        df["Details"] = df["Details"].apply(_format_details)
    return df


def render_settings(auth_session):
    col_title, col_logout = st.columns([4, 1])
    with col_title:
        st.title("Settings")
        st.caption("Configure your application preferences")
    with col_logout:
        if st.button("Logout", type="primary", key="settings_logout"):
            session_manager.logout()

    user = auth_session.current().user
    if user is not None:
        st.write(f"Signed in as **{user.identity}** ({user.role})")

    st.subheader("Recent sign-in activity")
    action_filter = st.selectbox("Action", ["All"] + [a.value for a in AuditAction])
    df = build_audit_frame(auth.get_audit_repo().get_logs(limit=200, action_filter=action_filter))
    if df.empty:
        st.info("No activity recorded yet.")
    else:
        st.dataframe(df, use_container_width=True, hide_index=True)
