import asyncio
import logging
import time
from urllib.parse import unquote

import streamlit as st
import streamlit.components.v1 as components

from infrastructure.repositories.sqlite_session_repository import SESSION_KEY
from use_cases.domain_models import Notification
from utils.timers import PolledScheduler

log = logging.getLogger(__name__)

COOKIE_MAX_AGE = 2592000  # 30 days

"""
SESSION STATE CONTRACT

Streamlit keeps one st.session_state per browser tab. This module owns its keys.

auth_session: AuthSession | None
    session controller, built once by bootstrap.run_startup()
    default: None
    owner: bootstrap

reset_flow: ResetFlow | None
    password recovery state machine for this tab
    default: None
    owner: bootstrap

scheduler: PolledScheduler
    tick source for the resend countdown, polled by the login view
    default: PolledScheduler()
    owner: session_manager

return_to: str | None
    protected page requested before the login redirect
    default: None
    owner: auth_flow

page: str
    page currently shown
    default: "dashboard"
    owner: auth_flow

notifications: list[Notification]
    messages to show on the next run (toasts survive st.rerun this way)
    default: []
    owner: views

otp_input_version: int
    bumped to give the code input a fresh widget key, which clears it
    default: 0
    owner: login_view

browser_token_action: tuple[str, str | None] | None
    cookie change to send to the browser on the next run: ("set", token) or ("clear", None)
    default: None
    owner: session_manager
"""

def init_session_state():
    if 'auth_session' not in st.session_state:
        st.session_state.auth_session = None
    if 'reset_flow' not in st.session_state:
        st.session_state.reset_flow = None
    if 'scheduler' not in st.session_state:
        st.session_state.scheduler = PolledScheduler(time.monotonic)
    if 'return_to' not in st.session_state:
        st.session_state.return_to = None
    if 'page' not in st.session_state:
        st.session_state.page = "dashboard"
    if 'notifications' not in st.session_state:
        st.session_state.notifications = []
    if 'otp_input_version' not in st.session_state:
        st.session_state.otp_input_version = 0
    if 'browser_token_action' not in st.session_state:
        st.session_state.browser_token_action = None

def run_async(coro):
    """Streamlit scripts run without an event loop; drive one coroutine to completion."""
    return asyncio.run(coro)

def notify(notification):
    if notification is not None:
        st.session_state.notifications.append(notification)

def flush_notifications():
    pending = st.session_state.get("notifications") or []
    st.session_state.notifications = []
    for n in pending:
        if n.level == "error":
            st.error(f"**{n.title}**: {n.description}")
        elif n.level == "warning":
            st.warning(f"**{n.title}**: {n.description}")
        else:
            st.toast(f"**{n.title}**: {n.description}")

def navigate(page):
    st.session_state.page = page
    st.query_params["page"] = page

def read_browser_token():
    """Session token from this browser's cookie, or None."""
    try:
        token = st.context.cookies.get(SESSION_KEY)
    except Exception as e:
        # Outside a live browser session there are no cookies to read
        log.debug(f"Cookies unavailable: {e}")
        return None
    return unquote(token) if token else None

def remember_browser_token(token):
    st.session_state.browser_token_action = ("set", token)

def forget_browser_token():
    st.session_state.browser_token_action = ("clear", None)

def sync_browser_token():
    """Sends the queued cookie change to the browser. Called once per run, before anything can st.rerun()."""
    action = st.session_state.get("browser_token_action")
    if action is None:
        return
    st.session_state.browser_token_action = None
    kind, token = action
    if kind == "set":
        cookie_str = f"{SESSION_KEY}={token}; path=/; max-age={COOKIE_MAX_AGE}; SameSite=Lax"
    else:
        cookie_str = f"{SESSION_KEY}=; path=/; max-age=0; SameSite=Lax"
    # Set on the parent too: the component runs inside an iframe
    components.html(
        f"""
        <script>
          document.cookie = "{cookie_str}";
          try {{ window.parent.document.cookie = "{cookie_str}"; }} catch (e) {{}}
        </script>
        """,
        height=0,
    )

def logout():
    auth_session = st.session_state.get("auth_session")
    if auth_session is not None:
        auth_session.logout()
    forget_browser_token()
    notify(Notification("Logged out", "You have been successfully logged out.", "success"))
    st.session_state.return_to = None
    navigate("login")
    st.rerun()
