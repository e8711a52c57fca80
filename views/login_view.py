import streamlit as st

from use_cases import auth_flow
from use_cases.domain_models import Notification
from use_cases.reset_flow import LoginStep, MobileStep, OtpStep, ResetStep
from utils import session_manager, validation


def _apply_outcome(outcome):
    session_manager.notify(outcome.notification)
    if outcome.clear_input:
        st.session_state.otp_input_version += 1
    if outcome.status != "REJECTED" or outcome.clear_input:
        st.rerun()


def _render_login_form(auth_session, reset_flow):
    st.subheader("Sign In")
    st.caption("Enter your credentials to access the admin panel")
    with st.form("login_form", clear_on_submit=False):
        identity = st.text_input("Email", placeholder="Enter your email")
        password = st.text_input("Password", type="password", placeholder="Enter your password")
        submitted = st.form_submit_button("Sign In", disabled=auth_session.current().is_loading)
        if submitted:
            errors = validation.validate_login_form(identity, password)
            if errors:
                for err in errors:
                    st.error(err)
            else:
                with st.spinner("Signing in..."):
                    success = session_manager.run_async(auth_session.login(identity.strip(), password))
                if success:
                    session_manager.remember_browser_token(auth_session.token)
                    session_manager.notify(Notification("Login successful", "Welcome to the admin panel", "success"))
                    session_manager.navigate(auth_flow.complete_login())
                    st.rerun()
                else:
                    st.error("**Login failed**: Invalid email or password")

    if st.button("Forgot Password?"):
        _apply_outcome(reset_flow.start())


def _render_mobile_form(reset_flow, step: MobileStep):
    st.subheader("Reset password")
    st.caption("Enter the mobile number linked to your account")
    with st.form("mobile_form"):
        number = st.text_input("Mobile number", value=step.prefill or "", max_chars=14)
        submitted = st.form_submit_button("Send code", disabled=reset_flow.pending)
        if submitted:
            with st.spinner("Sending code..."):
                outcome = session_manager.run_async(reset_flow.submit_mobile(number))
            if outcome.status == "REJECTED":
                st.error(outcome.notification.description)
            else:
                _apply_outcome(outcome)
    if st.button("← Back to sign in"):
        _apply_outcome(reset_flow.back())


@st.fragment(run_every=1)
def _render_resend_controls(reset_flow):
    st.session_state.scheduler.poll()
    step = reset_flow.step
    if not isinstance(step, OtpStep):
        return
    cooldown = step.resend_cooldown_seconds
    label = f"Resend code in {cooldown}s" if cooldown > 0 else "Resend code"
    if st.button(label, disabled=cooldown > 0 or reset_flow.pending, key="resend_code"):
        outcome = session_manager.run_async(reset_flow.resend())
        session_manager.notify(outcome.notification)
        st.rerun(scope="app")


def _render_otp_form(reset_flow, step: OtpStep):
    st.subheader("Verify code")
    st.caption(f"Enter the {validation.OTP_LENGTH}-digit code sent to ...{step.mobile_number[-4:]}")
    with st.form("otp_form"):
        code = st.text_input(
            "Verification code",
            max_chars=validation.OTP_LENGTH,
            key=f"otp_code_{st.session_state.otp_input_version}",
        )
        submitted = st.form_submit_button("Verify", disabled=reset_flow.pending)
        if submitted:
            with st.spinner("Verifying..."):
                outcome = session_manager.run_async(reset_flow.submit_code(code))
            _apply_outcome(outcome)
    _render_resend_controls(reset_flow)
    if st.button("← Change number"):
        _apply_outcome(reset_flow.back())


def _render_reset_form(reset_flow):
    st.subheader("Choose a new password")
    with st.form("reset_form", clear_on_submit=True):
        password = st.text_input("New password", type="password")
        confirm_password = st.text_input("Confirm password", type="password")
        submitted = st.form_submit_button("Update password", disabled=reset_flow.pending)
        if submitted:
            with st.spinner("Updating password..."):
                outcome = session_manager.run_async(reset_flow.submit_password(password, confirm_password))
            if outcome.status == "REJECTED":
                st.error(outcome.notification.description)
            else:
                _apply_outcome(outcome)
    if st.button("← Back"):
        _apply_outcome(reset_flow.back())


def render_auth_screen(auth_session, reset_flow):
    st.title("🔐 OpsPanel Admin")
    st.caption("Login to access your dashboard")
    session_manager.flush_notifications()

    step = reset_flow.step
    if isinstance(step, LoginStep):
        _render_login_form(auth_session, reset_flow)
    elif isinstance(step, MobileStep):
        _render_mobile_form(reset_flow, step)
    elif isinstance(step, OtpStep):
        _render_otp_form(reset_flow, step)
    elif isinstance(step, ResetStep):
        _render_reset_form(reset_flow)

    if not isinstance(step, LoginStep) and st.button("Cancel", type="secondary"):
        _apply_outcome(reset_flow.cancel())
