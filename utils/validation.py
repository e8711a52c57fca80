"""Input validation shared by the login form and the recovery flow."""

import re
from typing import List, Optional

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MOBILE_DIGITS = 10
OTP_LENGTH = 6
# ASCII only: str.isdigit() also accepts fullwidth and other scripts' digits
MOBILE_RE = re.compile(rf"[0-9]{{{MOBILE_DIGITS}}}")
OTP_RE = re.compile(rf"[0-9]{{{OTP_LENGTH}}}")
MIN_PASSWORD_LENGTH = 8


def normalize_mobile(number: str) -> str:
    """Strip spaces, dashes and brackets that operators tend to paste in."""
    return re.sub(r"[\s\-()]", "", number or "")


def validate_email(value: str) -> Optional[str]:
    if not EMAIL_RE.match((value or "").strip()):
        return "Please enter a valid email address"
    return None


def validate_mobile(number: str) -> Optional[str]:
    digits = normalize_mobile(number)
    if not MOBILE_RE.fullmatch(digits):
        return f"Mobile number must be {MOBILE_DIGITS} digits"
    return None


def validate_otp(code: str) -> Optional[str]:
    code = (code or "").strip()
    if not OTP_RE.fullmatch(code):
        return f"Enter the {OTP_LENGTH}-digit code"
    return None


def validate_new_password(password: str, confirm_password: str) -> Optional[str]:
    if len(password or "") < MIN_PASSWORD_LENGTH or len(confirm_password or "") < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    if password != confirm_password:
        return "Passwords do not match"
    return None


def validate_login_form(identity: str, password: str) -> List[str]:
    """Returns every problem with the login form, empty when it can be submitted."""
    errors = []
    email_error = validate_email(identity)
    if email_error:
        errors.append(email_error)
    if len(password or "") < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return errors
