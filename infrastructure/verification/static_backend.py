import hashlib
import hmac
import logging
import os
import secrets
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from infrastructure.verification.backend import VerificationBackend

log = logging.getLogger(__name__)

PASSWORD_ITERATIONS = 200_000
CODE_TTL_SECONDS = 300


def _hash_password(password, salt_hex):
    salt = bytes.fromhex(salt_hex)
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, PASSWORD_ITERATIONS).hex()


def _make_password(password):
    salt_hex = os.urandom(16).hex()
    return salt_hex, _hash_password(password, salt_hex)


def _generate_code() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"


@dataclass
class _IssuedCode:
    code: str
    expires_at: float
    verified: bool = False


class StaticVerificationBackend(VerificationBackend):
    """
    Single-operator backend for local runs and demos.

    The operator's email, password and mobile number come from configuration.
    Codes live in memory and expire on their own; a password can only be
    replaced for a number whose latest code was verified.
    Codes are written to the log only when log_codes is set (ADMIN_LOG_CODES=1).
    """

    def __init__(
        self,
        identity: str,
        password: str,
        mobile_number: str,
        code_generator: Callable[[], str] = _generate_code,
        clock: Callable[[], float] = time.monotonic,
        log_codes: bool = False,
    ):
        self.identity = identity
        self.mobile_number = mobile_number
        self._salt, self._password_hash = _make_password(password)
        self._code_generator = code_generator
        self._clock = clock
        self._log_codes = log_codes
        self._codes: Dict[str, _IssuedCode] = {}

    def _active_code(self, mobile_number: str) -> Optional[_IssuedCode]:
        issued = self._codes.get(mobile_number)
        if issued is None:
            return None
        if self._clock() > issued.expires_at:
            self._codes.pop(mobile_number, None)
            return None
        return issued

    async def authenticate(self, identity: str, credential: str) -> bool:
        if identity.strip().lower() != self.identity.strip().lower():
            return False
        return hmac.compare_digest(_hash_password(credential, self._salt), self._password_hash)

    async def send_recovery_code(self, mobile_number: str) -> bool:
        if mobile_number != self.mobile_number:
            log.info("Recovery code requested for an unknown mobile number")
            return False
        code = self._code_generator()
        self._codes[mobile_number] = _IssuedCode(code=code, expires_at=self._clock() + CODE_TTL_SECONDS)
        if self._log_codes:
            # Local runs have no SMS gateway; the log is the only way to see the code
            log.warning(f"Issued recovery code {code} for ...{mobile_number[-4:]}")
        else:
            log.info(f"Issued recovery code for ...{mobile_number[-4:]}")
        return True

    async def verify_code(self, mobile_number: str, code: str) -> bool:
        issued = self._active_code(mobile_number)
        if issued is None or not hmac.compare_digest(issued.code.encode("utf-8"), code.encode("utf-8")):
            return False
        issued.verified = True
        return True

    async def set_new_password(self, mobile_number: str, new_password: str) -> bool:
        issued = self._active_code(mobile_number)
        if issued is None or not issued.verified:
            return False
        self._salt, self._password_hash = _make_password(new_password)
        # A verified code is good for exactly one reset.
        self._codes.pop(mobile_number, None)
        return True
