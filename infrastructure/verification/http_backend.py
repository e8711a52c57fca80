import asyncio
import logging
from typing import Any, Dict, Optional

import requests

from infrastructure.verification.backend import VerificationBackend, VerificationError

log = logging.getLogger(__name__)


class HttpVerificationBackend(VerificationBackend):
    """
    Talks to the operator auth API.

    2xx means accepted, 4xx means rejected, anything else (5xx, timeouts,
    connection errors) raises VerificationError. requests is blocking, so each
    call runs in a worker thread to keep the event loop free.
    """

    def __init__(self, base_url: str, api_token: Optional[str] = None, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.api_token = api_token
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        return headers

    def _post(self, path: str, payload: Dict[str, Any]) -> bool:
        url = f"{self.base_url}{path}"
        try:
            response = requests.post(url, json=payload, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            raise VerificationError(f"Network error calling {path}: {e}") from e

        if 200 <= response.status_code < 300:
            return True
        if 400 <= response.status_code < 500:
            log.info(f"Verification API rejected {path} with HTTP {response.status_code}")
            return False
        raise VerificationError(f"Verification API error on {path}: HTTP {response.status_code}")

    async def authenticate(self, identity: str, credential: str) -> bool:
        return await asyncio.to_thread(self._post, "/auth/login", {"email": identity, "password": credential})

    async def send_recovery_code(self, mobile_number: str) -> bool:
        return await asyncio.to_thread(self._post, "/auth/recovery/send-code", {"mobile": mobile_number})

    async def verify_code(self, mobile_number: str, code: str) -> bool:
        return await asyncio.to_thread(
            self._post, "/auth/recovery/verify-code", {"mobile": mobile_number, "code": code}
        )

    async def set_new_password(self, mobile_number: str, new_password: str) -> bool:
        return await asyncio.to_thread(
            self._post, "/auth/recovery/reset-password", {"mobile": mobile_number, "password": new_password}
        )
