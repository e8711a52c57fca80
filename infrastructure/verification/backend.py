"""Contract for the external system that checks credentials and recovery codes."""

from abc import ABC, abstractmethod


class VerificationError(Exception):
    """The backend could not be reached or answered with a server-side error."""


class VerificationBackend(ABC):
    """
    Every call is asynchronous and fallible.

    A False result means the backend rejected the request (wrong password,
    unknown number, invalid code, weak password). Transport problems raise
    VerificationError. Callers never retry automatically.
    """

    @abstractmethod
    async def authenticate(self, identity: str, credential: str) -> bool:
        ...

    @abstractmethod
    async def send_recovery_code(self, mobile_number: str) -> bool:
        ...

    @abstractmethod
    async def verify_code(self, mobile_number: str, code: str) -> bool:
        ...

    @abstractmethod
    async def set_new_password(self, mobile_number: str, new_password: str) -> bool:
        ...
