"""
Password recovery state machine.

    login -> mobile -> otp -> reset -> login

Each step is its own frozen dataclass, so the data a step needs only exists
while the flow is in that step. A ResetStep is only ever built from a
successful code verification, which keeps "reset without a fresh code" out
of reach for any sequence of back/forward events.

Collaborator calls are the only suspension points. While one is outstanding
`pending` is True and every other submission is answered with BUSY. If the
user navigates away during the call, its result is thrown away (STALE).

The resend countdown is a single scheduled callback owned by the flow while
it sits in `otp`. Every step change goes through `_set_step`, which cancels
that callback when leaving `otp`.
"""

import logging
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Literal, Optional, Union

from infrastructure.repositories.sqlite_audit_repository import AuditAction, SQLiteAuditRepository
from infrastructure.verification.backend import VerificationBackend
from use_cases.domain_models import Notification
from utils import validation
from utils.timers import Scheduler, TimerHandle

log = logging.getLogger(__name__)

RESEND_COOLDOWN_SECONDS = 30
TICK_SECONDS = 1.0


@dataclass(frozen=True)
class LoginStep:
    name: Literal["login"] = "login"


@dataclass(frozen=True)
class MobileStep:
    prefill: Optional[str] = None
    name: Literal["mobile"] = "mobile"


@dataclass(frozen=True)
class OtpStep:
    mobile_number: str
    resend_cooldown_seconds: int = 0
    name: Literal["otp"] = "otp"


@dataclass(frozen=True)
class ResetStep:
    mobile_number: str
    name: Literal["reset"] = "reset"


Step = Union[LoginStep, MobileStep, OtpStep, ResetStep]

OutcomeStatus = Literal["ADVANCED", "REJECTED", "FAILED", "BUSY", "STALE"]


@dataclass(frozen=True)
class StepOutcome:
    """What happened to one event, and where the flow stands afterwards."""

    status: OutcomeStatus
    step: Step
    notification: Optional[Notification] = None
    clear_input: bool = False

    @property
    def advanced(self) -> bool:
        return self.status == "ADVANCED"


def _mask(mobile_number: str) -> str:
    return f"...{mobile_number[-4:]}"


class ResetFlow:
    def __init__(
        self,
        backend: VerificationBackend,
        scheduler: Scheduler,
        audit_repo: Optional[SQLiteAuditRepository] = None,
        cooldown_seconds: int = RESEND_COOLDOWN_SECONDS,
        tick_seconds: float = TICK_SECONDS,
    ):
        self._backend = backend
        self._scheduler = scheduler
        self._audit_repo = audit_repo
        self._cooldown_seconds = cooldown_seconds
        self._tick_seconds = tick_seconds
        self._step: Step = LoginStep()
        self._timer: Optional[TimerHandle] = None
        # Bumped on every step change; lets in-flight calls and old ticks detect they are stale.
        self._generation = 0
        self.pending = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    @property
    def step(self) -> Step:
        return self._step

    @property
    def timer_active(self) -> bool:
        return self._timer is not None and not self._timer.cancelled()

    # --- internals ---

    def _audit(self, action: AuditAction, result: str = "success", **metadata):
        if self._audit_repo is not None:
            self._audit_repo.log_action(action, target_type="password_reset", metadata=metadata or None, result=result)

    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _set_step(self, step: Step):
        if isinstance(self._step, OtpStep) and not isinstance(step, OtpStep):
            self._cancel_timer()
        if type(step) is not type(self._step):
            self._generation += 1
        self._step = step

    def _start_cooldown(self):
        self._cancel_timer()
        self._step = replace(self._step, resend_cooldown_seconds=self._cooldown_seconds)
        self._schedule_tick()

    def _schedule_tick(self):
        generation = self._generation
        handle_box = []

        def fire():
            self._on_tick(generation, handle_box[0] if handle_box else None)

        handle = self._scheduler.call_later(self._tick_seconds, fire)
        handle_box.append(handle)
        self._timer = handle

    def _on_tick(self, generation: int, handle: Optional[TimerHandle]):
        if generation != self._generation or handle is not self._timer:
            return
        if not isinstance(self._step, OtpStep):
            return
        self.tick()

    def tick(self):
        """Counts the resend cooldown down by one; reschedules until it reaches zero."""
        if not isinstance(self._step, OtpStep):
            return
        remaining = max(self._step.resend_cooldown_seconds - 1, 0)
        self._step = replace(self._step, resend_cooldown_seconds=remaining)
        self._cancel_timer()
        if remaining > 0:
            self._schedule_tick()

    def _outcome(self, status: OutcomeStatus, notification: Optional[Notification] = None, clear_input=False):
        return StepOutcome(status=status, step=self._step, notification=notification, clear_input=clear_input)

    def _busy(self) -> StepOutcome:
        return self._outcome("BUSY", Notification("Please wait", "A request is already in progress.", "warning"))

    def _wrong_step(self, expected: str) -> StepOutcome:
        log.warning(f"Ignored {expected} event in step {self._step.name}")
        return self._outcome("REJECTED")

    async def _call(self, call: Callable[[], Awaitable[bool]], what: str) -> Optional[bool]:
        """
        Runs one collaborator call under the pending guard.
        Returns True/False for accepted/rejected, None when the call blew up.
        """
        self.pending = True
        try:
            return bool(await call())
        except Exception as e:
            log.error(f"{what} failed: {e}", exc_info=True)
            return None
        finally:
            self.pending = False

    # --- events ---

    def start(self) -> StepOutcome:
        """'Forgot password' on the login screen."""
        if self.pending:
            return self._busy()
        if not isinstance(self._step, LoginStep):
            return self._wrong_step("start")
        self._set_step(MobileStep())
        return self._outcome("ADVANCED")

    async def submit_mobile(self, number: str) -> StepOutcome:
        if self.pending:
            return self._busy()
        if not isinstance(self._step, MobileStep):
            return self._wrong_step("submit_mobile")

        error = validation.validate_mobile(number)
        if error:
            return self._outcome("REJECTED", Notification("Invalid mobile number", error, "error"))

        mobile_number = validation.normalize_mobile(number)
        generation = self._generation
        sent = await self._call(lambda: self._backend.send_recovery_code(mobile_number), "Sending recovery code")
        if generation != self._generation:
            return self._outcome("STALE")
        if not sent:
            self._audit(AuditAction.RESET_CODE_SENT, result="error", mobile_suffix=mobile_number[-4:])
            return self._outcome("FAILED", Notification(
                "Could not send code",
                "We could not send a verification code to this number. Please try again.",
                "error",
            ))

        self._set_step(OtpStep(mobile_number=mobile_number))
        self._start_cooldown()
        self._audit(AuditAction.RESET_CODE_SENT, mobile_suffix=mobile_number[-4:])
        return self._outcome("ADVANCED", Notification(
            "Code sent", f"A verification code was sent to {_mask(mobile_number)}.", "success"
        ))

    async def submit_code(self, code: str) -> StepOutcome:
        if self.pending:
            return self._busy()
        if not isinstance(self._step, OtpStep):
            return self._wrong_step("submit_code")

        error = validation.validate_otp(code)
        if error:
            return self._outcome("REJECTED", Notification("Invalid code", error, "error"), clear_input=True)

        mobile_number = self._step.mobile_number
        generation = self._generation
        verified = await self._call(lambda: self._backend.verify_code(mobile_number, code.strip()), "Code verification")
        if generation != self._generation:
            return self._outcome("STALE")
        if not verified:
            self._audit(AuditAction.RESET_CODE_REJECTED, result="deny", mobile_suffix=mobile_number[-4:])
            description = "The code is incorrect or has expired." if verified is False else "Verification failed. Please try again."
            return self._outcome("FAILED", Notification("Verification failed", description, "error"), clear_input=True)

        self._set_step(ResetStep(mobile_number=mobile_number))
        return self._outcome("ADVANCED", Notification("Code verified", "Choose a new password.", "success"))

    async def resend(self) -> StepOutcome:
        if self.pending:
            return self._busy()
        if not isinstance(self._step, OtpStep):
            return self._wrong_step("resend")
        if self._step.resend_cooldown_seconds > 0:
            return self._outcome("REJECTED", Notification(
                "Please wait", f"You can resend the code in {self._step.resend_cooldown_seconds}s.", "warning"
            ))

        mobile_number = self._step.mobile_number
        generation = self._generation
        sent = await self._call(lambda: self._backend.send_recovery_code(mobile_number), "Resending recovery code")
        if generation != self._generation:
            return self._outcome("STALE")
        if not sent:
            return self._outcome("FAILED", Notification(
                "Could not resend code", "Please try again in a moment.", "error"
            ))

        self._start_cooldown()
        self._audit(AuditAction.RESET_CODE_SENT, mobile_suffix=mobile_number[-4:], reason="resend")
        return self._outcome("ADVANCED", Notification(
            "Code resent", f"A new code was sent to {_mask(mobile_number)}.", "success"
        ))

    async def submit_password(self, password: str, confirm_password: str) -> StepOutcome:
        if self.pending:
            return self._busy()
        if not isinstance(self._step, ResetStep):
            return self._wrong_step("submit_password")

        error = validation.validate_new_password(password, confirm_password)
        if error:
            return self._outcome("REJECTED", Notification("Invalid password", error, "error"))

        mobile_number = self._step.mobile_number
        generation = self._generation
        updated = await self._call(
            lambda: self._backend.set_new_password(mobile_number, password), "Password reset"
        )
        if generation != self._generation:
            return self._outcome("STALE")
        if not updated:
            return self._outcome("FAILED", Notification(
                "Password not changed", "The new password was not accepted. Please try again.", "error"
            ))

        self._set_step(LoginStep())
        self._audit(AuditAction.PASSWORD_RESET, mobile_suffix=mobile_number[-4:])
        return self._outcome("ADVANCED", Notification(
            "Password updated", "Sign in with your new password.", "success"
        ))

    def back(self) -> StepOutcome:
        step = self._step
        if isinstance(step, MobileStep):
            self._set_step(LoginStep())
        elif isinstance(step, OtpStep):
            self._set_step(MobileStep(prefill=step.mobile_number))
        elif isinstance(step, ResetStep):
            # Re-entering otp issues no code; the user resends when ready.
            self._set_step(OtpStep(mobile_number=step.mobile_number, resend_cooldown_seconds=0))
        else:
            return self._outcome("REJECTED")
        return self._outcome("ADVANCED")

    def cancel(self) -> StepOutcome:
        self._set_step(LoginStep())
        return self._outcome("ADVANCED")

    def close(self):
        """Tears the flow down; the countdown never fires after this."""
        self._cancel_timer()
        self._set_step(LoginStep())
