"""
Centralized Observability Infrastructure.
Provides structured logging setup and Sentry SDK initialization
governed entirely by environment variables.
"""

import os
import logging
import re
from typing import Any, Dict

log = logging.getLogger(__name__)

# Variables whose values never leave the process, whatever they contain
SENSITIVE_KEYS = {"password", "new_password", "confirm_password", "credential", "code", "token", "api_token"}

TOKEN_PATTERN = re.compile(r"([a-zA-Z0-9_\-]{30,})")  # tokens / dsn looking strings
# Bare six-digit runs; digits glued to date, time or decimal separators are left alone
CODE_PATTERN = re.compile(r"(?<![\d\-:./])\d{6}(?![\d\-:./])")

# Codes can only sit in the locals of the login and recovery code paths
FRAME_VAR_PATTERNS = [TOKEN_PATTERN, CODE_PATTERN]
EXTRA_PATTERNS = [TOKEN_PATTERN]


def _mask_string(val: str, patterns) -> str:
    for pattern in patterns:
        val = pattern.sub("[REDACTED]", val)
    return val


def _recursive_scrub(obj: Any, patterns) -> Any:
    if isinstance(obj, dict):
        return {
            k: "[REDACTED]" if str(k).lower() in SENSITIVE_KEYS else _recursive_scrub(v, patterns)
            for k, v in obj.items()
        }
    elif isinstance(obj, list):
        return [_recursive_scrub(i, patterns) for i in obj]
    elif isinstance(obj, str):
        return _mask_string(obj, patterns)
    return obj


def _scrub_sensitive_data(event: Dict[str, Any], hint: Dict[str, Any]) -> Dict[str, Any]:
    """
    Sentry before_send hook. Scrubs passwords, one-time codes and tokens
    from stack frame locals before the event leaves the server.
    """
    try:
        if "exception" in event and "values" in event["exception"]:
            for exc in event["exception"]["values"]:
                if "stacktrace" in exc and "frames" in exc["stacktrace"]:
                    for frame in exc["stacktrace"]["frames"]:
                        if "vars" in frame:
                            frame["vars"] = _recursive_scrub(frame["vars"], FRAME_VAR_PATTERNS)
        if "extra" in event:
            event["extra"] = _recursive_scrub(event["extra"], EXTRA_PATTERNS)
    except Exception as e:
        log.warning(f"Sentry scrubber failed: {e}")

    return event


def setup_observability() -> None:
    """
    Initializes global system logging and Sentry (if DSN is present).
    Should be called once at application startup.
    """

    log_level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    sentry_dsn = os.getenv("SENTRY_DSN")
    if sentry_dsn:
        try:
            import sentry_sdk
            sentry_env = os.getenv("SENTRY_ENV", "development")

            sentry_sdk.init(
                dsn=sentry_dsn,
                environment=sentry_env,
                traces_sample_rate=1.0,
                send_default_pii=False,
                before_send=_scrub_sensitive_data
            )
            log.info(f"Sentry SDK initialized (env: {sentry_env})")
        except ImportError:
            log.warning("SENTRY_DSN provided but sentry-sdk is not installed. Skipping Sentry init.")
    else:
        log.info("SENTRY_DSN not provided. Running without Sentry.")

    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)
