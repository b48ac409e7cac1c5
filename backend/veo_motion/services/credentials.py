from __future__ import annotations
"""Credential gate: decides whether the host has a usable Gemini API key.

The host integration is injected. Every check re-queries the host, since the
active key can be switched between calls.
"""

import getpass
import logging
import os
from typing import Protocol

from veo_motion.config import Settings
from veo_motion.errors import CredentialError, CredentialErrorKind

logger = logging.getLogger(__name__)

HOST_UNAVAILABLE_MESSAGE = "Credential selection is not supported in this environment."


class CredentialHost(Protocol):
    """Host-provided credential capability."""

    def has_credential(self) -> bool: ...

    def get_credential(self) -> str | None: ...

    def request_credential(self) -> None: ...


class EnvironmentCredentialHost:
    """Reads GEMINI_API_KEY from the environment (or .env) on every call.

    The environment offers no selection UI, so ``request_credential`` reports
    the host as unavailable.
    """

    env_var = "GEMINI_API_KEY"

    def get_credential(self) -> str | None:
        # Fresh Settings on purpose: the cached instance would pin an old key
        value = Settings().GEMINI_API_KEY.strip()
        return value or None

    def has_credential(self) -> bool:
        return self.get_credential() is not None

    def request_credential(self) -> None:
        raise CredentialError(CredentialErrorKind.HOST_UNAVAILABLE, HOST_UNAVAILABLE_MESSAGE)


class PromptCredentialHost(EnvironmentCredentialHost):
    """Terminal selection flow: asks for the key and exports it to the environment."""

    def __init__(self, prompt: str = "Gemini API key: "):
        self.prompt = prompt

    def request_credential(self) -> None:
        try:
            value = getpass.getpass(self.prompt).strip()
        except (EOFError, KeyboardInterrupt):
            value = ""
        if not value:
            raise CredentialError(CredentialErrorKind.USER_CANCELLED, "API key selection was cancelled.")
        os.environ[self.env_var] = value
        logger.info("API key selected via terminal prompt (%s)", self.env_var)


class AbsentCredentialHost:
    """No host integration is available at all."""

    def get_credential(self) -> str | None:
        return None

    def has_credential(self) -> bool:
        return False

    def request_credential(self) -> None:
        raise CredentialError(CredentialErrorKind.HOST_UNAVAILABLE, HOST_UNAVAILABLE_MESSAGE)


class CredentialGate:
    """Live view over a credential host; never caches the key."""

    def __init__(self, host: CredentialHost | None):
        self._host = host or AbsentCredentialHost()

    def has_credential(self) -> bool:
        try:
            return bool(self._host.has_credential())
        except Exception as exc:
            logger.warning("Credential host check failed, treating as not configured: %s", exc)
            return False

    def request_credential(self) -> None:
        """Run the host selection flow; raises CredentialError on absence or cancel."""
        self._host.request_credential()

    def current_credential(self) -> str:
        """Return the key active right now. Call at each point of use."""
        key = self._host.get_credential()
        if not key:
            raise CredentialError(
                CredentialErrorKind.MISSING,
                "No API key is configured. Select an API key to continue.",
            )
        return key
