"""Process-wide engine session handle.

The handshake with the remote engine happens at most once per process. The
guard is a thread lock rather than an asyncio lock because requests can be
driven from different event loops (ASGI, `async_to_sync`, Celery workers).
"""

from __future__ import annotations

import asyncio
import logging
import os
import threading
from functools import lru_cache

from django.conf import settings

from .engines.base import EngineCredentials, EvaluationClient
from .engines.registry import build_client
from .exceptions import SessionError

logger = logging.getLogger(__name__)


def load_credentials() -> EngineCredentials:
    client_email = getattr(settings, "GOOGLE_EE_CLIENT_EMAIL", None) or (
        os.getenv("GOOGLE_EE_CLIENT_EMAIL")
    )
    private_key = getattr(settings, "GOOGLE_EE_PRIVATE_KEY", None) or (
        os.getenv("GOOGLE_EE_PRIVATE_KEY")
    )
    project = getattr(settings, "GOOGLE_EE_PROJECT", None) or os.getenv(
        "GOOGLE_EE_PROJECT"
    )
    if not client_email:
        raise SessionError("Google Earth Engine client email not found")
    if not private_key:
        raise SessionError("Google Earth Engine private key not found")
    # Keys stored in env files usually carry escaped newlines.
    private_key = private_key.replace("\\n", "\n")
    return EngineCredentials(
        client_email=client_email,
        private_key=private_key,
        project=project or None,
    )


class EngineSession:
    """Lazily authenticated handle around one evaluation client."""

    def __init__(
        self,
        client: EvaluationClient,
        credentials: EngineCredentials | None = None,
    ) -> None:
        self.client = client
        self._credentials = credentials
        self._ready = False
        self._lock = threading.Lock()

    @property
    def is_ready(self) -> bool:
        return self._ready

    async def ensure(self) -> EvaluationClient:
        """Authenticate on first use and return the client."""

        if not self._ready:
            await asyncio.to_thread(self._authenticate_once)
        return self.client

    async def refresh(self) -> EvaluationClient:
        """Force a new handshake, e.g. after credentials were rotated."""

        with self._lock:
            self._ready = False
        return await self.ensure()

    def _authenticate_once(self) -> None:
        with self._lock:
            if self._ready:
                return
            credentials = self._credentials or load_credentials()
            self.client.authenticate(credentials)
            self._ready = True
            logger.info(
                "soil_moisture.session.ready engine=%s", self.client.name
            )


@lru_cache(maxsize=1)
def get_default_session() -> EngineSession:
    return EngineSession(build_client())
