"""Pytest configuration helpers.

Puts `backend/` on `sys.path` so tests can import the `veo_motion` package
without an install, and provides scripted fakes for the Veo service.
"""
import asyncio
import os
import sys
import tempfile

import httpx
import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "backend"))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

# The app module mounts MEDIA_VOLUME at import time
os.environ.setdefault("MEDIA_VOLUME", os.path.join(tempfile.gettempdir(), "veo_motion_test_media"))

from veo_motion.models.generation import GeneratedVideoRef, Operation  # noqa: E402
from veo_motion.services.credentials import CredentialGate  # noqa: E402
from veo_motion.services.retrieval import ArtifactRetriever  # noqa: E402
from veo_motion.services.submission import JobSubmitter  # noqa: E402
from veo_motion.services.workflow import GenerationWorkflow  # noqa: E402

JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 64
VIDEO_BYTES = b"\x00\x00\x00\x18ftypmp42" + b"\x01" * 128
VIDEO_URI = "https://generativelanguage.googleapis.com/v1beta/files/abc:download?alt=media"


def run(coro):  # noqa: ANN001
    return asyncio.run(coro)


def pending(name: str = "operations/veo-1", progress: int = 0) -> Operation:
    return Operation(name=name, done=False, metadata={"progress": progress})


def finished(uri: str | None = VIDEO_URI, name: str = "operations/veo-1", mime_type: str | None = None) -> Operation:
    videos = (GeneratedVideoRef(uri=uri, mime_type=mime_type),) if uri is not None else ()
    return Operation(name=name, done=True, videos=videos)


def failed(message: str | None = "Prompt was blocked by safety filters", name: str = "operations/veo-1") -> Operation:
    error = {"code": 3, "message": message} if message is not None else {"code": 13}
    return Operation(name=name, done=True, error=error)


class StaticCredentialHost:
    """Host whose key can be swapped between calls."""

    def __init__(self, key: str | None = "test-key"):
        self.key = key
        self.requests = 0

    def get_credential(self) -> str | None:
        return self.key

    def has_credential(self) -> bool:
        return bool(self.key)

    def request_credential(self) -> None:
        self.requests += 1
        self.key = self.key or "selected-key"


class FakeBackend:
    """Scripted VideoBackend.

    ``submit`` returns the first item of ``script``; each ``refresh`` returns
    the next one. Exception instances in the script are raised instead.
    """

    def __init__(self, script, *, refresh_delay: float = 0.0):
        self.script = list(script)
        self.refresh_delay = refresh_delay
        self.submissions: list[dict] = []
        self.refreshed: list[Operation] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def _next(self):
        item = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(item, Exception):
            raise item
        return item

    async def submit(self, **kwargs) -> Operation:
        self.submissions.append(kwargs)
        return self._next()

    async def refresh(self, operation: Operation) -> Operation:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            self.refreshed.append(operation)
            await asyncio.sleep(self.refresh_delay)
            return self._next()
        finally:
            self.in_flight -= 1


class BackendFactory:
    """Records the key every backend was built with."""

    def __init__(self, backend: FakeBackend):
        self.backend = backend
        self.keys: list[str] = []

    def __call__(self, api_key: str) -> FakeBackend:
        self.keys.append(api_key)
        return self.backend


class DeliveryEndpoint:
    """httpx MockTransport handler serving the generated video."""

    def __init__(self, status: int = 200, content: bytes = VIDEO_BYTES):
        self.status = status
        self.content = content
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status, content=self.content if self.status == 200 else b"denied")

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


@pytest.fixture
def host() -> StaticCredentialHost:
    return StaticCredentialHost()


@pytest.fixture
def gate(host) -> CredentialGate:
    return CredentialGate(host)


@pytest.fixture
def endpoint() -> DeliveryEndpoint:
    return DeliveryEndpoint()


@pytest.fixture
def make_workflow(gate, endpoint, tmp_path):
    """Build a workflow around a scripted backend with fast polling."""

    def _make(script, *, poll_interval=0.01, poll_timeout=None, refresh_delay=0.0, max_transient_errors=3):
        backend = FakeBackend(script, refresh_delay=refresh_delay)
        factory = BackendFactory(backend)
        workflow = GenerationWorkflow(
            gate,
            JobSubmitter(gate, factory),
            ArtifactRetriever(gate, media_volume=str(tmp_path), http_client=endpoint.client()),
            poll_interval=poll_interval,
            poll_timeout=poll_timeout,
            max_transient_errors=max_transient_errors,
        )
        return workflow, backend, factory

    return _make
