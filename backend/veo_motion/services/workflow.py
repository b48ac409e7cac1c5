from __future__ import annotations
"""Generation workflow: the client-visible state machine around one Veo job.

    IDLE --start--> GENERATING --success--> COMPLETE
                               --failure--> ERROR
                               --cancel---> IDLE (with notice)
    COMPLETE | ERROR --reset--> IDLE (inputs cleared)
    ERROR --acknowledge_error--> IDLE (inputs kept)

The pipeline (submit → poll → retrieve) runs as a single asyncio task. Every
failure inside it is caught here and published as exactly one transition.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Callable

from veo_motion.config import get_settings
from veo_motion.errors import (
    CredentialError,
    CredentialErrorKind,
    GenerationError,
    InvalidStateTransitionError,
    PollError,
    PollErrorKind,
)
from veo_motion.models.generation import (
    AspectRatio,
    GenerationRequest,
    GenerationStatus,
    VideoArtifact,
    can_transition,
)
from veo_motion.services.credentials import CredentialGate
from veo_motion.services.polling import CancelToken, await_completion, run_cancellable
from veo_motion.services.retrieval import ArtifactRetriever
from veo_motion.services.submission import JobSubmitter

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Something went wrong during generation."


@dataclass(frozen=True)
class SelectedImage:
    data: bytes
    mime_type: str


@dataclass(frozen=True)
class WorkflowSnapshot:
    """Immutable view of the workflow published to observers."""

    status: GenerationStatus
    prompt: str
    aspect_ratio: AspectRatio
    has_image: bool
    image_mime_type: str | None
    error: str | None
    notice: str | None
    video_url: str | None
    video_mime_type: str | None
    video_filename: str | None


Listener = Callable[[WorkflowSnapshot], None]


@dataclass
class _State:
    status: GenerationStatus = GenerationStatus.IDLE
    image: SelectedImage | None = None
    prompt: str = ""
    aspect_ratio: AspectRatio = AspectRatio.LANDSCAPE
    error: str | None = None
    notice: str | None = None
    artifact: VideoArtifact | None = None


class GenerationWorkflow:
    """Owns the GenerationStatus and drives one generation at a time."""

    def __init__(
        self,
        gate: CredentialGate,
        submitter: JobSubmitter | None = None,
        retriever: ArtifactRetriever | None = None,
        *,
        poll_interval: float | None = None,
        poll_timeout: float | None = None,
        max_transient_errors: int | None = None,
    ):
        settings = get_settings()
        self.gate = gate
        self._submitter = submitter or JobSubmitter(gate)
        self._retriever = retriever or ArtifactRetriever(gate)
        self.poll_interval = settings.POLL_INTERVAL if poll_interval is None else poll_interval
        if poll_timeout is None:
            poll_timeout = settings.poll_deadline
        # 0 or less disables the deadline, as with POLL_TIMEOUT
        self.poll_timeout = poll_timeout if poll_timeout and poll_timeout > 0 else None
        self.max_transient_errors = (
            settings.POLL_MAX_TRANSIENT_ERRORS if max_transient_errors is None else max_transient_errors
        )
        self._state = _State()
        self._listeners: list[Listener] = []
        self._task: asyncio.Task | None = None
        self._cancel: CancelToken | None = None

    # ── Observation ──────────────────────────────────────────────

    @property
    def status(self) -> GenerationStatus:
        return self._state.status

    @property
    def artifact(self) -> VideoArtifact | None:
        return self._state.artifact

    @property
    def error(self) -> str | None:
        return self._state.error

    @property
    def notice(self) -> str | None:
        return self._state.notice

    def snapshot(self) -> WorkflowSnapshot:
        s = self._state
        artifact = s.artifact
        return WorkflowSnapshot(
            status=s.status,
            prompt=s.prompt,
            aspect_ratio=s.aspect_ratio,
            has_image=s.image is not None,
            image_mime_type=s.image.mime_type if s.image else None,
            error=s.error,
            notice=s.notice,
            video_url=artifact.url if artifact else None,
            video_mime_type=artifact.mime_type if artifact else None,
            video_filename=artifact.filename if artifact else None,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener for snapshots; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self) -> None:
        snap = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snap)
            except Exception:
                logger.warning("Workflow listener failed", exc_info=True)

    def _update(self, **changes) -> None:
        self._state = replace(self._state, **changes)
        self._publish()

    def _transition(self, target: GenerationStatus, action: str, **changes) -> None:
        current = self._state.status
        if not can_transition(current, target):
            raise InvalidStateTransitionError(current.value, action)
        logger.info("Workflow %s: %s → %s", action, current.value, target.value)
        self._update(status=target, **changes)

    def _require_not_generating(self, action: str) -> None:
        if self._state.status == GenerationStatus.GENERATING:
            raise InvalidStateTransitionError(self._state.status.value, action)

    # ── Inputs ───────────────────────────────────────────────────

    def select_image(self, data: bytes, mime_type: str) -> None:
        """Select a new source image; discards any previous result or error."""
        self._require_not_generating("select an image")
        if not data:
            raise ValueError("Image data must not be empty")
        if not mime_type.lower().startswith("image/"):
            raise ValueError(f"Unsupported image type: {mime_type}")
        self._transition(
            GenerationStatus.IDLE, "select an image",
            image=SelectedImage(data=data, mime_type=mime_type),
            artifact=None, error=None, notice=None,
        )

    def clear_image(self) -> None:
        if self._state.status != GenerationStatus.IDLE:
            raise InvalidStateTransitionError(self._state.status.value, "remove the image")
        self._update(image=None)

    def set_prompt(self, prompt: str) -> None:
        self._require_not_generating("edit the prompt")
        self._update(prompt=prompt)

    def set_aspect_ratio(self, aspect_ratio: AspectRatio | str) -> None:
        self._require_not_generating("change the aspect ratio")
        self._update(aspect_ratio=AspectRatio(aspect_ratio))

    # ── Credential ───────────────────────────────────────────────

    def has_credential(self) -> bool:
        return self.gate.has_credential()

    def request_credential(self) -> bool:
        """Run the host selection flow. Failures become a notice, never a crash."""
        try:
            self.gate.request_credential()
        except CredentialError as e:
            logger.info("Credential request declined: %s (%s)", e, e.kind.value)
            self._update(notice=str(e))
            return False
        self._update(notice=None)
        return self.gate.has_credential()

    # ── Actions ──────────────────────────────────────────────────

    def start(self) -> asyncio.Task:
        """Begin generation from IDLE; returns the running pipeline task."""
        loop = asyncio.get_running_loop()
        state = self._state
        if state.status != GenerationStatus.IDLE:
            raise InvalidStateTransitionError(state.status.value, "start generation")
        if state.image is None:
            raise InvalidStateTransitionError(state.status.value, "start generation without an image")
        if not self.gate.has_credential():
            message = "No API key is configured. Select an API key to continue."
            self._update(notice=message)
            raise CredentialError(CredentialErrorKind.MISSING, message)

        request = GenerationRequest(
            image_bytes=state.image.data,
            mime_type=state.image.mime_type,
            prompt=state.prompt,
            aspect_ratio=state.aspect_ratio,
        )
        self._cancel = CancelToken()
        self._transition(
            GenerationStatus.GENERATING, "start generation",
            artifact=None, error=None, notice=None,
        )
        self._task = loop.create_task(self._run(request, self._cancel))
        return self._task

    async def generate(self) -> WorkflowSnapshot:
        """Start and wait for the pipeline; returns the final snapshot."""
        await self.start()
        return self.snapshot()

    def cancel(self) -> bool:
        """Request cancellation of the running pipeline. Returns False if idle."""
        if self._state.status != GenerationStatus.GENERATING or self._cancel is None:
            return False
        logger.info("Cancellation requested")
        self._cancel.cancel()
        return True

    def reset(self) -> None:
        """Return to IDLE, discarding the image, prompt, aspect ratio, artifact and error."""
        self._require_not_generating("reset")
        self._transition(
            GenerationStatus.IDLE, "reset",
            image=None, prompt="", aspect_ratio=AspectRatio.LANDSCAPE,
            error=None, notice=None, artifact=None,
        )

    def acknowledge_error(self) -> None:
        """Dismiss an error while keeping the inputs for re-submission."""
        if self._state.status != GenerationStatus.ERROR:
            raise InvalidStateTransitionError(self._state.status.value, "acknowledge an error")
        self._transition(GenerationStatus.IDLE, "acknowledge error", error=None)

    async def wait(self) -> None:
        """Wait for the current pipeline task, if any."""
        if self._task is not None:
            await self._task

    # ── Pipeline ─────────────────────────────────────────────────

    async def _run(self, request: GenerationRequest, cancel: CancelToken) -> None:
        try:
            operation = await run_cancellable(self._submitter.submit(request), cancel)
            operation = await await_completion(
                operation,
                self._submitter.refresh,
                interval=self.poll_interval,
                timeout=self.poll_timeout,
                cancel=cancel,
                max_transient_errors=self.max_transient_errors,
            )
            cancel.raise_if_cancelled()
            artifact = await run_cancellable(self._retriever.retrieve(operation), cancel)
        except PollError as e:
            if e.kind == PollErrorKind.CANCELLED:
                self._transition(GenerationStatus.IDLE, "cancel", notice=str(e))
            else:
                self._fail(e)
        except GenerationError as e:
            self._fail(e)
        except asyncio.CancelledError:
            self._transition(GenerationStatus.IDLE, "cancel", notice="Generation cancelled.")
            raise
        except Exception as e:
            logger.exception("Unexpected error during video generation")
            self._fail(e, GENERIC_ERROR_MESSAGE)
        else:
            self._transition(GenerationStatus.COMPLETE, "complete generation", artifact=artifact)
        finally:
            self._cancel = None

    def _fail(self, error: Exception, message: str | None = None) -> None:
        message = message or str(error) or GENERIC_ERROR_MESSAGE
        logger.error("Veo generation error: %s", message)
        self._transition(GenerationStatus.ERROR, "fail generation", error=message, artifact=None)
