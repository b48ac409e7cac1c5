from __future__ import annotations
"""Job submission: builds the looping-video prompt and dispatches it to Veo.

A new provider backend (and so a new SDK client) is built for every remote
call, from the key the credential gate reports at that moment.
"""

import logging
from typing import Callable

from veo_motion.config import get_settings
from veo_motion.errors import CredentialError, SubmissionError
from veo_motion.models.generation import GenerationRequest, Operation
from veo_motion.services.credentials import CredentialGate
from veo_motion.services.providers.veo_video import VideoBackend, make_backend

logger = logging.getLogger(__name__)

LOOP_SUFFIX = "Create a smooth, seamless looping video."
DEFAULT_PROMPT = f"Cinematic, realistic motion. {LOOP_SUFFIX}"

BackendFactory = Callable[[str], VideoBackend]


def build_prompt(prompt: str) -> str:
    """Return the prompt sent to Veo, always asking for a seamless loop."""
    if prompt.strip():
        return f"{prompt}. {LOOP_SUFFIX}"
    return DEFAULT_PROMPT


class JobSubmitter:
    """Submits generation jobs and re-queries their operations."""

    def __init__(
        self,
        gate: CredentialGate,
        backend_factory: BackendFactory = make_backend,
        *,
        model: str | None = None,
        resolution: str | None = None,
    ):
        settings = get_settings()
        self._gate = gate
        self._backend_factory = backend_factory
        self.model = model or settings.VEO_MODEL
        self.resolution = resolution or settings.VEO_RESOLUTION

    def _backend(self) -> VideoBackend:
        return self._backend_factory(self._gate.current_credential())

    async def submit(self, request: GenerationRequest) -> Operation:
        """Dispatch the request; returns the initial operation snapshot."""
        prompt = build_prompt(request.prompt)
        logger.info(
            "Submitting Veo job: model=%s aspect_ratio=%s image=%d bytes",
            self.model, request.aspect_ratio.value, len(request.image_bytes),
        )
        try:
            backend = self._backend()
            return await backend.submit(
                model=self.model,
                prompt=prompt,
                image_bytes=request.image_bytes,
                mime_type=request.mime_type,
                number_of_videos=1,
                resolution=self.resolution,
                aspect_ratio=request.aspect_ratio.value,
            )
        except CredentialError as e:
            raise SubmissionError(str(e)) from e
        except Exception as e:
            logger.error("Veo submission failed: %s", e)
            raise SubmissionError(f"Failed to submit video generation: {e}") from e

    async def refresh(self, operation: Operation) -> Operation:
        """Re-query the remote service for a fresh snapshot of ``operation``."""
        return await self._backend().refresh(operation)
