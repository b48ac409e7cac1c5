"""Gemini Veo video generation provider.

Wraps the google-genai SDK long-running operation pattern:
  generate_videos → operations.get (repeat) → generated_videos[].video.uri

Every backend instance owns one SDK client built from the key passed in, so
callers construct a new backend whenever the active key may have changed.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from google import genai
from google.genai import types

from veo_motion.models.generation import GeneratedVideoRef, Operation

logger = logging.getLogger(__name__)


class VideoBackend(Protocol):
    """Remote generation service: submit a job, re-query its status."""

    async def submit(
        self,
        *,
        model: str,
        prompt: str,
        image_bytes: bytes,
        mime_type: str,
        number_of_videos: int,
        resolution: str,
        aspect_ratio: str,
    ) -> Operation: ...

    async def refresh(self, operation: Operation) -> Operation: ...


class VeoBackend:
    """google-genai backed implementation of VideoBackend."""

    def __init__(self, api_key: str):
        self._client = genai.Client(api_key=api_key)

    async def submit(
        self,
        *,
        model: str,
        prompt: str,
        image_bytes: bytes,
        mime_type: str,
        number_of_videos: int = 1,
        resolution: str = "720p",
        aspect_ratio: str = "16:9",
    ) -> Operation:
        sdk_op = await self._client.aio.models.generate_videos(
            model=model,
            prompt=prompt,
            image=types.Image(image_bytes=image_bytes, mime_type=mime_type),
            config=types.GenerateVideosConfig(
                number_of_videos=number_of_videos,
                resolution=resolution,
                aspect_ratio=aspect_ratio,
            ),
        )
        snapshot = snapshot_from_sdk(sdk_op)
        logger.info("Veo operation created: %s (model=%s)", snapshot.name, model)
        return snapshot

    async def refresh(self, operation: Operation) -> Operation:
        if operation.handle is None:
            raise ValueError(f"Operation {operation.name} has no provider handle to re-query")
        sdk_op = await self._client.aio.operations.get(operation.handle)
        return snapshot_from_sdk(sdk_op)


def make_backend(api_key: str) -> VideoBackend:
    return VeoBackend(api_key)


def snapshot_from_sdk(sdk_op: Any) -> Operation:
    """Convert a google-genai GenerateVideosOperation into an Operation snapshot."""
    videos: list[GeneratedVideoRef] = []
    response = getattr(sdk_op, "response", None) or getattr(sdk_op, "result", None)
    for generated in getattr(response, "generated_videos", None) or []:
        # Empty descriptors keep their position so the first video stays first
        video = getattr(generated, "video", None)
        videos.append(GeneratedVideoRef(
            uri=getattr(video, "uri", None),
            mime_type=getattr(video, "mime_type", None),
        ))

    error = getattr(sdk_op, "error", None)
    if error is not None and not isinstance(error, dict):
        error = {"message": str(error)}

    return Operation(
        name=getattr(sdk_op, "name", None) or "",
        done=bool(getattr(sdk_op, "done", False)),
        error=error,
        videos=tuple(videos),
        metadata=getattr(sdk_op, "metadata", None),
        handle=sdk_op,
    )
