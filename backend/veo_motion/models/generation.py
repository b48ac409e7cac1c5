from __future__ import annotations
"""Generation domain types: request, operation snapshot, artifact, and status."""

import enum
from dataclasses import dataclass, field
from typing import Any


class AspectRatio(str, enum.Enum):
    """Output frame shapes supported by Veo."""

    LANDSCAPE = "16:9"
    PORTRAIT = "9:16"


class GenerationStatus(str, enum.Enum):
    """Client-visible generation lifecycle statuses."""

    IDLE = "idle"
    GENERATING = "generating"
    COMPLETE = "complete"
    ERROR = "error"


# Explicit valid transitions: status -> set of reachable statuses
VALID_TRANSITIONS: dict[GenerationStatus, set[GenerationStatus]] = {
    GenerationStatus.IDLE: {GenerationStatus.GENERATING, GenerationStatus.IDLE},
    GenerationStatus.GENERATING: {
        GenerationStatus.COMPLETE,
        GenerationStatus.ERROR,
        GenerationStatus.IDLE,  # cancelled
    },
    GenerationStatus.COMPLETE: {GenerationStatus.IDLE},
    GenerationStatus.ERROR: {GenerationStatus.IDLE},
}


def can_transition(current: GenerationStatus, target: GenerationStatus) -> bool:
    return target in VALID_TRANSITIONS.get(current, set())


@dataclass(frozen=True)
class GenerationRequest:
    """Caller-supplied inputs for one image-to-video job."""

    image_bytes: bytes
    mime_type: str
    prompt: str = ""
    aspect_ratio: AspectRatio = AspectRatio.LANDSCAPE

    def __post_init__(self) -> None:
        if not self.image_bytes:
            raise ValueError("image_bytes must not be empty")
        if not self.mime_type.lower().startswith("image/"):
            raise ValueError(f"mime_type must be an image type, got {self.mime_type!r}")
        # Accept raw "16:9" strings from forms and the CLI
        object.__setattr__(self, "aspect_ratio", AspectRatio(self.aspect_ratio))


@dataclass(frozen=True)
class GeneratedVideoRef:
    """Descriptor of one generated video on the delivery endpoint."""

    uri: str | None
    mime_type: str | None = None


@dataclass(frozen=True)
class Operation:
    """Immutable snapshot of a remote long-running generation job.

    A fresh snapshot is produced by every status query; ``handle`` is the
    provider object needed to issue the next one.
    """

    name: str
    done: bool = False
    error: dict[str, Any] | None = None
    videos: tuple[GeneratedVideoRef, ...] = ()
    metadata: dict[str, Any] | None = None
    handle: Any = field(default=None, repr=False, compare=False)

    @property
    def error_message(self) -> str | None:
        if self.error is None:
            return None
        message = self.error.get("message")
        return str(message) if message else None


@dataclass(frozen=True)
class VideoArtifact:
    """Downloaded video exposed as a locally addressable resource."""

    url: str
    mime_type: str
    path: str
    filename: str = "veo-motion.mp4"
