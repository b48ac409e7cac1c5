"""Domain model package."""

from veo_motion.models.generation import (
    VALID_TRANSITIONS,
    AspectRatio,
    GeneratedVideoRef,
    GenerationRequest,
    GenerationStatus,
    Operation,
    VideoArtifact,
    can_transition,
)

__all__ = [
    "VALID_TRANSITIONS",
    "AspectRatio",
    "GeneratedVideoRef",
    "GenerationRequest",
    "GenerationStatus",
    "Operation",
    "VideoArtifact",
    "can_transition",
]
