"""Pydantic v2 schemas package."""

from veo_motion.schemas.generation import (
    CredentialStatusRead,
    GenerationStartRequest,
    GenerationStateRead,
    ImageSelectRequest,
)

__all__ = [
    "CredentialStatusRead",
    "GenerationStartRequest",
    "GenerationStateRead",
    "ImageSelectRequest",
]
