from __future__ import annotations
"""Pydantic v2 schemas for the generation API."""

from pydantic import BaseModel, Field

from veo_motion.models.generation import AspectRatio, GenerationStatus


class ImageSelectRequest(BaseModel):
    """Schema for selecting the source image."""

    image_base64: str = Field(..., description="Raw base64 or a data: URL")
    mime_type: str | None = Field(default=None, description="Required unless image_base64 is a data URL")


class GenerationStartRequest(BaseModel):
    """Optional parameter overrides applied right before starting."""

    prompt: str | None = None
    aspect_ratio: AspectRatio | None = None


class GenerationStateRead(BaseModel):
    """Schema for reading the workflow state."""

    status: GenerationStatus
    prompt: str
    aspect_ratio: AspectRatio
    has_image: bool
    image_mime_type: str | None = None
    error: str | None = None
    notice: str | None = None
    video_url: str | None = None
    video_mime_type: str | None = None
    video_filename: str | None = None

    model_config = {"from_attributes": True}


class CredentialStatusRead(BaseModel):
    """Schema for the credential gate status."""

    has_credential: bool
    notice: str | None = None
