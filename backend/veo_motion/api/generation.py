from __future__ import annotations
"""Generation API: drives the single image-to-video workflow."""

import base64
import binascii
import logging
import os

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse

from veo_motion.dependencies import get_workflow
from veo_motion.errors import CredentialError, InvalidStateTransitionError
from veo_motion.models.generation import GenerationStatus, VideoArtifact
from veo_motion.schemas.generation import (
    GenerationStartRequest,
    GenerationStateRead,
    ImageSelectRequest,
)
from veo_motion.services.workflow import GenerationWorkflow

router = APIRouter()
logger = logging.getLogger(__name__)


def _state(workflow: GenerationWorkflow) -> GenerationStateRead:
    return GenerationStateRead.model_validate(workflow.snapshot())


def _discard_artifact(workflow: GenerationWorkflow, previous: VideoArtifact | None) -> None:
    """Remove a result file the workflow no longer references."""
    if previous is None or workflow.artifact is previous:
        return
    try:
        os.remove(previous.path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Could not delete discarded video %s: %s", previous.path, e)
    else:
        logger.info("Deleted discarded video %s", previous.path)


def _decode_image(req: ImageSelectRequest) -> tuple[bytes, str]:
    """Decode raw base64 or a data URL into (bytes, mime_type)."""
    data = req.image_base64
    mime_type = req.mime_type
    # Strip data URL prefix if present
    if data.startswith("data:"):
        header, _, data = data.partition(",")
        mime_type = mime_type or header[5:].split(";")[0]
    if not mime_type:
        raise HTTPException(status_code=422, detail="mime_type is required for raw base64 images")
    try:
        return base64.b64decode(data, validate=True), mime_type
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=422, detail="image_base64 is not valid base64")


@router.get("", response_model=GenerationStateRead)
async def get_state(workflow: GenerationWorkflow = Depends(get_workflow)):
    """Current workflow state (fallback when WebSocket unavailable)."""
    return _state(workflow)


@router.post("/image", response_model=GenerationStateRead)
async def select_image(req: ImageSelectRequest, workflow: GenerationWorkflow = Depends(get_workflow)):
    """Select the source image, discarding any previous result."""
    image_bytes, mime_type = _decode_image(req)
    previous = workflow.artifact
    try:
        workflow.select_image(image_bytes, mime_type)
    except InvalidStateTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    _discard_artifact(workflow, previous)
    return _state(workflow)


@router.post("/start", response_model=GenerationStateRead, status_code=202)
async def start_generation(
    req: GenerationStartRequest | None = None,
    workflow: GenerationWorkflow = Depends(get_workflow),
):
    """Start generation in the background; progress is read via GET or WebSocket."""
    try:
        if req is not None and workflow.status == GenerationStatus.IDLE:
            if req.prompt is not None:
                workflow.set_prompt(req.prompt)
            if req.aspect_ratio is not None:
                workflow.set_aspect_ratio(req.aspect_ratio)
        workflow.start()
    except InvalidStateTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except CredentialError as e:
        raise HTTPException(status_code=403, detail=str(e))
    return _state(workflow)


@router.post("/cancel", response_model=GenerationStateRead)
async def cancel_generation(workflow: GenerationWorkflow = Depends(get_workflow)):
    """Cancel a running generation."""
    if not workflow.cancel():
        raise HTTPException(status_code=409, detail="No generation is running")
    await workflow.wait()
    return _state(workflow)


@router.post("/reset", response_model=GenerationStateRead)
async def reset(workflow: GenerationWorkflow = Depends(get_workflow)):
    """Create another: clear the inputs and the previous result."""
    previous = workflow.artifact
    try:
        workflow.reset()
    except InvalidStateTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    _discard_artifact(workflow, previous)
    return _state(workflow)


@router.post("/acknowledge", response_model=GenerationStateRead)
async def acknowledge_error(workflow: GenerationWorkflow = Depends(get_workflow)):
    """Dismiss the error and keep the inputs for another attempt."""
    try:
        workflow.acknowledge_error()
    except InvalidStateTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _state(workflow)


@router.get("/video")
async def download_video(workflow: GenerationWorkflow = Depends(get_workflow)):
    """Export the generated video under its suggested filename."""
    artifact = workflow.artifact
    if workflow.status != GenerationStatus.COMPLETE or artifact is None:
        raise HTTPException(status_code=404, detail="No generated video available")
    if not os.path.exists(artifact.path):
        logger.warning("Generated video missing on disk: %s", artifact.path)
        raise HTTPException(status_code=404, detail="Generated video file not found")
    return FileResponse(artifact.path, media_type=artifact.mime_type, filename=artifact.filename)
