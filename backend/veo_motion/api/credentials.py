from __future__ import annotations
"""Credential API: reports and requests the Gemini API key."""

from fastapi import APIRouter, Depends

from veo_motion.dependencies import get_workflow
from veo_motion.schemas.generation import CredentialStatusRead
from veo_motion.services.workflow import GenerationWorkflow

router = APIRouter()


@router.get("", response_model=CredentialStatusRead)
async def credential_status(workflow: GenerationWorkflow = Depends(get_workflow)):
    """Check whether an API key is configured right now."""
    return CredentialStatusRead(has_credential=workflow.has_credential(), notice=workflow.notice)


@router.post("/request", response_model=CredentialStatusRead)
async def request_credential(workflow: GenerationWorkflow = Depends(get_workflow)):
    """Open the host's key selection flow, if the host offers one."""
    has_credential = workflow.request_credential()
    return CredentialStatusRead(has_credential=has_credential, notice=workflow.notice)
