from __future__ import annotations
"""Shared FastAPI dependencies."""

from fastapi import Request

from veo_motion.services.workflow import GenerationWorkflow


def get_workflow(request: Request) -> GenerationWorkflow:
    """Return the process-wide workflow created in the app lifespan."""
    return request.app.state.workflow
