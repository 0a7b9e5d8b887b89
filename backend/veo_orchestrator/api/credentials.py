from __future__ import annotations
"""Credentials API — the host side of interactive API key selection."""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from veo_orchestrator.services.entitlement import InteractiveKeySelector
from veo_orchestrator.services.video_jobs import get_key_selector

router = APIRouter()


class CredentialStatus(BaseModel):
    selected: bool
    prompt_pending: bool


class CredentialSelect(BaseModel):
    api_key: str = Field(..., min_length=1)


@router.get("", response_model=CredentialStatus)
async def credential_status(selector: InteractiveKeySelector = Depends(get_key_selector)):
    """Lets the UI know whether a job is waiting for a key."""
    return CredentialStatus(
        selected=await selector.has_selected(),
        prompt_pending=selector.prompt_pending,
    )


@router.post("", response_model=CredentialStatus)
async def select_credential(
    body: CredentialSelect,
    selector: InteractiveKeySelector = Depends(get_key_selector),
):
    try:
        selector.select(body.api_key)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return CredentialStatus(selected=True, prompt_pending=selector.prompt_pending)


@router.delete("/prompt", status_code=204)
async def dismiss_prompt(selector: InteractiveKeySelector = Depends(get_key_selector)):
    """Close the selection prompt without choosing a key."""
    selector.dismiss()
