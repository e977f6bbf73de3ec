"""Pydantic schemas for the generation and cleanup functions."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CloneVoiceRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Checked by the orchestrator so malformed ids get the function error envelope.
    project_id: Any = Field(default=None, alias="projectId")


class CloneVoiceResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    audio_url: str = Field(serialization_alias="audioUrl")


class FunctionErrorResponse(BaseModel):
    error: str
    details: str
