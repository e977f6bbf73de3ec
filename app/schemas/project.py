"""Pydantic schemas for project and sample endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from app.models.project import MAX_SCRIPT_LENGTH


class ProjectCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    total_clips: int = Field(default=30, ge=10, le=100)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Project name is required")
        return value


class ProjectUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    script_text: str | None = Field(default=None, max_length=MAX_SCRIPT_LENGTH)
    voice_stability: float | None = Field(default=None, ge=0, le=1)
    voice_similarity_boost: float | None = Field(default=None, ge=0, le=1)
    voice_style: float | None = Field(default=None, ge=0, le=1)
    voice_speaker_boost: bool | None = None


class ProjectResponse(BaseModel):
    id: str
    name: str
    script_text: str | None
    voice_stability: float | None
    voice_similarity_boost: float | None
    voice_style: float | None
    voice_speaker_boost: bool | None
    status: str
    total_clips: int
    clips_uploaded: int
    generated_audio_url: str | None
    last_generation_at: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProjectListResponse(BaseModel):
    items: list[ProjectResponse]
    total: int


class SampleResponse(BaseModel):
    id: int
    clip_number: int
    sample_url: str
    duration: float | None
    uploaded_at: datetime

    model_config = {"from_attributes": True}


class SampleListResponse(BaseModel):
    items: list[SampleResponse]
    total: int
