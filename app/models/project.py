"""Voice project model."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from app.database import Base


class ProjectStatus:
    """Lifecycle states of a voice project."""

    DRAFT = "draft"
    RECORDING = "recording"
    ANALYZING = "analyzing"
    TRAINING = "training"
    READY = "ready"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"

    ALL = (DRAFT, RECORDING, ANALYZING, TRAINING, READY, GENERATING, COMPLETED, FAILED)
    IN_PROGRESS = (ANALYZING, TRAINING, GENERATING)


DEFAULT_STABILITY = 0.5
DEFAULT_SIMILARITY_BOOST = 0.75
DEFAULT_STYLE = 0.0
DEFAULT_SPEAKER_BOOST = True
MAX_SCRIPT_LENGTH = 10_000

_status_list = ", ".join(f"'{s}'" for s in ProjectStatus.ALL)


class VoiceProject(Base):
    """A voice-cloning job: recorded samples, a script and the generated result."""

    __tablename__ = "voice_project"
    __table_args__ = (
        CheckConstraint("clips_uploaded <= total_clips", name="ck_voice_project_clips_uploaded"),
        CheckConstraint(
            "voice_stability IS NULL OR (voice_stability >= 0 AND voice_stability <= 1)",
            name="ck_voice_project_stability_range",
        ),
        CheckConstraint(
            "voice_similarity_boost IS NULL OR (voice_similarity_boost >= 0 AND voice_similarity_boost <= 1)",
            name="ck_voice_project_similarity_boost_range",
        ),
        CheckConstraint(
            "voice_style IS NULL OR (voice_style >= 0 AND voice_style <= 1)",
            name="ck_voice_project_style_range",
        ),
        CheckConstraint(f"status IN ({_status_list})", name="ck_voice_project_status"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    script_text = Column(Text, nullable=True)
    voice_stability = Column(Float, nullable=True, default=DEFAULT_STABILITY)
    voice_similarity_boost = Column(Float, nullable=True, default=DEFAULT_SIMILARITY_BOOST)
    voice_style = Column(Float, nullable=True, default=DEFAULT_STYLE)
    voice_speaker_boost = Column(Boolean, nullable=True, default=DEFAULT_SPEAKER_BOOST)
    status = Column(String(32), nullable=False, default=ProjectStatus.DRAFT)
    total_clips = Column(Integer, nullable=False, default=30)
    clips_uploaded = Column(Integer, nullable=False, default=0)
    remote_voice_id = Column(String(128), nullable=True, index=True)
    generated_audio_url = Column(String(1024), nullable=True)
    last_generation_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    owner = relationship("User", back_populates="projects")
    samples = relationship(
        "VoiceSample",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="VoiceSample.clip_number",
    )

    @property
    def storage_prefix(self) -> str:
        """Storage key prefix under which all of this project's objects live."""
        return f"{self.user_id}/{self.id}/"
