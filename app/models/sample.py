"""Voice sample model."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from app.database import Base


class VoiceSample(Base):
    """One recorded or uploaded clip belonging to a voice project."""

    __tablename__ = "voice_sample"
    __table_args__ = (UniqueConstraint("project_id", "clip_number", name="uq_voice_sample_project_clip"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(String(36), ForeignKey("voice_project.id", ondelete="CASCADE"), nullable=False, index=True)
    clip_number = Column(Integer, nullable=False)
    sample_url = Column(String(1024), nullable=False)  # storage key or http(s) URL
    duration = Column(Float, nullable=True)
    uploaded_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    project = relationship("VoiceProject", back_populates="samples")
