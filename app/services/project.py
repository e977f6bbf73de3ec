"""Project service for voice projects, sample uploads and cascade cleanup."""

import logging
from pathlib import Path

from fastapi import UploadFile
from sqlalchemy.orm import Session

from app.config import get_settings
from app.models.project import ProjectStatus, VoiceProject
from app.models.sample import VoiceSample
from app.services.storage import StorageService, get_storage_service

logger = logging.getLogger("voice_clone")

ALLOWED_EXTENSIONS = {".mp3", ".m4a", ".wav", ".webm", ".ogg"}
ALLOWED_MIME_TYPES = {
    "audio/mpeg",
    "audio/mp3",
    "audio/mp4",
    "audio/x-m4a",
    "audio/wav",
    "audio/x-wav",
    "audio/webm",
    "audio/ogg",
    "video/webm",  # MediaRecorder in some browsers labels audio-only recordings as video/webm
}
EDITABLE_FIELDS = (
    "name",
    "script_text",
    "voice_stability",
    "voice_similarity_boost",
    "voice_style",
    "voice_speaker_boost",
)


class ProjectService:
    """Handles project CRUD and sample storage."""

    def __init__(self, storage: StorageService | None = None) -> None:
        self._storage = storage

    @property
    def storage(self) -> StorageService:
        return self._storage or get_storage_service()

    def create_project(self, db: Session, user_id: int, name: str, total_clips: int = 30) -> VoiceProject:
        """Create a project ready for recording."""
        project = VoiceProject(
            user_id=user_id,
            name=name.strip(),
            status=ProjectStatus.RECORDING,
            total_clips=total_clips,
            clips_uploaded=0,
        )
        db.add(project)
        db.commit()
        db.refresh(project)
        return project

    def get_user_projects(self, db: Session, user_id: int) -> list[VoiceProject]:
        """Get all projects for a user, newest first."""
        return (
            db.query(VoiceProject)
            .filter(VoiceProject.user_id == user_id)
            .order_by(VoiceProject.created_at.desc())
            .all()
        )

    def get_project(self, db: Session, project_id: str, user_id: int) -> VoiceProject | None:
        """Get a single project by ID, scoped to user."""
        return db.query(VoiceProject).filter(VoiceProject.id == project_id, VoiceProject.user_id == user_id).first()

    def update_project(self, db: Session, project: VoiceProject, changes: dict) -> VoiceProject:
        """Apply script and voice-setting changes."""
        for field_name, value in changes.items():
            if field_name in EDITABLE_FIELDS:
                setattr(project, field_name, value)
        db.commit()
        db.refresh(project)
        return project

    def delete_project(self, db: Session, project: VoiceProject) -> None:
        """Delete a project, its samples and every stored object under its prefix."""
        project_id = project.id
        prefix = project.storage_prefix
        db.delete(project)
        db.commit()
        removed = self.storage.delete_prefix(prefix)
        logger.info("Deleted project %s and %d stored files", project_id, removed)

    def validate_upload_metadata(self, filename: str, content_type: str | None) -> str | None:
        """Validate upload file metadata (extension + MIME). Returns error message or None if valid."""
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            return f"Unsupported file type '{ext}'. Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}"

        if content_type and content_type not in ALLOWED_MIME_TYPES and not content_type.startswith("audio/"):
            return f"Invalid content type '{content_type}'. Must be an audio file."

        return None

    async def read_upload(self, upload: UploadFile) -> bytes:
        """Read an uploaded clip in chunks, enforcing the size limit.

        Raises ValueError if the file is empty or exceeds the max upload size.
        """
        settings = get_settings()
        max_bytes = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024
        chunks = []
        size = 0
        chunk_size = 1024 * 64

        while True:
            chunk = await upload.read(chunk_size)
            if not chunk:
                break
            size += len(chunk)
            if size > max_bytes:
                raise ValueError(f"File too large ({size // (1024 * 1024)}MB). Maximum: {settings.MAX_UPLOAD_SIZE_MB}MB")
            chunks.append(chunk)

        if size == 0:
            raise ValueError("Uploaded file is empty")
        return b"".join(chunks)

    def add_sample(
        self,
        db: Session,
        project: VoiceProject,
        clip_number: int,
        filename: str,
        content: bytes,
        duration: float | None = None,
    ) -> VoiceSample:
        """Store a clip and record it, replacing any earlier clip with the same number.

        Raises ValueError when the clip number is outside the project's range.
        """
        if clip_number < 1 or clip_number > project.total_clips:
            raise ValueError(f"clip_number must be between 1 and {project.total_clips}")

        ext = Path(filename).suffix.lower()
        key = self.storage.upload(f"{project.storage_prefix}clip_{clip_number}{ext}", content, upsert=True)

        sample = (
            db.query(VoiceSample)
            .filter(VoiceSample.project_id == project.id, VoiceSample.clip_number == clip_number)
            .first()
        )
        if sample is None:
            sample = VoiceSample(project_id=project.id, clip_number=clip_number, sample_url=key, duration=duration)
            db.add(sample)
        else:
            sample.sample_url = key
            sample.duration = duration
        db.flush()

        project.clips_uploaded = min(
            db.query(VoiceSample).filter(VoiceSample.project_id == project.id).count(),
            project.total_clips,
        )
        db.commit()
        db.refresh(sample)
        return sample

    def get_samples(self, db: Session, project: VoiceProject) -> list[VoiceSample]:
        """Samples of a project ordered by clip number."""
        return (
            db.query(VoiceSample)
            .filter(VoiceSample.project_id == project.id)
            .order_by(VoiceSample.clip_number)
            .all()
        )


_project_service: ProjectService | None = None


def get_project_service() -> ProjectService:
    """Get singleton project service instance."""
    global _project_service
    if _project_service is None:
        _project_service = ProjectService()
    return _project_service
