"""Voice-clone generation orchestrator.

Drives one project through: claim -> load samples -> create remote voice -> synthesize ->
store artifact -> finalize -> release remote voice. The remote voice is held in a scoped
context so every exit path attempts its deletion.
"""

import logging
import math
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.config import get_settings
from app.errors import ErrorKind, GenerationError
from app.models.project import (
    DEFAULT_SIMILARITY_BOOST,
    DEFAULT_SPEAKER_BOOST,
    DEFAULT_STABILITY,
    DEFAULT_STYLE,
    MAX_SCRIPT_LENGTH,
    ProjectStatus,
    VoiceProject,
)
from app.services.provider import ElevenLabsClient, SampleBlob, VoiceSettings, get_provider_client
from app.services.retry import RetryPolicy
from app.services.sample_loader import SampleLoader, fetch_project_samples
from app.services.storage import StorageService, get_storage_service

logger = logging.getLogger("voice_clone")

MAX_PROJECT_ID_LENGTH = 100
VOICE_DESCRIPTION = "Voice clone from Voice Clone Studio"
ARTIFACT_FILENAME = "generated.mp3"


@dataclass
class GenerationResult:
    """Outcome of a successful generation run."""

    project_id: str
    audio_url: str
    audio_bytes: int
    samples_used: int


@dataclass
class VoiceHandle:
    """A remote voice created during one run."""

    voice_id: str


def validate_project_id(project_id: object) -> str:
    if not isinstance(project_id, str) or not project_id.strip() or len(project_id) > MAX_PROJECT_ID_LENGTH:
        raise GenerationError(ErrorKind.INVALID_INPUT, "Invalid project ID", step="validate")
    return project_id


def validate_generation_inputs(project: VoiceProject) -> None:
    """Check voice parameter ranges and the script before anything is mutated."""
    for field_name in ("voice_stability", "voice_similarity_boost", "voice_style"):
        value = getattr(project, field_name)
        if value is not None and not 0 <= value <= 1:
            raise GenerationError(
                ErrorKind.INVALID_INPUT, f"Invalid {field_name} value (must be 0-1)", step="validate"
            )

    script = project.script_text
    if not script or not script.strip():
        raise GenerationError(ErrorKind.INVALID_INPUT, "Script text is required", step="validate")
    if len(script) > MAX_SCRIPT_LENGTH:
        raise GenerationError(
            ErrorKind.INVALID_INPUT,
            f"Script text is too long (max {MAX_SCRIPT_LENGTH} characters)",
            step="validate",
        )


def voice_settings_for(project: VoiceProject) -> VoiceSettings:
    """Project settings with defaults substituted only for NULL values."""
    return VoiceSettings(
        stability=DEFAULT_STABILITY if project.voice_stability is None else project.voice_stability,
        similarity_boost=(
            DEFAULT_SIMILARITY_BOOST if project.voice_similarity_boost is None else project.voice_similarity_boost
        ),
        style=DEFAULT_STYLE if project.voice_style is None else project.voice_style,
        use_speaker_boost=(
            DEFAULT_SPEAKER_BOOST if project.voice_speaker_boost is None else project.voice_speaker_boost
        ),
    )


class GenerationOrchestrator:
    """Runs the generation pipeline for a single project per call."""

    def __init__(
        self,
        provider: ElevenLabsClient,
        storage: StorageService,
        sample_loader: SampleLoader,
        retry: RetryPolicy | None = None,
        cooldown: timedelta = timedelta(minutes=5),
        voice_name_prefix: str = "Voice_",
        clock: Callable[[], datetime] = datetime.utcnow,
    ) -> None:
        self.provider = provider
        self.storage = storage
        self.sample_loader = sample_loader
        self.retry = retry or RetryPolicy()
        self.cooldown = cooldown
        self.voice_name_prefix = voice_name_prefix
        self.clock = clock

    def run_generation(self, db: Session, project_id: object, user_id: int | None = None) -> GenerationResult:
        """Generate speech for a project with its cloned voice.

        Validation, cooldown and missing-data errors are raised before any state change. Once
        the run is claimed, every failure leaves the project ``failed`` with no remote voice id.
        """
        project_id = validate_project_id(project_id)
        logger.info("[clone-voice] Processing project %s", project_id)

        project = self._load_project(db, project_id, user_id)
        self._check_cooldown(project)
        validate_generation_inputs(project)

        samples = fetch_project_samples(db, project.id)
        if not samples:
            raise GenerationError(ErrorKind.NOT_FOUND, "No voice samples found for this project", step="load samples")
        logger.info("[clone-voice] Found %d voice samples", len(samples))

        self._claim(db, project)

        step = "load samples"
        handle: VoiceHandle | None = None
        try:
            blobs = self.sample_loader.load_samples(samples)

            step = "create voice"
            with self._remote_voice(db, project, blobs) as handle:
                step = "synthesize"
                audio = self.retry.run(
                    lambda: self.provider.synthesize(handle.voice_id, project.script_text, voice_settings_for(project)),
                    label="speech generation",
                )
                if not audio:
                    raise GenerationError(
                        ErrorKind.EMPTY_RESULT,
                        "Generated audio is empty. Please try again or adjust voice settings.",
                        step=step,
                    )
                logger.info("[clone-voice] Speech generated, size: %d bytes", len(audio))

                step = "store artifact"
                key = self.storage.upload(f"{project.storage_prefix}{ARTIFACT_FILENAME}", audio, upsert=True)
                audio_url = self.storage.public_url_for(key)

                step = "finalize"
                project.generated_audio_url = audio_url
                project.status = ProjectStatus.COMPLETED
                project.remote_voice_id = None
                db.commit()
        except Exception as e:
            error = self._as_generation_error(e, step)
            self._mark_failed(db, project, handle, error)
            if error is e:
                raise
            raise error from e

        logger.info("[clone-voice] Completed project %s", project.id)
        return GenerationResult(
            project_id=project.id,
            audio_url=audio_url,
            audio_bytes=len(audio),
            samples_used=len(blobs),
        )

    def _load_project(self, db: Session, project_id: str, user_id: int | None) -> VoiceProject:
        project = db.query(VoiceProject).filter(VoiceProject.id == project_id).first()
        if project is None or (user_id is not None and project.user_id != user_id):
            raise GenerationError(ErrorKind.NOT_FOUND, "Project not found", step="load project")
        return project

    def _check_cooldown(self, project: VoiceProject) -> None:
        if project.last_generation_at is None:
            return
        elapsed = self.clock() - project.last_generation_at
        if elapsed < self.cooldown:
            remaining = math.ceil((self.cooldown - elapsed).total_seconds())
            raise GenerationError(
                ErrorKind.RATE_LIMITED,
                f"Rate limit: Please wait {remaining} seconds before generating again",
                step="cooldown",
                retry_after_seconds=remaining,
            )

    def _claim(self, db: Session, project: VoiceProject) -> None:
        """Atomically move the project to ``analyzing`` and stamp the generation time.

        The cooldown guard is part of the UPDATE so only one concurrent trigger can win.
        """
        now = self.clock()
        claimed = (
            db.query(VoiceProject)
            .filter(
                VoiceProject.id == project.id,
                or_(
                    VoiceProject.last_generation_at.is_(None),
                    VoiceProject.last_generation_at <= now - self.cooldown,
                ),
            )
            .update(
                {
                    VoiceProject.status: ProjectStatus.ANALYZING,
                    VoiceProject.last_generation_at: now,
                    VoiceProject.updated_at: now,
                },
                synchronize_session=False,
            )
        )
        db.commit()
        db.refresh(project)

        if not claimed:
            logger.warning("[clone-voice] Project %s was claimed by a concurrent run", project.id)
            raise GenerationError(
                ErrorKind.RATE_LIMITED,
                "A generation for this project is already in progress",
                step="claim",
                retry_after_seconds=math.ceil(self.cooldown.total_seconds()),
            )
        logger.info("[clone-voice] Project %s claimed, status analyzing", project.id)

    @contextmanager
    def _remote_voice(self, db: Session, project: VoiceProject, blobs: list[SampleBlob]) -> Iterator[VoiceHandle]:
        """Create the remote voice and guarantee a release attempt when the block exits."""
        voice_id = self.retry.run(
            lambda: self.provider.create_voice(f"{self.voice_name_prefix}{project.id}", blobs, VOICE_DESCRIPTION),
            label="voice creation",
        )
        handle = VoiceHandle(voice_id=voice_id)
        logger.info("[clone-voice] Voice cloned successfully, ID: %s", voice_id)
        try:
            project.remote_voice_id = voice_id
            project.status = ProjectStatus.GENERATING
            db.commit()
            yield handle
        finally:
            self._release_voice(voice_id)

    def _release_voice(self, voice_id: str) -> None:
        try:
            self.provider.delete_voice(voice_id)
            logger.info("[clone-voice] Voice %s cleaned up from ElevenLabs", voice_id)
        except Exception as e:
            logger.warning("[clone-voice] Failed to delete voice %s, left for the sweeper: %s", voice_id, e)

    def _mark_failed(
        self, db: Session, project: VoiceProject, handle: VoiceHandle | None, error: GenerationError
    ) -> None:
        logger.error(
            "[clone-voice] Project %s failed at step '%s' (%s): %s",
            project.id,
            error.step,
            error.kind.value,
            error.message,
        )
        db.rollback()
        try:
            project.status = ProjectStatus.FAILED
            if handle is not None and project.remote_voice_id == handle.voice_id:
                project.remote_voice_id = None
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("[clone-voice] Failed to record failure for project %s", project.id)

    @staticmethod
    def _as_generation_error(e: Exception, step: str) -> GenerationError:
        if isinstance(e, GenerationError):
            if e.step is None:
                e.step = step
            return e
        return GenerationError(ErrorKind.UNKNOWN, f"Unexpected error during {step}: {e}", step=step)


_orchestrator: GenerationOrchestrator | None = None


def get_generation_orchestrator() -> GenerationOrchestrator:
    """Get singleton orchestrator wired from settings."""
    global _orchestrator
    if _orchestrator is None:
        settings = get_settings()
        storage = get_storage_service()
        _orchestrator = GenerationOrchestrator(
            provider=get_provider_client(),
            storage=storage,
            sample_loader=SampleLoader(
                storage,
                max_samples=settings.MAX_SAMPLES_PER_VOICE,
                download_timeout=settings.SAMPLE_DOWNLOAD_TIMEOUT_SECONDS,
                max_sample_bytes=settings.MAX_SAMPLE_SIZE_MB * 1024 * 1024,
                min_valid_samples=settings.MIN_VALID_SAMPLES,
            ),
            retry=RetryPolicy(
                max_attempts=settings.RETRY_MAX_ATTEMPTS,
                initial_delay_ms=settings.RETRY_INITIAL_DELAY_MS,
            ),
            cooldown=timedelta(seconds=settings.GENERATION_COOLDOWN_SECONDS),
            voice_name_prefix=settings.VOICE_NAME_PREFIX,
        )
    return _orchestrator
