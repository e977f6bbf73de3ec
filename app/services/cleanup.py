"""Periodic reconciliation of provider voices against the database."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.config import get_settings
from app.errors import GenerationError
from app.models.project import ProjectStatus, VoiceProject
from app.services.provider import ElevenLabsClient, get_provider_client

logger = logging.getLogger("voice_clone")


@dataclass
class SweepReport:
    cleaned: int = 0
    failed: int = 0
    orphans_cleaned: int = 0
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "success": True,
            "cleaned": self.cleaned,
            "failed": self.failed,
            "orphans_cleaned": self.orphans_cleaned,
            "timestamp": self.timestamp.isoformat(),
        }


class VoiceCleanupSweeper:
    """Deletes remote voices that no generation run is going to release."""

    def __init__(
        self,
        provider: ElevenLabsClient,
        stuck_after: timedelta = timedelta(hours=1),
        voice_name_prefix: str = "Voice_",
        clock: Callable[[], datetime] = datetime.utcnow,
    ) -> None:
        self.provider = provider
        self.stuck_after = stuck_after
        self.voice_name_prefix = voice_name_prefix
        self.clock = clock

    def sweep(self, db: Session) -> SweepReport:
        """Run both passes. Per-item failures are counted; database failures raise."""
        logger.info("Starting voice cleanup job")
        report = SweepReport(timestamp=self.clock())
        self._release_recorded_voices(db, report)
        self._delete_untracked_voices(db, report)
        logger.info(
            "Cleanup job completed: cleaned=%d failed=%d orphans=%d",
            report.cleaned,
            report.failed,
            report.orphans_cleaned,
        )
        return report

    def _release_recorded_voices(self, db: Session, report: SweepReport) -> None:
        """Pass 1: voice ids still recorded on finished or stuck projects."""
        stuck_before = self.clock() - self.stuck_after
        projects = (
            db.query(VoiceProject.id, VoiceProject.remote_voice_id)
            .filter(
                VoiceProject.remote_voice_id.isnot(None),
                or_(
                    VoiceProject.status.in_((ProjectStatus.FAILED, ProjectStatus.COMPLETED)),
                    VoiceProject.updated_at < stuck_before,
                ),
            )
            .all()
        )
        logger.info("Found %d projects with voice IDs to clean up", len(projects))

        for project_id, voice_id in projects:
            try:
                self.provider.delete_voice(voice_id)
            except GenerationError as e:
                logger.warning("Failed to delete voice %s for project %s: %s", voice_id, project_id, e)
                report.failed += 1
                continue

            # Only clear the id we deleted; a newer run may have recorded another one.
            db.query(VoiceProject).filter(
                VoiceProject.id == project_id,
                VoiceProject.remote_voice_id == voice_id,
            ).update({VoiceProject.remote_voice_id: None}, synchronize_session=False)
            db.commit()
            report.cleaned += 1
            logger.info("Cleaned up voice %s for project %s", voice_id, project_id)

    def _delete_untracked_voices(self, db: Session, report: SweepReport) -> None:
        """Pass 2: provider voices with our naming prefix that no project references.

        A listing failure ends this pass only. It propagates when pass 1 released nothing, so a
        provider that is down for the whole sweep still surfaces as an error.
        """
        try:
            voices = self.provider.list_voices()
        except GenerationError as e:
            if report.cleaned == 0:
                raise
            logger.warning("Failed to list ElevenLabs voices, skipping orphan cleanup: %s", e)
            return
        logger.info("Found %d voices in ElevenLabs account", len(voices))

        known_ids = {
            voice_id
            for (voice_id,) in db.query(VoiceProject.remote_voice_id).filter(VoiceProject.remote_voice_id.isnot(None))
        }
        active_ids = self._recently_active_project_ids(db)

        for voice in voices:
            if not voice.name.startswith(self.voice_name_prefix) or voice.voice_id in known_ids:
                continue
            if voice.name[len(self.voice_name_prefix) :] in active_ids:
                # Created by a run that has not recorded the id yet.
                logger.info("Skipping voice %s, its project is mid-run", voice.voice_id)
                continue
            try:
                self.provider.delete_voice(voice.voice_id)
            except GenerationError as e:
                logger.warning("Failed to clean up orphaned voice %s: %s", voice.voice_id, e)
                report.failed += 1
                continue
            report.cleaned += 1
            report.orphans_cleaned += 1
            logger.info("Cleaned up orphaned voice: %s", voice.voice_id)

    def _recently_active_project_ids(self, db: Session) -> set[str]:
        stuck_before = self.clock() - self.stuck_after
        rows = db.query(VoiceProject.id).filter(
            VoiceProject.status.in_(ProjectStatus.IN_PROGRESS),
            VoiceProject.updated_at >= stuck_before,
        )
        return {project_id for (project_id,) in rows}


_sweeper: VoiceCleanupSweeper | None = None


def get_cleanup_sweeper() -> VoiceCleanupSweeper:
    """Get singleton sweeper wired from settings."""
    global _sweeper
    if _sweeper is None:
        settings = get_settings()
        _sweeper = VoiceCleanupSweeper(
            provider=get_provider_client(),
            stuck_after=timedelta(seconds=settings.STUCK_VOICE_THRESHOLD_SECONDS),
            voice_name_prefix=settings.VOICE_NAME_PREFIX,
        )
    return _sweeper
