"""Loads a project's stored samples into the payload the provider expects."""

import logging
from collections.abc import Sequence
from pathlib import PurePosixPath
from urllib.parse import urlparse

from sqlalchemy.orm import Session

from app.errors import ErrorKind, GenerationError
from app.models.sample import VoiceSample
from app.services.provider import SampleBlob
from app.services.storage import StorageService

logger = logging.getLogger("voice_clone")

MIME_TYPES = {
    "mp3": "audio/mpeg",
    "webm": "audio/webm",
    "wav": "audio/wav",
    "ogg": "audio/ogg",
    "m4a": "audio/mp4",
}
DEFAULT_EXTENSION = "webm"


def infer_audio_type(location: str) -> tuple[str, str]:
    """Return (extension, mime_type) from a sample location's file extension."""
    path = urlparse(location).path if "://" in location else location
    suffix = PurePosixPath(path).suffix.lower().lstrip(".")
    if suffix in MIME_TYPES:
        return suffix, MIME_TYPES[suffix]
    return suffix or DEFAULT_EXTENSION, MIME_TYPES[DEFAULT_EXTENSION]


def fetch_project_samples(db: Session, project_id: str) -> list[VoiceSample]:
    """All samples of a project ordered by clip number."""
    return db.query(VoiceSample).filter(VoiceSample.project_id == project_id).order_by(VoiceSample.clip_number).all()


class SampleLoader:
    """Downloads samples with a count cap, a per-download timeout and a size limit."""

    def __init__(
        self,
        storage: StorageService,
        max_samples: int = 25,
        download_timeout: float = 30.0,
        max_sample_bytes: int = 10 * 1024 * 1024,
        min_valid_samples: int = 1,
    ) -> None:
        self.storage = storage
        self.max_samples = max_samples
        self.download_timeout = download_timeout
        self.max_sample_bytes = max_sample_bytes
        self.min_valid_samples = max(1, min_valid_samples)

    def load_samples(self, samples: Sequence[VoiceSample]) -> list[SampleBlob]:
        """Fetch up to ``max_samples`` samples in order, skipping any that fail.

        Raises EMPTY_RESULT when fewer than ``min_valid_samples`` survive.
        """
        selected = list(samples)[: self.max_samples]
        blobs: list[SampleBlob] = []

        for index, sample in enumerate(selected):
            try:
                content = self.storage.download(
                    sample.sample_url, timeout=self.download_timeout, max_bytes=self.max_sample_bytes
                )
            except GenerationError as e:
                logger.warning("[clone-voice] Failed to fetch sample %d (clip %d): %s", index, sample.clip_number, e)
                continue

            if not content:
                logger.warning("[clone-voice] Sample %d (clip %d) is empty", index, sample.clip_number)
                continue

            ext, mime_type = infer_audio_type(sample.sample_url)
            blobs.append(
                SampleBlob(
                    clip_number=sample.clip_number,
                    filename=f"sample_{index}.{ext}",
                    content=content,
                    mime_type=mime_type,
                )
            )
            logger.info("[clone-voice] Downloaded sample %d/%d", index + 1, len(selected))

        if len(blobs) < self.min_valid_samples:
            raise GenerationError(
                ErrorKind.EMPTY_RESULT,
                "No valid voice samples could be loaded. Please check your recordings and try again."
                if not blobs
                else f"Only {len(blobs)} voice sample(s) could be loaded; at least {self.min_valid_samples} required.",
                step="load samples",
            )

        logger.info("[clone-voice] Successfully loaded %d voice samples", len(blobs))
        return blobs

    def load_project_samples(self, db: Session, project_id: str) -> list[SampleBlob]:
        """Query and download a project's samples in one call."""
        samples = fetch_project_samples(db, project_id)
        if not samples:
            raise GenerationError(ErrorKind.NOT_FOUND, "No voice samples found for this project", step="load samples")
        return self.load_samples(samples)
