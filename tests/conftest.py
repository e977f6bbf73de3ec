"""Pytest configuration and fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.models import ProjectStatus, VoiceProject, VoiceSample
from app.services.auth import AuthService
from app.services.cleanup import VoiceCleanupSweeper, get_cleanup_sweeper
from app.services.generation import GenerationOrchestrator, get_generation_orchestrator
from app.services.provider import RemoteVoice
from app.services.retry import RetryPolicy
from app.services.sample_loader import SampleLoader
from app.services.storage import StorageService


class FakeProvider:
    """In-memory stand-in for ElevenLabsClient that records every call."""

    def __init__(self) -> None:
        self.voices: dict[str, str] = {}
        self.create_calls: list[dict] = []
        self.synthesize_calls: list[dict] = []
        self.delete_calls: list[str] = []
        self.audio = b"ID3-generated-audio"
        self.create_errors: list[Exception] = []
        self.synthesize_errors: list[Exception] = []
        self.delete_error: Exception | None = None
        self.list_error: Exception | None = None
        self._counter = 0

    @property
    def call_count(self) -> int:
        return len(self.create_calls) + len(self.synthesize_calls) + len(self.delete_calls)

    def create_voice(self, name, samples, description):
        self.create_calls.append({"name": name, "samples": list(samples), "description": description})
        if self.create_errors:
            raise self.create_errors.pop(0)
        self._counter += 1
        voice_id = f"voice_{self._counter}"
        self.voices[voice_id] = name
        return voice_id

    def synthesize(self, voice_id, text, settings):
        self.synthesize_calls.append({"voice_id": voice_id, "text": text, "settings": settings})
        if self.synthesize_errors:
            error = self.synthesize_errors[0]
            if len(self.synthesize_errors) > 1:
                self.synthesize_errors.pop(0)
            raise error
        return self.audio

    def delete_voice(self, voice_id):
        self.delete_calls.append(voice_id)
        if self.delete_error is not None:
            raise self.delete_error
        self.voices.pop(voice_id, None)
        return True

    def list_voices(self):
        if self.list_error is not None:
            raise self.list_error
        return [RemoteVoice(voice_id=voice_id, name=name) for voice_id, name in self.voices.items()]


@pytest.fixture(name="db_session")
def db_session_fixture():
    """Create an in-memory SQLite database for tests."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    testing_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="storage")
def storage_fixture(tmp_path):
    """Storage bucket rooted in a temporary directory."""
    return StorageService(tmp_path / "bucket", public_url="/api/v1/storage")


@pytest.fixture(name="provider")
def provider_fixture():
    return FakeProvider()


@pytest.fixture(name="sleeps")
def sleeps_fixture():
    """Delays requested by the retry policy, in seconds."""
    return []


@pytest.fixture(name="orchestrator")
def orchestrator_fixture(provider: FakeProvider, storage: StorageService, sleeps: list):
    return GenerationOrchestrator(
        provider=provider,
        storage=storage,
        sample_loader=SampleLoader(storage),
        retry=RetryPolicy(max_attempts=3, initial_delay_ms=1000, sleep=sleeps.append),
    )


@pytest.fixture(name="sweeper")
def sweeper_fixture(provider: FakeProvider):
    return VoiceCleanupSweeper(provider=provider)


@pytest.fixture(name="client")
def client_fixture(db_session: Session, storage: StorageService, orchestrator, sweeper):
    """Create a test client with overridden DB, storage and provider wiring, rate limiting off."""
    from app.rate_limit import limiter
    from app.services import storage as storage_module
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    storage_module._storage_service = storage
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_generation_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_cleanup_sweeper] = lambda: sweeper
    limiter.enabled = False
    with TestClient(app) as c:
        yield c
    limiter.enabled = True
    app.dependency_overrides.clear()
    storage_module._storage_service = None


@pytest.fixture(name="test_user")
def test_user_fixture(db_session: Session):
    """Create a test user and return its data with a bearer token."""
    from app.services.jwt import get_jwt_service

    result = AuthService().register(db_session, "test@example.com", "password123", "Test User")
    token = get_jwt_service().token_for(result)

    return {
        "user_id": result.user_id,
        "email": result.email,
        "display_name": result.display_name,
        "token": token,
        "headers": {"Authorization": f"Bearer {token}"},
    }


@pytest.fixture(name="make_project")
def make_project_fixture(db_session: Session, storage: StorageService, test_user: dict):
    """Factory for a project with stored samples, ready for generation."""

    def _make(sample_count: int = 3, script_text: str | None = "Hello from my cloned voice.", **fields) -> VoiceProject:
        project = VoiceProject(
            user_id=fields.pop("user_id", test_user["user_id"]),
            name=fields.pop("name", "My Voice"),
            script_text=script_text,
            status=fields.pop("status", ProjectStatus.RECORDING),
            total_clips=fields.pop("total_clips", 30),
            clips_uploaded=sample_count,
            **fields,
        )
        db_session.add(project)
        db_session.flush()
        for n in range(1, sample_count + 1):
            key = storage.upload(f"{project.storage_prefix}clip_{n}.webm", f"audio-{n}".encode())
            db_session.add(VoiceSample(project_id=project.id, clip_number=n, sample_url=key, duration=2.5))
        db_session.commit()
        db_session.refresh(project)
        return project

    return _make

