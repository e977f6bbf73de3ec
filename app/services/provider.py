"""ElevenLabs voice-cloning client.

Thin synchronous wrapper over the provider's REST API. Every call carries its own timeout and
every failure leaves this module as a classified GenerationError. Retrying is left to callers.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from app.config import get_settings
from app.errors import ErrorKind, GenerationError

logger = logging.getLogger("voice_clone")


@dataclass
class SampleBlob:
    """One downloaded sample ready for upload to the provider."""

    clip_number: int
    filename: str
    content: bytes
    mime_type: str


@dataclass
class VoiceSettings:
    """Expression settings sent with a synthesis request."""

    stability: float
    similarity_boost: float
    style: float
    use_speaker_boost: bool

    def to_payload(self) -> dict[str, Any]:
        return {
            "stability": self.stability,
            "similarity_boost": self.similarity_boost,
            "style": self.style,
            "use_speaker_boost": self.use_speaker_boost,
        }


@dataclass
class RemoteVoice:
    """A voice record as listed by the provider."""

    voice_id: str
    name: str


def extract_error_message(response: httpx.Response) -> str:
    """Pull the most specific message out of a provider error body."""
    try:
        data = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"

    if isinstance(data, dict):
        detail = data.get("detail")
        if isinstance(detail, dict) and detail.get("message"):
            return str(detail["message"])
        if isinstance(detail, str) and detail:
            return detail
        if data.get("message"):
            return str(data["message"])
    return json.dumps(data)


def classify_provider_error(status_code: int, message: str, operation: str) -> GenerationError:
    """Map a provider HTTP failure to a typed error with a user-facing message."""
    lowered = message.lower()

    if status_code == 401:
        kind, text, reason = ErrorKind.AUTH_ERROR, "ElevenLabs API key is invalid or expired. Please update your API key.", None
    elif status_code == 402:
        kind, reason = ErrorKind.QUOTA_EXCEEDED, None
        text = "ElevenLabs quota exceeded. Please check your subscription or wait until your quota resets."
    elif status_code == 422:
        kind = ErrorKind.INVALID_INPUT
        if "audio" in lowered:
            reason = "invalid_audio"
            text = "Invalid audio format or corrupted audio files. Please re-record your voice samples."
        else:
            reason = "invalid_request"
            text = "Invalid request data. Please check your voice settings and try again."
    elif status_code == 429:
        kind, text, reason = ErrorKind.RATE_LIMITED, "Rate limit exceeded. Please wait a moment and try again.", None
    elif status_code >= 500:
        kind, reason = ErrorKind.PROVIDER_UNAVAILABLE, None
        text = "ElevenLabs service is temporarily unavailable. Please try again in a few minutes."
    elif "voice limit" in lowered or "maximum" in lowered:
        kind, reason = ErrorKind.QUOTA_EXCEEDED, "voice_limit"
        text = "Voice limit reached on your ElevenLabs account. Please delete unused voices or upgrade your plan."
    elif "format" in lowered:
        kind, reason = ErrorKind.INVALID_INPUT, "unsupported_format"
        text = "Audio format not supported. Please ensure recordings are in MP3 format."
    else:
        kind, text, reason = ErrorKind.UNKNOWN, f"ElevenLabs {operation} failed: {message}", None

    return GenerationError(kind, text, step=operation, reason=reason, provider_status=status_code)


class ElevenLabsClient:
    """Issues create/synthesize/delete/list calls against the ElevenLabs API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.elevenlabs.io/v1",
        model_id: str = "eleven_monolingual_v1",
        create_timeout: float = 120.0,
        synthesize_timeout: float = 180.0,
        request_timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model_id = model_id
        self.create_timeout = create_timeout
        self.synthesize_timeout = synthesize_timeout
        self.request_timeout = request_timeout
        self._transport = transport
        self._client: httpx.Client | None = None

    def __enter__(self) -> "ElevenLabsClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(base_url=self.base_url, transport=self._transport)
        return self._client

    def _require_api_key(self) -> None:
        if not self.api_key:
            raise GenerationError(ErrorKind.AUTH_ERROR, "ElevenLabs API key not configured")

    def _request(self, method: str, path: str, operation: str, timeout: float, **kwargs: Any) -> httpx.Response:
        """Send one request; transport failures become PROVIDER_UNAVAILABLE."""
        self._require_api_key()
        headers = {"xi-api-key": self.api_key, **kwargs.pop("headers", {})}
        try:
            return self.client.request(method, path, headers=headers, timeout=timeout, **kwargs)
        except httpx.TimeoutException as e:
            raise GenerationError(
                ErrorKind.PROVIDER_UNAVAILABLE,
                f"ElevenLabs {operation} timed out after {timeout:.0f}s",
                step=operation,
            ) from e
        except httpx.TransportError as e:
            raise GenerationError(
                ErrorKind.PROVIDER_UNAVAILABLE,
                f"Could not reach ElevenLabs during {operation}: {e}",
                step=operation,
            ) from e

    def _raise_for_status(self, response: httpx.Response, operation: str) -> None:
        if response.is_success:
            return
        message = extract_error_message(response)
        logger.error("ElevenLabs %s error (%d): %s", operation, response.status_code, message)
        raise classify_provider_error(response.status_code, message, operation)

    def create_voice(self, name: str, samples: list[SampleBlob], description: str) -> str:
        """Create an instant voice clone from the given samples. Returns the provider voice id."""
        files = [("files", (blob.filename, blob.content, blob.mime_type)) for blob in samples]
        response = self._request(
            "POST",
            "/voices/add",
            "voice creation",
            self.create_timeout,
            data={"name": name, "description": description},
            files=files,
        )
        self._raise_for_status(response, "voice creation")

        voice_id = response.json().get("voice_id")
        if not voice_id:
            raise GenerationError(
                ErrorKind.EMPTY_RESULT,
                "No voice ID returned from ElevenLabs. Please try again.",
                step="voice creation",
            )
        return voice_id

    def synthesize(self, voice_id: str, text: str, settings: VoiceSettings) -> bytes:
        """Generate speech for ``text`` with a cloned voice. Returns raw audio bytes."""
        response = self._request(
            "POST",
            f"/text-to-speech/{voice_id}",
            "speech generation",
            self.synthesize_timeout,
            headers={"Accept": "audio/mpeg"},
            json={
                "text": text,
                "model_id": self.model_id,
                "voice_settings": settings.to_payload(),
            },
        )
        self._raise_for_status(response, "speech generation")
        return response.content

    def delete_voice(self, voice_id: str) -> bool:
        """Delete a voice. A voice that no longer exists counts as deleted."""
        response = self._request("DELETE", f"/voices/{voice_id}", "voice deletion", self.request_timeout)
        if response.status_code == 404:
            logger.info("Voice %s already absent from ElevenLabs", voice_id)
            return True
        self._raise_for_status(response, "voice deletion")
        return True

    def list_voices(self) -> list[RemoteVoice]:
        """List every voice on the account."""
        response = self._request("GET", "/voices", "voice listing", self.request_timeout)
        self._raise_for_status(response, "voice listing")
        return [
            RemoteVoice(voice_id=v["voice_id"], name=v.get("name") or "")
            for v in response.json().get("voices", [])
            if v.get("voice_id")
        ]


_provider_client: ElevenLabsClient | None = None


def get_provider_client() -> ElevenLabsClient:
    """Get singleton ElevenLabs client built from settings."""
    global _provider_client
    if _provider_client is None:
        settings = get_settings()
        _provider_client = ElevenLabsClient(
            api_key=settings.ELEVENLABS_API_KEY,
            base_url=settings.ELEVENLABS_BASE_URL,
            model_id=settings.ELEVENLABS_MODEL_ID,
            create_timeout=settings.CREATE_VOICE_TIMEOUT_SECONDS,
            synthesize_timeout=settings.SYNTHESIZE_TIMEOUT_SECONDS,
            request_timeout=settings.PROVIDER_REQUEST_TIMEOUT_SECONDS,
        )
    return _provider_client
