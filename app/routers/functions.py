"""Function-style endpoints: voice generation trigger and scheduled voice cleanup."""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import CurrentUser, get_current_user, require_cleanup_secret
from app.errors import GenerationError
from app.rate_limit import limiter
from app.schemas.generation import CloneVoiceRequest, CloneVoiceResponse, FunctionErrorResponse
from app.services.cleanup import VoiceCleanupSweeper, get_cleanup_sweeper
from app.services.generation import GenerationOrchestrator, get_generation_orchestrator

logger = logging.getLogger("voice_clone")

router = APIRouter(prefix="/api/v1/functions", tags=["Functions"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}
ERROR_DETAILS = "Please check the error message and try again. If the problem persists, contact support."


@router.options("/clone-voice")
@router.options("/cleanup-voices")
def preflight() -> Response:
    """CORS preflight."""
    return Response(status_code=200, headers=CORS_HEADERS)


@router.post("/clone-voice")
@limiter.limit("10/minute")
def clone_voice(
    request: Request,
    body: CloneVoiceRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    orchestrator: GenerationOrchestrator = Depends(get_generation_orchestrator),
) -> JSONResponse:
    """Clone the project's voice, synthesize its script and store the result."""
    try:
        result = orchestrator.run_generation(db, body.project_id, user_id=user.user_id)
    except GenerationError as e:
        headers = dict(CORS_HEADERS)
        if e.retry_after_seconds:
            headers["Retry-After"] = str(e.retry_after_seconds)
        return JSONResponse(
            status_code=e.http_status,
            content=FunctionErrorResponse(error=e.message, details=ERROR_DETAILS).model_dump(),
            headers=headers,
        )

    return JSONResponse(
        content=CloneVoiceResponse(audio_url=result.audio_url).model_dump(by_alias=True),
        headers=CORS_HEADERS,
    )


@router.post("/cleanup-voices", dependencies=[Depends(require_cleanup_secret)])
def cleanup_voices(
    db: Session = Depends(get_db),
    sweeper: VoiceCleanupSweeper = Depends(get_cleanup_sweeper),
) -> JSONResponse:
    """Hourly reconciliation of provider voices, called by an external scheduler."""
    try:
        report = sweeper.sweep(db)
    except Exception as e:
        logger.exception("Error in cleanup-voices function")
        message = e.message if isinstance(e, GenerationError) else str(e)
        return JSONResponse(
            status_code=500,
            content={"error": message, "timestamp": datetime.utcnow().isoformat()},
            headers=CORS_HEADERS,
        )

    return JSONResponse(content=report.to_dict(), headers=CORS_HEADERS)
