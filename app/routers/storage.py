"""Owner-scoped download of stored samples and generated audio."""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse

from app.dependencies import CurrentUser, get_current_user
from app.errors import GenerationError
from app.services.storage import get_storage_service

router = APIRouter(prefix="/api/v1/storage", tags=["Storage"])


@router.get("/{key:path}")
def download_object(key: str, user: CurrentUser = Depends(get_current_user)) -> FileResponse:
    """Serve an object whose key starts with the caller's user id."""
    if key.split("/", 1)[0] != str(user.user_id):
        raise HTTPException(status_code=403, detail="Access denied")

    storage = get_storage_service()
    try:
        if not storage.exists(key):
            raise HTTPException(status_code=404, detail="File not found")
        path = storage.path(key)
    except GenerationError as e:
        raise HTTPException(status_code=400, detail=e.message) from None

    return FileResponse(path, filename=path.name)
