"""Voice project API endpoints."""

from fastapi import APIRouter, Depends, Form, HTTPException, Request, UploadFile
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import CurrentUser, get_current_user
from app.errors import GenerationError
from app.models.project import ProjectStatus
from app.rate_limit import limiter
from app.schemas.project import (
    ProjectCreateRequest,
    ProjectListResponse,
    ProjectResponse,
    ProjectUpdateRequest,
    SampleListResponse,
    SampleResponse,
)
from app.services.project import get_project_service

router = APIRouter(prefix="/api/v1/projects", tags=["Projects"])


def _owned_project(db: Session, project_id: str, user: CurrentUser):
    project = get_project_service().get_project(db, project_id, user.user_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


@router.post("/", response_model=ProjectResponse, status_code=201)
def create_project(
    body: ProjectCreateRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ProjectResponse:
    """Create a project and start recording."""
    project = get_project_service().create_project(db, user.user_id, body.name, body.total_clips)
    return ProjectResponse.model_validate(project)


@router.get("/", response_model=ProjectListResponse)
def list_projects(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ProjectListResponse:
    """List the current user's projects."""
    projects = get_project_service().get_user_projects(db, user.user_id)
    return ProjectListResponse(
        items=[ProjectResponse.model_validate(p) for p in projects],
        total=len(projects),
    )


@router.get("/{project_id}", response_model=ProjectResponse)
def get_project(
    project_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ProjectResponse:
    """Get a single project."""
    return ProjectResponse.model_validate(_owned_project(db, project_id, user))


@router.patch("/{project_id}", response_model=ProjectResponse)
def update_project(
    project_id: str,
    body: ProjectUpdateRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ProjectResponse:
    """Update script text and expression settings."""
    project = _owned_project(db, project_id, user)
    if project.status in ProjectStatus.IN_PROGRESS:
        raise HTTPException(status_code=409, detail=f"Cannot edit project while status is '{project.status}'")
    changes = body.model_dump(exclude_unset=True)
    project = get_project_service().update_project(db, project, changes)
    return ProjectResponse.model_validate(project)


@router.delete("/{project_id}")
def delete_project(
    project_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    """Delete a project together with its samples and stored audio."""
    project = _owned_project(db, project_id, user)
    get_project_service().delete_project(db, project)
    return {"detail": "Project deleted"}


@router.post("/{project_id}/samples", response_model=SampleResponse, status_code=201)
@limiter.limit("120/minute")
async def upload_sample(
    request: Request,
    project_id: str,
    file: UploadFile,
    clip_number: int = Form(...),
    duration: float | None = Form(default=None),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> SampleResponse:
    """Upload one recorded clip for a project."""
    service = get_project_service()
    project = _owned_project(db, project_id, user)

    error = service.validate_upload_metadata(file.filename or "", file.content_type)
    if error:
        raise HTTPException(status_code=400, detail=error)

    try:
        content = await service.read_upload(file)
        sample = service.add_sample(db, project, clip_number, file.filename or "", content, duration)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    except GenerationError as e:
        raise HTTPException(status_code=500, detail=e.message) from None

    return SampleResponse.model_validate(sample)


@router.get("/{project_id}/samples", response_model=SampleListResponse)
def list_samples(
    project_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> SampleListResponse:
    """List a project's samples ordered by clip number."""
    project = _owned_project(db, project_id, user)
    samples = get_project_service().get_samples(db, project)
    return SampleListResponse(
        items=[SampleResponse.model_validate(s) for s in samples],
        total=len(samples),
    )
