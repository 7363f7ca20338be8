"""
Project CRUD Routes

Create, read and list endpoints.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status

from ...deps import get_current_user_dep, get_project_service
from ....domain.models import ActorContext, Project
from ....domain.enums import ProjectStatus, ProjectType
from ....services.project_service import ProjectService
from ....utils.logger import get_logger
from .schemas import (
    ActivityListResponse, CreateProjectRequest, ProjectListResponse, RevisionListResponse
)

logger = get_logger(__name__)
router = APIRouter()


@router.post("", response_model=Project, status_code=status.HTTP_201_CREATED)
async def create_project(
    request: CreateProjectRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    service: ProjectService = Depends(get_project_service)
):
    """
    Create a project

    The project starts in Order Confirmed as version 1 of a new lineage.
    """
    project = service.create_project(
        project_name=request.project_name,
        project_type=request.project_type,
        actor=actor,
        priority=request.priority,
        departments=request.departments,
        items=[item.model_dump() for item in request.items],
        production_risks=[risk.model_dump() for risk in request.production_risks],
        uncontrollable_factors=[factor.model_dump() for factor in request.uncontrollable_factors]
    )
    logger.info(
        f"Created project: {project.project_id}",
        extra={"project_id": project.project_id, "actor_email": actor.email}
    )
    return project


@router.get("", response_model=ProjectListResponse)
async def list_projects(
    status: Optional[ProjectStatus] = Query(None, description="Filter by status"),
    project_type: Optional[ProjectType] = Query(None, description="Filter by project type"),
    lineage_id: Optional[str] = Query(None, description="Only revisions of one lineage"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    actor: ActorContext = Depends(get_current_user_dep),
    service: ProjectService = Depends(get_project_service)
):
    """List projects visible to the caller, most recently updated first"""
    projects, total = service.list_projects(
        actor,
        status=status,
        project_type=project_type,
        lineage_id=lineage_id,
        skip=skip,
        limit=limit
    )
    return ProjectListResponse(items=projects, skip=skip, limit=limit, total=total)


@router.get("/{project_id}", response_model=Project)
async def get_project(
    project_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    service: ProjectService = Depends(get_project_service)
):
    return service.get_project(project_id, actor)


@router.get("/{project_id}/activity", response_model=ActivityListResponse)
async def get_activity(
    project_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    service: ProjectService = Depends(get_project_service)
):
    """Activity log of a project, newest first"""
    return ActivityListResponse(items=service.get_activity(project_id, actor))


@router.get("/{project_id}/revisions", response_model=RevisionListResponse)
async def list_revisions(
    project_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    service: ProjectService = Depends(get_project_service)
):
    """Every revision sharing this project's lineage, oldest first"""
    return RevisionListResponse(items=service.list_revisions(project_id, actor))
