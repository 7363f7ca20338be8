"""
Project Lifecycle Routes

Status transitions, department acknowledgements, gate evidence (mockup,
payment), feedback, hold/release and reopening as a new revision. Every
rejected request leaves the stored project untouched.
"""

from fastapi import APIRouter, Depends, status

from ...deps import get_current_user_dep, get_project_service
from ....domain.models import ActorContext, Project
from ....services.project_service import ProjectService
from .schemas import (
    AcknowledgeRequest, FeedbackRequest, HoldRequest, MockupRequest,
    PaymentVerificationRequest, ReopenRequest, TransitionStatusRequest
)

router = APIRouter()


@router.patch("/{project_id}/status", response_model=Project)
async def transition_status(
    project_id: str,
    request: TransitionStatusRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    service: ProjectService = Depends(get_project_service)
):
    """
    Move a project to another status

    Allowed targets are the next status in the project type's sequence or a
    permitted skip. Administrators may also step back one status. Stage
    completions are checked against the completing department and the
    mockup and payment gates.
    """
    return service.transition_status(project_id, request.status, actor, request.department)


@router.patch("/{project_id}/finish", response_model=Project)
async def mark_finished(
    project_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    service: ProjectService = Depends(get_project_service)
):
    """Close a Completed project"""
    return service.mark_finished(project_id, actor)


@router.post("/{project_id}/acknowledge", response_model=Project)
async def acknowledge_department(
    project_id: str,
    request: AcknowledgeRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    service: ProjectService = Depends(get_project_service)
):
    """Record that an engaged department has taken the work on (idempotent)"""
    return service.acknowledge_department(project_id, request.department, actor)


@router.delete("/{project_id}/acknowledge/{department}", response_model=Project)
async def undo_acknowledgement(
    project_id: str,
    department: str,
    actor: ActorContext = Depends(get_current_user_dep),
    service: ProjectService = Depends(get_project_service)
):
    """Remove a department acknowledgement (administrators only)"""
    return service.undo_acknowledgement(project_id, department, actor)


@router.post("/{project_id}/mockup", response_model=Project)
async def record_mockup(
    project_id: str,
    request: MockupRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    service: ProjectService = Depends(get_project_service)
):
    return service.record_mockup(project_id, request.file_url, request.file_name, actor)


@router.post(
    "/{project_id}/payment-verifications",
    response_model=Project,
    status_code=status.HTTP_201_CREATED
)
async def record_payment_verification(
    project_id: str,
    request: PaymentVerificationRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    service: ProjectService = Depends(get_project_service)
):
    return service.record_payment_verification(project_id, request.type, actor, request.note)


@router.delete("/{project_id}/payment-verifications/{index}", response_model=Project)
async def undo_payment_verification(
    project_id: str,
    index: int,
    actor: ActorContext = Depends(get_current_user_dep),
    service: ProjectService = Depends(get_project_service)
):
    return service.undo_payment_verification(project_id, index, actor)


@router.post("/{project_id}/feedback", response_model=Project, status_code=status.HTTP_201_CREATED)
async def record_feedback(
    project_id: str,
    request: FeedbackRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    service: ProjectService = Depends(get_project_service)
):
    """
    Record client feedback

    Open once the project has been delivered (or the quote response sent).
    While Pending Feedback or Delivered at least one attachment is required.
    """
    return service.record_feedback(project_id, request.type, request.notes, request.attachments, actor)


@router.patch("/{project_id}/hold", response_model=Project)
async def set_hold(
    project_id: str,
    request: HoldRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    service: ProjectService = Depends(get_project_service)
):
    return service.set_hold(project_id, request.reason, actor)


@router.patch("/{project_id}/release", response_model=Project)
async def release_hold(
    project_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    service: ProjectService = Depends(get_project_service)
):
    return service.release_hold(project_id, actor)


@router.patch("/{project_id}/reopen", response_model=Project, status_code=status.HTTP_201_CREATED)
async def reopen_as_revision(
    project_id: str,
    request: ReopenRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    service: ProjectService = Depends(get_project_service)
):
    """
    Reopen a Finished project as its next revision

    Returns the new revision; the finished record is left as it was.
    """
    return service.reopen_as_revision(project_id, request.reason, actor)
