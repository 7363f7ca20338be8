"""Project Lifecycle - Validate and apply project state changes

The engine never touches storage. Each operation takes the current Project,
checks it, and returns a LifecycleChange carrying the updated copy and the
activity entry to append. The service persists both with a compare-and-swap
on the status and version the engine saw.
"""
from datetime import datetime
from typing import Any, Dict, List, NamedTuple, Optional

from ..domain.enums import ActivityAction, FeedbackType, ProjectStatus, ProjectType, Priority
from ..domain.errors import (
    AttachmentRequiredError,
    EngagementNotAcknowledgedError,
    FeedbackNotOpenError,
    InvalidStateError,
    InvalidTransitionError,
    MockupRequiredError,
    NotLatestRevisionError,
    PaymentVerificationRequiredError,
    ProjectOnHoldError,
    ScopeApprovalIncompleteError,
    ValidationError,
)
from ..domain.models import (
    Acknowledgement,
    ActorContext,
    Feedback,
    Mockup,
    PaymentVerification,
    Project,
    ProjectHold,
    RevisionInfo,
    UserSnapshot,
)
from ..utils.logger import get_logger
from .permission_guard import PermissionGuard
from . import status_flow

logger = get_logger(__name__)


class LifecycleChange(NamedTuple):
    """Result of a lifecycle operation

    `action` is None when the operation was a no-op (idempotent repeat).
    """
    project: Project
    action: Optional[ActivityAction]
    description: str = ""
    details: Optional[Dict[str, Any]] = None

    @property
    def changed(self) -> bool:
        return self.action is not None


class ProjectLifecycle:
    """
    State machine for a single project record

    Rules:
    - Status only moves along the transition table of the project's type
    - Administrators may additionally step back one status
    - Department stage completions need the matching pending status,
      an acknowledgement from an engaged sub-department, and their gate
      (mockup for Graphics, payment for Production)
    - Finished is reached only through mark_finished
    - A project on hold rejects every change except release
    """

    def __init__(self, permission_guard: Optional[PermissionGuard] = None):
        self.permission_guard = permission_guard or PermissionGuard()

    # =========================================================================
    # Creation
    # =========================================================================

    def new_project(
        self,
        *,
        project_id: str,
        order_id: str,
        lineage_id: str,
        project_name: str,
        project_type: ProjectType,
        actor: ActorContext,
        now: datetime,
        priority: Optional[Priority] = None,
        departments: Optional[List[str]] = None,
        items: Optional[List[Dict[str, Any]]] = None,
        production_risks: Optional[List[Dict[str, Any]]] = None,
        uncontrollable_factors: Optional[List[Dict[str, Any]]] = None,
    ) -> LifecycleChange:
        """Build the first revision of a new lineage"""
        if priority is None:
            priority = Priority.URGENT if project_type == ProjectType.EMERGENCY else Priority.NORMAL

        project = Project(
            project_id=project_id,
            order_id=order_id,
            project_name=project_name,
            project_type=project_type,
            priority=priority,
            status=status_flow.INITIAL_STATUS,
            lineage_id=lineage_id,
            version_number=1,
            departments=self._normalize_departments(departments or []),
            items=items or [],
            production_risks=production_risks or [],
            uncontrollable_factors=uncontrollable_factors or [],
            created_by=UserSnapshot.from_actor(actor),
            created_at=now,
            updated_at=now,
        )
        return LifecycleChange(
            project=project,
            action=ActivityAction.CREATE,
            description=f"Project {project_name} created",
            details={"status": project.status.value, "order_id": order_id},
        )

    # =========================================================================
    # Status transitions
    # =========================================================================

    def transition_status(
        self,
        project: Project,
        requested: ProjectStatus,
        actor: ActorContext,
        now: datetime,
        department: Optional[str] = None
    ) -> LifecycleChange:
        """
        Move the project to `requested`

        Args:
            project: Current project state
            requested: Target status
            actor: Acting user
            now: Transition time
            department: Sub-department completing its stage, if any

        Returns:
            LifecycleChange with the updated project

        Raises:
            ProjectOnHoldError: Project is on hold
            InvalidTransitionError: Target not reachable for this actor
            PermissionDeniedError: Actor is not part of the completing department
            EngagementNotAcknowledgedError: Department never acknowledged
            MockupRequiredError: Mockup Completed with no mockup
            PaymentVerificationRequiredError: Production Completed with no payment
        """
        self._ensure_not_on_hold(project)
        current = project.status

        allowed = status_flow.allowed_next_statuses(project.project_type, current)
        is_override = False
        if requested not in allowed:
            step_back = status_flow.admin_override_target(project.project_type, current)
            if actor.is_admin and step_back is not None and requested == step_back:
                is_override = True
            else:
                raise InvalidTransitionError(
                    f"Cannot move from '{current.value}' to '{requested.value}'",
                    details={
                        "from": current.value,
                        "to": requested.value,
                        "allowed": sorted(s.value for s in allowed),
                    }
                )

        if not is_override:
            self._check_stage_completion(project, requested, actor, department)

        updated = project.model_copy(update={"status": requested, "updated_at": now})
        details: Dict[str, Any] = {"from": current.value, "to": requested.value}
        if department:
            details["department"] = department.strip().lower()
        if is_override:
            details["override"] = True

        return LifecycleChange(
            project=updated,
            action=ActivityAction.STATUS_CHANGE,
            description=f"Status changed from {current.value} to {requested.value}",
            details=details,
        )

    def _check_stage_completion(
        self,
        project: Project,
        requested: ProjectStatus,
        actor: ActorContext,
        department: Optional[str]
    ) -> None:
        stage = status_flow.stage_action_for_completion(requested)
        if stage is None:
            return
        group, action = stage

        if project.status != action.pending:
            raise InvalidTransitionError(
                f"'{requested.value}' requires status '{action.pending.value}'",
                details={"from": project.status.value, "to": requested.value}
            )

        if department:
            dept_group = status_flow.group_for_department(department)
            if dept_group != group:
                raise InvalidTransitionError(
                    f"Department '{department}' cannot complete the {group.value} stage",
                    details={"department": department, "to": requested.value}
                )

        self.permission_guard.check_can_complete_stage(actor, group)

        engaged = [
            d for d in project.departments
            if status_flow.group_for_department(d) == group
        ]
        if engaged and not any(project.acknowledgement_for(d) for d in engaged):
            raise EngagementNotAcknowledgedError(
                f"{group.value} must acknowledge the project before completing its stage",
                details={"departments": engaged}
            )

        if requested == ProjectStatus.MOCKUP_COMPLETED and project.mockup is None:
            raise MockupRequiredError(
                "Upload the approved mockup before completing the mockup stage"
            )

        if requested == ProjectStatus.PRODUCTION_COMPLETED and not project.payment_verifications:
            raise PaymentVerificationRequiredError(
                "Record at least one payment verification before completing production"
            )

    def mark_finished(self, project: Project, actor: ActorContext, now: datetime) -> LifecycleChange:
        """Archive a completed project"""
        self._ensure_not_on_hold(project)
        if project.status != ProjectStatus.COMPLETED:
            raise InvalidTransitionError(
                "Only completed projects can be marked finished",
                details={"from": project.status.value, "to": ProjectStatus.FINISHED.value}
            )
        updated = project.model_copy(update={"status": ProjectStatus.FINISHED, "updated_at": now})
        return LifecycleChange(
            project=updated,
            action=ActivityAction.STATUS_CHANGE,
            description="Project marked as finished",
            details={"from": ProjectStatus.COMPLETED.value, "to": ProjectStatus.FINISHED.value},
        )

    # =========================================================================
    # Departmental engagement
    # =========================================================================

    def acknowledge_department(
        self,
        project: Project,
        department: str,
        actor: ActorContext,
        now: datetime
    ) -> LifecycleChange:
        """Record a department's engagement; repeats return the existing entry"""
        self._ensure_not_on_hold(project)
        dept = self._validate_engaged_department(project, department)

        if project.status not in status_flow.SCOPE_APPROVAL_READY_STATUSES:
            raise ScopeApprovalIncompleteError(
                "Scope approval must be completed before departments acknowledge",
                details={"status": project.status.value}
            )

        self.permission_guard.check_can_acknowledge(actor, dept)

        if project.acknowledgement_for(dept) is not None:
            return LifecycleChange(project=project, action=None)

        ack = Acknowledgement(
            department=dept,
            acknowledged_by=UserSnapshot.from_actor(actor),
            acknowledged_at=now,
        )
        updated = project.model_copy(update={
            "acknowledgements": [*project.acknowledgements, ack],
            "updated_at": now,
        })
        return LifecycleChange(
            project=updated,
            action=ActivityAction.ENGAGEMENT_ACKNOWLEDGE,
            description=f"{dept} acknowledged the project",
            details={"department": dept},
        )

    def undo_acknowledgement(
        self,
        project: Project,
        department: str,
        actor: ActorContext,
        now: datetime
    ) -> LifecycleChange:
        """Remove an acknowledgement (administrators only)"""
        self.permission_guard.require_admin(actor, "undo acknowledgements")
        self._ensure_not_on_hold(project)
        dept = department.strip().lower()

        if project.acknowledgement_for(dept) is None:
            return LifecycleChange(project=project, action=None)

        updated = project.model_copy(update={
            "acknowledgements": [a for a in project.acknowledgements if a.department != dept],
            "updated_at": now,
        })
        return LifecycleChange(
            project=updated,
            action=ActivityAction.ENGAGEMENT_UNACKNOWLEDGE,
            description=f"Acknowledgement for {dept} removed",
            details={"department": dept},
        )

    # =========================================================================
    # Gates: mockup & payment
    # =========================================================================

    def record_mockup(
        self,
        project: Project,
        file_url: str,
        file_name: str,
        actor: ActorContext,
        now: datetime
    ) -> LifecycleChange:
        """Attach mockup metadata; the file lives in external storage"""
        self._ensure_not_on_hold(project)
        if project.status != ProjectStatus.PENDING_MOCKUP:
            raise InvalidStateError(
                "Mockups can only be uploaded while the project is pending mockup",
                details={"status": project.status.value}
            )
        if not file_url.strip():
            raise ValidationError("Mockup file URL is required")

        mockup = Mockup(
            file_url=file_url.strip(),
            file_name=file_name.strip() or "Approved Mockup",
            uploaded_by=UserSnapshot.from_actor(actor),
            uploaded_at=now,
        )
        updated = project.model_copy(update={"mockup": mockup, "updated_at": now})
        return LifecycleChange(
            project=updated,
            action=ActivityAction.MOCKUP_UPLOAD,
            description=f"Mockup {mockup.file_name} uploaded",
            details={"file_name": mockup.file_name},
        )

    def record_payment_verification(
        self,
        project: Project,
        payment_type: str,
        actor: ActorContext,
        now: datetime,
        note: Optional[str] = None
    ) -> LifecycleChange:
        self._ensure_not_on_hold(project)
        if project.status == ProjectStatus.FINISHED:
            raise InvalidStateError("Finished projects cannot record payments")
        if not payment_type.strip():
            raise ValidationError("Payment type is required")

        entry = PaymentVerification(
            type=payment_type.strip(),
            note=note,
            recorded_by=UserSnapshot.from_actor(actor),
            recorded_at=now,
        )
        updated = project.model_copy(update={
            "payment_verifications": [*project.payment_verifications, entry],
            "updated_at": now,
        })
        return LifecycleChange(
            project=updated,
            action=ActivityAction.PAYMENT_VERIFICATION,
            description=f"Payment verification recorded: {entry.type}",
            details={"type": entry.type},
        )

    def undo_payment_verification(
        self,
        project: Project,
        index: int,
        actor: ActorContext,
        now: datetime
    ) -> LifecycleChange:
        self.permission_guard.require_admin(actor, "undo payment verifications")
        self._ensure_not_on_hold(project)
        if index < 0 or index >= len(project.payment_verifications):
            raise ValidationError(
                "Payment verification not found",
                details={"index": index}
            )

        removed = project.payment_verifications[index]
        remaining = [p for i, p in enumerate(project.payment_verifications) if i != index]
        updated = project.model_copy(update={"payment_verifications": remaining, "updated_at": now})
        return LifecycleChange(
            project=updated,
            action=ActivityAction.PAYMENT_VERIFICATION_UNDO,
            description=f"Payment verification removed: {removed.type}",
            details={"type": removed.type, "index": index},
        )

    # =========================================================================
    # Feedback
    # =========================================================================

    def record_feedback(
        self,
        project: Project,
        feedback_type: FeedbackType,
        notes: str,
        attachments: List[str],
        actor: ActorContext,
        now: datetime,
        feedback_id: str
    ) -> LifecycleChange:
        """Append client feedback; status is left unchanged"""
        self._ensure_not_on_hold(project)

        if project.status not in status_flow.feedback_open_statuses(project.project_type):
            raise FeedbackNotOpenError(
                "Feedback can only be recorded after delivery",
                details={"status": project.status.value}
            )

        attachments = [a.strip() for a in attachments if a and a.strip()]
        if project.status in status_flow.FEEDBACK_ATTACHMENT_REQUIRED_STATUSES and not attachments:
            raise AttachmentRequiredError(
                "Attach at least one photo or video with this feedback",
                details={"status": project.status.value}
            )

        feedback = Feedback(
            feedback_id=feedback_id,
            type=feedback_type,
            notes=notes or "",
            attachments=attachments,
            created_by=UserSnapshot.from_actor(actor),
            created_at=now,
        )
        updated = project.model_copy(update={
            "feedbacks": [*project.feedbacks, feedback],
            "updated_at": now,
        })
        return LifecycleChange(
            project=updated,
            action=ActivityAction.FEEDBACK_ADD,
            description=f"{feedback_type.value} feedback added",
            details={"type": feedback_type.value, "attachments": len(attachments)},
        )

    # =========================================================================
    # Hold / release
    # =========================================================================

    def set_hold(self, project: Project, reason: str, actor: ActorContext, now: datetime) -> LifecycleChange:
        if project.is_on_hold:
            raise InvalidTransitionError("Project is already on hold")
        if project.status == ProjectStatus.FINISHED:
            raise InvalidTransitionError("Finished projects cannot be put on hold")

        hold = ProjectHold(
            reason=(reason or "").strip(),
            held_by=UserSnapshot.from_actor(actor),
            held_at=now,
            previous_status=project.status,
        )
        updated = project.model_copy(update={
            "hold": hold,
            "status": ProjectStatus.ON_HOLD,
            "updated_at": now,
        })
        return LifecycleChange(
            project=updated,
            action=ActivityAction.HOLD,
            description="Project put on hold",
            details={"from": project.status.value, "to": ProjectStatus.ON_HOLD.value, "reason": hold.reason},
        )

    def release_hold(self, project: Project, actor: ActorContext, now: datetime) -> LifecycleChange:
        if project.hold is None:
            raise InvalidTransitionError("Project is not on hold")

        restored = project.hold.previous_status
        updated = project.model_copy(update={"hold": None, "status": restored, "updated_at": now})
        return LifecycleChange(
            project=updated,
            action=ActivityAction.RELEASE,
            description="Project released from hold",
            details={"from": ProjectStatus.ON_HOLD.value, "to": restored.value},
        )

    # =========================================================================
    # Revisions
    # =========================================================================

    def reopen_as_revision(
        self,
        project: Project,
        reason: str,
        actor: ActorContext,
        now: datetime,
        latest_version_number: int,
        new_project_id: str,
        new_order_id: str
    ) -> LifecycleChange:
        """
        Build the next revision of a finished project

        The source record is left untouched. The returned project is a new
        record in the same lineage with version_number + 1.
        """
        self._ensure_not_on_hold(project)
        if project.status != ProjectStatus.FINISHED:
            raise InvalidTransitionError(
                "Only finished projects can be reopened",
                details={"status": project.status.value}
            )
        if project.version_number < latest_version_number:
            raise NotLatestRevisionError(
                "A newer revision of this project already exists",
                details={
                    "lineage_id": project.lineage_id,
                    "version_number": project.version_number,
                    "latest_version_number": latest_version_number,
                }
            )
        if not (reason or "").strip():
            raise ValidationError("A reason is required to reopen a project")

        revision = Project(
            project_id=new_project_id,
            order_id=new_order_id,
            project_name=project.project_name,
            project_type=project.project_type,
            priority=project.priority,
            status=status_flow.INITIAL_STATUS,
            lineage_id=project.lineage_id,
            version_number=project.version_number + 1,
            departments=list(project.departments),
            items=[i.model_copy() for i in project.items],
            production_risks=[r.model_copy() for r in project.production_risks],
            uncontrollable_factors=[u.model_copy() for u in project.uncontrollable_factors],
            revision=RevisionInfo(
                reason=reason.strip(),
                reopened_from=project.project_id,
                reopened_by=UserSnapshot.from_actor(actor),
                reopened_at=now,
            ),
            created_by=UserSnapshot.from_actor(actor),
            created_at=now,
            updated_at=now,
        )
        return LifecycleChange(
            project=revision,
            action=ActivityAction.REOPEN,
            description=f"Reopened from revision {project.version_number}",
            details={
                "reopened_from": project.project_id,
                "version_number": revision.version_number,
                "reason": revision.revision.reason,
            },
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _ensure_not_on_hold(self, project: Project) -> None:
        if project.is_on_hold:
            raise ProjectOnHoldError(
                "Project is on hold; release it before making changes",
                details={"project_id": project.project_id}
            )

    def _validate_engaged_department(self, project: Project, department: str) -> str:
        dept = (department or "").strip().lower()
        if dept not in status_flow.SUB_DEPARTMENTS:
            raise ValidationError(f"Unknown department '{department}'")
        if dept not in project.departments:
            raise ValidationError(
                f"Department '{dept}' is not engaged on this project",
                details={"departments": project.departments}
            )
        return dept

    @staticmethod
    def _normalize_departments(departments: List[str]) -> List[str]:
        normalized: List[str] = []
        for dept in departments:
            value = dept.strip().lower()
            if value not in status_flow.SUB_DEPARTMENTS:
                raise ValidationError(f"Unknown department '{dept}'")
            if value not in normalized:
                normalized.append(value)
        return normalized
