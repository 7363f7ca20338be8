"""Project Service - Project lifecycle business logic"""
from typing import Any, Dict, List, Optional, Tuple

from ..domain.models import ActivityLogEntry, ActorContext, Project, UserSnapshot
from ..domain.enums import FeedbackType, Priority, ProjectStatus, ProjectType
from ..engine.lifecycle import LifecycleChange, ProjectLifecycle
from ..engine.permission_guard import PermissionGuard
from ..repositories.project_repo import ProjectRepository
from ..utils.idgen import (
    generate_activity_id, generate_feedback_id, generate_lineage_id,
    generate_order_id, generate_project_id
)
from ..utils.time import utc_now
from ..utils.logger import get_logger
from .notification_service import NotificationService

logger = get_logger(__name__)


class ProjectService:
    """Service for project operations"""

    def __init__(self):
        self.project_repo = ProjectRepository()
        self.permission_guard = PermissionGuard()
        self.lifecycle = ProjectLifecycle(self.permission_guard)
        self.notification_service = NotificationService()

    # =========================================================================
    # Create & read
    # =========================================================================

    def create_project(
        self,
        project_name: str,
        project_type: ProjectType,
        actor: ActorContext,
        priority: Optional[Priority] = None,
        departments: Optional[List[str]] = None,
        items: Optional[List[Dict[str, Any]]] = None,
        production_risks: Optional[List[Dict[str, Any]]] = None,
        uncontrollable_factors: Optional[List[Dict[str, Any]]] = None
    ) -> Project:
        change = self.lifecycle.new_project(
            project_id=generate_project_id(),
            order_id=generate_order_id(),
            lineage_id=generate_lineage_id(),
            project_name=project_name,
            project_type=project_type,
            actor=actor,
            now=utc_now(),
            priority=priority,
            departments=departments,
            items=items,
            production_risks=production_risks,
            uncontrollable_factors=uncontrollable_factors,
        )
        project = self.project_repo.create_project(change.project)
        self._record_activity(project.project_id, change, actor)
        return project

    def get_project(self, project_id: str, actor: ActorContext) -> Project:
        project = self.project_repo.get_project_or_raise(project_id)
        self.permission_guard.check_can_access_project(actor, project)
        return project

    def list_projects(
        self,
        actor: ActorContext,
        status: Optional[ProjectStatus] = None,
        project_type: Optional[ProjectType] = None,
        lineage_id: Optional[str] = None,
        skip: int = 0,
        limit: int = 50
    ) -> Tuple[List[Project], int]:
        """Admins see every project; others see their own and their departments'"""
        projects = self.project_repo.list_projects(
            status, project_type, lineage_id, actor, skip, limit
        )
        total = self.project_repo.count_projects(status, project_type, lineage_id, actor)
        return projects, total

    def list_revisions(self, project_id: str, actor: ActorContext) -> List[Project]:
        project = self.get_project(project_id, actor)
        return self.project_repo.list_revisions(project.lineage_id)

    def get_activity(self, project_id: str, actor: ActorContext) -> List[ActivityLogEntry]:
        self.get_project(project_id, actor)
        return self.project_repo.list_activity(project_id)

    # =========================================================================
    # Lifecycle operations
    # =========================================================================

    def transition_status(
        self,
        project_id: str,
        status: ProjectStatus,
        actor: ActorContext,
        department: Optional[str] = None
    ) -> Project:
        project = self.get_project(project_id, actor)
        change = self.lifecycle.transition_status(project, status, actor, utc_now(), department)
        updated = self._persist(project, change, actor)
        logger.info(
            f"Project {project_id} moved to {status.value}",
            extra={
                "project_id": project_id,
                "actor_email": actor.email,
                "from_status": project.status.value,
                "to_status": status.value,
            }
        )
        self.notification_service.notify_status_change(updated, project.status.value, actor)
        return updated

    def mark_finished(self, project_id: str, actor: ActorContext) -> Project:
        project = self.get_project(project_id, actor)
        change = self.lifecycle.mark_finished(project, actor, utc_now())
        return self._persist(project, change, actor)

    def acknowledge_department(self, project_id: str, department: str, actor: ActorContext) -> Project:
        project = self.get_project(project_id, actor)
        change = self.lifecycle.acknowledge_department(project, department, actor, utc_now())
        return self._persist(project, change, actor)

    def undo_acknowledgement(self, project_id: str, department: str, actor: ActorContext) -> Project:
        project = self.get_project(project_id, actor)
        change = self.lifecycle.undo_acknowledgement(project, department, actor, utc_now())
        return self._persist(project, change, actor)

    def record_mockup(self, project_id: str, file_url: str, file_name: str, actor: ActorContext) -> Project:
        project = self.get_project(project_id, actor)
        change = self.lifecycle.record_mockup(project, file_url, file_name, actor, utc_now())
        return self._persist(project, change, actor)

    def record_payment_verification(
        self,
        project_id: str,
        payment_type: str,
        actor: ActorContext,
        note: Optional[str] = None
    ) -> Project:
        project = self.get_project(project_id, actor)
        change = self.lifecycle.record_payment_verification(project, payment_type, actor, utc_now(), note)
        return self._persist(project, change, actor)

    def undo_payment_verification(self, project_id: str, index: int, actor: ActorContext) -> Project:
        project = self.get_project(project_id, actor)
        change = self.lifecycle.undo_payment_verification(project, index, actor, utc_now())
        return self._persist(project, change, actor)

    def record_feedback(
        self,
        project_id: str,
        feedback_type: FeedbackType,
        notes: str,
        attachments: List[str],
        actor: ActorContext
    ) -> Project:
        project = self.get_project(project_id, actor)
        change = self.lifecycle.record_feedback(
            project, feedback_type, notes, attachments, actor, utc_now(), generate_feedback_id()
        )
        return self._persist(project, change, actor)

    def set_hold(self, project_id: str, reason: str, actor: ActorContext) -> Project:
        self.permission_guard.require_admin(actor, "put projects on hold")
        project = self.get_project(project_id, actor)
        change = self.lifecycle.set_hold(project, reason, actor, utc_now())
        return self._persist(project, change, actor)

    def release_hold(self, project_id: str, actor: ActorContext) -> Project:
        self.permission_guard.require_admin(actor, "release projects from hold")
        project = self.get_project(project_id, actor)
        change = self.lifecycle.release_hold(project, actor, utc_now())
        return self._persist(project, change, actor)

    def reopen_as_revision(self, project_id: str, reason: str, actor: ActorContext) -> Project:
        """
        Create the next revision of a finished project

        The source record is not written. A racing reopen of the same
        revision hits the unique (lineage_id, version_number) index and
        surfaces as StaleState.
        """
        project = self.get_project(project_id, actor)
        latest = self.project_repo.get_latest_version_number(project.lineage_id)
        change = self.lifecycle.reopen_as_revision(
            project,
            reason,
            actor,
            utc_now(),
            latest_version_number=latest,
            new_project_id=generate_project_id(),
            new_order_id=project.order_id,
        )
        revision = self.project_repo.create_project(change.project)
        self._record_activity(revision.project_id, change, actor)
        logger.info(
            f"Project {project_id} reopened as {revision.project_id}",
            extra={
                "project_id": revision.project_id,
                "lineage_id": revision.lineage_id,
                "actor_email": actor.email,
            }
        )
        return revision

    # =========================================================================
    # Helpers
    # =========================================================================

    def _persist(self, original: Project, change: LifecycleChange, actor: ActorContext) -> Project:
        """Compare-and-swap the change, then log it"""
        if not change.changed:
            return original
        updated = self.project_repo.replace_project(
            change.project,
            expected_status=original.status,
            expected_version=original.version
        )
        self._record_activity(updated.project_id, change, actor)
        return updated

    def _record_activity(self, project_id: str, change: LifecycleChange, actor: ActorContext) -> None:
        self.project_repo.add_activity(ActivityLogEntry(
            activity_id=generate_activity_id(),
            project_id=project_id,
            action=change.action,
            description=change.description,
            details=change.details or {},
            actor=UserSnapshot.from_actor(actor),
            created_at=utc_now(),
        ))
