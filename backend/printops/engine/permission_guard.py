"""Permission Guard - Authorization enforcement for project and reminder actions"""
from typing import Iterable

from ..domain.enums import DepartmentGroup
from ..domain.errors import PermissionDeniedError
from ..domain.models import ActorContext, Project, Reminder
from ..utils.logger import get_logger
from . import status_flow

logger = get_logger(__name__)


class PermissionGuard:
    """
    Permission enforcement

    Rules:
    - Administrators can do everything
    - A department member can acknowledge for their sub-department and
      complete the stage owned by their department group
    - Acting on a reminder (snooze/complete/cancel): creator or any recipient
    - Managing a reminder (edit/delete): creator only
    """

    # =========================================================================
    # Projects
    # =========================================================================

    def can_acknowledge(self, actor: ActorContext, department: str) -> bool:
        return actor.is_admin or actor.belongs_to(department)

    def can_complete_stage(self, actor: ActorContext, group: DepartmentGroup) -> bool:
        if actor.is_admin:
            return True
        members = status_flow.DEPARTMENT_GROUPS.get(group, frozenset())
        return any(dept in members for dept in actor.departments)

    def check_can_acknowledge(self, actor: ActorContext, department: str) -> None:
        if not self.can_acknowledge(actor, department):
            logger.warning(
                "Acknowledge denied",
                extra={"actor_email": actor.email, "action": "acknowledge"}
            )
            raise PermissionDeniedError(
                f"Only members of {department} can acknowledge for it",
                details={"department": department}
            )

    def check_can_complete_stage(self, actor: ActorContext, group: DepartmentGroup) -> None:
        if not self.can_complete_stage(actor, group):
            logger.warning(
                "Stage completion denied",
                extra={"actor_email": actor.email, "action": "complete_stage"}
            )
            raise PermissionDeniedError(
                f"Only {group.value} members can complete the {group.value} stage",
                details={"group": group.value}
            )

    def can_access_project(self, actor: ActorContext, project: Project) -> bool:
        """Admin, the project creator, or a member of an engaged department"""
        if actor.is_admin or project.created_by.user_id == actor.user_id:
            return True
        return any(dept in project.departments for dept in actor.departments)

    def check_can_access_project(self, actor: ActorContext, project: Project) -> None:
        if not self.can_access_project(actor, project):
            raise PermissionDeniedError(
                "You do not have access to this project",
                details={"project_id": project.project_id}
            )

    def require_admin(self, actor: ActorContext, what: str) -> None:
        if not actor.is_admin:
            raise PermissionDeniedError(f"Only administrators can {what}")

    # =========================================================================
    # Reminders
    # =========================================================================

    def is_reminder_participant(self, actor: ActorContext, reminder: Reminder) -> bool:
        """Creator or recipient"""
        return actor.user_id == reminder.created_by or actor.user_id in reminder.recipients

    def can_act_on_reminder(self, actor: ActorContext, reminder: Reminder) -> bool:
        return actor.is_admin or self.is_reminder_participant(actor, reminder)

    def can_manage_reminder(self, actor: ActorContext, reminder: Reminder) -> bool:
        return actor.is_admin or actor.user_id == reminder.created_by

    def check_can_act_on_reminder(self, actor: ActorContext, reminder: Reminder) -> None:
        if not self.can_act_on_reminder(actor, reminder):
            raise PermissionDeniedError(
                "You are not allowed to act on this reminder",
                details={"reminder_id": reminder.reminder_id}
            )

    def check_can_manage_reminder(self, actor: ActorContext, reminder: Reminder) -> None:
        if not self.can_manage_reminder(actor, reminder):
            raise PermissionDeniedError(
                "Only the reminder's creator can change it",
                details={"reminder_id": reminder.reminder_id}
            )

    def resolve_recipients(
        self,
        actor: ActorContext,
        requested: Iterable[str]
    ) -> list:
        """
        Recipients a reminder will be stored with

        Non-admins only ever remind themselves. Admins may add others;
        the creator is always included.
        """
        if not actor.is_admin:
            return [actor.user_id]
        recipients = [actor.user_id]
        for user_id in requested or []:
            value = (user_id or "").strip()
            if value and value not in recipients:
                recipients.append(value)
        return recipients
