"""Project Repository - Data access for projects and their activity log"""
from typing import Any, Dict, List, Optional
from pymongo.collection import Collection
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from .mongo_client import get_collection, to_document
from ..domain.models import ActivityLogEntry, ActorContext, Project
from ..domain.enums import ProjectStatus, ProjectType
from ..domain.errors import ConcurrencyError, ProjectNotFoundError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class ProjectRepository:
    """Repository for project operations"""

    def __init__(self):
        self._projects: Collection = get_collection("projects")
        self._activity: Collection = get_collection("project_activity")

    # =========================================================================
    # Project CRUD
    # =========================================================================

    def create_project(self, project: Project) -> Project:
        """
        Insert a new project record

        A duplicate (lineage_id, version_number) means another request
        created the same revision first.
        """
        doc = to_document(project, "project_id")
        try:
            self._projects.insert_one(doc)
        except DuplicateKeyError:
            raise ConcurrencyError(
                "Another revision was created for this project. Please refresh and try again.",
                details={
                    "lineage_id": project.lineage_id,
                    "version_number": project.version_number,
                }
            )
        logger.info(
            f"Created project: {project.project_id}",
            extra={"project_id": project.project_id, "status": project.status.value}
        )
        return project

    def get_project(self, project_id: str) -> Optional[Project]:
        """Get project by ID"""
        doc = self._projects.find_one({"project_id": project_id})
        if doc:
            doc.pop("_id", None)
            return Project.model_validate(doc)
        return None

    def get_project_or_raise(self, project_id: str) -> Project:
        """Get project by ID or raise error"""
        project = self.get_project(project_id)
        if not project:
            raise ProjectNotFoundError(f"Project {project_id} not found")
        return project

    def get_projects_by_ids(self, project_ids: List[str]) -> Dict[str, Project]:
        """Batch lookup used by the reminder sweep"""
        if not project_ids:
            return {}
        result: Dict[str, Project] = {}
        for doc in self._projects.find({"project_id": {"$in": list(set(project_ids))}}):
            doc.pop("_id", None)
            project = Project.model_validate(doc)
            result[project.project_id] = project
        return result

    def replace_project(self, project: Project, expected_status: ProjectStatus, expected_version: int) -> Project:
        """
        Compare-and-swap write of a whole project record

        The write only lands when the stored record still has the status and
        version the caller validated against.
        """
        stored = project.model_copy(update={"version": expected_version + 1})
        doc = to_document(stored, "project_id")

        result = self._projects.find_one_and_replace(
            {
                "project_id": project.project_id,
                "status": expected_status.value,
                "version": expected_version,
            },
            doc,
            return_document=ReturnDocument.AFTER
        )

        if result is None:
            exists = self._projects.find_one({"project_id": project.project_id}, {"_id": 1})
            if exists:
                raise ConcurrencyError(
                    f"Project {project.project_id} was modified. Please refresh and try again.",
                    details={
                        "expected_status": expected_status.value,
                        "expected_version": expected_version,
                    }
                )
            raise ProjectNotFoundError(f"Project {project.project_id} not found")

        result.pop("_id", None)
        logger.info(f"Updated project: {project.project_id}", extra={"project_id": project.project_id})
        return Project.model_validate(result)

    def list_projects(
        self,
        status: Optional[ProjectStatus] = None,
        project_type: Optional[ProjectType] = None,
        lineage_id: Optional[str] = None,
        visible_to: Optional[ActorContext] = None,
        skip: int = 0,
        limit: int = 50
    ) -> List[Project]:
        """List projects with filters, newest first"""
        query = self._build_query(status, project_type, lineage_id, visible_to)
        cursor = self._projects.find(query).sort("updated_at", DESCENDING).skip(skip).limit(limit)

        projects = []
        for doc in cursor:
            doc.pop("_id", None)
            projects.append(Project.model_validate(doc))
        return projects

    def count_projects(
        self,
        status: Optional[ProjectStatus] = None,
        project_type: Optional[ProjectType] = None,
        lineage_id: Optional[str] = None,
        visible_to: Optional[ActorContext] = None
    ) -> int:
        query = self._build_query(status, project_type, lineage_id, visible_to)
        return self._projects.count_documents(query)

    def list_revisions(self, lineage_id: str) -> List[Project]:
        """All revisions of a lineage, oldest first"""
        cursor = self._projects.find({"lineage_id": lineage_id}).sort("version_number", ASCENDING)
        revisions = []
        for doc in cursor:
            doc.pop("_id", None)
            revisions.append(Project.model_validate(doc))
        return revisions

    def get_latest_version_number(self, lineage_id: str) -> int:
        """Highest version_number in a lineage (0 when the lineage is empty)"""
        doc = self._projects.find_one(
            {"lineage_id": lineage_id},
            {"version_number": 1},
            sort=[("version_number", DESCENDING)]
        )
        return doc["version_number"] if doc else 0

    @staticmethod
    def _build_query(
        status: Optional[ProjectStatus],
        project_type: Optional[ProjectType],
        lineage_id: Optional[str],
        visible_to: Optional[ActorContext]
    ) -> Dict[str, Any]:
        query: Dict[str, Any] = {}
        if status:
            query["status"] = status.value
        if project_type:
            query["project_type"] = project_type.value
        if lineage_id:
            query["lineage_id"] = lineage_id
        if visible_to is not None and not visible_to.is_admin:
            query["$or"] = [
                {"created_by.user_id": visible_to.user_id},
                {"departments": {"$in": list(visible_to.departments)}},
            ]
        return query

    # =========================================================================
    # Activity log
    # =========================================================================

    def add_activity(self, entry: ActivityLogEntry) -> ActivityLogEntry:
        """Append an activity entry"""
        self._activity.insert_one(to_document(entry, "activity_id"))
        logger.debug(
            f"Activity {entry.action.value} on {entry.project_id}",
            extra={"project_id": entry.project_id, "action": entry.action.value}
        )
        return entry

    def list_activity(self, project_id: str, limit: int = 200) -> List[ActivityLogEntry]:
        """Activity for a project, newest first"""
        cursor = (
            self._activity.find({"project_id": project_id})
            .sort("created_at", DESCENDING)
            .limit(limit)
        )
        entries = []
        for doc in cursor:
            doc.pop("_id", None)
            entries.append(ActivityLogEntry.model_validate(doc))
        return entries
