"""
Project Schemas

Request and response models for project API endpoints.
"""

from typing import List, Optional
from pydantic import BaseModel, Field

from ....domain.enums import FeedbackType, Priority, ProjectStatus, ProjectType
from ....domain.models import (
    ActivityLogEntry, ProductionRisk, Project, ProjectItem, UncontrollableFactor
)


# =============================================================================
# Create / list
# =============================================================================

class CreateProjectRequest(BaseModel):
    """Request to open a new project (first revision of a new lineage)"""
    project_name: str = Field(..., min_length=1, max_length=200)
    project_type: ProjectType = ProjectType.STANDARD
    priority: Optional[Priority] = Field(None, description="Defaults to Urgent for Emergency projects")
    departments: List[str] = Field(default_factory=list, description="Engaged sub-department ids")
    items: List[ProjectItem] = Field(default_factory=list)
    production_risks: List[ProductionRisk] = Field(default_factory=list)
    uncontrollable_factors: List[UncontrollableFactor] = Field(default_factory=list)


class ProjectListResponse(BaseModel):
    items: List[Project]
    skip: int
    limit: int
    total: int


class ActivityListResponse(BaseModel):
    items: List[ActivityLogEntry]


class RevisionListResponse(BaseModel):
    items: List[Project]


# =============================================================================
# Lifecycle
# =============================================================================

class TransitionStatusRequest(BaseModel):
    """Move a project to another status"""
    status: ProjectStatus
    department: Optional[str] = Field(
        None, description="Sub-department completing the stage (stage completions only)"
    )


class AcknowledgeRequest(BaseModel):
    department: str = Field(..., min_length=1, max_length=80)


class MockupRequest(BaseModel):
    """Mockup file already stored by the file-storage service"""
    file_url: str = Field(..., min_length=1, max_length=2000)
    file_name: str = Field(..., min_length=1, max_length=255)


class PaymentVerificationRequest(BaseModel):
    type: str = Field(..., min_length=1, max_length=80, description="e.g. deposit, full_payment, po")
    note: Optional[str] = Field(None, max_length=1000)


class FeedbackRequest(BaseModel):
    type: FeedbackType
    notes: str = Field("", max_length=5000)
    attachments: List[str] = Field(
        default_factory=list, description="References returned by the file-storage service"
    )


class HoldRequest(BaseModel):
    reason: str = Field("", max_length=1000)


class ReopenRequest(BaseModel):
    reason: str = Field(..., max_length=2000)
