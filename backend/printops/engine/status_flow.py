"""Status Flow - Static status sequences and transition tables

Every caller that needs to reason about project stages reads these tables;
nothing else defines its own status lists.
"""
from typing import Dict, FrozenSet, List, NamedTuple, Optional, Tuple

from ..domain.enums import DepartmentGroup, ProjectStatus as S, ProjectType


class StageAction(NamedTuple):
    """A department-owned stage: pending status and its completion status"""
    pending: S
    complete: S


STANDARD_SEQUENCE: Tuple[S, ...] = (
    S.ORDER_CONFIRMED,
    S.PENDING_SCOPE_APPROVAL,
    S.SCOPE_APPROVAL_COMPLETED,
    S.PENDING_DEPARTMENTAL_ENGAGEMENT,
    S.DEPARTMENTAL_ENGAGEMENT_COMPLETED,
    S.PENDING_MOCKUP,
    S.MOCKUP_COMPLETED,
    S.PENDING_PROOF_READING,
    S.PROOF_READING_COMPLETED,
    S.PENDING_PRODUCTION,
    S.PRODUCTION_COMPLETED,
    S.PENDING_QUALITY_CONTROL,
    S.QUALITY_CONTROL_COMPLETED,
    S.PENDING_PHOTOGRAPHY,
    S.PHOTOGRAPHY_COMPLETED,
    S.PENDING_PACKAGING,
    S.PACKAGING_COMPLETED,
    S.PENDING_DELIVERY_PICKUP,
    S.DELIVERED,
    S.PENDING_FEEDBACK,
    S.FEEDBACK_COMPLETED,
    S.COMPLETED,
    S.FINISHED,
)

QUOTE_SEQUENCE: Tuple[S, ...] = (
    S.ORDER_CONFIRMED,
    S.PENDING_SCOPE_APPROVAL,
    S.SCOPE_APPROVAL_COMPLETED,
    S.PENDING_DEPARTMENTAL_ENGAGEMENT,
    S.DEPARTMENTAL_ENGAGEMENT_COMPLETED,
    S.PENDING_QUOTE_REQUEST,
    S.QUOTE_REQUEST_COMPLETED,
    S.PENDING_SEND_RESPONSE,
    S.RESPONSE_SENT,
    S.PENDING_FEEDBACK,
    S.FEEDBACK_COMPLETED,
    S.COMPLETED,
    S.FINISHED,
)

# Optional stages may be skipped; (from, to) edges added on top of the main sequence
STANDARD_SKIP_EDGES: Tuple[Tuple[S, S], ...] = (
    # no graphics work
    (S.DEPARTMENTAL_ENGAGEMENT_COMPLETED, S.PENDING_PRODUCTION),
    # no proof reading
    (S.MOCKUP_COMPLETED, S.PENDING_PRODUCTION),
    # no quality control / photography / packaging
    (S.PRODUCTION_COMPLETED, S.PENDING_PHOTOGRAPHY),
    (S.PRODUCTION_COMPLETED, S.PENDING_PACKAGING),
    (S.PRODUCTION_COMPLETED, S.PENDING_DELIVERY_PICKUP),
    (S.QUALITY_CONTROL_COMPLETED, S.PENDING_PACKAGING),
    (S.QUALITY_CONTROL_COMPLETED, S.PENDING_DELIVERY_PICKUP),
    (S.PHOTOGRAPHY_COMPLETED, S.PENDING_DELIVERY_PICKUP),
)

QUOTE_SKIP_EDGES: Tuple[Tuple[S, S], ...] = ()

INITIAL_STATUS = S.ORDER_CONFIRMED

STAGE_ACTIONS: Dict[DepartmentGroup, StageAction] = {
    DepartmentGroup.GRAPHICS: StageAction(S.PENDING_MOCKUP, S.MOCKUP_COMPLETED),
    DepartmentGroup.PRODUCTION: StageAction(S.PENDING_PRODUCTION, S.PRODUCTION_COMPLETED),
    DepartmentGroup.STORES: StageAction(S.PENDING_PACKAGING, S.PACKAGING_COMPLETED),
}

DEPARTMENT_GROUPS: Dict[DepartmentGroup, FrozenSet[str]] = {
    DepartmentGroup.GRAPHICS: frozenset({"graphics"}),
    DepartmentGroup.STORES: frozenset({"stock", "packaging"}),
    DepartmentGroup.PRODUCTION: frozenset({
        "dtf", "uv-dtf", "uv-printing", "engraving", "large-format",
        "digital-press", "digital-heat-press", "offset-press", "screen-printing",
        "embroidery", "sublimation", "digital-cutting", "pvc-id", "business-cards",
        "installation", "overseas", "woodme", "fabrication", "signage",
        "outside-production",
    }),
}

SUB_DEPARTMENTS: FrozenSet[str] = frozenset(
    {"photography"}.union(*DEPARTMENT_GROUPS.values())
)

# Explicit allow-list; anything not listed (including pending scope) is rejected
SCOPE_APPROVAL_READY_STATUSES: FrozenSet[S] = frozenset({
    S.SCOPE_APPROVAL_COMPLETED,
    S.PENDING_DEPARTMENTAL_ENGAGEMENT,
    S.DEPARTMENTAL_ENGAGEMENT_COMPLETED,
    S.PENDING_MOCKUP,
    S.MOCKUP_COMPLETED,
    S.PENDING_PROOF_READING,
    S.PROOF_READING_COMPLETED,
    S.PENDING_PRODUCTION,
    S.PRODUCTION_COMPLETED,
    S.PENDING_QUALITY_CONTROL,
    S.QUALITY_CONTROL_COMPLETED,
    S.PENDING_PHOTOGRAPHY,
    S.PHOTOGRAPHY_COMPLETED,
    S.PENDING_PACKAGING,
    S.PACKAGING_COMPLETED,
    S.PENDING_DELIVERY_PICKUP,
    S.DELIVERED,
    S.PENDING_QUOTE_REQUEST,
    S.QUOTE_REQUEST_COMPLETED,
    S.PENDING_SEND_RESPONSE,
    S.RESPONSE_SENT,
    S.PENDING_FEEDBACK,
    S.FEEDBACK_COMPLETED,
    S.COMPLETED,
    S.FINISHED,
})

FEEDBACK_ATTACHMENT_REQUIRED_STATUSES: FrozenSet[S] = frozenset({
    S.PENDING_FEEDBACK,
    S.DELIVERED,
})


def sequence_for(project_type: ProjectType) -> Tuple[S, ...]:
    """Ordered status sequence for a project type"""
    if project_type == ProjectType.QUOTE:
        return QUOTE_SEQUENCE
    return STANDARD_SEQUENCE


def _build_transition_table(
    sequence: Tuple[S, ...],
    skip_edges: Tuple[Tuple[S, S], ...]
) -> Dict[S, FrozenSet[S]]:
    table: Dict[S, set] = {status: set() for status in sequence}
    for current, following in zip(sequence, sequence[1:]):
        table[current].add(following)
    for current, following in skip_edges:
        table[current].add(following)
    # Finished is reached only through the explicit finish action
    for allowed in table.values():
        allowed.discard(S.FINISHED)
    return {status: frozenset(allowed) for status, allowed in table.items()}


TRANSITIONS: Dict[ProjectType, Dict[S, FrozenSet[S]]] = {
    project_type: (
        _build_transition_table(QUOTE_SEQUENCE, QUOTE_SKIP_EDGES)
        if project_type == ProjectType.QUOTE
        else _build_transition_table(STANDARD_SEQUENCE, STANDARD_SKIP_EDGES)
    )
    for project_type in ProjectType
}


def allowed_next_statuses(project_type: ProjectType, current: S) -> FrozenSet[S]:
    """Statuses reachable from `current` by a regular transition"""
    return TRANSITIONS[project_type].get(current, frozenset())


def admin_override_target(project_type: ProjectType, current: S) -> Optional[S]:
    """The single step back an administrator may take from `current`"""
    sequence = sequence_for(project_type)
    if current not in sequence or current == S.FINISHED:
        return None
    index = sequence.index(current)
    if index == 0:
        return None
    return sequence[index - 1]


def feedback_open_statuses(project_type: ProjectType) -> FrozenSet[S]:
    """Statuses from delivery (response sent for quotes) onward"""
    sequence = sequence_for(project_type)
    start = S.RESPONSE_SENT if project_type == ProjectType.QUOTE else S.DELIVERED
    return frozenset(sequence[sequence.index(start):])


def group_for_department(department: str) -> Optional[DepartmentGroup]:
    """Department group owning a sub-department id, if any"""
    normalized = department.strip().lower()
    for group, members in DEPARTMENT_GROUPS.items():
        if normalized in members:
            return group
    return None


def stage_action_for_completion(status: S) -> Optional[Tuple[DepartmentGroup, StageAction]]:
    """Department stage whose completion status is `status`"""
    for group, action in STAGE_ACTIONS.items():
        if action.complete == status:
            return group, action
    return None


def statuses_for(project_type: ProjectType) -> List[str]:
    """Status values in order, for API consumers"""
    return [status.value for status in sequence_for(project_type)]
