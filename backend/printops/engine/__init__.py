"""Engine - Project lifecycle and reminder rules"""
from .lifecycle import LifecycleChange, ProjectLifecycle
from .permission_guard import PermissionGuard
from .reminder_rules import ReminderLimits, ReminderRules, SweepOutcome
from . import status_flow

__all__ = [
    "LifecycleChange",
    "ProjectLifecycle",
    "PermissionGuard",
    "ReminderLimits",
    "ReminderRules",
    "SweepOutcome",
    "status_flow",
]
