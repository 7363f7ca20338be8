"""ID Generation Utilities"""
import uuid
from datetime import datetime, timezone
from typing import Optional


def generate_id(prefix: Optional[str] = None) -> str:
    """
    Generate a unique ID with optional prefix

    Args:
        prefix: Optional prefix for the ID (e.g., 'PRJ', 'RMD')

    Returns:
        Unique ID string

    Examples:
        >>> generate_id('PRJ')
        'PRJ-a1b2c3d4e5f6'
        >>> generate_id()
        'a1b2c3d4e5f6'
    """
    unique_part = uuid.uuid4().hex[:12]

    if prefix:
        return f"{prefix}-{unique_part}"
    return unique_part


def generate_project_id() -> str:
    """Generate project ID"""
    return generate_id("PRJ")


def generate_lineage_id() -> str:
    """Generate lineage ID shared by all revisions of one order"""
    return generate_id("LIN")


def generate_order_id() -> str:
    """Generate a human-readable order number"""
    timestamp = datetime.now(timezone.utc).strftime("%y%m%d")
    return f"ORD-{timestamp}-{uuid.uuid4().hex[:4].upper()}"


def generate_reminder_id() -> str:
    """Generate reminder ID"""
    return generate_id("RMD")


def generate_activity_id() -> str:
    """Generate activity log entry ID"""
    return generate_id("ACT")


def generate_notification_id() -> str:
    """Generate notification ID"""
    return generate_id("NTF")


def generate_feedback_id() -> str:
    """Generate feedback entry ID"""
    return generate_id("FBK")


def generate_correlation_id() -> str:
    """
    Generate a correlation ID for request tracing

    Returns:
        Correlation ID string with timestamp prefix
    """
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
    unique_part = uuid.uuid4().hex[:8]
    return f"COR-{timestamp}-{unique_part}"
