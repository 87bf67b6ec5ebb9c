"""ID Generation Utilities"""
import uuid
from typing import Optional

from .time import utc_now


def generate_id(prefix: Optional[str] = None) -> str:
    """
    Generate a unique ID with optional prefix

    Args:
        prefix: Optional prefix for the ID (e.g., 'RULE', 'APR', 'ACT')

    Returns:
        Unique ID string

    Examples:
        >>> generate_id('APR')
        'APR-a1b2c3d4e5f6'
        >>> generate_id()
        'a1b2c3d4e5f6'
    """
    unique_part = uuid.uuid4().hex[:12]

    if prefix:
        return f"{prefix}-{unique_part}"
    return unique_part


def generate_rule_id() -> str:
    """Generate approval rule ID"""
    return generate_id("RULE")


def generate_ticket_id() -> str:
    """Generate ticket ID"""
    return generate_id("TKT")


def generate_approval_request_id() -> str:
    """Generate approval request ID"""
    return generate_id("APR")


def generate_approval_action_id() -> str:
    """Generate approval action ID"""
    return generate_id("ACT")


def generate_lock_token() -> str:
    """Generate a token identifying one holder of a request lease"""
    return generate_id("LOCK")


def generate_correlation_id() -> str:
    """
    Generate a correlation ID for request tracing

    Returns:
        Correlation ID string with timestamp prefix
    """
    timestamp = utc_now().strftime("%Y%m%d%H%M%S")
    unique_part = uuid.uuid4().hex[:8]
    return f"COR-{timestamp}-{unique_part}"
