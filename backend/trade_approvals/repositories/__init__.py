"""Repository modules - Data access layer"""
from .mongo_client import get_database, get_collection, set_database, create_indexes
from .rule_repo import RuleRepository
from .approval_repo import ApprovalRepository
from .audit_repo import AuditRepository
from .ticket_repo import TicketRepository

__all__ = [
    "get_database",
    "get_collection",
    "set_database",
    "create_indexes",
    "RuleRepository",
    "ApprovalRepository",
    "AuditRepository",
    "TicketRepository",
]
