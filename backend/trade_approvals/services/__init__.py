"""Service modules - Business logic layer"""
from .rule_catalog_service import RuleCatalogService
from .ticket_approval_service import TicketApprovalService
from .approval_service import ApprovalService

__all__ = [
    "RuleCatalogService",
    "TicketApprovalService",
    "ApprovalService",
]
