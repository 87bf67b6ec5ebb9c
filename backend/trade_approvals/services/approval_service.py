"""Approval Service - Approval request commands and queries"""
from typing import Any, Dict, List, Optional

from ..domain.models import (
    ApprovalRequest, ApprovalAction, ApprovalActionResult, ApprovalProgress
)
from ..domain.enums import ApprovalStatus, ApprovalActionType
from ..engine.approval_workflow import ApprovalWorkflow
from ..repositories.approval_repo import ApprovalRepository
from ..utils.logger import get_logger

logger = get_logger(__name__)


class ApprovalService:
    """Service for approval request operations"""

    def __init__(
        self,
        approval_repo: Optional[ApprovalRepository] = None,
        workflow: Optional[ApprovalWorkflow] = None
    ):
        self.repo = approval_repo or ApprovalRepository()
        self.workflow = workflow or ApprovalWorkflow(approval_repo=self.repo)

    def create_request(
        self,
        ticket_id: str,
        required_approvers: List[str],
        rule_triggered: str,
        role_to_rules: Optional[Dict[str, List[str]]] = None
    ) -> ApprovalRequest:
        return self.workflow.create_request(ticket_id, required_approvers, rule_triggered, role_to_rules)

    def submit_action(
        self,
        approval_request_id: str,
        approver_role: str,
        action: ApprovalActionType,
        comment: Optional[str] = None
    ) -> ApprovalActionResult:
        return self.workflow.submit_action(approval_request_id, approver_role, action, comment)

    def get_detail(self, approval_request_id: str) -> ApprovalProgress:
        """Request with its audit trail and per-role progress"""
        return self.workflow.get_status(approval_request_id)

    def get_status(self, approval_request_id: str) -> Dict[str, Any]:
        """Compact status view of a request"""
        progress = self.workflow.get_status(approval_request_id)
        return {
            "approval_request_id": progress.request.approval_request_id,
            "ticket_id": progress.request.ticket_id,
            "status": progress.request.status.value,
            "required_approvers": progress.request.required_approvers,
            "approved_roles": progress.approved_roles,
            "pending_roles": progress.pending_roles,
            "version": progress.request.version,
        }

    def list_actions(self, approval_request_id: str) -> List[ApprovalAction]:
        return self.workflow.list_actions(approval_request_id)

    def list_requests(
        self,
        status: Optional[ApprovalStatus] = None,
        role: Optional[str] = None,
        rule: Optional[str] = None,
        ticket_id: Optional[str] = None,
        skip: int = 0,
        limit: int = 50
    ) -> List[ApprovalRequest]:
        """List requests filtered by status, required role, rule name and ticket"""
        return self.repo.list_requests(
            status=status,
            role=role,
            rule=rule,
            ticket_id=ticket_id,
            skip=skip,
            limit=limit
        )

    def get_stats(self) -> Dict[str, Any]:
        """Request counts per status"""
        by_status = self.repo.count_by_status()
        return {
            "total": sum(by_status.values()),
            "by_status": by_status,
        }
