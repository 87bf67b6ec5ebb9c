"""Audit Trail - Append-only record of approval actions"""
from typing import List, Optional

from ..domain.models import ApprovalAction
from ..domain.enums import ApprovalActionType
from ..repositories.audit_repo import AuditRepository
from ..utils.idgen import generate_approval_action_id
from ..utils.time import utc_now


def idempotency_key_for(
    approval_request_id: str,
    approver_role: str,
    action: ApprovalActionType,
    action_id: str
) -> str:
    """
    Build the unique key of an action

    Approvals share one key per (request, role) so the unique index rejects
    a second approval; every other action gets a key of its own.
    """
    if action == ApprovalActionType.APPROVE:
        return f"{approval_request_id}:{approver_role}:{action.value}"
    return f"{approval_request_id}:{approver_role}:{action.value}:{action_id}"


class AuditTrail:
    """
    Record approval actions (append-only)

    Every accepted action is recorded, including ones that leave the
    request status unchanged.
    """

    def __init__(self, repo: Optional[AuditRepository] = None):
        self.repo = repo or AuditRepository()

    def append(self, action: ApprovalAction) -> ApprovalAction:
        """Append an action to the trail"""
        return self.repo.create_action(action)

    def record(
        self,
        approval_request_id: str,
        approver_role: str,
        action: ApprovalActionType,
        sequence: int,
        comment: Optional[str] = None
    ) -> ApprovalAction:
        """Build and append a new action"""
        action_id = generate_approval_action_id()
        return self.append(ApprovalAction(
            action_id=action_id,
            approval_request_id=approval_request_id,
            approver_role=approver_role,
            action=action,
            comment=comment,
            sequence=sequence,
            idempotency_key=idempotency_key_for(approval_request_id, approver_role, action, action_id),
            created_at=utc_now()
        ))

    def list_for(self, approval_request_id: str) -> List[ApprovalAction]:
        """All actions of a request, oldest first"""
        return self.repo.list_for_request(approval_request_id)
