"""
Approval Workflow - Per-ticket approval state machine

An approval request starts in Pending Approval and moves at most once, to
Approved or Rejected. Each required role acts independently:

    Reject            -> Rejected immediately
    Request Changes   -> recorded, status unchanged
    Approve           -> Approved once every required role has approved

Actions on one request are serialized through a lease held on the request
document. Inside the lease the complete action history is read and the
aggregate status is derived from it, so the stored status can never drift
from the audit trail.
"""
import time
from typing import Dict, List, Optional

from ..domain.models import (
    ApprovalRequest, ApprovalAction, ApprovalActionResult, ApprovalProgress
)
from ..domain.enums import (
    ApprovalStatus, ApprovalActionType, TicketStatus, APPROVAL_TO_TICKET_STATUS
)
from ..domain.errors import (
    ValidationError, InvalidRoleError, InvalidStateError, AlreadyTerminalError,
    DuplicateApprovalError, ConcurrencyError, TicketNotFoundError
)
from ..repositories.approval_repo import ApprovalRepository
from ..repositories.ticket_repo import TicketRepository
from ..config.settings import settings
from ..utils.idgen import generate_approval_request_id, generate_lock_token
from ..utils.time import utc_now
from ..utils.logger import get_logger
from .audit_trail import AuditTrail
from .requirement_resolver import RULE_SEPARATOR

logger = get_logger(__name__)


def derive_status(required_approvers: List[str], actions: List[ApprovalAction]) -> ApprovalStatus:
    """
    Derive the aggregate status from an action history

    Actions are replayed in order: the first Reject decides Rejected, the
    first point where approvals cover every required role decides Approved.
    Actions by roles outside the required set are ignored.
    """
    required = set(required_approvers)
    approved = set()

    for action in actions:
        if action.approver_role not in required:
            continue
        if action.action == ApprovalActionType.REJECT:
            return ApprovalStatus.REJECTED
        if action.action == ApprovalActionType.APPROVE:
            approved.add(action.approver_role)
            if approved >= required:
                return ApprovalStatus.APPROVED

    return ApprovalStatus.PENDING_APPROVAL


class ApprovalWorkflow:
    """Create approval requests and apply approver actions to them"""

    def __init__(
        self,
        approval_repo: Optional[ApprovalRepository] = None,
        ticket_repo: Optional[TicketRepository] = None,
        audit_trail: Optional[AuditTrail] = None,
        lock_seconds: Optional[float] = None,
        lock_attempts: Optional[int] = None,
        lock_retry_seconds: Optional[float] = None
    ):
        self.approval_repo = approval_repo or ApprovalRepository()
        self.ticket_repo = ticket_repo or TicketRepository()
        self.audit_trail = audit_trail or AuditTrail()
        self.lock_seconds = lock_seconds if lock_seconds is not None else settings.approval_lock_seconds
        self.lock_attempts = lock_attempts if lock_attempts is not None else settings.approval_lock_attempts
        self.lock_retry_seconds = (
            lock_retry_seconds if lock_retry_seconds is not None else settings.approval_lock_retry_seconds
        )

    # =========================================================================
    # Commands
    # =========================================================================

    def create_request(
        self,
        ticket_id: str,
        required_approvers: List[str],
        rule_triggered: str,
        role_to_rules: Optional[Dict[str, List[str]]] = None
    ) -> ApprovalRequest:
        """
        Open an approval request for a ticket and move the ticket to
        Pending Approval

        Raises:
            ValidationError: no approver roles given
            TicketNotFoundError: unknown ticket
            InvalidStateError: the ticket is already approved
            ActiveRequestExistsError: the ticket already has a pending request
        """
        roles = list(dict.fromkeys(role for role in required_approvers if role))
        if not roles:
            raise ValidationError(
                "An approval request needs at least one approver role",
                details={"ticket_id": ticket_id}
            )

        ticket = self.ticket_repo.get_ticket_or_raise(ticket_id)
        if ticket.status == TicketStatus.APPROVED:
            raise InvalidStateError(
                f"Ticket {ticket_id} is already approved",
                details={"ticket_id": ticket_id, "status": ticket.status.value}
            )

        if role_to_rules is None:
            rule_names = [name for name in rule_triggered.split(RULE_SEPARATOR) if name]
            role_to_rules = {role: list(rule_names) for role in roles}

        now = utc_now()
        request = ApprovalRequest(
            approval_request_id=generate_approval_request_id(),
            ticket_id=ticket_id,
            required_approvers=roles,
            rule_triggered=rule_triggered,
            role_to_rules=role_to_rules,
            status=ApprovalStatus.PENDING_APPROVAL,
            version=1,
            created_at=now,
            updated_at=now
        )
        self.approval_repo.create_request(request)
        self._propagate_to_ticket(request)
        return request

    def submit_action(
        self,
        approval_request_id: str,
        approver_role: str,
        action: ApprovalActionType,
        comment: Optional[str] = None
    ) -> ApprovalActionResult:
        """
        Apply one role's action to a request

        Checks, in order: request exists, role is a required approver,
        request is not terminal, role has not already approved.

        Raises:
            ApprovalRequestNotFoundError
            InvalidRoleError
            AlreadyTerminalError
            DuplicateApprovalError
            ConcurrencyError: the lease could not be taken in time
        """
        action = ApprovalActionType(action)
        token = generate_lock_token()
        request = self._acquire_lease(approval_request_id, token)

        try:
            history = self.audit_trail.list_for(approval_request_id)
            request = self._reconcile(request, history, token)
            previous_status = request.status

            if approver_role not in request.required_approvers:
                raise InvalidRoleError(
                    f"Role {approver_role} is not a required approver of this request",
                    details={
                        "approval_request_id": approval_request_id,
                        "approver_role": approver_role,
                        "required_approvers": request.required_approvers
                    }
                )

            if request.status.is_terminal:
                raise AlreadyTerminalError(
                    f"Approval request is already {request.status.value}",
                    details={
                        "approval_request_id": approval_request_id,
                        "status": request.status.value
                    }
                )

            if action == ApprovalActionType.APPROVE and any(
                a.approver_role == approver_role and a.action == ApprovalActionType.APPROVE
                for a in history
            ):
                raise DuplicateApprovalError(
                    f"Role {approver_role} has already approved this request",
                    details={
                        "approval_request_id": approval_request_id,
                        "approver_role": approver_role
                    }
                )

            recorded = self.audit_trail.record(
                approval_request_id=approval_request_id,
                approver_role=approver_role,
                action=action,
                sequence=len(history) + 1,
                comment=comment
            )

            new_status = derive_status(request.required_approvers, history + [recorded])
            committed = self.approval_repo.commit_status(approval_request_id, token, new_status)
            if committed is None:
                raise ConcurrencyError(
                    "Approval request lease expired before the action was committed",
                    details={"approval_request_id": approval_request_id}
                )
        finally:
            self.approval_repo.release_lock(approval_request_id, token)

        logger.info(
            f"{approver_role} submitted {action.value} on {approval_request_id}",
            extra={
                "approval_request_id": approval_request_id,
                "ticket_id": committed.ticket_id,
                "approver_role": approver_role,
                "action": action.value,
                "status": committed.status.value
            }
        )

        if committed.status != previous_status:
            self._propagate_to_ticket(committed)

        return ApprovalActionResult(
            request=committed,
            action=recorded,
            previous_status=previous_status
        )

    # =========================================================================
    # Queries
    # =========================================================================

    def get_status(self, approval_request_id: str) -> ApprovalProgress:
        """Request with its actions and per-role progress"""
        request = self.approval_repo.get_request_or_raise(approval_request_id)
        actions = self.audit_trail.list_for(approval_request_id)

        approved = {
            a.approver_role for a in actions
            if a.action == ApprovalActionType.APPROVE
        }
        return ApprovalProgress(
            request=request,
            actions=actions,
            approved_roles=[r for r in request.required_approvers if r in approved],
            pending_roles=[r for r in request.required_approvers if r not in approved]
        )

    def list_actions(self, approval_request_id: str) -> List[ApprovalAction]:
        """Audit trail of a request, oldest first"""
        self.approval_repo.get_request_or_raise(approval_request_id)
        return self.audit_trail.list_for(approval_request_id)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _acquire_lease(self, approval_request_id: str, token: str) -> ApprovalRequest:
        for attempt in range(self.lock_attempts):
            request = self.approval_repo.acquire_lock(approval_request_id, token, self.lock_seconds)
            if request is not None:
                return request
            if attempt < self.lock_attempts - 1:
                time.sleep(self.lock_retry_seconds)

        logger.warning(
            f"Could not lease approval request {approval_request_id} after {self.lock_attempts} attempts",
            extra={"approval_request_id": approval_request_id, "error_code": ConcurrencyError.error_code}
        )
        raise ConcurrencyError(
            "Approval request is being updated by another caller. Please retry.",
            details={"approval_request_id": approval_request_id}
        )

    def _reconcile(
        self,
        request: ApprovalRequest,
        history: List[ApprovalAction],
        token: str
    ) -> ApprovalRequest:
        """Bring a pending request in line with its action history"""
        if request.status.is_terminal:
            return request

        derived = derive_status(request.required_approvers, history)
        if derived == request.status:
            return request

        logger.warning(
            f"Approval request {request.approval_request_id} status drifted from its actions; "
            f"restoring {derived.value}",
            extra={
                "approval_request_id": request.approval_request_id,
                "ticket_id": request.ticket_id,
                "status": derived.value
            }
        )
        committed = self.approval_repo.commit_status(
            request.approval_request_id, token, derived, release_lock=False
        )
        if committed is None:
            raise ConcurrencyError(
                "Approval request lease expired during reconciliation",
                details={"approval_request_id": request.approval_request_id}
            )
        self._propagate_to_ticket(committed)
        return committed

    def _propagate_to_ticket(self, request: ApprovalRequest) -> None:
        """Give the ticket the status of its approval request"""
        ticket_status = APPROVAL_TO_TICKET_STATUS[request.status]
        try:
            self.ticket_repo.update_status(request.ticket_id, ticket_status)
        except TicketNotFoundError:
            logger.warning(
                f"Ticket {request.ticket_id} of approval request {request.approval_request_id} no longer exists",
                extra={"ticket_id": request.ticket_id, "approval_request_id": request.approval_request_id}
            )
