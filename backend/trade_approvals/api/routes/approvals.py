"""Approval API Routes - Approval requests and approver actions"""
from typing import Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from pydantic import BaseModel, Field

from ..deps import get_correlation_id_dep
from ...domain.enums import ApprovalStatus, ApprovalActionType
from ...domain.errors import DomainError
from ...services.approval_service import ApprovalService
from ...utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


# ============================================================================
# Request Models
# ============================================================================

class CreateApprovalRequest(BaseModel):
    """Request to open an approval request directly"""
    ticket_id: str = Field(..., min_length=1)
    required_approvers: List[str] = Field(..., min_length=1)
    rule_triggered: str = Field(..., min_length=1)
    role_to_rules: Optional[Dict[str, List[str]]] = None


class SubmitActionRequest(BaseModel):
    """An approver role's decision"""
    approver_role: str = Field(..., min_length=1)
    action: ApprovalActionType
    comment: Optional[str] = Field(None, max_length=4000)


# ============================================================================
# Routes
# ============================================================================

@router.post("", status_code=status.HTTP_201_CREATED)
def create_approval_request(
    request: CreateApprovalRequest,
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Open an approval request for a ticket"""
    try:
        approval = ApprovalService().create_request(
            ticket_id=request.ticket_id,
            required_approvers=request.required_approvers,
            rule_triggered=request.rule_triggered,
            role_to_rules=request.role_to_rules
        )
        return approval.model_dump(mode="json")
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("")
async def list_approval_requests(
    status: Optional[ApprovalStatus] = Query(None),
    role: Optional[str] = Query(None, description="Required approver role"),
    rule: Optional[str] = Query(None, description="Substring of the triggering rule names"),
    ticket_id: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """List approval requests, newest first"""
    try:
        requests = ApprovalService().list_requests(
            status=status,
            role=role,
            rule=rule,
            ticket_id=ticket_id,
            skip=(page - 1) * page_size,
            limit=page_size
        )
        return {
            "items": [r.model_dump(mode="json") for r in requests],
            "page": page,
            "page_size": page_size,
        }
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/stats")
async def get_approval_stats(
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Approval request counts per status"""
    return ApprovalService().get_stats()


@router.get("/{approval_request_id}")
async def get_approval_request(
    approval_request_id: str,
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Approval request with its actions and per-role progress"""
    try:
        return ApprovalService().get_detail(approval_request_id).model_dump(mode="json")
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/{approval_request_id}/status")
async def get_approval_status(
    approval_request_id: str,
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Compact status of an approval request"""
    try:
        return ApprovalService().get_status(approval_request_id)
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/{approval_request_id}/actions")
async def list_approval_actions(
    approval_request_id: str,
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Audit trail of an approval request, oldest first"""
    try:
        actions = ApprovalService().list_actions(approval_request_id)
        return {"items": [a.model_dump(mode="json") for a in actions]}
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.post("/{approval_request_id}/actions")
def submit_approval_action(
    approval_request_id: str,
    request: SubmitActionRequest,
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """
    Record an approver's decision

    Reject decides the request immediately; the request is approved once
    every required role has approved.
    """
    try:
        result = ApprovalService().submit_action(
            approval_request_id=approval_request_id,
            approver_role=request.approver_role,
            action=request.action,
            comment=request.comment
        )
        return {
            "approval_request": result.request.model_dump(mode="json"),
            "action": result.action.model_dump(mode="json"),
            "previous_status": result.previous_status.value,
            "status_changed": result.status_changed,
        }
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())
