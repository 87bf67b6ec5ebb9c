"""Ticket API Routes - Ticket registration and approval submission"""
from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from ..deps import get_correlation_id_dep
from ...domain.errors import DomainError
from ...services.ticket_approval_service import TicketApprovalService
from ...utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


class CreateTicketRequest(BaseModel):
    """Request to register a trade ticket"""
    ticket_id: Optional[str] = Field(None, min_length=1, max_length=100)
    fields: Dict[str, Any] = Field(default_factory=dict)
    company: Optional[Dict[str, Any]] = None


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_ticket(
    request: CreateTicketRequest,
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Register a ticket in Draft"""
    try:
        ticket = TicketApprovalService().register_ticket(
            fields=request.fields,
            company=request.company,
            ticket_id=request.ticket_id
        )
        return ticket.model_dump(mode="json")
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/{ticket_id}")
async def get_ticket(
    ticket_id: str,
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Get a ticket"""
    try:
        return TicketApprovalService().get_ticket(ticket_id).model_dump(mode="json")
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.post("/{ticket_id}/evaluate")
async def evaluate_ticket(
    ticket_id: str,
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Show which rules the ticket triggers without submitting it"""
    try:
        return jsonable_encoder(TicketApprovalService().evaluate_ticket(ticket_id))
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.post("/{ticket_id}/submit")
def submit_ticket(
    ticket_id: str,
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """
    Submit a ticket for approval

    Opens an approval request when rules match, otherwise approves the
    ticket directly.
    """
    try:
        result = TicketApprovalService().submit_ticket(ticket_id)
        logger.info(
            f"Submitted ticket {ticket_id} for approval",
            extra={"ticket_id": ticket_id, "status": result["ticket"].status.value}
        )
        return jsonable_encoder({
            "ticket": result["ticket"].model_dump(mode="json"),
            "approval_request": (
                result["approval_request"].model_dump(mode="json")
                if result["approval_request"] else None
            ),
            "requirements": result["requirements"].model_dump(mode="json"),
        })
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())
