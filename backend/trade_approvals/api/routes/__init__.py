"""API Routes module"""
from fastapi import APIRouter

from .rules import router as rules_router
from .tickets import router as tickets_router
from .approvals import router as approvals_router

# Main API router
api_router = APIRouter()

api_router.include_router(rules_router, prefix="/approval-rules", tags=["Approval Rules"])
api_router.include_router(tickets_router, prefix="/tickets", tags=["Tickets"])
api_router.include_router(approvals_router, prefix="/approvals", tags=["Approvals"])

__all__ = ["api_router"]
