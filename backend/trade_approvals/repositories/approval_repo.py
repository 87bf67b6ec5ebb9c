"""Approval Repository - Data access for approval requests"""
import re
from typing import Any, Dict, List, Optional
from pymongo.collection import Collection
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from .mongo_client import get_collection
from ..domain.models import ApprovalRequest
from ..domain.enums import ApprovalStatus
from ..domain.errors import ApprovalRequestNotFoundError, ActiveRequestExistsError
from ..utils.time import utc_now, epoch_seconds
from ..utils.logger import get_logger

logger = get_logger(__name__)


class ApprovalRepository:
    """
    Repository for approval request operations

    Besides the request fields, each stored document carries:
    - active_key: the ticket id while pending, the request id once terminal
      (unique, so a ticket has at most one pending request)
    - locked_by / lock_expires_at: the lease held while an action is applied
    """

    def __init__(self):
        self._requests: Collection = get_collection("approval_requests")

    # =========================================================================
    # Request CRUD
    # =========================================================================

    def create_request(self, request: ApprovalRequest) -> ApprovalRequest:
        """Create a new approval request"""
        doc = self._to_doc(request)
        doc["_id"] = request.approval_request_id
        doc["active_key"] = self._active_key(request.ticket_id, request.approval_request_id, request.status)
        doc["locked_by"] = None
        doc["lock_expires_at"] = None

        try:
            self._requests.insert_one(doc)
        except DuplicateKeyError:
            raise ActiveRequestExistsError(
                f"Ticket {request.ticket_id} already has a pending approval request",
                details={"ticket_id": request.ticket_id}
            )

        logger.info(
            f"Created approval request: {request.approval_request_id}",
            extra={
                "approval_request_id": request.approval_request_id,
                "ticket_id": request.ticket_id,
                "status": request.status.value
            }
        )
        return request

    def get_request(self, approval_request_id: str) -> Optional[ApprovalRequest]:
        """Get approval request by ID"""
        doc = self._requests.find_one({"approval_request_id": approval_request_id})
        if doc:
            return self._to_model(doc)
        return None

    def get_request_or_raise(self, approval_request_id: str) -> ApprovalRequest:
        """Get approval request by ID or raise error"""
        request = self.get_request(approval_request_id)
        if not request:
            raise ApprovalRequestNotFoundError(f"Approval request {approval_request_id} not found")
        return request

    # =========================================================================
    # Lease
    # =========================================================================

    def acquire_lock(
        self,
        approval_request_id: str,
        token: str,
        lease_seconds: float
    ) -> Optional[ApprovalRequest]:
        """
        Take the lease on a request

        Succeeds only when no lease is held or the held lease has expired.

        Returns:
            The request as read under the lease, or None when another
            holder has it
        """
        now = epoch_seconds()
        result = self._requests.find_one_and_update(
            {
                "approval_request_id": approval_request_id,
                "$or": [
                    {"lock_expires_at": None},
                    {"lock_expires_at": {"$lte": now}},
                ]
            },
            {"$set": {"locked_by": token, "lock_expires_at": now + lease_seconds}},
            return_document=ReturnDocument.AFTER
        )

        if result is None:
            if not self._requests.find_one({"approval_request_id": approval_request_id}):
                raise ApprovalRequestNotFoundError(f"Approval request {approval_request_id} not found")
            return None

        return self._to_model(result)

    def commit_status(
        self,
        approval_request_id: str,
        token: str,
        status: ApprovalStatus,
        release_lock: bool = True
    ) -> Optional[ApprovalRequest]:
        """
        Write a new aggregate status while holding the lease

        Returns:
            The updated request, or None when the lease was lost
        """
        now = utc_now()
        request = self.get_request_or_raise(approval_request_id)

        updates: Dict[str, Any] = {
            "status": status.value,
            "updated_at": now,
            "active_key": self._active_key(request.ticket_id, approval_request_id, status),
        }
        if status.is_terminal:
            updates["decided_at"] = now
        if release_lock:
            updates["locked_by"] = None
            updates["lock_expires_at"] = None

        result = self._requests.find_one_and_update(
            {"approval_request_id": approval_request_id, "locked_by": token},
            {"$set": updates, "$inc": {"version": 1}},
            return_document=ReturnDocument.AFTER
        )

        if result is None:
            return None

        logger.info(
            f"Approval request {approval_request_id} is now {status.value}",
            extra={
                "approval_request_id": approval_request_id,
                "ticket_id": request.ticket_id,
                "status": status.value
            }
        )
        return self._to_model(result)

    def release_lock(self, approval_request_id: str, token: str) -> bool:
        """Release the lease if still held by this token"""
        result = self._requests.update_one(
            {"approval_request_id": approval_request_id, "locked_by": token},
            {"$set": {"locked_by": None, "lock_expires_at": None}}
        )
        return result.modified_count > 0

    # =========================================================================
    # Queries
    # =========================================================================

    def list_requests(
        self,
        status: Optional[ApprovalStatus] = None,
        role: Optional[str] = None,
        rule: Optional[str] = None,
        ticket_id: Optional[str] = None,
        skip: int = 0,
        limit: int = 50
    ) -> List[ApprovalRequest]:
        """List approval requests, newest first"""
        query: Dict[str, Any] = {}

        if status:
            query["status"] = status.value
        if role:
            query["required_approvers"] = role
        if rule:
            query["rule_triggered"] = {"$regex": re.escape(rule), "$options": "i"}
        if ticket_id:
            query["ticket_id"] = ticket_id

        cursor = self._requests.find(query).sort("created_at", DESCENDING).skip(skip).limit(limit)
        return [self._to_model(doc) for doc in cursor]

    def count_by_status(self) -> Dict[str, int]:
        """Count approval requests per status"""
        return {
            status.value: self._requests.count_documents({"status": status.value})
            for status in ApprovalStatus
        }

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _active_key(ticket_id: str, approval_request_id: str, status: ApprovalStatus) -> str:
        if status.is_terminal:
            return approval_request_id
        return ticket_id

    @staticmethod
    def _to_doc(request: ApprovalRequest) -> Dict[str, Any]:
        # Keep datetimes native so MongoDB sorts them chronologically
        doc = request.model_dump(mode="json", exclude={"created_at", "updated_at", "decided_at"})
        doc["created_at"] = request.created_at
        doc["updated_at"] = request.updated_at
        doc["decided_at"] = request.decided_at
        return doc

    @staticmethod
    def _to_model(doc: Dict[str, Any]) -> ApprovalRequest:
        doc.pop("_id", None)
        return ApprovalRequest.model_validate(doc)
