"""Audit Repository - Data access for approval actions"""
from typing import List
from pymongo.collection import Collection
from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError

from .mongo_client import get_collection
from ..domain.models import ApprovalAction
from ..domain.errors import DuplicateApprovalError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class AuditRepository:
    """Repository for approval actions (append-only)"""

    def __init__(self):
        self._actions: Collection = get_collection("approval_actions")

    def create_action(self, action: ApprovalAction) -> ApprovalAction:
        """Append an approval action"""
        doc = action.model_dump(mode="json", exclude={"created_at"})
        doc["created_at"] = action.created_at
        doc["_id"] = action.action_id

        try:
            self._actions.insert_one(doc)
        except DuplicateKeyError:
            raise DuplicateApprovalError(
                f"Role {action.approver_role} has already approved this request",
                details={
                    "approval_request_id": action.approval_request_id,
                    "approver_role": action.approver_role
                }
            )

        logger.info(
            f"Recorded approval action: {action.action.value}",
            extra={
                "approval_request_id": action.approval_request_id,
                "approver_role": action.approver_role,
                "action": action.action.value
            }
        )
        return action

    def list_for_request(self, approval_request_id: str) -> List[ApprovalAction]:
        """
        Get all actions of a request in the order they were taken

        sequence is assigned under the request lease, so it is the insertion
        order and matches created_at on a single clock. created_at only
        breaks ties left by an expired lease.
        """
        cursor = self._actions.find(
            {"approval_request_id": approval_request_id}
        ).sort([("sequence", ASCENDING), ("created_at", ASCENDING)])

        actions = []
        for doc in cursor:
            doc.pop("_id", None)
            actions.append(ApprovalAction.model_validate(doc))
        return actions
