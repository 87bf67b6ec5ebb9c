"""Rule Repository - Data access for approval rules"""
from typing import Any, Dict, List, Optional
from pymongo.collection import Collection
from pymongo import ASCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError
from pydantic import ValidationError

from .mongo_client import get_collection
from ..domain.models import ApprovalRule
from ..domain.errors import RuleNotFoundError, AlreadyExistsError
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


class RuleRepository:
    """Repository for approval rule operations"""

    def __init__(self):
        self._rules: Collection = get_collection("approval_rules")

    def create_rule(self, rule: ApprovalRule) -> ApprovalRule:
        """Create a new approval rule"""
        doc = rule.model_dump(mode="json", exclude={"created_at", "updated_at"})
        doc["created_at"] = rule.created_at
        doc["updated_at"] = rule.updated_at
        doc["_id"] = rule.rule_id

        try:
            self._rules.insert_one(doc)
        except DuplicateKeyError:
            raise AlreadyExistsError(
                f"An approval rule named '{rule.name}' already exists",
                details={"name": rule.name}
            )
        logger.info(f"Created approval rule: {rule.name}", extra={"rule_id": rule.rule_id})
        return rule

    def create_rules_bulk(self, rules: List[ApprovalRule]) -> List[ApprovalRule]:
        """Create multiple approval rules"""
        if not rules:
            return []

        docs = []
        for rule in rules:
            doc = rule.model_dump(mode="json", exclude={"created_at", "updated_at"})
            doc["created_at"] = rule.created_at
            doc["updated_at"] = rule.updated_at
            doc["_id"] = rule.rule_id
            docs.append(doc)

        self._rules.insert_many(docs)
        logger.info(f"Created {len(rules)} approval rules")
        return rules

    def get_rule(self, rule_id: str) -> Optional[ApprovalRule]:
        """Get rule by ID"""
        doc = self._rules.find_one({"rule_id": rule_id})
        if doc:
            return self._to_model(doc)
        return None

    def get_rule_or_raise(self, rule_id: str) -> ApprovalRule:
        """Get rule by ID or raise error"""
        rule = self.get_rule(rule_id)
        if not rule:
            raise RuleNotFoundError(f"Approval rule {rule_id} not found")
        return rule

    def find_by_name(self, name: str) -> Optional[ApprovalRule]:
        """Get rule by exact name"""
        doc = self._rules.find_one({"name": name})
        if doc:
            return self._to_model(doc)
        return None

    def update_rule(self, rule_id: str, updates: Dict[str, Any]) -> ApprovalRule:
        """Apply a partial update to a rule"""
        updates["updated_at"] = utc_now()

        try:
            result = self._rules.find_one_and_update(
                {"rule_id": rule_id},
                {"$set": updates},
                return_document=ReturnDocument.AFTER
            )
        except DuplicateKeyError:
            raise AlreadyExistsError(
                f"An approval rule named '{updates.get('name')}' already exists",
                details={"name": updates.get("name")}
            )

        if result is None:
            raise RuleNotFoundError(f"Approval rule {rule_id} not found")

        logger.info(f"Updated approval rule: {rule_id}", extra={"rule_id": rule_id})
        rule = self._to_model(result)
        if rule is None:
            raise RuleNotFoundError(f"Approval rule {rule_id} is unreadable after update")
        return rule

    def delete_rule(self, rule_id: str) -> None:
        """Delete a rule (existing approval requests are unaffected)"""
        result = self._rules.delete_one({"rule_id": rule_id})
        if result.deleted_count == 0:
            raise RuleNotFoundError(f"Approval rule {rule_id} not found")
        logger.info(f"Deleted approval rule: {rule_id}", extra={"rule_id": rule_id})

    def list_rules(self, enabled_only: bool = False) -> List[ApprovalRule]:
        """List rules ordered by priority"""
        query: Dict[str, Any] = {}
        if enabled_only:
            query["is_enabled"] = True

        cursor = self._rules.find(query).sort([("priority", ASCENDING), ("rule_id", ASCENDING)])

        rules = []
        for doc in cursor:
            rule = self._to_model(doc)
            if rule is not None:
                rules.append(rule)
        return rules

    def count_rules(self) -> int:
        """Count all rules"""
        return self._rules.count_documents({})

    def _to_model(self, doc: Dict[str, Any]) -> Optional[ApprovalRule]:
        """
        Convert a stored document to a rule.

        A document that no longer validates is logged and skipped, so a
        broken rule never triggers instead of breaking ticket submission.
        """
        doc.pop("_id", None)
        try:
            return ApprovalRule.model_validate(doc)
        except ValidationError as e:
            logger.error(
                f"Corrupted approval rule {doc.get('rule_id')} skipped: {str(e)[:500]}",
                extra={"rule_id": doc.get("rule_id"), "error_count": len(e.errors())}
            )
            return None
