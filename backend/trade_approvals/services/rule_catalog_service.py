"""Rule Catalog Service - Authoring and storage of approval rules"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ..domain.models import ApprovalRule, Condition, RuleCategoryDefinition
from ..domain.enums import RuleCombinator, ApproverRole
from ..domain.errors import RuleValidationError, AlreadyExistsError
from ..domain.rule_fields import RULE_CATEGORIES, OPERATOR_LABELS
from ..repositories.rule_repo import RuleRepository
from ..utils.idgen import generate_rule_id
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)

_conditions_adapter = TypeAdapter(List[Condition])

_NON_STANDARD_PAYMENT_EVENTS = ["Inspection", "BL release", "Customs Clearance"]

DEFAULT_RULES: List[Dict[str, Any]] = [
    {
        "name": "Non-standard pricing detected",
        "description": "Payment is triggered by an event outside the standard set",
        "priority": 1,
        "combinator": RuleCombinator.OR,
        "conditions": [
            {"field": "payment_trigger_event", "operator": "in", "values": _NON_STANDARD_PAYMENT_EVENTS},
            {"field": "payment_trigger_combined", "operator": "equals", "value": "ATA_After"},
        ],
        "required_approvers": [ApproverRole.HEDGING.value, ApproverRole.CFO.value],
    },
    {
        "name": "Deal requires hedge",
        "description": "Index pricing, or formula B2B deals needing LME action",
        "priority": 2,
        "combinator": RuleCombinator.OR,
        "conditions": [
            {"field": "pricing_type", "operator": "equals", "value": "Index"},
            {"field": "formula_b2b_lme", "operator": "equals", "value": True},
        ],
        "required_approvers": [ApproverRole.HEDGING.value, ApproverRole.CFO.value],
    },
    {
        "name": "Counterparty KYB not approved",
        "description": "Counterparty has not passed KYB",
        "priority": 3,
        "combinator": RuleCombinator.AND,
        "conditions": [
            {"field": "company_kyb_status", "operator": "not_equals", "value": "Approved"},
        ],
        "required_approvers": [ApproverRole.OPERATIONS.value],
    },
]


class RuleCatalogService:
    """Service for approval rule operations"""

    def __init__(self, repo: Optional[RuleRepository] = None):
        self.repo = repo or RuleRepository()

    # =========================================================================
    # Queries
    # =========================================================================

    def list_rules(self, enabled_only: bool = False) -> List[ApprovalRule]:
        """List rules in evaluation order"""
        return self.repo.list_rules(enabled_only=enabled_only)

    def list_enabled_rules(self) -> List[ApprovalRule]:
        return self.repo.list_rules(enabled_only=True)

    def get_rule(self, rule_id: str) -> ApprovalRule:
        return self.repo.get_rule_or_raise(rule_id)

    def get_field_catalog(self) -> Dict[str, Any]:
        """Fact fields and operators available to rule authors"""
        categories: List[RuleCategoryDefinition] = RULE_CATEGORIES
        return {
            "categories": [c.model_dump(mode="json") for c in categories],
            "operators": OPERATOR_LABELS,
        }

    # =========================================================================
    # Commands
    # =========================================================================

    def create_rule(
        self,
        name: str,
        required_approvers: List[str],
        conditions: List[Any],
        combinator: RuleCombinator = RuleCombinator.AND,
        description: Optional[str] = None,
        priority: int = 100,
        is_enabled: bool = True
    ) -> ApprovalRule:
        """Create a new approval rule"""
        now = utc_now()
        rule = self._build_rule(
            {
                "rule_id": generate_rule_id(),
                "name": name,
                "description": description,
                "priority": priority,
                "is_enabled": is_enabled,
                "combinator": combinator,
                "conditions": conditions,
                "required_approvers": required_approvers,
                "created_at": now,
                "updated_at": now,
            }
        )
        self._ensure_unique_name(rule.name)
        return self.repo.create_rule(rule)

    def update_rule(self, rule_id: str, updates: Dict[str, Any]) -> ApprovalRule:
        """
        Apply a partial update

        The merged rule is validated as a whole before it is stored.
        """
        current = self.repo.get_rule_or_raise(rule_id)

        allowed = {
            "name", "description", "priority", "is_enabled",
            "combinator", "conditions", "required_approvers",
        }
        unknown = set(updates) - allowed
        if unknown:
            raise RuleValidationError(
                f"Cannot update rule fields: {', '.join(sorted(unknown))}",
                details={"fields": sorted(unknown)}
            )

        merged = current.model_dump()
        merged.update(updates)
        rule = self._build_rule(merged)

        if rule.name != current.name:
            self._ensure_unique_name(rule.name, exclude_rule_id=rule_id)

        changes = rule.model_dump(mode="json", include=set(updates))
        return self.repo.update_rule(rule_id, changes)

    def toggle_rule(self, rule_id: str) -> ApprovalRule:
        """Flip a rule between enabled and disabled"""
        current = self.repo.get_rule_or_raise(rule_id)
        return self.update_rule(rule_id, {"is_enabled": not current.is_enabled})

    def delete_rule(self, rule_id: str) -> None:
        """Delete a rule; approval requests it already triggered are unaffected"""
        self.repo.delete_rule(rule_id)

    def seed_default_rules(self) -> List[ApprovalRule]:
        """
        Create the default rule set

        Does nothing when the catalog already holds any rule.

        Returns:
            The rules created (empty when the catalog was not empty)
        """
        if self.repo.count_rules() > 0:
            logger.info("Approval rules already exist, skipping default seed")
            return []

        now = utc_now()
        rules = [
            self._build_rule({
                **definition,
                "rule_id": generate_rule_id(),
                "is_enabled": True,
                "created_at": now,
                "updated_at": now,
            })
            for definition in DEFAULT_RULES
        ]
        created = self.repo.create_rules_bulk(rules)
        logger.info(f"Seeded {len(created)} default approval rules")
        return created

    # =========================================================================
    # Validation
    # =========================================================================

    def _build_rule(self, data: Dict[str, Any]) -> ApprovalRule:
        """Validate rule data and build the rule"""
        name = (data.get("name") or "").strip()
        if not name:
            raise RuleValidationError("Rule name is required")

        roles = [role.strip() for role in data.get("required_approvers") or [] if role and role.strip()]
        roles = list(dict.fromkeys(roles))
        if not roles:
            raise RuleValidationError(
                "A rule must require at least one approver role",
                details={"name": name}
            )

        try:
            raw_conditions = [
                c.model_dump() if isinstance(c, BaseModel) else c
                for c in data.get("conditions") or []
            ]
            conditions = _conditions_adapter.validate_python(raw_conditions)
        except PydanticValidationError as e:
            raise RuleValidationError(
                "Invalid rule conditions",
                details={"name": name, "errors": e.errors(include_url=False, include_context=False)}
            )

        if data.get("is_enabled", True) and not conditions:
            raise RuleValidationError(
                "An enabled rule must have at least one condition",
                details={"name": name}
            )

        try:
            return ApprovalRule.model_validate({
                **data,
                "name": name,
                "required_approvers": roles,
                "conditions": [c.model_dump() for c in conditions],
            })
        except PydanticValidationError as e:
            raise RuleValidationError(
                "Invalid rule definition",
                details={"name": name, "errors": e.errors(include_url=False, include_context=False)}
            )

    def _ensure_unique_name(self, name: str, exclude_rule_id: Optional[str] = None) -> None:
        existing = self.repo.find_by_name(name)
        if existing and existing.rule_id != exclude_rule_id:
            raise AlreadyExistsError(
                f"An approval rule named '{name}' already exists",
                details={"name": name, "rule_id": existing.rule_id}
            )
