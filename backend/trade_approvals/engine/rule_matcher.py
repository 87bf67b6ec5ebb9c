"""Rule Matcher - Select the approval rules a ticket triggers"""
from typing import Any, Dict, List, Optional

from ..domain.models import ApprovalRule
from ..utils.logger import get_logger
from .condition_evaluator import ConditionEvaluator

logger = get_logger(__name__)


class RuleMatcher:
    """
    Evaluate every enabled rule against a fact record

    Matching is not short-circuited: all enabled rules are evaluated so the
    resolver sees every rule that demands an approver.
    """

    def __init__(self, evaluator: Optional[ConditionEvaluator] = None):
        self.evaluator = evaluator or ConditionEvaluator()

    def match(self, rules: List[ApprovalRule], facts: Dict[str, Any]) -> List[ApprovalRule]:
        """
        Return matching rules ordered by priority, ties broken by rule id
        """
        ordered = sorted(rules, key=lambda r: (r.priority, r.rule_id))

        matched = []
        for rule in ordered:
            if not rule.is_enabled:
                continue
            if self.evaluator.evaluate_all(rule.conditions, rule.combinator, facts):
                logger.debug(f"Rule matched: {rule.name}", extra={"rule_id": rule.rule_id})
                matched.append(rule)

        return matched
