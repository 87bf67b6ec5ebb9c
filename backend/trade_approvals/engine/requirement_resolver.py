"""Approval Requirement Resolver - Union of roles demanded by matched rules"""
from typing import Dict, List

from ..domain.models import ApprovalRule, ApprovalRequirements

RULE_SEPARATOR = " + "


class ApprovalRequirementResolver:
    """Turn matched rules into the approver set of an approval request"""

    def resolve(self, matched_rules: List[ApprovalRule]) -> ApprovalRequirements:
        """
        Resolve approval requirements

        Roles keep the order in which they were first demanded; every role
        maps to the names of all rules that required it.
        """
        required: List[str] = []
        role_to_rules: Dict[str, List[str]] = {}

        for rule in matched_rules:
            for role in rule.required_approvers:
                if role not in role_to_rules:
                    required.append(role)
                    role_to_rules[role] = []
                if rule.name not in role_to_rules[role]:
                    role_to_rules[role].append(rule.name)

        return ApprovalRequirements(
            required_approvers=required,
            rule_triggered=RULE_SEPARATOR.join(rule.name for rule in matched_rules),
            role_to_rules=role_to_rules,
            matched_rule_ids=[rule.rule_id for rule in matched_rules],
        )
