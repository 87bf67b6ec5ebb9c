"""Approval Engine - Rule evaluation and the approval state machine"""
from .condition_evaluator import ConditionEvaluator
from .rule_matcher import RuleMatcher
from .requirement_resolver import ApprovalRequirementResolver
from .fact_builder import FactBuilder
from .audit_trail import AuditTrail
from .approval_workflow import ApprovalWorkflow, derive_status

__all__ = [
    "ConditionEvaluator",
    "RuleMatcher",
    "ApprovalRequirementResolver",
    "FactBuilder",
    "AuditTrail",
    "ApprovalWorkflow",
    "derive_status",
]
