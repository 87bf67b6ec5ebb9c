"""Domain Enums - All enumeration types"""
from enum import Enum


class TicketStatus(str, Enum):
    """Trade ticket status"""
    DRAFT = "Draft"
    PENDING_APPROVAL = "Pending Approval"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class ApprovalStatus(str, Enum):
    """Aggregate status of an approval request"""
    PENDING_APPROVAL = "Pending Approval"
    APPROVED = "Approved"
    REJECTED = "Rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not ApprovalStatus.PENDING_APPROVAL


class ApprovalActionType(str, Enum):
    """Decision a single approver role can take"""
    APPROVE = "Approve"
    REJECT = "Reject"
    REQUEST_CHANGES = "Request Changes"


class ApproverRole(str, Enum):
    """Default approver roles (the engine accepts any case-sensitive role id)"""
    HEDGING = "Hedging"
    CFO = "CFO"
    OPERATIONS = "Operations"
    MANAGEMENT = "Management"


class RuleCombinator(str, Enum):
    """How a rule's conditions are joined"""
    AND = "AND"
    OR = "OR"


class ConditionOperator(str, Enum):
    """Operators for condition evaluation"""
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    GREATER_OR_EQUAL = "greater_or_equal"
    LESS_OR_EQUAL = "less_or_equal"
    IN = "in"
    NOT_IN = "not_in"
    IS_ONE_OF = "is_one_of"


class RuleCategory(str, Enum):
    """Authoring categories for the rule field catalog"""
    PRICING = "pricing"
    PAYMENT = "payment"
    COUNTERPARTY = "counterparty"
    VOLUME = "volume"
    CUSTOM = "custom"


class FieldType(str, Enum):
    """Value type of a fact field offered in the rule builder"""
    TEXT = "text"
    NUMBER = "number"
    ENUM = "enum"
    BOOLEAN = "boolean"


# Statuses propagated from an approval request to its ticket
APPROVAL_TO_TICKET_STATUS = {
    ApprovalStatus.PENDING_APPROVAL: TicketStatus.PENDING_APPROVAL,
    ApprovalStatus.APPROVED: TicketStatus.APPROVED,
    ApprovalStatus.REJECTED: TicketStatus.REJECTED,
}
