"""Domain Models - Pydantic schemas for all entities"""
from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, Field, ConfigDict

from .enums import (
    TicketStatus, ApprovalStatus, ApprovalActionType, RuleCombinator,
    RuleCategory, FieldType
)


# Scalar values a condition can compare against
ScalarValue = Union[bool, int, float, str]


# ============================================================================
# Condition (tagged by operator arity)
# ============================================================================

class ValueCondition(BaseModel):
    """Condition comparing a fact against a single scalar"""
    model_config = ConfigDict(extra="forbid")

    field: str = Field(..., min_length=1, description="Fact field to evaluate")
    operator: Literal[
        "equals", "not_equals",
        "greater_than", "less_than",
        "greater_or_equal", "less_or_equal",
    ]
    value: ScalarValue = Field(..., description="Value to compare against")


class ListCondition(BaseModel):
    """Condition testing a fact for membership in a list"""
    model_config = ConfigDict(extra="forbid")

    field: str = Field(..., min_length=1, description="Fact field to evaluate")
    operator: Literal["in", "not_in", "is_one_of"]
    values: List[ScalarValue] = Field(..., min_length=1, description="Accepted values")


Condition = Annotated[Union[ValueCondition, ListCondition], Field(discriminator="operator")]


# ============================================================================
# Approval Rule
# ============================================================================

class ApprovalRule(BaseModel):
    """User-authored rule mapping a condition set to required approver roles"""
    model_config = ConfigDict(extra="ignore")

    rule_id: str
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    priority: int = Field(default=100, description="Lower values are evaluated and displayed first")
    is_enabled: bool = Field(default=True)
    combinator: RuleCombinator = Field(default=RuleCombinator.AND)
    conditions: List[Condition] = Field(default_factory=list)
    required_approvers: List[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class ApprovalRequirements(BaseModel):
    """Union of the approver roles demanded by all matched rules"""
    required_approvers: List[str] = Field(default_factory=list)
    rule_triggered: str = ""
    role_to_rules: Dict[str, List[str]] = Field(default_factory=dict)
    matched_rule_ids: List[str] = Field(default_factory=list)

    @property
    def requires_approval(self) -> bool:
        return bool(self.required_approvers)


# ============================================================================
# Approval Request & Actions
# ============================================================================

class ApprovalRequest(BaseModel):
    """Per-ticket approval workflow instance"""
    model_config = ConfigDict(extra="ignore")  # Lease fields live on the stored document only

    approval_request_id: str
    ticket_id: str
    required_approvers: List[str] = Field(..., min_length=1)
    rule_triggered: str
    role_to_rules: Dict[str, List[str]] = Field(default_factory=dict)
    status: ApprovalStatus = Field(default=ApprovalStatus.PENDING_APPROVAL)
    version: int = Field(default=1)
    created_at: datetime
    updated_at: datetime
    decided_at: Optional[datetime] = None


class ApprovalAction(BaseModel):
    """One role's decision on an approval request (append-only)"""
    model_config = ConfigDict(extra="ignore")

    action_id: str
    approval_request_id: str
    approver_role: str
    action: ApprovalActionType
    comment: Optional[str] = None
    sequence: int = Field(..., ge=1, description="Insertion order within the request")
    idempotency_key: str
    created_at: datetime


class ApprovalActionResult(BaseModel):
    """Outcome of one submitted approval action"""
    request: ApprovalRequest
    action: ApprovalAction
    previous_status: ApprovalStatus

    @property
    def status_changed(self) -> bool:
        return self.request.status != self.previous_status


class ApprovalProgress(BaseModel):
    """Read model combining a request with its audit trail"""
    request: ApprovalRequest
    actions: List[ApprovalAction] = Field(default_factory=list)
    approved_roles: List[str] = Field(default_factory=list)
    pending_roles: List[str] = Field(default_factory=list)


# ============================================================================
# Ticket (external collaborator)
# ============================================================================

class CompanySnapshot(BaseModel):
    """Counterparty attributes copied onto the ticket"""
    model_config = ConfigDict(extra="allow")

    company_id: Optional[str] = None
    name: Optional[str] = None
    kyb_status: Optional[str] = None
    risk_rating: Optional[str] = None


class Ticket(BaseModel):
    """Trade ticket as seen by the approval engine"""
    model_config = ConfigDict(extra="ignore")

    ticket_id: str
    status: TicketStatus = Field(default=TicketStatus.DRAFT)
    fields: Dict[str, Any] = Field(default_factory=dict)
    company: Optional[CompanySnapshot] = None
    created_at: datetime
    updated_at: datetime


# ============================================================================
# Rule field catalog
# ============================================================================

class FieldDefinition(BaseModel):
    """A fact field offered to rule authors"""
    name: str
    label: str
    field_type: FieldType
    operators: List[str]
    enum_values: Optional[List[str]] = None


class RuleCategoryDefinition(BaseModel):
    """Group of related fact fields"""
    category: RuleCategory
    label: str
    description: str
    fields: List[FieldDefinition]
