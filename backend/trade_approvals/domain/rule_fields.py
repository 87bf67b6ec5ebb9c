"""Rule Field Catalog - Fact fields and operators offered to rule authors"""
import json
from typing import Dict, List, Optional

from .enums import RuleCategory, FieldType, ConditionOperator
from .models import (
    ApprovalRule, Condition, ListCondition, FieldDefinition, RuleCategoryDefinition
)


OPERATOR_LABELS: Dict[str, str] = {
    ConditionOperator.EQUALS.value: "equals",
    ConditionOperator.NOT_EQUALS.value: "does not equal",
    ConditionOperator.GREATER_THAN.value: "greater than",
    ConditionOperator.LESS_THAN.value: "less than",
    ConditionOperator.GREATER_OR_EQUAL.value: "greater than or equal to",
    ConditionOperator.LESS_OR_EQUAL.value: "less than or equal to",
    ConditionOperator.IN.value: "is one of",
    ConditionOperator.IS_ONE_OF.value: "is one of",
    ConditionOperator.NOT_IN.value: "is not one of",
}

_ENUM_OPS = ["equals", "not_equals", "in", "not_in", "is_one_of"]
_EQUALITY_OPS = ["equals", "not_equals"]
_NUMBER_OPS = [
    "equals", "not_equals", "greater_than", "less_than",
    "greater_or_equal", "less_or_equal",
]


def _field(name, label, field_type, operators, enum_values=None) -> FieldDefinition:
    return FieldDefinition(
        name=name,
        label=label,
        field_type=field_type,
        operators=operators,
        enum_values=enum_values,
    )


RULE_CATEGORIES: List[RuleCategoryDefinition] = [
    RuleCategoryDefinition(
        category=RuleCategory.PRICING,
        label="Pricing Rules",
        description="Rules based on pricing type, fixation method, or LME requirements",
        fields=[
            _field("pricing_type", "Pricing Type", FieldType.ENUM, _ENUM_OPS,
                   ["Fixed", "Formula", "Index"]),
            _field("lme_action_needed", "LME Action Needed", FieldType.ENUM, _EQUALITY_OPS,
                   ["Yes", "No"]),
            _field("formula_b2b_lme", "Formula B2B deal needing LME action", FieldType.BOOLEAN,
                   _EQUALITY_OPS),
            _field("fixation_method", "Fixation Method", FieldType.ENUM, _ENUM_OPS,
                   ["1-day", "5-day avg", "Month avg", "Custom"]),
            _field("price", "Price", FieldType.NUMBER, _NUMBER_OPS),
            _field("signed_price", "Signed Price", FieldType.NUMBER, _NUMBER_OPS),
        ],
    ),
    RuleCategoryDefinition(
        category=RuleCategory.PAYMENT,
        label="Payment Terms",
        description="Rules based on payment triggers, timing, or down payment terms",
        fields=[
            _field("payment_trigger_event", "Payment Trigger Event", FieldType.ENUM, _ENUM_OPS, [
                "ATA", "BL confirmed", "BL issuance", "BL release", "Booking",
                "Customs Clearance", "Delivery Note Issued (CMR)",
                "DP (documents against payment)", "ETA", "ETD (vessel departure)",
                "Fixation", "Inspection", "Invoice", "Loading", "Other - custom",
                "Sales Order Signed Date", "Seal",
            ]),
            _field("payment_trigger_timing", "Payment Trigger Timing", FieldType.ENUM,
                   _EQUALITY_OPS, ["Before", "After"]),
            _field("payment_trigger_combined", "Payment Trigger (Event + Timing)",
                   FieldType.TEXT, _EQUALITY_OPS),
            _field("down_payment_amount_percent", "Down Payment %", FieldType.NUMBER, _NUMBER_OPS),
        ],
    ),
    RuleCategoryDefinition(
        category=RuleCategory.COUNTERPARTY,
        label="Counterparty Rules",
        description="Rules based on company KYB status or risk rating",
        fields=[
            _field("company_kyb_status", "Company KYB Status", FieldType.ENUM, _ENUM_OPS,
                   ["Approved", "Rejected", "Needs Review"]),
            _field("company_risk_rating", "Company Risk Rating", FieldType.TEXT, _EQUALITY_OPS),
        ],
    ),
    RuleCategoryDefinition(
        category=RuleCategory.VOLUME,
        label="Volume & Quantity",
        description="Rules based on trade quantities or volumes",
        fields=[
            _field("quantity", "Quantity (MT)", FieldType.NUMBER, _NUMBER_OPS),
            _field("signed_volume", "Signed Volume", FieldType.NUMBER, _NUMBER_OPS),
        ],
    ),
    RuleCategoryDefinition(
        category=RuleCategory.CUSTOM,
        label="Custom Rule",
        description="Build a custom rule with any field and condition",
        fields=[
            _field("transaction_type", "Transaction Type", FieldType.ENUM, _EQUALITY_OPS,
                   ["B2B", "Warehouse"]),
            _field("commodity_type", "Commodity Type", FieldType.ENUM, _ENUM_OPS, [
                "Aluminium", "Mixed metals", "Zinc", "Magnesium", "Lead",
                "Nickel/stainless/hi-temp", "Copper", "Brass", "Steel", "Iron",
            ]),
            _field("incoterms", "Incoterms", FieldType.ENUM, _ENUM_OPS, [
                "CFR", "CIF", "CIP", "CPT", "DAP", "DDP", "DPU", "EWX", "FAS", "FCA", "FOB",
            ]),
        ],
    ),
]


def find_field(name: str) -> Optional[FieldDefinition]:
    """Look up a catalog field by fact name"""
    for category in RULE_CATEGORIES:
        for field in category.fields:
            if field.name == name:
                return field
    return None


def describe_condition(condition: Condition) -> str:
    """Render a condition as text, e.g. 'Pricing Type equals Formula'"""
    field = find_field(condition.field)
    label = field.label if field else condition.field
    operator = OPERATOR_LABELS.get(condition.operator, condition.operator)
    if isinstance(condition, ListCondition):
        return f"{label} {operator} {json.dumps(condition.values)}"
    return f"{label} {operator} {condition.value}"


def describe_rule(rule: ApprovalRule) -> str:
    """Render a rule's condition set joined by its combinator"""
    joiner = f" {rule.combinator.value} "
    return joiner.join(describe_condition(c) for c in rule.conditions)
