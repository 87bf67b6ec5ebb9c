"""Tests for RuleCatalogService"""
import pytest

from trade_approvals.domain.enums import RuleCombinator
from trade_approvals.domain.errors import (
    AlreadyExistsError, RuleNotFoundError, RuleValidationError
)
from trade_approvals.domain.models import ListCondition
from trade_approvals.domain.rule_fields import describe_rule

FORMULA = [{"field": "pricing_type", "operator": "equals", "value": "Formula"}]


def create(catalog, name="Formula pricing", **overrides):
    params = {
        "name": name,
        "required_approvers": ["Hedging", "CFO"],
        "conditions": FORMULA,
    }
    params.update(overrides)
    return catalog.create_rule(**params)


class TestCreateRule:

    def test_create_and_get(self, rule_catalog):
        rule = create(rule_catalog, description="Formula deals need hedging sign-off", priority=5)

        stored = rule_catalog.get_rule(rule.rule_id)

        assert stored.name == "Formula pricing"
        assert stored.priority == 5
        assert stored.conditions[0].operator == "equals"
        assert stored.required_approvers == ["Hedging", "CFO"]

    def test_list_condition_round_trips(self, rule_catalog):
        rule = create(rule_catalog, conditions=[
            {"field": "payment_trigger_event", "operator": "in", "values": ["Inspection", "BL release"]}
        ])
        stored = rule_catalog.get_rule(rule.rule_id)
        assert isinstance(stored.conditions[0], ListCondition)
        assert stored.conditions[0].values == ["Inspection", "BL release"]

    def test_requires_an_approver(self, rule_catalog):
        with pytest.raises(RuleValidationError):
            create(rule_catalog, required_approvers=[])

    def test_blank_roles_do_not_count(self, rule_catalog):
        with pytest.raises(RuleValidationError):
            create(rule_catalog, required_approvers=["  "])

    def test_duplicate_roles_are_collapsed(self, rule_catalog):
        rule = create(rule_catalog, required_approvers=["CFO", "CFO", "Hedging"])
        assert rule.required_approvers == ["CFO", "Hedging"]

    def test_enabled_rule_needs_conditions(self, rule_catalog):
        with pytest.raises(RuleValidationError):
            create(rule_catalog, conditions=[])

    def test_disabled_rule_may_be_empty(self, rule_catalog):
        rule = create(rule_catalog, conditions=[], is_enabled=False)
        assert rule.conditions == []

    @pytest.mark.parametrize("condition", [
        {"field": "pricing_type", "operator": "equals", "values": ["Formula"]},
        {"field": "pricing_type", "operator": "in", "value": "Formula"},
        {"field": "pricing_type", "operator": "in", "values": []},
        {"field": "pricing_type", "operator": "resembles", "value": "Formula"},
        {"operator": "equals", "value": "Formula"},
    ])
    def test_malformed_condition(self, rule_catalog, condition):
        with pytest.raises(RuleValidationError):
            create(rule_catalog, conditions=[condition])

    def test_names_are_unique(self, rule_catalog):
        create(rule_catalog)
        with pytest.raises(AlreadyExistsError):
            create(rule_catalog)


class TestUpdateRule:

    def test_partial_update(self, rule_catalog):
        rule = create(rule_catalog)

        updated = rule_catalog.update_rule(rule.rule_id, {"priority": 1, "combinator": RuleCombinator.OR})

        assert updated.priority == 1
        assert updated.combinator == RuleCombinator.OR
        assert updated.name == rule.name
        assert updated.conditions == rule.conditions

    def test_update_is_validated(self, rule_catalog):
        rule = create(rule_catalog)
        with pytest.raises(RuleValidationError):
            rule_catalog.update_rule(rule.rule_id, {"required_approvers": []})
        assert rule_catalog.get_rule(rule.rule_id).required_approvers == ["Hedging", "CFO"]

    def test_rename_onto_existing_name(self, rule_catalog):
        create(rule_catalog, name="A")
        rule = create(rule_catalog, name="B")
        with pytest.raises(AlreadyExistsError):
            rule_catalog.update_rule(rule.rule_id, {"name": "A"})

    def test_unknown_fields(self, rule_catalog):
        rule = create(rule_catalog)
        with pytest.raises(RuleValidationError):
            rule_catalog.update_rule(rule.rule_id, {"rule_id": "RULE-hijack"})

    def test_unknown_rule(self, rule_catalog):
        with pytest.raises(RuleNotFoundError):
            rule_catalog.update_rule("RULE-missing", {"priority": 1})

    def test_toggle(self, rule_catalog):
        rule = create(rule_catalog)
        assert rule_catalog.toggle_rule(rule.rule_id).is_enabled is False
        assert rule_catalog.toggle_rule(rule.rule_id).is_enabled is True

    def test_cannot_enable_empty_rule(self, rule_catalog):
        rule = create(rule_catalog, conditions=[], is_enabled=False)
        with pytest.raises(RuleValidationError):
            rule_catalog.toggle_rule(rule.rule_id)


class TestListAndDelete:

    def test_list_in_priority_order(self, rule_catalog):
        create(rule_catalog, name="Late", priority=50)
        create(rule_catalog, name="Early", priority=1)
        create(rule_catalog, name="Off", priority=0, is_enabled=False)

        assert [r.name for r in rule_catalog.list_rules()] == ["Off", "Early", "Late"]
        assert [r.name for r in rule_catalog.list_enabled_rules()] == ["Early", "Late"]

    def test_delete(self, rule_catalog):
        rule = create(rule_catalog)
        rule_catalog.delete_rule(rule.rule_id)
        with pytest.raises(RuleNotFoundError):
            rule_catalog.get_rule(rule.rule_id)
        with pytest.raises(RuleNotFoundError):
            rule_catalog.delete_rule(rule.rule_id)

    def test_corrupted_rule_is_skipped(self, rule_catalog, mongo_db):
        create(rule_catalog, name="Good")
        mongo_db["approval_rules"].insert_one({
            "rule_id": "RULE-broken",
            "name": "Broken",
            "priority": 0,
            "is_enabled": True,
            "combinator": "AND",
            "conditions": [{"field": "pricing_type", "operator": "equals"}],
            "required_approvers": ["CFO"],
        })

        assert [r.name for r in rule_catalog.list_enabled_rules()] == ["Good"]


class TestSeedAndCatalog:

    def test_seed_default_rules(self, rule_catalog):
        created = rule_catalog.seed_default_rules()

        assert [r.name for r in created] == [
            "Non-standard pricing detected",
            "Deal requires hedge",
            "Counterparty KYB not approved",
        ]
        assert [r.name for r in rule_catalog.list_rules()] == [r.name for r in created]

    def test_seed_is_idempotent(self, rule_catalog):
        rule_catalog.seed_default_rules()
        assert rule_catalog.seed_default_rules() == []
        assert len(rule_catalog.list_rules()) == 3

    def test_seed_skipped_when_rules_exist(self, rule_catalog):
        create(rule_catalog)
        assert rule_catalog.seed_default_rules() == []
        assert len(rule_catalog.list_rules()) == 1

    def test_field_catalog(self, rule_catalog):
        catalog = rule_catalog.get_field_catalog()
        categories = {c["category"]: c for c in catalog["categories"]}

        assert set(categories) == {"pricing", "payment", "counterparty", "volume", "custom"}
        field_names = [f["name"] for f in categories["counterparty"]["fields"]]
        assert "company_kyb_status" in field_names
        assert catalog["operators"]["is_one_of"] == "is one of"

    def test_describe_rule(self, rule_catalog):
        rule = create(rule_catalog, combinator=RuleCombinator.OR, conditions=[
            {"field": "pricing_type", "operator": "equals", "value": "Index"},
            {"field": "quantity", "operator": "greater_than", "value": 500},
        ])
        assert describe_rule(rule) == "Pricing Type equals Index OR Quantity (MT) greater than 500"
