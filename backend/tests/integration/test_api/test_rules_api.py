"""Tests for /api/v1/approval-rules"""

BASE = "/api/v1/approval-rules"

FORMULA_RULE = {
    "name": "Formula pricing",
    "priority": 10,
    "combinator": "AND",
    "conditions": [{"field": "pricing_type", "operator": "equals", "value": "Formula"}],
    "required_approvers": ["Hedging", "CFO"],
}


def error_code(response):
    return response.json()["detail"]["error"]["code"]


def test_rule_lifecycle(client):
    created = client.post(BASE, json=FORMULA_RULE)
    assert created.status_code == 201
    rule = created.json()
    assert rule["summary"] == "Pricing Type equals Formula"

    fetched = client.get(f"{BASE}/{rule['rule_id']}")
    assert fetched.status_code == 200
    assert fetched.json()["required_approvers"] == ["Hedging", "CFO"]

    updated = client.put(f"{BASE}/{rule['rule_id']}", json={"priority": 1})
    assert updated.status_code == 200
    assert updated.json()["priority"] == 1
    assert updated.json()["name"] == "Formula pricing"

    toggled = client.post(f"{BASE}/{rule['rule_id']}/toggle")
    assert toggled.json()["is_enabled"] is False

    listing = client.get(BASE, params={"enabled_only": True})
    assert listing.json()["items"] == []

    deleted = client.delete(f"{BASE}/{rule['rule_id']}")
    assert deleted.json() == {"rule_id": rule["rule_id"], "deleted": True}
    assert client.get(f"{BASE}/{rule['rule_id']}").status_code == 404


def test_invalid_condition_is_rejected(client):
    payload = dict(FORMULA_RULE, conditions=[{"field": "pricing_type", "operator": "in", "value": "Formula"}])

    response = client.post(BASE, json=payload)

    assert response.status_code == 400
    assert error_code(response) == "RULE_VALIDATION_ERROR"


def test_rule_without_approvers_is_rejected(client):
    response = client.post(BASE, json=dict(FORMULA_RULE, required_approvers=[]))
    assert response.status_code == 400


def test_duplicate_name_conflicts(client):
    client.post(BASE, json=FORMULA_RULE)
    response = client.post(BASE, json=FORMULA_RULE)
    assert response.status_code == 409
    assert error_code(response) == "ALREADY_EXISTS"


def test_unknown_rule(client):
    response = client.get(f"{BASE}/RULE-missing")
    assert response.status_code == 404
    assert error_code(response) == "RULE_NOT_FOUND"


def test_seed_and_fields(client):
    first = client.post(f"{BASE}/seed")
    assert first.json()["created"] == 3
    assert client.post(f"{BASE}/seed").json()["created"] == 0

    names = [r["name"] for r in client.get(BASE).json()["items"]]
    assert names == ["Non-standard pricing detected", "Deal requires hedge", "Counterparty KYB not approved"]

    fields = client.get(f"{BASE}/fields").json()
    assert {c["category"] for c in fields["categories"]} == {"pricing", "payment", "counterparty", "volume", "custom"}


def test_schema_errors_use_error_envelope(client):
    response = client.post(BASE, json={"required_approvers": ["CFO"]})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"
