"""Tests for /api/v1/tickets and /api/v1/approvals"""
import asyncio
import time

import httpx
import pytest

from trade_approvals.main import app
from trade_approvals.repositories.approval_repo import ApprovalRepository

TICKETS = "/api/v1/tickets"
APPROVALS = "/api/v1/approvals"


@pytest.fixture
def seeded(client):
    client.post("/api/v1/approval-rules/seed")


@pytest.fixture
def submitted(client, seeded):
    """A ticket that needs Hedging, CFO and Operations"""
    ticket = client.post(TICKETS, json={
        "fields": {"pricing_type": "Fixed", "payment_trigger_event": "BL release", "payment_trigger_timing": "Before"},
        "company": {"name": "Acme Metals", "kyb_status": "Needs Review"},
    }).json()
    result = client.post(f"{TICKETS}/{ticket['ticket_id']}/submit").json()
    return result["approval_request"]


def act(client, approval_request_id, role, action, comment=None):
    return client.post(
        f"{APPROVALS}/{approval_request_id}/actions",
        json={"approver_role": role, "action": action, "comment": comment},
    )


def test_ticket_registration(client):
    created = client.post(TICKETS, json={"ticket_id": "TKT-42", "fields": {"pricing_type": "Index"}})
    assert created.status_code == 201
    assert created.json()["status"] == "Draft"

    assert client.get(f"{TICKETS}/TKT-42").json()["fields"] == {"pricing_type": "Index"}
    assert client.post(TICKETS, json={"ticket_id": "TKT-42"}).status_code == 409
    assert client.get(f"{TICKETS}/TKT-missing").status_code == 404


def test_evaluate_is_a_dry_run(client, seeded):
    client.post(TICKETS, json={"ticket_id": "TKT-1", "fields": {"pricing_type": "Index"},
                               "company": {"kyb_status": "Approved"}})

    evaluation = client.post(f"{TICKETS}/TKT-1/evaluate").json()

    assert evaluation["requirements"]["required_approvers"] == ["Hedging", "CFO"]
    assert client.get(APPROVALS).json()["items"] == []


def test_submit_opens_request(client, submitted):
    assert submitted["status"] == "Pending Approval"
    assert submitted["required_approvers"] == ["Hedging", "CFO", "Operations"]
    assert submitted["rule_triggered"] == "Non-standard pricing detected + Counterparty KYB not approved"

    ticket = client.get(f"{TICKETS}/{submitted['ticket_id']}").json()
    assert ticket["status"] == "Pending Approval"


def test_approval_flow(client, submitted):
    request_id = submitted["approval_request_id"]

    first = act(client, request_id, "Hedging", "Approve")
    assert first.status_code == 200
    assert first.json()["status_changed"] is False

    act(client, request_id, "Operations", "Request Changes", "Upload KYB pack")
    act(client, request_id, "Operations", "Approve")
    last = act(client, request_id, "CFO", "Approve").json()

    assert last["status_changed"] is True
    assert last["approval_request"]["status"] == "Approved"
    assert client.get(f"{TICKETS}/{submitted['ticket_id']}").json()["status"] == "Approved"

    actions = client.get(f"{APPROVALS}/{request_id}/actions").json()["items"]
    assert [(a["approver_role"], a["action"]) for a in actions] == [
        ("Hedging", "Approve"),
        ("Operations", "Request Changes"),
        ("Operations", "Approve"),
        ("CFO", "Approve"),
    ]

    detail = client.get(f"{APPROVALS}/{request_id}").json()
    assert detail["approved_roles"] == ["Hedging", "CFO", "Operations"]
    assert detail["pending_roles"] == []


def test_reject_and_terminal_state(client, submitted):
    request_id = submitted["approval_request_id"]

    rejected = act(client, request_id, "CFO", "Reject", "Payment terms too loose")
    assert rejected.json()["approval_request"]["status"] == "Rejected"

    late = act(client, request_id, "Hedging", "Approve")
    assert late.status_code == 409
    assert late.json()["detail"]["error"]["code"] == "ALREADY_TERMINAL"

    status = client.get(f"{APPROVALS}/{request_id}/status").json()
    assert status["status"] == "Rejected"


def test_command_errors(client, submitted):
    request_id = submitted["approval_request_id"]
    act(client, request_id, "Hedging", "Approve")

    duplicate = act(client, request_id, "Hedging", "Approve")
    assert duplicate.status_code == 409
    assert duplicate.json()["detail"]["error"]["code"] == "DUPLICATE_APPROVAL"

    wrong_role = act(client, request_id, "Management", "Approve")
    assert wrong_role.status_code == 400
    assert wrong_role.json()["detail"]["error"]["code"] == "INVALID_ROLE"

    missing = act(client, "APR-missing", "CFO", "Approve")
    assert missing.status_code == 404

    bad_action = act(client, request_id, "CFO", "Escalate")
    assert bad_action.status_code == 400
    assert bad_action.json()["error"]["code"] == "VALIDATION_ERROR"


def test_direct_request_creation(client):
    client.post(TICKETS, json={"ticket_id": "TKT-7"})

    created = client.post(APPROVALS, json={
        "ticket_id": "TKT-7",
        "required_approvers": ["Management"],
        "rule_triggered": "Manual escalation",
    })
    assert created.status_code == 201

    again = client.post(APPROVALS, json={
        "ticket_id": "TKT-7",
        "required_approvers": ["Management"],
        "rule_triggered": "Manual escalation",
    })
    assert again.status_code == 409
    assert again.json()["detail"]["error"]["code"] == "ACTIVE_REQUEST_EXISTS"


def test_direct_request_refused_for_approved_ticket(client):
    client.post(TICKETS, json={"ticket_id": "TKT-8", "fields": {"pricing_type": "Fixed"}})
    submitted = client.post(f"{TICKETS}/TKT-8/submit").json()
    assert submitted["ticket"]["status"] == "Approved"

    response = client.post(APPROVALS, json={
        "ticket_id": "TKT-8",
        "required_approvers": ["Management"],
        "rule_triggered": "Manual escalation",
    })

    assert response.status_code == 409
    assert response.json()["detail"]["error"]["code"] == "INVALID_STATE"
    assert client.get(f"{TICKETS}/TKT-8").json()["status"] == "Approved"


def test_busy_request_does_not_stall_other_requests(client, submitted):
    approval_request_id = submitted["approval_request_id"]
    ApprovalRepository().acquire_lock(approval_request_id, "LOCK-other-worker", 60)

    async def scenario():
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as ac:
            started = time.monotonic()
            busy = asyncio.ensure_future(ac.post(
                f"{APPROVALS}/{approval_request_id}/actions",
                json={"approver_role": "CFO", "action": "Approve"},
            ))
            await asyncio.sleep(0.1)
            stats = await ac.get(f"{APPROVALS}/stats")
            stats_elapsed = time.monotonic() - started
            return await busy, stats, stats_elapsed

    busy, stats, stats_elapsed = asyncio.run(scenario())

    assert stats.status_code == 200
    assert stats_elapsed < 1.0
    assert busy.status_code == 409
    assert busy.json()["detail"]["error"]["code"] == "CONCURRENCY_CONFLICT"


def test_list_filters_and_stats(client, submitted):
    act(client, submitted["approval_request_id"], "CFO", "Reject")

    by_role = client.get(APPROVALS, params={"role": "Operations"}).json()["items"]
    assert [r["approval_request_id"] for r in by_role] == [submitted["approval_request_id"]]
    assert client.get(APPROVALS, params={"role": "Management"}).json()["items"] == []
    assert len(client.get(APPROVALS, params={"rule": "kyb"}).json()["items"]) == 1
    assert client.get(APPROVALS, params={"status": "Pending Approval"}).json()["items"] == []

    stats = client.get(f"{APPROVALS}/stats").json()
    assert stats == {"total": 1, "by_status": {"Pending Approval": 0, "Approved": 0, "Rejected": 1}}


def test_correlation_id_is_echoed(client):
    response = client.get(APPROVALS, headers={"X-Correlation-Id": "COR-test-1"})
    assert response.headers["X-Correlation-Id"] == "COR-test-1"


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] in ("healthy", "degraded")
