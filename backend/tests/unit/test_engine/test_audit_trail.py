"""Tests for AuditTrail ordering"""
from datetime import datetime, timedelta, timezone

import pytest

from trade_approvals.domain.enums import ApprovalActionType, ApprovalStatus
from trade_approvals.domain.errors import DuplicateApprovalError
from trade_approvals.domain.models import ApprovalAction
from trade_approvals.engine.approval_workflow import derive_status
from trade_approvals.engine.audit_trail import AuditTrail, idempotency_key_for

REQUEST_ID = "APR-audit-1"
T0 = datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)


def make_action(role, action, sequence, created_at):
    action_id = f"ACT-{sequence}"
    return ApprovalAction(
        action_id=action_id,
        approval_request_id=REQUEST_ID,
        approver_role=role,
        action=action,
        sequence=sequence,
        idempotency_key=idempotency_key_for(REQUEST_ID, role, action, action_id),
        created_at=created_at
    )


@pytest.fixture
def trail(mongo_db):
    return AuditTrail()


def test_equal_timestamps_keep_insertion_order(trail):
    for sequence, role in enumerate(["CFO", "Hedging", "Operations"], start=1):
        trail.append(make_action(role, ApprovalActionType.REQUEST_CHANGES, sequence, T0))

    actions = trail.list_for(REQUEST_ID)

    assert [a.sequence for a in actions] == [1, 2, 3]
    assert [a.approver_role for a in actions] == ["CFO", "Hedging", "Operations"]


def test_skewed_clock_does_not_reorder_replay(trail):
    # The second writer's clock runs behind the first's
    trail.append(make_action("CFO", ApprovalActionType.REJECT, 1, T0))
    trail.append(make_action("Hedging", ApprovalActionType.APPROVE, 2, T0 - timedelta(seconds=5)))
    trail.append(make_action("CFO", ApprovalActionType.APPROVE, 3, T0 - timedelta(seconds=4)))

    actions = trail.list_for(REQUEST_ID)

    assert [a.sequence for a in actions] == [1, 2, 3]
    assert derive_status(["Hedging", "CFO"], actions) == ApprovalStatus.REJECTED


def test_second_approval_by_role_is_refused(trail):
    trail.append(make_action("CFO", ApprovalActionType.APPROVE, 1, T0))

    with pytest.raises(DuplicateApprovalError):
        trail.append(make_action("CFO", ApprovalActionType.APPROVE, 2, T0))

    assert len(trail.list_for(REQUEST_ID)) == 1


def test_unknown_request_has_empty_trail(trail):
    assert trail.list_for("APR-none") == []
