"""
Pytest Configuration and Fixtures

Shared fixtures for all tests. Repositories run against an in-process
mongomock database, so no MongoDB server is needed.
"""

import os
import tempfile

# Settings are read once at import time
os.environ.setdefault("LOGS_PATH", tempfile.mkdtemp(prefix="trade-approvals-logs-"))
os.environ.setdefault("MONGO_DB", "trade_approvals_test")
os.environ.setdefault("SEED_DEFAULT_RULES", "false")

from typing import Any, Callable, Dict, Generator, List, Optional

import mongomock
import pytest

from trade_approvals.domain.enums import RuleCombinator
from trade_approvals.domain.models import ApprovalRule, Ticket
from trade_approvals.engine.approval_workflow import ApprovalWorkflow
from trade_approvals.repositories import mongo_client
from trade_approvals.repositories.ticket_repo import TicketRepository
from trade_approvals.services.rule_catalog_service import RuleCatalogService
from trade_approvals.services.ticket_approval_service import TicketApprovalService
from trade_approvals.utils.time import utc_now


@pytest.fixture
def mongo_db() -> Generator[Any, None, None]:
    """Fresh in-memory database with all indexes"""
    db = mongomock.MongoClient()["trade_approvals_test"]
    mongo_client.set_database(db)
    mongo_client.create_indexes()
    yield db
    mongo_client.set_database(None)


@pytest.fixture
def ticket_repo(mongo_db) -> TicketRepository:
    return TicketRepository()


@pytest.fixture
def rule_catalog(mongo_db) -> RuleCatalogService:
    return RuleCatalogService()


@pytest.fixture
def workflow(mongo_db) -> ApprovalWorkflow:
    return ApprovalWorkflow(lock_attempts=5, lock_retry_seconds=0.01)


@pytest.fixture
def ticket_service(mongo_db, workflow) -> TicketApprovalService:
    return TicketApprovalService(workflow=workflow)


@pytest.fixture
def make_ticket(ticket_repo) -> Callable[..., Ticket]:
    """Store a Draft ticket"""
    counter = {"n": 0}

    def _make(fields: Optional[Dict[str, Any]] = None, company: Optional[Dict[str, Any]] = None) -> Ticket:
        counter["n"] += 1
        now = utc_now()
        ticket = Ticket.model_validate({
            "ticket_id": f"TKT-test-{counter['n']}",
            "fields": fields or {},
            "company": company,
            "created_at": now,
            "updated_at": now,
        })
        return ticket_repo.create_ticket(ticket)

    return _make


@pytest.fixture
def make_rule() -> Callable[..., ApprovalRule]:
    """Build an in-memory rule"""

    def _make(
        rule_id: str,
        conditions: List[Dict[str, Any]],
        required_approvers: List[str],
        name: Optional[str] = None,
        combinator: RuleCombinator = RuleCombinator.AND,
        priority: int = 100,
        is_enabled: bool = True
    ) -> ApprovalRule:
        now = utc_now()
        return ApprovalRule.model_validate({
            "rule_id": rule_id,
            "name": name or f"Rule {rule_id}",
            "priority": priority,
            "is_enabled": is_enabled,
            "combinator": combinator,
            "conditions": conditions,
            "required_approvers": required_approvers,
            "created_at": now,
            "updated_at": now,
        })

    return _make
