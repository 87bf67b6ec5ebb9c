"""API test fixtures"""
import pytest
from fastapi.testclient import TestClient

from trade_approvals.main import app


@pytest.fixture
def client(mongo_db):
    with TestClient(app) as test_client:
        yield test_client
