"""MongoDB Client - Connection and Collection Management"""
from typing import Any, Dict, Optional
from pymongo import MongoClient as PyMongoClient
from pymongo.database import Database
from pymongo.collection import Collection
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import ConnectionFailure

from ..config.settings import settings
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Global client instance
_client: Optional[PyMongoClient] = None
_database: Optional[Database] = None


def get_client() -> PyMongoClient:
    """Get or create MongoDB client"""
    global _client
    if _client is None:
        logger.info(f"Connecting to MongoDB: {settings.mongo_uri}")
        _client = PyMongoClient(
            settings.mongo_uri,
            serverSelectionTimeoutMS=5000,
            connectTimeoutMS=5000,
            socketTimeoutMS=30000,
        )
        # Test connection
        try:
            _client.admin.command("ping")
            logger.info("MongoDB connection successful")
        except ConnectionFailure as e:
            logger.error(f"MongoDB connection failed: {e}")
            raise
    return _client


def get_database() -> Database:
    """Get the application database"""
    global _database
    if _database is None:
        client = get_client()
        _database = client[settings.mongo_db]
        logger.info(f"Using database: {settings.mongo_db}")
    return _database


def set_database(database: Optional[Database]) -> None:
    """Point the repositories at an explicit database (tests, scripts)"""
    global _database
    _database = database


def get_collection(name: str) -> Collection:
    """Get a collection from the database"""
    db = get_database()
    return db[name]


def close_connection() -> None:
    """Close MongoDB connection"""
    global _client, _database
    if _client is not None:
        _client.close()
        _client = None
        _database = None
        logger.info("MongoDB connection closed")


def create_indexes() -> None:
    """Create all required indexes"""
    db = get_database()
    logger.info("Creating MongoDB indexes...")

    # Approval rules collection
    rules = db["approval_rules"]
    rules.create_index("rule_id", unique=True)
    rules.create_index("name", unique=True)
    rules.create_index([("is_enabled", ASCENDING), ("priority", ASCENDING)])

    # Approval requests collection
    requests = db["approval_requests"]
    requests.create_index("approval_request_id", unique=True)
    # ticket_id while pending, own id once terminal: one active request per ticket
    requests.create_index("active_key", unique=True)
    requests.create_index("ticket_id")
    requests.create_index([("status", ASCENDING), ("created_at", DESCENDING)])
    requests.create_index("required_approvers")

    # Approval actions collection (audit trail)
    actions = db["approval_actions"]
    actions.create_index("action_id", unique=True)
    # <request>:<role>:Approve for approvals: at most one approval per role
    actions.create_index("idempotency_key", unique=True)
    actions.create_index([
        ("approval_request_id", ASCENDING),
        ("sequence", ASCENDING),
        ("created_at", ASCENDING),
    ])

    # Tickets collection
    tickets = db["tickets"]
    tickets.create_index("ticket_id", unique=True)
    tickets.create_index("status")

    logger.info("MongoDB indexes created successfully")


def health_check() -> Dict[str, Any]:
    """Check MongoDB health"""
    try:
        client = get_database().client
        client.admin.command("ping")
        return {
            "status": "healthy",
            "database": settings.mongo_db,
            "connection": "ok"
        }
    except Exception as e:
        logger.error(f"MongoDB health check failed: {e}")
        return {
            "status": "unhealthy",
            "database": settings.mongo_db,
            "error": str(e)
        }
