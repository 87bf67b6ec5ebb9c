"""Ticket Repository - Data access for trade tickets"""
from typing import Any, Dict, Optional
from pymongo.collection import Collection
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from .mongo_client import get_collection
from ..domain.models import Ticket
from ..domain.enums import TicketStatus
from ..domain.errors import TicketNotFoundError, AlreadyExistsError
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


class TicketRepository:
    """Repository for ticket operations"""

    def __init__(self):
        self._tickets: Collection = get_collection("tickets")

    def create_ticket(self, ticket: Ticket) -> Ticket:
        """Create a new ticket"""
        doc = ticket.model_dump(mode="json", exclude={"created_at", "updated_at"})
        doc["created_at"] = ticket.created_at
        doc["updated_at"] = ticket.updated_at
        doc["_id"] = ticket.ticket_id

        try:
            self._tickets.insert_one(doc)
        except DuplicateKeyError:
            raise AlreadyExistsError(
                f"Ticket {ticket.ticket_id} already exists",
                details={"ticket_id": ticket.ticket_id}
            )
        logger.info(f"Created ticket: {ticket.ticket_id}", extra={"ticket_id": ticket.ticket_id})
        return ticket

    def get_ticket(self, ticket_id: str) -> Optional[Ticket]:
        """Get ticket by ID"""
        doc = self._tickets.find_one({"ticket_id": ticket_id})
        if doc:
            doc.pop("_id", None)
            return Ticket.model_validate(doc)
        return None

    def get_ticket_or_raise(self, ticket_id: str) -> Ticket:
        """Get ticket by ID or raise error"""
        ticket = self.get_ticket(ticket_id)
        if not ticket:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")
        return ticket

    def update_status(self, ticket_id: str, status: TicketStatus) -> Ticket:
        """Set the ticket status"""
        updates: Dict[str, Any] = {"status": status.value, "updated_at": utc_now()}

        result = self._tickets.find_one_and_update(
            {"ticket_id": ticket_id},
            {"$set": updates},
            return_document=ReturnDocument.AFTER
        )

        if result is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")

        result.pop("_id", None)
        logger.info(
            f"Ticket {ticket_id} is now {status.value}",
            extra={"ticket_id": ticket_id, "status": status.value}
        )
        return Ticket.model_validate(result)
