"""Ticket Approval Service - Route submitted tickets through the approval rules"""
from typing import Any, Dict, Optional

from ..domain.models import Ticket, CompanySnapshot, ApprovalRequirements
from ..domain.enums import TicketStatus
from ..domain.errors import InvalidStateError
from ..engine.fact_builder import FactBuilder
from ..engine.rule_matcher import RuleMatcher
from ..engine.requirement_resolver import ApprovalRequirementResolver
from ..engine.approval_workflow import ApprovalWorkflow
from ..repositories.ticket_repo import TicketRepository
from ..utils.idgen import generate_ticket_id
from ..utils.time import utc_now
from ..utils.logger import get_logger
from .rule_catalog_service import RuleCatalogService

logger = get_logger(__name__)

# Tickets can be (re)submitted for approval from these statuses
SUBMITTABLE_STATUSES = (TicketStatus.DRAFT, TicketStatus.REJECTED)


class TicketApprovalService:
    """Service for ticket registration and approval submission"""

    def __init__(
        self,
        ticket_repo: Optional[TicketRepository] = None,
        rule_catalog: Optional[RuleCatalogService] = None,
        workflow: Optional[ApprovalWorkflow] = None
    ):
        self.ticket_repo = ticket_repo or TicketRepository()
        self.rule_catalog = rule_catalog or RuleCatalogService()
        self.workflow = workflow or ApprovalWorkflow(ticket_repo=self.ticket_repo)
        self.fact_builder = FactBuilder()
        self.matcher = RuleMatcher()
        self.resolver = ApprovalRequirementResolver()

    def register_ticket(
        self,
        fields: Dict[str, Any],
        company: Optional[Dict[str, Any]] = None,
        ticket_id: Optional[str] = None
    ) -> Ticket:
        """Store a ticket in Draft so it can be submitted"""
        now = utc_now()
        ticket = Ticket(
            ticket_id=ticket_id or generate_ticket_id(),
            status=TicketStatus.DRAFT,
            fields=fields,
            company=CompanySnapshot.model_validate(company) if company else None,
            created_at=now,
            updated_at=now
        )
        return self.ticket_repo.create_ticket(ticket)

    def get_ticket(self, ticket_id: str) -> Ticket:
        return self.ticket_repo.get_ticket_or_raise(ticket_id)

    def evaluate_ticket(self, ticket_id: str) -> Dict[str, Any]:
        """
        Dry run: which rules a ticket triggers and who would have to approve

        Nothing is persisted.
        """
        ticket = self.ticket_repo.get_ticket_or_raise(ticket_id)
        facts, requirements = self._resolve(ticket)
        return {
            "ticket_id": ticket.ticket_id,
            "facts": facts,
            "requires_approval": requirements.requires_approval,
            "requirements": requirements.model_dump(),
        }

    def submit_ticket(self, ticket_id: str) -> Dict[str, Any]:
        """
        Submit a ticket for approval

        When rules match, an approval request is opened and the ticket moves
        to Pending Approval; otherwise the ticket is approved directly.
        """
        ticket = self.ticket_repo.get_ticket_or_raise(ticket_id)

        if ticket.status not in SUBMITTABLE_STATUSES:
            raise InvalidStateError(
                f"Ticket in status {ticket.status.value} cannot be submitted for approval",
                details={"ticket_id": ticket_id, "status": ticket.status.value}
            )

        _, requirements = self._resolve(ticket)

        approval_request = None
        if requirements.requires_approval:
            approval_request = self.workflow.create_request(
                ticket_id=ticket_id,
                required_approvers=requirements.required_approvers,
                rule_triggered=requirements.rule_triggered,
                role_to_rules=requirements.role_to_rules
            )
        else:
            self.ticket_repo.update_status(ticket_id, TicketStatus.APPROVED)
            logger.info(
                f"Ticket {ticket_id} matched no approval rules, approved directly",
                extra={"ticket_id": ticket_id, "status": TicketStatus.APPROVED.value}
            )

        return {
            "ticket": self.ticket_repo.get_ticket_or_raise(ticket_id),
            "approval_request": approval_request,
            "requirements": requirements,
        }

    def _resolve(self, ticket: Ticket):
        facts = self.fact_builder.build_facts(ticket)
        matched = self.matcher.match(self.rule_catalog.list_enabled_rules(), facts)
        requirements: ApprovalRequirements = self.resolver.resolve(matched)
        return facts, requirements
