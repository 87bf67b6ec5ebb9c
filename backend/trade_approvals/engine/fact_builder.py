"""Fact Builder - Flatten a ticket into the fact record rules are evaluated against"""
from datetime import date, datetime
from typing import Any, Dict

from ..domain.models import Ticket
from ..utils.logger import get_logger

logger = get_logger(__name__)


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (bool, int, float, str))


def normalize_yes_no(value: Any) -> Any:
    """
    Map the mixed encodings of a yes/no field onto "Yes" / "No"

    Unrecognised values are returned unchanged.
    """
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, (int, float)) and value in (0, 1):
        return "Yes" if value == 1 else "No"
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("yes", "true", "1"):
            return "Yes"
        if lowered in ("no", "false", "0"):
            return "No"
    return value


class FactBuilder:
    """Build the flat fact record of a ticket"""

    def build_facts(self, ticket: Ticket) -> Dict[str, Any]:
        """
        Build facts for rule evaluation

        Scalar ticket fields are copied as-is (dates as ISO strings, other
        nested values dropped), then derived facts are added:
        payment_trigger_combined, company_kyb_status, company_risk_rating
        and formula_b2b_lme.
        """
        facts: Dict[str, Any] = {}

        for name, value in ticket.fields.items():
            if value is None:
                continue
            if isinstance(value, (datetime, date)):
                facts[name] = value.isoformat()
            elif _is_scalar(value):
                facts[name] = value

        if "lme_action_needed" in facts:
            facts["lme_action_needed"] = normalize_yes_no(facts["lme_action_needed"])

        if isinstance(facts.get("transaction_type"), str):
            facts["transaction_type"] = facts["transaction_type"].strip().upper()

        event = facts.get("payment_trigger_event")
        timing = facts.get("payment_trigger_timing")
        if event and timing:
            facts["payment_trigger_combined"] = f"{event}_{timing}"

        if ticket.company is not None:
            if ticket.company.kyb_status:
                facts["company_kyb_status"] = ticket.company.kyb_status
            if ticket.company.risk_rating:
                facts["company_risk_rating"] = ticket.company.risk_rating

        facts["formula_b2b_lme"] = (
            facts.get("pricing_type") == "Formula"
            and facts.get("transaction_type") == "B2B"
            and facts.get("lme_action_needed") == "Yes"
        )

        logger.debug(
            f"Built {len(facts)} facts for ticket {ticket.ticket_id}",
            extra={"ticket_id": ticket.ticket_id}
        )
        return facts
