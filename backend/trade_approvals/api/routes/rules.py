"""Approval Rule API Routes - Rule catalog management"""
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from pydantic import BaseModel, Field

from ..deps import get_correlation_id_dep
from ...domain.models import ApprovalRule
from ...domain.enums import RuleCombinator
from ...domain.errors import DomainError
from ...domain.rule_fields import describe_rule
from ...services.rule_catalog_service import RuleCatalogService
from ...utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================

class CreateRuleRequest(BaseModel):
    """Request to create an approval rule"""
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    priority: int = 100
    is_enabled: bool = True
    combinator: RuleCombinator = RuleCombinator.AND
    # Validated by the catalog so malformed conditions report RULE_VALIDATION_ERROR
    conditions: List[Dict[str, Any]] = Field(default_factory=list)
    required_approvers: List[str] = Field(default_factory=list)


class UpdateRuleRequest(BaseModel):
    """Partial update of an approval rule"""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    priority: Optional[int] = None
    is_enabled: Optional[bool] = None
    combinator: Optional[RuleCombinator] = None
    conditions: Optional[List[Dict[str, Any]]] = None
    required_approvers: Optional[List[str]] = None


def _rule_response(rule: ApprovalRule) -> Dict[str, Any]:
    data = rule.model_dump(mode="json")
    data["summary"] = describe_rule(rule)
    return data


# ============================================================================
# Routes
# ============================================================================

@router.get("")
async def list_rules(
    enabled_only: bool = Query(False),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """List approval rules in evaluation order"""
    try:
        rules = RuleCatalogService().list_rules(enabled_only=enabled_only)
        return {"items": [_rule_response(r) for r in rules], "total": len(rules)}
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_rule(
    request: CreateRuleRequest,
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Create an approval rule"""
    try:
        rule = RuleCatalogService().create_rule(
            name=request.name,
            description=request.description,
            priority=request.priority,
            is_enabled=request.is_enabled,
            combinator=request.combinator,
            conditions=request.conditions,
            required_approvers=request.required_approvers
        )
        return _rule_response(rule)
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/fields")
async def get_rule_fields(
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Fact fields and operators available when authoring rules"""
    return RuleCatalogService().get_field_catalog()


@router.post("/seed")
async def seed_default_rules(
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """
    Create the default rule set

    Does nothing when rules already exist.
    """
    try:
        created = RuleCatalogService().seed_default_rules()
        return {"created": len(created), "items": [_rule_response(r) for r in created]}
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/{rule_id}")
async def get_rule(
    rule_id: str,
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Get an approval rule"""
    try:
        return _rule_response(RuleCatalogService().get_rule(rule_id))
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.put("/{rule_id}")
async def update_rule(
    rule_id: str,
    request: UpdateRuleRequest,
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Update an approval rule (only the fields sent are changed)"""
    try:
        updates = request.model_dump(exclude_unset=True)
        rule = RuleCatalogService().update_rule(rule_id, updates)
        logger.info(f"Updated approval rule: {rule_id}", extra={"rule_id": rule_id})
        return _rule_response(rule)
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.post("/{rule_id}/toggle")
async def toggle_rule(
    rule_id: str,
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Enable a disabled rule or disable an enabled one"""
    try:
        return _rule_response(RuleCatalogService().toggle_rule(rule_id))
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.delete("/{rule_id}")
async def delete_rule(
    rule_id: str,
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Delete an approval rule"""
    try:
        RuleCatalogService().delete_rule(rule_id)
        return {"rule_id": rule_id, "deleted": True}
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())
