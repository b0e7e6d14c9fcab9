"""
API routes for display-ready eligibility rules
"""
from typing import List

from fastapi import APIRouter, Depends

from ..dependencies import Services, get_services
from ..models.rule import RuleAggregate

router = APIRouter(prefix="/rules", tags=["rules"])


@router.get("/", response_model=List[RuleAggregate])
async def get_rules(services: Services = Depends(get_services)):
    """
    Get every rule with its conditions and provider, newest first
    """
    return await services.rules.fetch_rules()


@router.get("/provider/{provider_id}", response_model=List[RuleAggregate])
async def get_provider_rules(provider_id: str, services: Services = Depends(get_services)):
    """
    Get the rules authored by one provider
    """
    return await services.rules.fetch_rules_by_provider(provider_id)
