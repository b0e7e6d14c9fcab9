"""
Display-ready rule aggregates
"""
from datetime import datetime
from typing import Dict, List, Optional, Union
from pydantic import BaseModel, Field, ConfigDict

from .common import Identity
from .requirement import RequirementDefinition

UNKNOWN_PROVIDER_NAME = "Unknown Provider"


class ProviderSnapshot(BaseModel):
    """Provider fields embedded in a rule for display"""
    agency_name: str = UNKNOWN_PROVIDER_NAME
    logo: str
    status: Optional[str] = None


class RuleAggregate(BaseModel):
    """Rule joined with its requirements and provider, ready for rendering"""
    id: Identity
    rule_name: str = ""
    description: Optional[str] = None
    classification: Optional[str] = None
    subsidy_amount: Optional[float] = Field(None, description="None when not specified; zero is a valid amount")
    provider_id: Optional[Identity] = None
    created_at: Optional[Union[datetime, str]] = None
    conditions: Dict[str, str] = Field(default_factory=dict, description="Label -> human readable summary")
    requirements: List[RequirementDefinition] = Field(default_factory=list)
    provider: ProviderSnapshot

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 12,
                "rule_name": "Low income household support",
                "classification": "Housing",
                "subsidy_amount": 1500.0,
                "provider_id": 3,
                "conditions": {
                    "Document: Payslip": "Provide Payslip",
                    "Condition: Income cap": "income less or equal 25000"
                },
                "provider": {"agency_name": "City Welfare Office", "logo": "/logos/city.png", "status": "approved"}
            }
        }
    )
