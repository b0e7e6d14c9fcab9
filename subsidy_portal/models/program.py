"""
Pydantic models for provider-authored programs and model training results
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, Field, ConfigDict

from .common import Identity
from .requirement import RequirementDefinition, RuleItem


class Program(BaseModel):
    """Subsidy program with its requirements and matching rules"""
    id: str = Field(..., description="Program identity, always a string")
    provider_id: Optional[Identity] = Field(None, description="Owning provider")
    name: str = Field("", description="Program name")
    category: Optional[str] = Field(None, description="Program category")
    description: Optional[str] = Field(None, description="Program description")
    requirements: List[RequirementDefinition] = Field(default_factory=list)
    rules: List[RuleItem] = Field(default_factory=list)
    created_at: Optional[Union[datetime, str]] = None
    updated_at: Optional[Union[datetime, str]] = None


class ProgramInput(BaseModel):
    """Insert/update payload for a program"""
    provider_id: Identity = Field(..., description="Owning provider")
    name: str = Field(..., description="Program name")
    category: Optional[str] = None
    description: Optional[str] = None
    requirements: List[RequirementDefinition] = Field(default_factory=list)
    rules: List[RuleItem] = Field(default_factory=list)
    updated_at: Optional[datetime] = None

    def to_stored(self) -> Dict[str, Any]:
        stored: Dict[str, Any] = {
            "provider_id": self.provider_id,
            "name": self.name,
            "category": self.category,
            "description": self.description,
            "requirements": [requirement.to_stored() for requirement in self.requirements],
            "rules": [rule.model_dump() for rule in self.rules],
        }
        if self.updated_at is not None:
            stored["updated_at"] = self.updated_at
        return stored

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "provider_id": 3,
                "name": "Rural Housing Grant",
                "category": "Housing",
                "description": "One-off grant for first-time rural home owners",
                "requirements": [
                    {"type": "document", "name": "Proof of residence"},
                    {"type": "condition", "name": "Income cap", "field_key": "income",
                     "operator": "less_or_equal", "value": 25000}
                ],
                "rules": [{"field": "age", "operator": "greater_or_equal", "value": 18}]
            }
        }
    )


class TrainingResultInput(BaseModel):
    """Output of an offline model training run for a program"""
    program_id: Identity
    accuracy: Optional[float] = None
    feature_schema: Optional[List[str]] = None
    rules_text: Optional[str] = None
    rules_for_generator: Optional[str] = None
    numbered_notes: Optional[List[str]] = None
    file_path: Optional[str] = None
    csv_path: Optional[str] = None


class TrainingResult(BaseModel):
    """Stored training result row"""
    id: Identity
    program_id: Identity
    accuracy: Optional[float] = None
    features: Optional[List[str]] = None
    rules_summary: Optional[str] = None
    notes: Optional[str] = None
    model_path: Optional[str] = None
    csv_path: Optional[str] = None
    created_at: Optional[Union[datetime, str]] = None

    model_config = ConfigDict(protected_namespaces=())
