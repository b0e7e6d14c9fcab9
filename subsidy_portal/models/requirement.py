"""
Pydantic models for requirement definitions and program rule items
"""
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, Field, ConfigDict


RequirementType = Literal["document", "condition"]

# Scalar values a requirement or rule item can compare against
RuleValue = Optional[Union[bool, int, float, str]]


class StructuredExtra(BaseModel):
    """Extra metadata stored as a JSON object or array"""
    kind: Literal["structured"] = "structured"
    data: Union[Dict[str, Any], List[Any]]

    def to_stored(self) -> Union[Dict[str, Any], List[Any]]:
        return self.data


class RawTextExtra(BaseModel):
    """Extra metadata stored as free text that is not a JSON container"""
    kind: Literal["text"] = "text"
    text: str

    def to_stored(self) -> str:
        return self.text


Extra = Annotated[Union[StructuredExtra, RawTextExtra], Field(discriminator="kind")]


class RequirementDefinition(BaseModel):
    """One atomic eligibility criterion: a document to provide or a condition to satisfy"""
    id: Optional[str] = Field(None, description="Stored requirement identity, if decoded from a row")
    type: RequirementType = Field("document", description="Requirement kind")
    name: str = Field("", description="Requirement name")
    description: Optional[str] = Field(None, description="Provider supplied description")
    field_key: Optional[str] = Field(None, description="Applicant field a condition refers to")
    operator: Optional[str] = Field(None, description="Comparison operator of a condition")
    value: RuleValue = Field(None, description="Value a condition compares against")
    extra: Optional[Extra] = Field(None, description="Free-form metadata")

    def to_stored(self) -> Dict[str, Any]:
        """Convert back to the plain mapping persisted in program documents"""
        stored: Dict[str, Any] = {
            "type": self.type,
            "name": self.name,
            "description": self.description,
            "field_key": self.field_key,
            "operator": self.operator,
            "value": self.value,
        }
        if self.extra is not None:
            stored["extra"] = self.extra.to_stored()
        return stored

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "type": "condition",
                "name": "Household income",
                "field_key": "income",
                "operator": "less_or_equal",
                "value": "25000",
                "extra": {"kind": "structured", "data": {"note": "Latest tax return"}}
            }
        }
    )


class RuleItem(BaseModel):
    """Rule condition attached to a program and used for matching"""
    field: str = Field("", description="Applicant field")
    operator: str = Field("equals", description="Comparison operator")
    value: RuleValue = Field(None, description="Expected value")
    note: Optional[str] = Field(None, description="Explanation shown to applicants")
