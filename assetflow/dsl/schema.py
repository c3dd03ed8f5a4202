"""Workflow template schema definitions."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class StepDefinition(BaseModel):
    """One approval step of a template."""

    step_order: int = Field(ge=1)
    step_name: str
    description: Optional[str] = None
    required_role: Optional[str] = None
    required_user_id: Optional[str] = None

    @field_validator("required_role", "required_user_id")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat blank approver requirements as absent."""
        if v is not None and not v.strip():
            return None
        return v

    def to_row(self, workflow_id: str) -> Dict[str, Any]:
        return {"workflow_id": workflow_id, **self.model_dump()}


class TemplateDefinition(BaseModel):
    """Complete workflow template."""

    name: str
    workflow_type: str
    description: Optional[str] = None
    is_active: bool = True
    steps: List[StepDefinition] = Field(default_factory=list)

    def to_row(self) -> Dict[str, Any]:
        """Columns of the ``workflows`` row for this template."""
        return self.model_dump(exclude={"steps"})

    def ordered_steps(self) -> List[StepDefinition]:
        return sorted(self.steps, key=lambda step: step.step_order)
