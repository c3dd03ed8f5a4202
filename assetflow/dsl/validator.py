"""Workflow template validator."""

from typing import List

from assetflow.dsl.schema import StepDefinition, TemplateDefinition


class TemplateValidator:
    """Validator for workflow templates."""

    @staticmethod
    def validate(template: TemplateDefinition) -> List[str]:
        """Validate a workflow template.

        Args:
            template: TemplateDefinition to validate

        Returns:
            List of validation errors (empty if valid)
        """
        errors: List[str] = []

        if not template.name or not template.name.strip():
            errors.append("Workflow name is required")

        if not template.workflow_type or not template.workflow_type.strip():
            errors.append("Workflow type is required")

        if not template.steps:
            errors.append("Workflow must have at least one step")
            return errors

        orders = [step.step_order for step in template.steps]
        if len(orders) != len(set(orders)):
            errors.append("Step orders must be unique")
        elif sorted(orders) != list(range(1, len(orders) + 1)):
            errors.append("Step orders must be contiguous starting at 1")

        for step in template.steps:
            step_errors = TemplateValidator._validate_step(step)
            errors.extend([f"Step {step.step_order}: {e}" for e in step_errors])

        return errors

    @staticmethod
    def _validate_step(step: StepDefinition) -> List[str]:
        errors: List[str] = []

        if not step.step_name or not step.step_name.strip():
            errors.append("Step name is required")

        return errors

    @staticmethod
    def is_valid(template: TemplateDefinition) -> bool:
        return len(TemplateValidator.validate(template)) == 0
