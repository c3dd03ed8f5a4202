"""YAML workflow template parser."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from assetflow.dsl.schema import TemplateDefinition


class TemplateParser:
    """Turns YAML documents into TemplateDefinition objects."""

    @staticmethod
    def parse_yaml(yaml_content: str) -> TemplateDefinition:
        """Parse YAML string into TemplateDefinition.

        Args:
            yaml_content: YAML document with name, workflow_type and steps

        Returns:
            Parsed TemplateDefinition

        Raises:
            ValueError: If YAML is invalid or doesn't match schema
        """
        try:
            data = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML: {e}") from e
        return TemplateParser.parse_mapping(data)

    @staticmethod
    def parse_mapping(data: Any) -> TemplateDefinition:
        """Validate already loaded YAML data against the template schema."""
        if not data:
            raise ValueError("Empty workflow template")
        if not isinstance(data, dict):
            raise ValueError("Workflow template must be a mapping")
        try:
            return TemplateDefinition.model_validate(data)
        except ValidationError as e:
            raise ValueError(f"Invalid workflow template: {e}") from e

    @staticmethod
    def parse_file(file_path: str | Path) -> TemplateDefinition:
        """Parse a template file.

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If YAML is invalid or doesn't match schema
        """
        path = Path(file_path)
        if not path.is_file():
            raise FileNotFoundError(f"Workflow template not found: {file_path}")
        return TemplateParser.parse_yaml(path.read_text(encoding="utf-8"))

    @staticmethod
    def to_yaml(template: TemplateDefinition) -> str:
        # Optional fields left unset are omitted
        return yaml.dump(
            template.model_dump(mode="json", exclude_none=True),
            default_flow_style=False,
            sort_keys=False,
        )
