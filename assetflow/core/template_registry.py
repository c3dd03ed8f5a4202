"""Workflow template auto-registration from the workflows directory."""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from assetflow.dsl.parser import TemplateParser
from assetflow.dsl.schema import TemplateDefinition
from assetflow.dsl.validator import TemplateValidator
from assetflow.errors import AssetflowError, ConfigurationError
from assetflow.services.workflows import WorkflowService

log = logging.getLogger(__name__)

REGISTERED = "registered"
UPDATED = "updated"
FAILED = "failed"


def discover_template_files(directory: str | Path) -> List[Path]:
    """Discover all YAML template files in a directory.

    Returns:
        Sorted list of Path objects for ``*.yaml`` and ``*.yml`` files
    """
    workflows_dir = Path(directory)
    if not workflows_dir.exists():
        log.warning(f"Workflows directory not found: {workflows_dir}")
        return []

    template_files = sorted(list(workflows_dir.glob("*.yaml")) + list(workflows_dir.glob("*.yml")))
    log.info(f"Discovered {len(template_files)} workflow template(s) in {workflows_dir}")
    return template_files


async def register_template(
    template: TemplateDefinition,
    workflow_service: WorkflowService,
    created_by: Optional[str] = None,
) -> Tuple[str, Dict[str, Any]]:
    """Create a template, or update it and replace its steps if the name exists.

    Args:
        template: Parsed template
        workflow_service: WorkflowService used for persistence
        created_by: User recorded on newly created templates

    Returns:
        Tuple of ("registered" or "updated", workflow row)

    Raises:
        ConfigurationError: If the template fails validation
        PassthroughDatabaseError: If a write fails
    """
    errors = TemplateValidator.validate(template)
    if errors:
        raise ConfigurationError(f"Invalid workflow template: {', '.join(errors)}", {"errors": errors})

    existing = (await workflow_service.get_workflow_by_name(template.name)).unwrap()
    if existing:
        workflow = (await workflow_service.update_workflow(existing["id"], template.to_row())).unwrap()
        (await workflow_service.delete_workflow_steps(existing["id"])).unwrap()
        outcome = UPDATED
    else:
        workflow = (await workflow_service.create_workflow({**template.to_row(), "created_by": created_by})).unwrap()
        outcome = REGISTERED

    for step in template.ordered_steps():
        (await workflow_service.create_workflow_step(step.to_row(workflow["id"]))).unwrap()

    return outcome, workflow


async def register_template_from_file(
    yaml_file: Path,
    workflow_service: WorkflowService,
) -> Tuple[str, str]:
    """Register or update a template from a YAML file.

    Returns:
        Tuple of (outcome, message) where outcome is registered, updated
        or failed
    """
    try:
        template = TemplateParser.parse_file(yaml_file)
        outcome, _ = await register_template(template, workflow_service)
    except (FileNotFoundError, ValueError) as e:
        log.error(f"Failed to parse workflow template {yaml_file.name}: {e}")
        return FAILED, str(e)
    except AssetflowError as e:
        log.error(f"Failed to register workflow template {yaml_file.name}: {e.message}")
        return FAILED, e.message

    log.info(f"{outcome.capitalize()} workflow '{template.name}' ({len(template.steps)} steps) from {yaml_file.name}")
    return outcome, f"{outcome.capitalize()} workflow '{template.name}'"


async def register_all_templates(workflow_service: WorkflowService, directory: str | Path) -> dict:
    """Register all templates from a directory.

    Returns:
        Dictionary with registration results:
        {
            "total": int,
            "registered": int,
            "updated": int,
            "failed": int,
            "details": List[dict]
        }
    """
    template_files = discover_template_files(directory)
    results: Dict[str, Any] = {
        "total": len(template_files),
        REGISTERED: 0,
        UPDATED: 0,
        FAILED: 0,
        "details": [],
    }

    for yaml_file in template_files:
        outcome, message = await register_template_from_file(yaml_file, workflow_service)
        results[outcome] += 1
        results["details"].append(
            {
                "file": yaml_file.name,
                "success": outcome != FAILED,
                "message": message,
            }
        )

    log.info(
        f"Workflow registration complete: {results[REGISTERED]} registered, "
        f"{results[UPDATED]} updated, {results[FAILED]} failed out of {results['total']} total"
    )
    return results
