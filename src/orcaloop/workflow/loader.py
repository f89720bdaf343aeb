"""Workflow loader with name-based resolution and YAML parsing."""

import logging
from pathlib import Path
from typing import Any

import yaml

from ..config import get_config
from ..yaml_loader import YAMLLoader, get_yaml_loader
from .models import Workflow, WorkflowNotFoundError, WorkflowValidationError, workflow_from_dict
from .validator import WorkflowValidator

logger = logging.getLogger(__name__)

WORKFLOW_EXTENSIONS = (".yaml", ".yml", ".json")


class WorkflowLoader:
    """Loads workflow documents from a definitions directory."""

    def __init__(self, definitions_path: str | None = None, yaml_loader: YAMLLoader | None = None):
        """Initialize the workflow loader.

        Args:
            definitions_path: Directory holding workflow documents (defaults to configuration)
            yaml_loader: Loader used to read documents (defaults to the shared cached loader)
        """
        self.definitions_path = Path(definitions_path or get_config().workflow_definitions_path)
        self.yaml_loader = yaml_loader or get_yaml_loader()

    def load(self, workflow_name: str) -> Workflow:
        """Load a workflow by name.

        Args:
            workflow_name: File name without extension (e.g., "order-processing")

        Returns:
            Parsed and validated workflow

        Raises:
            WorkflowNotFoundError: If no document with that name exists
            WorkflowValidationError: If the document fails validation
        """
        candidates = [self.definitions_path / f"{workflow_name}{ext}" for ext in WORKFLOW_EXTENSIONS]
        for path in candidates:
            if path.exists():
                return self.load_file(path)

        searched = "\n".join(f"  - {path}" for path in candidates)
        raise WorkflowNotFoundError(f"Workflow '{workflow_name}' not found. Searched:\n{searched}")

    def load_file(self, file_path: str | Path) -> Workflow:
        """Load, parse and validate a workflow document.

        Raises:
            WorkflowNotFoundError: If the file does not exist
            WorkflowValidationError: If the file cannot be parsed or fails validation
        """
        try:
            data = self.yaml_loader.load_yaml(file_path)
        except FileNotFoundError as e:
            raise WorkflowNotFoundError(f"Workflow file not found: {file_path}") from e
        except yaml.YAMLError as e:
            raise WorkflowValidationError(f"YAML parsing error in {file_path}: {e}") from e
        except ValueError as e:
            raise WorkflowValidationError(f"Error loading workflow from {file_path}: {e}") from e

        workflow = parse_workflow_data(data)
        logger.info(f"Loaded workflow '{workflow.name}' ({len(workflow.steps)} top-level steps) from {file_path}")
        return workflow

    def list_available_workflows(self) -> list[dict[str, Any]]:
        """List the valid workflows in the definitions directory."""
        workflows = []

        if not self.definitions_path.is_dir():
            return workflows

        for file_path in sorted(self.definitions_path.iterdir()):
            if file_path.suffix not in WORKFLOW_EXTENSIONS:
                continue
            try:
                workflow = self.load_file(file_path)
            except (WorkflowNotFoundError, WorkflowValidationError) as e:
                logger.debug(f"Skipping invalid workflow file {file_path}: {e}")
                continue

            workflows.append(
                {
                    "id": workflow.id,
                    "name": workflow.name,
                    "description": workflow.description,
                    "version": workflow.version,
                    "path": str(file_path),
                }
            )

        return workflows


def parse_workflow_data(data: Any) -> Workflow:
    """Convert a parsed document into a validated workflow.

    Raises:
        WorkflowValidationError: If the document is malformed or invalid
    """
    if not isinstance(data, dict):
        raise WorkflowValidationError("Workflow must be a YAML object")

    workflow = workflow_from_dict(data)

    validator = WorkflowValidator()
    if not validator.validate(workflow):
        raise WorkflowValidationError(validator.get_validation_error(), validator.errors)

    for warning in validator.warnings:
        logger.warning(f"Workflow '{workflow.name}': {warning}")

    return workflow


class WorkflowParser:
    """Static parser for workflow YAML content."""

    @staticmethod
    def parse(yaml_content: str) -> Workflow:
        """Parse YAML content into a validated workflow.

        Raises:
            WorkflowValidationError: If the content is not valid YAML or fails validation
        """
        try:
            data = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            raise WorkflowValidationError(f"Invalid YAML syntax: {e}") from e

        return parse_workflow_data(data)
