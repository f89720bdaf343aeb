"""Structural validation of workflow step trees.

The validator accumulates every problem it finds in one pass. A container
step with a defect is still descended into, so nested problems are reported
alongside the parent's.
"""

import logging
from dataclasses import dataclass

from ..config import get_config
from .expressions import ExpressionSyntaxError, to_postfix, tokenize
from .models import STEP_CLASSES, Step, Workflow, WorkflowValidationError

logger = logging.getLogger(__name__)


@dataclass
class ValidationIssue:
    """A single structural problem in a workflow."""

    message: str
    step_id: str | None = None
    path: str = ""

    def __str__(self):
        return f"{self.path}: {self.message}" if self.path else self.message


class WorkflowValidator:
    """Validates workflow step trees."""

    def __init__(self, strict: bool | None = None):
        self.strict = get_config().strict_validation if strict is None else strict
        self.errors: list[ValidationIssue] = []
        self.warnings: list[ValidationIssue] = []
        self._seen_ids: dict[str, str] = {}

    def validate(self, workflow: Workflow) -> bool:
        """Validate a workflow definition.

        Args:
            workflow: The workflow to check

        Returns:
            True if valid, False otherwise
        """
        self.errors = []
        self.warnings = []
        self._seen_ids = {}

        if not isinstance(workflow, Workflow):
            self.errors.append(ValidationIssue(f"Workflow must be a Workflow instance, got {type(workflow).__name__}"))
            return False

        if not workflow.name:
            self.errors.append(ValidationIssue("missing name for workflow", path="workflow"))

        if not workflow.steps:
            self.errors.append(ValidationIssue("missing steps for workflow", path="workflow"))

        self._validate_steps(workflow.steps, "steps")

        self._apply_strict()

        if self.errors:
            logger.info(f"Workflow '{workflow.name}' failed validation with {len(self.errors)} error(s)")
        else:
            logger.debug(f"Workflow '{workflow.name}' is valid ({len(self.warnings)} warning(s))")

        return len(self.errors) == 0

    def validate_step(self, step: Step, path: str = "step") -> bool:
        """Validate a single step subtree outside of a workflow."""
        self.errors = []
        self.warnings = []
        self._seen_ids = {}
        self._validate_step(step, path)
        self._apply_strict()
        return len(self.errors) == 0

    def _apply_strict(self):
        """Move warnings into errors when validating strictly."""
        if self.strict and self.warnings:
            self.errors.extend(self.warnings)
            self.warnings = []

    def get_validation_error(self) -> str:
        """Get a formatted validation error message."""
        if not self.errors:
            return ""

        error_msg = "Workflow validation failed:\n"
        for error in self.errors:
            error_msg += f"  - {error}\n"

        if self.warnings:
            error_msg += "\nWarnings:\n"
            for warning in self.warnings:
                error_msg += f"  - {warning}\n"

        return error_msg.rstrip()

    def _error(self, message: str, step: Step | None, path: str):
        self.errors.append(ValidationIssue(message, step.id if step is not None else None, path))

    def _warning(self, message: str, step: Step | None, path: str):
        self.warnings.append(ValidationIssue(message, step.id if step is not None else None, path))

    def _validate_steps(self, steps: list[Step], path: str):
        for i, step in enumerate(steps):
            self._validate_step(step, f"{path}[{i}]")

    def _validate_step(self, step: Step, path: str):
        """Validate a single step and its children."""
        if not isinstance(step, Step) or type(step) not in STEP_CLASSES.values():
            step_id = getattr(step, "id", None)
            self.errors.append(ValidationIssue(f"invalid step type for step {step_id}", step_id, path))
            return

        self._check_id(step, path)

        validator_method = f"_validate_{step.step_type.name.lower()}_step"
        getattr(self, validator_method)(step, path)

    def _check_id(self, step: Step, path: str):
        if not step.id:
            self._warning("step has no id and cannot be looked up", step, path)
            return

        first_path = self._seen_ids.get(step.id)
        if first_path is not None:
            self._error(f"duplicate step id {step.id} (first defined at {first_path})", step, path)
        else:
            self._seen_ids[step.id] = path

    def _check_condition(self, condition: str, step: Step, path: str, label: str):
        if not condition:
            self._error(f"missing condition for {label} step {step.id}", step, path)
            return

        try:
            to_postfix(tokenize(condition))
        except ExpressionSyntaxError as e:
            self._error(f"invalid condition for {label} step {step.id}: {e}", step, path)

    def _validate_action_step(self, step, path: str):
        """Validate action step."""
        if not step.name:
            self._error(f"missing action configuration for step {step.id}", step, path)

    def _validate_if_step(self, step, path: str):
        """Validate if step and all of its branches."""
        self._check_condition(step.condition, step, f"{path}.if", "if")

        if not step.steps:
            self._error(f"missing steps for if step {step.id}", step, f"{path}.if")
        self._validate_steps(step.steps, f"{path}.if.steps")

        for i, branch in enumerate(step.else_ifs):
            branch_path = f"{path}.if.else_ifs[{i}]"
            self._check_condition(branch.condition, step, branch_path, "else-if")
            if not branch.steps:
                self._error(f"missing steps for else-if step {step.id}", step, branch_path)
            self._validate_steps(branch.steps, f"{branch_path}.steps")

        if step.else_branch is not None:
            else_path = f"{path}.if.else"
            if not step.else_branch.steps:
                self._error(f"missing steps for else step {step.id}", step, else_path)
            self._validate_steps(step.else_branch.steps, f"{else_path}.steps")

    def _validate_parallel_step(self, step, path: str):
        """Validate parallel step."""
        if not step.steps:
            self._error(f"missing steps for parallel step {step.id}", step, f"{path}.parallel")
        self._validate_steps(step.steps, f"{path}.parallel.steps")

    def _validate_for_loop_step(self, step, path: str):
        """Validate for-loop step."""
        loop_path = f"{path}.for"

        if not step.items_var and not step.items:
            self._error(
                f"missing items or items_var for for-loop step {step.id}, at least one of them is required",
                step,
                loop_path,
            )
        elif step.items_var and step.items:
            self._warning(
                f"for-loop step {step.id} sets both items and items_var; items_var takes precedence",
                step,
                loop_path,
            )

        if not step.loop_var and not step.index_var:
            self._warning(f"for-loop step {step.id} binds neither loop_var nor index_var", step, loop_path)

        if not step.steps:
            self._error(f"missing steps for for-loop step {step.id}", step, loop_path)
        self._validate_steps(step.steps, f"{loop_path}.steps")

    def _validate_switch_step(self, step, path: str):
        """Validate switch step and every case."""
        switch_path = f"{path}.switch"

        if not step.variable:
            self._error(f"missing variable for switch step {step.id}", step, switch_path)

        if not step.cases:
            self._error(f"missing cases for switch step {step.id}", step, switch_path)

        if len(step.default_cases()) > 1:
            self._warning(f"switch step {step.id} has more than one default case; the first one is used", step, switch_path)

        for i, case in enumerate(step.cases):
            case_path = f"{switch_path}.cases[{i}]"
            if not case.default and case.value is None:
                self._error(f"missing value for case block in switch step {step.id}", step, case_path)
            if not case.steps:
                self._error(f"missing steps for case block in switch step {step.id}", step, case_path)
            self._validate_steps(case.steps, f"{case_path}.steps")


def validate_workflow(workflow: Workflow, strict: bool | None = None) -> list[ValidationIssue]:
    """Validate a workflow and return every error found (empty when valid)."""
    validator = WorkflowValidator(strict=strict)
    validator.validate(workflow)
    return list(validator.errors)


def ensure_valid(workflow: Workflow, strict: bool | None = None) -> None:
    """Validate a workflow and raise if it has errors.

    Raises:
        WorkflowValidationError: Carrying every issue found
    """
    validator = WorkflowValidator(strict=strict)
    if not validator.validate(workflow):
        raise WorkflowValidationError(validator.get_validation_error(), validator.errors)
