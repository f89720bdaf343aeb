"""Workflow step tree, context and condition engine."""

from .branching import iter_loop_bindings, resolve_loop_items, select_if_branch, select_switch_case
from .builder import DuplicateStepError, StepNotFoundError, StepsBuilder, WorkflowBuilder
from .context import (
    ERROR_KEY,
    INSTANCE_ID_KEY,
    STEP_ID_KEY,
    WORKFLOW_ID_KEY,
    Context,
    ContextKeyError,
    ContextTypeError,
)
from .expressions import (
    ConditionEvaluator,
    EvaluationError,
    ExpressionError,
    ExpressionSyntaxError,
    MalformedExpressionError,
    TypeMismatchError,
    UnknownVariableError,
    evaluate_condition,
)
from .models import (
    ActionStep,
    Case,
    Else,
    ElseIf,
    ForLoopStep,
    IfStep,
    ParallelStep,
    Parameter,
    Result,
    Step,
    StepType,
    SwitchStep,
    Workflow,
    WorkflowNotFoundError,
    WorkflowValidationError,
    step_from_dict,
    workflow_from_dict,
)
from .traversal import collect_descendants, find_parent, find_step_by_id, get_descendants_by_id
from .validator import ValidationIssue, WorkflowValidator, ensure_valid, validate_workflow

__all__ = [
    "ActionStep",
    "Case",
    "ConditionEvaluator",
    "Context",
    "ContextKeyError",
    "ContextTypeError",
    "DuplicateStepError",
    "ERROR_KEY",
    "Else",
    "ElseIf",
    "EvaluationError",
    "ExpressionError",
    "ExpressionSyntaxError",
    "ForLoopStep",
    "INSTANCE_ID_KEY",
    "IfStep",
    "MalformedExpressionError",
    "ParallelStep",
    "Parameter",
    "Result",
    "STEP_ID_KEY",
    "Step",
    "StepNotFoundError",
    "StepType",
    "StepsBuilder",
    "SwitchStep",
    "TypeMismatchError",
    "UnknownVariableError",
    "ValidationIssue",
    "WORKFLOW_ID_KEY",
    "Workflow",
    "WorkflowBuilder",
    "WorkflowNotFoundError",
    "WorkflowValidationError",
    "WorkflowValidator",
    "collect_descendants",
    "ensure_valid",
    "evaluate_condition",
    "find_parent",
    "find_step_by_id",
    "get_descendants_by_id",
    "iter_loop_bindings",
    "resolve_loop_items",
    "select_if_branch",
    "select_switch_case",
    "step_from_dict",
    "validate_workflow",
    "workflow_from_dict",
]
