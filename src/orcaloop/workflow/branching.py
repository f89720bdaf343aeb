"""Branch selection for control flow steps.

These helpers answer "which children run next" for a given context. They do
not execute anything; scheduling belongs to the orchestrator.
"""

import logging
from collections.abc import Iterator
from typing import Any

from .context import Context, ContextTypeError
from .expressions import ConditionEvaluator, get_evaluator, values_equal
from .models import Case, ForLoopStep, IfStep, Step, SwitchStep

logger = logging.getLogger(__name__)


def select_if_branch(step: IfStep, context: Context, evaluator: ConditionEvaluator | None = None) -> list[Step]:
    """Return the steps of the first branch whose condition holds.

    Conditions are tried in declared order (if, then each else-if). When none
    holds the else branch is taken if present, otherwise no steps.

    Raises:
        ExpressionError: If a condition that is reached fails to parse or evaluate
    """
    evaluator = evaluator or get_evaluator()

    for index, (condition, steps) in enumerate(step.branches()):
        if condition is None:
            logger.debug(f"If step {step.id}: taking else branch")
            return steps
        if evaluator.evaluate(condition, context):
            logger.debug(f"If step {step.id}: branch {index} matched '{condition}'")
            return steps

    logger.debug(f"If step {step.id}: no branch taken")
    return []


def select_switch_case(step: SwitchStep, context: Context) -> Case | None:
    """Return the case matching the switch variable, the default case, or None.

    Raises:
        ContextKeyError: If the switch variable is not in the context
    """
    current = context.get(step.variable)

    for case in step.cases:
        if not case.default and values_equal(case.value, current):
            return case

    for case in step.cases:
        if case.default:
            return case

    return None


def resolve_loop_items(step: ForLoopStep, context: Context) -> list[Any]:
    """Return the items a for-loop iterates over.

    ``items_var`` takes precedence over inline ``items``.

    Raises:
        ContextKeyError: If items_var names a missing key
        ContextTypeError: If items_var does not hold a list
    """
    if step.items_var:
        items = context.get(step.items_var)
        if not isinstance(items, list):
            raise ContextTypeError(
                f"For-loop step {step.id}: '{step.items_var}' holds {type(items).__name__}, expected a list"
            )
        return list(items)
    return list(step.items)


def iter_loop_bindings(step: ForLoopStep, context: Context) -> Iterator[dict[str, Any]]:
    """Yield the loop and index variable values for each iteration."""
    for index, item in enumerate(resolve_loop_items(step, context)):
        bindings: dict[str, Any] = {}
        if step.loop_var:
            bindings[step.loop_var] = item
        if step.index_var:
            bindings[step.index_var] = index
        yield bindings
