"""Fluent builders for workflow step trees.

Usage:
    workflow = (
        WorkflowBuilder()
        .id("orders")
        .name("order-processing")
        .add_action("validate", "validate_order")
        .add_if("check", "total > 100", ActionStep(id="ship", name="ship_order"))
        .add_else("check", ActionStep(id="reject", name="reject_order"))
        .build()
    )

Every step added, including nested children, is tracked by id so later calls
can attach steps to an existing container. Ids must be unique.
"""

from typing import Any

from .expressions import values_equal
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
    SwitchStep,
    Workflow,
)
from .traversal import iter_steps


class DuplicateStepError(ValueError):
    """Raised when a step id is already used in the builder."""

    pass


class StepNotFoundError(LookupError):
    """Raised when a builder call targets an unknown step id."""

    pass


class StepsBuilder:
    """Builds an ordered list of steps."""

    def __init__(self):
        self._steps: list[Step] = []
        self._tracker: dict[str, Step] = {}

    def _track(self, *steps: Step):
        """Register steps and all of their descendants by id."""
        subtree = list(iter_steps(steps))
        seen: set[str] = set()
        for step in subtree:
            if not step.id:
                continue
            if step.id in self._tracker or step.id in seen:
                raise DuplicateStepError(f"Step id '{step.id}' is already used")
            seen.add(step.id)
        for step in subtree:
            if step.id:
                self._tracker[step.id] = step

    def _lookup(self, step_id: str, expected: type[Step]) -> Any:
        step = self._tracker.get(step_id)
        if step is None:
            raise StepNotFoundError(f"No step with id '{step_id}'")
        if not isinstance(step, expected):
            raise StepNotFoundError(f"Step '{step_id}' is a {step.step_type.value} step, not {expected.step_type.value}")
        return step

    def get_step(self, step_id: str) -> Step | None:
        """Return a tracked step by id."""
        return self._tracker.get(step_id)

    def add_step(self, step: Step) -> "StepsBuilder":
        """Append an already constructed step."""
        self._track(step)
        self._steps.append(step)
        return self

    def add_action(
        self,
        step_id: str,
        name: str,
        parameters: list[Parameter] | None = None,
        results: list[Result] | None = None,
    ) -> "StepsBuilder":
        """Append an action step."""
        return self.add_step(
            ActionStep(
                id=step_id,
                name=name,
                action_id=step_id,
                parameters=list(parameters or []),
                results=list(results or []),
            )
        )

    def add_parallel(self, step_id: str, *steps: Step) -> "StepsBuilder":
        """Append a group of steps that may run concurrently."""
        return self.add_step(ParallelStep(id=step_id, steps=list(steps)))

    def add_for(
        self,
        step_id: str,
        *steps: Step,
        loop_var: str = "",
        index_var: str = "",
        items_var: str = "",
        items: list[Any] | None = None,
    ) -> "StepsBuilder":
        """Append a for-loop over ``items_var`` or inline ``items``."""
        return self.add_step(
            ForLoopStep(
                id=step_id,
                loop_var=loop_var,
                index_var=index_var,
                items_var=items_var,
                items=list(items or []),
                steps=list(steps),
            )
        )

    def add_if(self, step_id: str, condition: str, *steps: Step) -> "StepsBuilder":
        """Append an if step whose primary branch holds ``steps``."""
        return self.add_step(IfStep(id=step_id, condition=condition, steps=list(steps)))

    def add_else_if(self, if_step_id: str, condition: str, *steps: Step) -> "StepsBuilder":
        """Append an else-if branch to an existing if step."""
        if_step = self._lookup(if_step_id, IfStep)
        self._track(*steps)
        if_step.else_ifs.append(ElseIf(condition=condition, steps=list(steps)))
        return self

    def add_else(self, if_step_id: str, *steps: Step) -> "StepsBuilder":
        """Add steps to the else branch of an existing if step, creating it if needed."""
        if_step = self._lookup(if_step_id, IfStep)
        self._track(*steps)
        if if_step.else_branch is None:
            if_step.else_branch = Else()
        if_step.else_branch.steps.extend(steps)
        return self

    def add_switch(self, step_id: str, variable: str, cases: list[Case] | None = None) -> "StepsBuilder":
        """Append a switch step on a context variable."""
        return self.add_step(SwitchStep(id=step_id, variable=variable, cases=list(cases or [])))

    def add_steps_to_for(self, for_step_id: str, *steps: Step) -> "StepsBuilder":
        """Append steps to the body of an existing for-loop."""
        loop = self._lookup(for_step_id, ForLoopStep)
        self._track(*steps)
        loop.steps.extend(steps)
        return self

    def add_steps_to_switch_case(self, switch_step_id: str, case_value: Any, *steps: Step) -> "StepsBuilder":
        """Append steps to the case matching ``case_value``, creating the case if needed."""
        switch = self._lookup(switch_step_id, SwitchStep)
        self._track(*steps)
        for case in switch.cases:
            if not case.default and values_equal(case.value, case_value):
                case.steps.extend(steps)
                return self
        switch.cases.append(Case(value=case_value, steps=list(steps)))
        return self

    def add_steps_to_switch_default(self, switch_step_id: str, *steps: Step) -> "StepsBuilder":
        """Append steps to the default case, creating it if needed."""
        switch = self._lookup(switch_step_id, SwitchStep)
        self._track(*steps)
        defaults = switch.default_cases()
        if defaults:
            defaults[0].steps.extend(steps)
        else:
            switch.cases.append(Case(default=True, steps=list(steps)))
        return self

    def build(self) -> list[Step]:
        """Return the accumulated top-level steps."""
        return list(self._steps)


class WorkflowBuilder(StepsBuilder):
    """Builds a complete workflow."""

    def __init__(self):
        super().__init__()
        self._workflow = Workflow(name="")

    def id(self, workflow_id: str) -> "WorkflowBuilder":
        self._workflow.id = workflow_id
        return self

    def name(self, name: str) -> "WorkflowBuilder":
        self._workflow.name = name
        return self

    def version(self, version: int) -> "WorkflowBuilder":
        self._workflow.version = version
        return self

    def description(self, description: str) -> "WorkflowBuilder":
        self._workflow.description = description
        return self

    def build(self) -> Workflow:
        """Return the workflow with the accumulated steps."""
        self._workflow.steps = list(self._steps)
        return self._workflow
