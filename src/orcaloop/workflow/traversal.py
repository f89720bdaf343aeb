"""Step tree traversal helpers.

All helpers walk every branch of a control flow step in declaration order:
if steps, each else-if, the else branch, and every switch case. Search and
descendant collection therefore agree on which steps belong to a tree.
"""

from collections.abc import Iterable, Iterator

from .models import ForLoopStep, IfStep, ParallelStep, Step, SwitchStep, Workflow


def child_steps(step: Step) -> list[Step]:
    """Direct children of a step across all of its branches."""
    if isinstance(step, ParallelStep | ForLoopStep):
        return list(step.steps)

    if isinstance(step, IfStep):
        children = list(step.steps)
        for branch in step.else_ifs:
            children.extend(branch.steps)
        if step.else_branch is not None:
            children.extend(step.else_branch.steps)
        return children

    if isinstance(step, SwitchStep):
        children = []
        for case in step.cases:
            children.extend(case.steps)
        return children

    return []


def iter_steps(steps: Iterable[Step]) -> Iterator[Step]:
    """Yield every step of a tree in depth-first pre-order."""
    for step in steps:
        yield step
        yield from iter_steps(child_steps(step))


def search_steps(step_id: str, steps: Iterable[Step]) -> Step | None:
    """Find the first step with the given id below ``steps``."""
    for step in iter_steps(steps):
        if step.id == step_id:
            return step
    return None


def find_step_by_id(step_id: str, workflow: Workflow) -> Step | None:
    """Find a step anywhere in a workflow. Returns the stored object, not a copy."""
    return search_steps(step_id, workflow.steps)


def collect_descendants(step: Step) -> list[Step]:
    """All steps nested below ``step``, each child followed by its own descendants."""
    return list(iter_steps(child_steps(step)))


def get_descendants_by_id(step_id: str, workflow: Workflow) -> list[Step]:
    """Descendants of the step with the given id; empty when the id is unknown."""
    step = find_step_by_id(step_id, workflow)
    if step is None:
        return []
    return collect_descendants(step)


def find_parent(step_id: str, workflow: Workflow) -> Step | None:
    """The control flow step that directly contains ``step_id``.

    Returns None for top-level steps and unknown ids.
    """
    for candidate in iter_steps(workflow.steps):
        if any(child.id == step_id for child in child_steps(candidate)):
            return candidate
    return None
