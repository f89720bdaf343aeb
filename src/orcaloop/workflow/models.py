"""Workflow definition models for orcaloop.

A workflow is an ordered list of steps. Steps form a tree: control flow steps
(parallel, if, switch, for-loop) own child step lists, actions are leaves.
Each step variant is its own dataclass; ``Step.step_type`` is the discriminant
used in the persisted document form.
"""

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar


class StepType(str, Enum):
    """Discriminant of the step variants."""

    ACTION = "Action"
    PARALLEL = "Parallel"
    IF = "If"
    SWITCH = "Switch"
    FOR_LOOP = "ForLoop"


@dataclass
class Parameter:
    """An action input: either a literal value or a context variable reference."""

    name: str
    value: Any = None
    var: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "value": self.value, "var": self.var}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Parameter":
        return cls(name=data.get("name", ""), value=copy.deepcopy(data.get("value")), var=data.get("var") or "")


@dataclass
class Result:
    """Binds an action output to a context variable."""

    output_var: str
    pipeline_var: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"output_var": self.output_var, "pipeline_var": self.pipeline_var}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Result":
        return cls(output_var=data.get("output_var", ""), pipeline_var=data.get("pipeline_var") or "")


@dataclass
class Step:
    """Base class of all step variants."""

    step_type: ClassVar[StepType]

    id: str
    skip: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the persisted document form."""
        return {"id": self.id, "skip": self.skip, "type": self.step_type.value, **self._payload()}

    def _payload(self) -> dict[str, Any]:
        raise NotImplementedError


@dataclass
class ActionStep(Step):
    """Leaf step that invokes a named action."""

    step_type: ClassVar[StepType] = StepType.ACTION

    name: str = ""
    action_id: str = ""
    parameters: list[Parameter] = field(default_factory=list)
    results: list[Result] = field(default_factory=list)

    def _payload(self) -> dict[str, Any]:
        return {
            "action": {
                "id": self.action_id or self.id,
                "name": self.name,
                "parameters": [p.to_dict() for p in self.parameters],
                "results": [r.to_dict() for r in self.results],
            }
        }


@dataclass
class ParallelStep(Step):
    """Group of steps that may run concurrently."""

    step_type: ClassVar[StepType] = StepType.PARALLEL

    steps: list[Step] = field(default_factory=list)

    def _payload(self) -> dict[str, Any]:
        return {"parallel": {"steps": [s.to_dict() for s in self.steps]}}


@dataclass
class ElseIf:
    """An else-if branch of an if step."""

    condition: str = ""
    steps: list[Step] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"condition": self.condition, "steps": [s.to_dict() for s in self.steps]}


@dataclass
class Else:
    """The fallback branch of an if step."""

    steps: list[Step] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"steps": [s.to_dict() for s in self.steps]}


@dataclass
class IfStep(Step):
    """Ordered if / else-if / else chain; at most one branch is taken."""

    step_type: ClassVar[StepType] = StepType.IF

    condition: str = ""
    steps: list[Step] = field(default_factory=list)
    else_ifs: list[ElseIf] = field(default_factory=list)
    else_branch: Else | None = None

    def branches(self) -> list[tuple[str | None, list[Step]]]:
        """All branches in evaluation order as ``(condition, steps)``; else has no condition."""
        result: list[tuple[str | None, list[Step]]] = [(self.condition, self.steps)]
        result.extend((branch.condition, branch.steps) for branch in self.else_ifs)
        if self.else_branch is not None:
            result.append((None, self.else_branch.steps))
        return result

    def _payload(self) -> dict[str, Any]:
        return {
            "if": {
                "condition": self.condition,
                "steps": [s.to_dict() for s in self.steps],
                "else_ifs": [b.to_dict() for b in self.else_ifs],
                "else": self.else_branch.to_dict() if self.else_branch is not None else None,
            }
        }


@dataclass
class Case:
    """A switch case. ``value`` is ignored for the default case."""

    value: Any = None
    default: bool = False
    steps: list[Step] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"value": self.value, "default": self.default, "steps": [s.to_dict() for s in self.steps]}


@dataclass
class SwitchStep(Step):
    """Selects one case by comparing a context variable to each case value."""

    step_type: ClassVar[StepType] = StepType.SWITCH

    variable: str = ""
    cases: list[Case] = field(default_factory=list)

    def default_cases(self) -> list[Case]:
        return [case for case in self.cases if case.default]

    def _payload(self) -> dict[str, Any]:
        return {"switch": {"variable": self.variable, "cases": [c.to_dict() for c in self.cases]}}


@dataclass
class ForLoopStep(Step):
    """Repeats its steps once per item of an inline list or a context list."""

    step_type: ClassVar[StepType] = StepType.FOR_LOOP

    loop_var: str = ""
    index_var: str = ""
    items_var: str = ""
    items: list[Any] = field(default_factory=list)
    steps: list[Step] = field(default_factory=list)

    def _payload(self) -> dict[str, Any]:
        return {
            "for": {
                "loop_var": self.loop_var,
                "index_var": self.index_var,
                "items_var": self.items_var,
                "items": list(self.items),
                "steps": [s.to_dict() for s in self.steps],
            }
        }


STEP_CLASSES: dict[StepType, type[Step]] = {
    StepType.ACTION: ActionStep,
    StepType.PARALLEL: ParallelStep,
    StepType.IF: IfStep,
    StepType.SWITCH: SwitchStep,
    StepType.FOR_LOOP: ForLoopStep,
}


@dataclass
class Workflow:
    """Complete definition of a workflow."""

    name: str
    id: str = ""
    version: int = 1
    description: str = ""
    steps: list[Step] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "version": self.version,
            "description": self.description,
            "steps": [s.to_dict() for s in self.steps],
        }


class WorkflowNotFoundError(Exception):
    """Raised when a workflow cannot be found."""

    pass


class WorkflowValidationError(Exception):
    """Raised when a workflow fails validation.

    ``issues`` holds the individual problems when they are known.
    """

    def __init__(self, message: str, issues: list | None = None):
        super().__init__(message)
        self.issues = issues or []


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    """Return a variant payload, treating missing or null as empty."""
    section = data.get(key)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise WorkflowValidationError(f"Step '{data.get('id', '')}' field '{key}' must be an object")
    return section


def _objects(data: Any, key: str, step_id: str) -> list[dict[str, Any]]:
    """Return a list of objects from a step field, treating missing or null as empty."""
    if data is None:
        return []
    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise WorkflowValidationError(f"Step '{step_id}' field '{key}' must be an array of objects")
    return data


def _parse_steps(data: Any, where: str) -> list[Step]:
    if data is None:
        return []
    if not isinstance(data, list):
        raise WorkflowValidationError(f"{where} steps must be an array")
    return [step_from_dict(item) for item in data]


def step_from_dict(data: dict[str, Any]) -> Step:
    """Build a step from its persisted document form.

    Missing variant payloads produce empty steps so that the validator can
    report them; unknown step types are rejected here.

    Raises:
        WorkflowValidationError: If the data is not a step object or has an unknown type
    """
    if not isinstance(data, dict):
        raise WorkflowValidationError(f"Step must be an object, got {type(data).__name__}")

    step_id = data.get("id") or ""
    skip = bool(data.get("skip", False))
    raw_type = data.get("type")

    try:
        step_type = StepType(raw_type)
    except ValueError:
        raise WorkflowValidationError(f"Invalid step type '{raw_type}' for step '{step_id}'") from None

    if step_type == StepType.ACTION:
        action = _section(data, "action")
        return ActionStep(
            id=step_id,
            skip=skip,
            name=action.get("name") or "",
            action_id=action.get("id") or "",
            parameters=[Parameter.from_dict(p) for p in _objects(action.get("parameters"), "parameters", step_id)],
            results=[Result.from_dict(r) for r in _objects(action.get("results"), "results", step_id)],
        )

    if step_type == StepType.PARALLEL:
        parallel = _section(data, "parallel")
        return ParallelStep(id=step_id, skip=skip, steps=_parse_steps(parallel.get("steps"), f"Parallel step '{step_id}'"))

    if step_type == StepType.IF:
        branch = _section(data, "if")
        else_data = branch.get("else")
        return IfStep(
            id=step_id,
            skip=skip,
            condition=branch.get("condition") or "",
            steps=_parse_steps(branch.get("steps"), f"If step '{step_id}'"),
            else_ifs=[
                ElseIf(
                    condition=item.get("condition") or "",
                    steps=_parse_steps(item.get("steps"), f"Else-if of step '{step_id}'"),
                )
                for item in _objects(branch.get("else_ifs"), "else_ifs", step_id)
            ],
            else_branch=(
                Else(steps=_parse_steps(else_data.get("steps"), f"Else of step '{step_id}'"))
                if isinstance(else_data, dict)
                else None
            ),
        )

    if step_type == StepType.SWITCH:
        switch = _section(data, "switch")
        return SwitchStep(
            id=step_id,
            skip=skip,
            variable=switch.get("variable") or "",
            cases=[
                Case(
                    value=copy.deepcopy(item.get("value")),
                    default=bool(item.get("default", False)),
                    steps=_parse_steps(item.get("steps"), f"Case of step '{step_id}'"),
                )
                for item in _objects(switch.get("cases"), "cases", step_id)
            ],
        )

    loop = _section(data, "for")
    return ForLoopStep(
        id=step_id,
        skip=skip,
        loop_var=loop.get("loop_var") or "",
        index_var=loop.get("index_var") or "",
        items_var=loop.get("items_var") or "",
        items=copy.deepcopy(list(loop.get("items") or [])),
        steps=_parse_steps(loop.get("steps"), f"For-loop step '{step_id}'"),
    )


def workflow_from_dict(data: dict[str, Any]) -> Workflow:
    """Build a workflow from its persisted document form.

    Raises:
        WorkflowValidationError: If the document is not shaped like a workflow
    """
    if not isinstance(data, dict):
        raise WorkflowValidationError("Workflow must be an object")

    version = data.get("version", 1)
    try:
        version = int(version) if version is not None else 1
    except (TypeError, ValueError):
        raise WorkflowValidationError(f"Workflow version must be an integer, got {version!r}") from None

    return Workflow(
        id=str(data.get("id") or ""),
        name=data.get("name") or "",
        version=version,
        description=data.get("description") or "",
        steps=_parse_steps(data.get("steps"), "Workflow"),
    )
