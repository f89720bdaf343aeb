"""Execution context for orcaloop workflow instances.

A context is the key-value state bag of one workflow instance. Actions write
their results into it and conditions are evaluated against it.
"""

import copy
from collections.abc import Iterator, Mapping
from typing import Any

from .expressions import evaluate_condition

WORKFLOW_ID_KEY = "__workflowId__"
INSTANCE_ID_KEY = "__instanceId__"
STEP_ID_KEY = "__stepId__"
ERROR_KEY = "__error__"

RESERVED_KEYS = frozenset({WORKFLOW_ID_KEY, INSTANCE_ID_KEY, STEP_ID_KEY, ERROR_KEY})


class ContextKeyError(KeyError):
    """Raised when a key is not present in the context."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(key)

    def __str__(self):
        return f"Key not found in context: {self.key}"


class ContextTypeError(TypeError):
    """Raised when a context value has an unexpected or unsupported type."""

    pass


def _check_value(value: Any, path: str):
    """Ensure a value belongs to the JSON-compatible value set."""
    if value is None or isinstance(value, str | bool | int | float):
        return
    if isinstance(value, list):
        for i, item in enumerate(value):
            _check_value(item, f"{path}[{i}]")
        return
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise ContextTypeError(f"Mapping keys must be strings at {path}, got {type(key).__name__}")
            _check_value(item, f"{path}.{key}")
        return
    raise ContextTypeError(f"Unsupported value type {type(value).__name__} at {path}")


class Context:
    """Mutable per-instance workflow state.

    Values are restricted to strings, numbers, booleans, None, lists and
    string-keyed dicts so the context survives a JSON/YAML round trip.
    Every context owns its storage; the mapping passed in is copied.
    """

    def __init__(self, instance_id: str | None = None, values: Mapping[str, Any] | None = None):
        self._data: dict[str, Any] = {}
        if values:
            self.merge_from(values)
        if instance_id is not None:
            self.set(INSTANCE_ID_KEY, instance_id)

    # Mapping protocol, used by the condition evaluator

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __getitem__(self, key: str) -> Any:
        return self.get(key)

    def __setitem__(self, key: str, value: Any):
        self.set(key, value)

    def __delitem__(self, key: str):
        self.delete(key)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._data))

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self):
        return f"Context(instance_id={self.instance_id!r}, keys={sorted(self._data)!r})"

    def get(self, key: str) -> Any:
        """Get the value stored under ``key``.

        Raises:
            ContextKeyError: If the key is absent
        """
        try:
            return self._data[key]
        except KeyError:
            raise ContextKeyError(key) from None

    def get_or(self, key: str, default: Any = None) -> Any:
        """Get the value stored under ``key`` or ``default`` when absent."""
        return self._data.get(key, default)

    def extract(self, key: str, expected_type: type | tuple[type, ...]) -> Any:
        """Get a value and check its type.

        Raises:
            ContextKeyError: If the key is absent
            ContextTypeError: If the value is not an instance of expected_type
        """
        value = self.get(key)
        if not isinstance(value, expected_type):
            raise ContextTypeError(
                f"Value for '{key}' is {type(value).__name__}, expected {_type_name(expected_type)}"
            )
        return value

    def has(self, key: str) -> bool:
        return key in self._data

    def set(self, key: str, value: Any):
        """Store ``value`` under ``key``, replacing any existing value."""
        if not isinstance(key, str):
            raise ContextTypeError(f"Context keys must be strings, got {type(key).__name__}")
        _check_value(value, key)
        self._data[key] = value

    def delete(self, key: str):
        """Remove ``key``; missing keys are ignored."""
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)

    def variables(self) -> dict[str, Any]:
        """Copy of the entries that are not reserved bookkeeping keys."""
        return {k: copy.deepcopy(v) for k, v in self._data.items() if k not in RESERVED_KEYS}

    def to_dict(self) -> dict[str, Any]:
        """Independent copy of all entries."""
        return copy.deepcopy(self._data)

    def merge_from(self, values: Mapping[str, Any]):
        """Copy every entry of ``values`` into this context, last write wins."""
        for key, value in values.items():
            self.set(key, copy.deepcopy(value))

    def merge(self, other: "Context"):
        """Copy every entry of another context into this one, last write wins."""
        self.merge_from(other._data)

    def clone(self) -> "Context":
        """Create a fully independent copy of this context."""
        cloned = Context()
        cloned._data = copy.deepcopy(self._data)
        return cloned

    @property
    def instance_id(self) -> str:
        return self._get_str(INSTANCE_ID_KEY)

    @property
    def workflow_id(self) -> str:
        return self._get_str(WORKFLOW_ID_KEY)

    def set_workflow_id(self, workflow_id: str):
        self.set(WORKFLOW_ID_KEY, workflow_id)

    @property
    def step_id(self) -> str:
        return self._get_str(STEP_ID_KEY)

    def set_step_id(self, step_id: str):
        self.set(STEP_ID_KEY, step_id)

    @property
    def error(self) -> str:
        return self._get_str(ERROR_KEY)

    def set_error(self, message: str):
        self.set(ERROR_KEY, message)

    def clear_error(self):
        self.delete(ERROR_KEY)

    def evaluate_condition(self, condition: str) -> bool:
        """Evaluate a condition string against this context."""
        return evaluate_condition(condition, self)

    def _get_str(self, key: str) -> str:
        value = self._data.get(key)
        return value if isinstance(value, str) else ""


def _type_name(expected_type: type | tuple[type, ...]) -> str:
    if isinstance(expected_type, tuple):
        return " or ".join(t.__name__ for t in expected_type)
    return expected_type.__name__
