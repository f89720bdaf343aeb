"""Shared fixtures for orcaloop tests."""

import pytest

from orcaloop.config import reset_config
from orcaloop.workflow.expressions import reset_evaluator
from orcaloop.yaml_loader import reset_yaml_loader


@pytest.fixture(autouse=True)
def reset_globals():
    """Give every test fresh configuration and shared singletons."""
    reset_config()
    reset_evaluator()
    reset_yaml_loader()
    yield
    reset_config()
    reset_evaluator()
    reset_yaml_loader()
