"""Tests for control flow branch selection."""

import pytest

from orcaloop.workflow.branching import iter_loop_bindings, resolve_loop_items, select_if_branch, select_switch_case
from orcaloop.workflow.context import Context, ContextKeyError, ContextTypeError
from orcaloop.workflow.expressions import ExpressionSyntaxError, UnknownVariableError
from orcaloop.workflow.models import ActionStep, Case, Else, ElseIf, ForLoopStep, IfStep, SwitchStep


def action(step_id: str) -> ActionStep:
    return ActionStep(id=step_id, name="noop")


def tiered_if(else_branch: bool = True) -> IfStep:
    return IfStep(
        id="tier",
        condition="total > 100",
        steps=[action("gold")],
        else_ifs=[ElseIf(condition="total > 10", steps=[action("silver")])],
        else_branch=Else(steps=[action("bronze")]) if else_branch else None,
    )


class TestSelectIfBranch:
    """Test if / else-if / else selection."""

    def test_first_branch(self):
        """Test that the primary branch wins when its condition holds."""
        steps = select_if_branch(tiered_if(), Context(values={"total": 500}))

        assert [s.id for s in steps] == ["gold"]

    def test_else_if_branch(self):
        """Test fallthrough to an else-if."""
        steps = select_if_branch(tiered_if(), Context(values={"total": 50}))

        assert [s.id for s in steps] == ["silver"]

    def test_else_branch(self):
        """Test fallthrough to the else branch."""
        steps = select_if_branch(tiered_if(), Context(values={"total": 1}))

        assert [s.id for s in steps] == ["bronze"]

    def test_no_branch_taken(self):
        """Test that nothing runs without a matching branch or else."""
        assert select_if_branch(tiered_if(else_branch=False), Context(values={"total": 1})) == []

    def test_later_conditions_not_evaluated(self):
        """Test that evaluation stops at the first matching branch."""
        step = IfStep(
            id="check",
            condition="ready",
            steps=[action("go")],
            else_ifs=[ElseIf(condition="undefined_var > 1", steps=[action("never")])],
        )

        steps = select_if_branch(step, Context(values={"ready": True}))

        assert [s.id for s in steps] == ["go"]

    def test_evaluation_errors_propagate(self):
        """Test that reached conditions must evaluate."""
        with pytest.raises(UnknownVariableError):
            select_if_branch(tiered_if(), Context())

        broken = IfStep(id="broken", condition="(total > 1", steps=[action("a")])
        with pytest.raises(ExpressionSyntaxError):
            select_if_branch(broken, Context(values={"total": 5}))


class TestSelectSwitchCase:
    """Test switch case selection."""

    def switch(self) -> SwitchStep:
        return SwitchStep(
            id="route",
            variable="region",
            cases=[
                Case(value="eu", steps=[action("eu")]),
                Case(default=True, steps=[action("fallback")]),
                Case(value=2, steps=[action("two")]),
            ],
        )

    def test_matching_case(self):
        """Test selection by equal value."""
        case = select_switch_case(self.switch(), Context(values={"region": "eu"}))

        assert case.steps[0].id == "eu"

    def test_numeric_match_after_default(self):
        """Test that value cases win over an earlier default case."""
        case = select_switch_case(self.switch(), Context(values={"region": 2.0}))

        assert case.steps[0].id == "two"

    def test_default_case(self):
        """Test fallback to the default case."""
        case = select_switch_case(self.switch(), Context(values={"region": "us"}))

        assert case.default is True

    def test_no_match_without_default(self):
        """Test that no case is selected without a match or default."""
        step = SwitchStep(id="route", variable="region", cases=[Case(value="eu", steps=[action("eu")])])

        assert select_switch_case(step, Context(values={"region": "us"})) is None

    def test_type_sensitive_match(self):
        """Test that a string never matches a number."""
        step = SwitchStep(id="route", variable="code", cases=[Case(value="2", steps=[action("two")])])

        assert select_switch_case(step, Context(values={"code": 2})) is None

    def test_missing_variable(self):
        """Test that the switch variable must be set."""
        with pytest.raises(ContextKeyError):
            select_switch_case(self.switch(), Context())


class TestForLoopItems:
    """Test for-loop item resolution."""

    def test_inline_items(self):
        """Test iterating inline items."""
        step = ForLoopStep(id="each", loop_var="item", items=["a", "b"], steps=[action("work")])

        assert resolve_loop_items(step, Context()) == ["a", "b"]

    def test_items_var_takes_precedence(self):
        """Test that a context list overrides inline items."""
        step = ForLoopStep(id="each", loop_var="item", items_var="orders", items=["ignored"])

        assert resolve_loop_items(step, Context(values={"orders": [1, 2]})) == [1, 2]

    def test_items_var_must_be_list(self):
        """Test that items_var must reference a list."""
        step = ForLoopStep(id="each", loop_var="item", items_var="orders")

        with pytest.raises(ContextTypeError):
            resolve_loop_items(step, Context(values={"orders": "not-a-list"}))

        with pytest.raises(ContextKeyError):
            resolve_loop_items(step, Context())

    def test_loop_bindings(self):
        """Test loop and index variable bindings per iteration."""
        step = ForLoopStep(id="each", loop_var="order", index_var="i", items_var="orders")

        bindings = list(iter_loop_bindings(step, Context(values={"orders": ["x", "y"]})))

        assert bindings == [{"order": "x", "i": 0}, {"order": "y", "i": 1}]

    def test_index_only_bindings(self):
        """Test that unset variable names are not bound."""
        step = ForLoopStep(id="each", index_var="i", items=[10, 20, 30])

        assert list(iter_loop_bindings(step, Context())) == [{"i": 0}, {"i": 1}, {"i": 2}]
