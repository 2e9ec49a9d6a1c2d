"""
Unit Tests for status transition rules
"""
import pytest

from app.core.status_config import (
    StatusTransitionError,
    get_allowed_manufacturing_order_transitions,
    is_valid_manufacturing_order_transition,
    is_valid_work_order_transition,
    manufacturing_order_steps,
    validate_work_order_transition,
)


@pytest.mark.unit
class TestManufacturingOrderTransitions:

    @pytest.mark.parametrize("current,new", [
        ("draft", "confirmed"),
        ("confirmed", "in_progress"),
        ("in_progress", "completed"),
        ("draft", "cancelled"),
        ("in_progress", "cancelled"),
    ])
    def test_forward_transitions_allowed(self, current, new):
        assert is_valid_manufacturing_order_transition(current, new)

    @pytest.mark.parametrize("current,new", [
        ("confirmed", "draft"),
        ("completed", "in_progress"),
        ("cancelled", "draft"),
        ("draft", "completed"),
    ])
    def test_backward_and_skipping_transitions_refused(self, current, new):
        assert not is_valid_manufacturing_order_transition(current, new)

    def test_terminal_states_allow_nothing(self):
        assert get_allowed_manufacturing_order_transitions("completed") == []
        assert get_allowed_manufacturing_order_transitions("cancelled") == []

    def test_steps_walk_the_path(self):
        assert manufacturing_order_steps("draft", "completed") == ["confirmed", "in_progress", "completed"]
        assert manufacturing_order_steps("confirmed", "in_progress") == ["in_progress"]

    def test_steps_never_go_back(self):
        assert manufacturing_order_steps("completed", "in_progress") == []
        assert manufacturing_order_steps("in_progress", "in_progress") == []

    def test_steps_from_cancelled_raise(self):
        with pytest.raises(StatusTransitionError):
            manufacturing_order_steps("cancelled", "in_progress")


@pytest.mark.unit
class TestWorkOrderTransitions:

    def test_pending_may_complete_directly(self):
        assert is_valid_work_order_transition("pending", "completed")

    def test_completed_is_terminal(self):
        with pytest.raises(StatusTransitionError) as exc_info:
            validate_work_order_transition("completed", "in_progress")
        assert exc_info.value.allowed == []

    def test_in_progress_cannot_return_to_pending(self):
        assert not is_valid_work_order_transition("in_progress", "pending")
