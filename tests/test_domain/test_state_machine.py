"""Tests for the TaskStateMachine domain guard.

These tests verify that:
    1. All valid transitions are allowed.
    2. All invalid transitions are blocked.
    3. The convenience function validate_transition works.
    4. Final states allow nothing.
"""

from __future__ import annotations

import pytest
from statemachine.exceptions import TransitionNotAllowed

from ibwt_marketplace.domain.state_machine import (
    TaskStateMachine,
    validate_transition,
)


class TestHappyPath:
    """Test the full happy-path lifecycle: open -> done."""

    def test_full_lifecycle(self) -> None:
        sm = TaskStateMachine("open")
        assert sm.status == "open"

        sm.accept_bid()
        assert sm.status == "working"

        sm.submit_result()
        assert sm.status == "review"

        sm.approve()
        assert sm.status == "done"

    def test_decline_cancels(self) -> None:
        sm = TaskStateMachine("review")
        sm.decline()
        assert sm.status == "cancelled"

    def test_cancel_open_task(self) -> None:
        sm = TaskStateMachine("open")
        sm.cancel()
        assert sm.status == "cancelled"


class TestDisputePath:
    def test_dispute_from_working(self) -> None:
        sm = TaskStateMachine("working")
        sm.raise_dispute()
        assert sm.status == "disputed"

    def test_dispute_from_review(self) -> None:
        sm = TaskStateMachine("review")
        sm.raise_dispute()
        assert sm.status == "disputed"

    def test_resolved_for_agent(self) -> None:
        sm = TaskStateMachine("disputed")
        sm.resolve_for_agent()
        assert sm.status == "done"

    def test_resolved_for_poster(self) -> None:
        sm = TaskStateMachine("disputed")
        sm.resolve_for_poster()
        assert sm.status == "cancelled"


class TestIllegalTransitions:
    """Verify that illegal transitions raise TransitionNotAllowed."""

    def test_open_to_done(self) -> None:
        sm = TaskStateMachine("open")
        with pytest.raises(TransitionNotAllowed):
            sm.approve()

    def test_submit_before_accept(self) -> None:
        sm = TaskStateMachine("open")
        with pytest.raises(TransitionNotAllowed):
            sm.submit_result()

    def test_dispute_open_task(self) -> None:
        sm = TaskStateMachine("open")
        with pytest.raises(TransitionNotAllowed):
            sm.raise_dispute()

    def test_cancel_working_task(self) -> None:
        sm = TaskStateMachine("working")
        with pytest.raises(TransitionNotAllowed):
            sm.cancel()

    def test_done_is_final(self) -> None:
        sm = TaskStateMachine("done")
        assert sm.get_allowed_events() == []

    def test_cancelled_is_final(self) -> None:
        sm = TaskStateMachine("cancelled")
        assert sm.get_allowed_events() == []


class TestAllowedEvents:
    def test_open_allowed(self) -> None:
        allowed = TaskStateMachine("open").get_allowed_events()
        assert set(allowed) == {"accept_bid", "cancel"}

    def test_working_allowed(self) -> None:
        allowed = TaskStateMachine("working").get_allowed_events()
        assert set(allowed) == {"submit_result", "raise_dispute"}

    def test_review_allowed(self) -> None:
        allowed = TaskStateMachine("review").get_allowed_events()
        assert set(allowed) == {"approve", "decline", "raise_dispute"}


class TestValidateTransitionFunction:
    def test_valid_transition(self) -> None:
        assert validate_transition("open", "accept_bid") == "working"

    def test_invalid_event_name(self) -> None:
        with pytest.raises(ValueError, match="Unknown event"):
            validate_transition("open", "nonexistent_event")

    def test_invalid_status(self) -> None:
        with pytest.raises(ValueError, match="Unknown status"):
            TaskStateMachine("in_progress")
