"""Task Lifecycle State Machine Guard.

Uses python-statemachine to enforce legal status transitions at the domain
level. The machine is instantiated per task from its persisted status and
fired before the ORM status field is updated.

Transition table:
    open      -> working    (accept_bid)
    open      -> cancelled  (cancel)
    working   -> review     (submit_result)
    review    -> done       (approve)
    review    -> cancelled  (decline)
    working   -> disputed   (raise_dispute)
    review    -> disputed   (raise_dispute)
    disputed  -> done       (resolve_for_agent)
    disputed  -> cancelled  (resolve_for_poster)

The admin reset/reopen operations bypass this guard on purpose.
"""

from __future__ import annotations

from statemachine import State, StateMachine


class TaskStateMachine(StateMachine):
    """State machine that guards task lifecycle transitions.

    Usage:
        sm = TaskStateMachine(current_status="open")
        sm.accept_bid()  # transitions to working
        sm.status        # "working"
    """

    # --- States ---
    OPEN = State("Open", value="open", initial=True)
    WORKING = State("Working", value="working")
    REVIEW = State("Review", value="review")
    DONE = State("Done", value="done", final=True)
    CANCELLED = State("Cancelled", value="cancelled", final=True)
    DISPUTED = State("Disputed", value="disputed")

    # --- Events / Transitions ---
    accept_bid = OPEN.to(WORKING)
    cancel = OPEN.to(CANCELLED)

    submit_result = WORKING.to(REVIEW)

    approve = REVIEW.to(DONE)
    decline = REVIEW.to(CANCELLED)

    raise_dispute = WORKING.to(DISPUTED) | REVIEW.to(DISPUTED)
    resolve_for_agent = DISPUTED.to(DONE)
    resolve_for_poster = DISPUTED.to(CANCELLED)

    def __init__(self, current_status: str = "open") -> None:
        """Initialize the machine at a persisted status.

        Args:
            current_status: A canonical TaskStatus value (e.g. "working").
        """
        valid_values = {s.value for s in self.states}
        if current_status not in valid_values:
            valid = ", ".join(sorted(valid_values))
            raise ValueError(
                f"Unknown status '{current_status}'. Valid states: {valid}"
            )
        super().__init__(start_value=current_status)

    @property
    def status(self) -> str:
        """Current state value as a string (matches TaskStatus)."""
        return str(self.current_state.value)

    def get_allowed_events(self) -> list[str]:
        """Event names that can fire from the current state."""
        return [event.id for event in self.allowed_events]


def validate_transition(current_status: str, event_name: str) -> str:
    """Fire ``event_name`` on a throwaway machine and return the new status.

    Raises:
        TransitionNotAllowed: If the event cannot fire from current_status.
        ValueError: If the status or event name is unknown.
    """
    sm = TaskStateMachine(current_status=current_status)

    event_method = getattr(sm, event_name, None)
    if event_method is None or not callable(event_method):
        raise ValueError(
            f"Unknown event '{event_name}'. "
            f"Allowed events from {current_status}: {sm.get_allowed_events()}"
        )

    event_method()
    return sm.status
