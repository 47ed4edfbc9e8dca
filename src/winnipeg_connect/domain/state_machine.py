"""Job, Quote and Payment state machine guards.

Uses python-statemachine to enforce legal status transitions at the domain
level. No matter what the API or a service does, an illegal transition
(e.g. open -> completed) raises before the ORM row is touched.

A machine is instantiated per record, at the record's current status, and
the service fires the named event before writing the new status.

Job transitions:
    open         -> in_progress   (assign_provider, quote acceptance only)
    open         -> cancelled     (cancel)
    in_progress  -> completed     (complete)
    in_progress  -> disputed      (dispute)
    completed    -> disputed      (dispute)
    disputed     -> completed     (complete)
    disputed     -> cancelled     (cancel)

Quote transitions:
    pending -> accepted | rejected | withdrawn | expired

Payment transitions (gateway-facing status; escrow custody is tracked
separately on the payment row):
    pending     -> authorized     (authorize)
    pending     -> captured       (capture)
    authorized  -> captured       (capture)
    pending     -> failed         (fail)
    authorized  -> failed         (fail)
    captured    -> released       (release)
    disputed    -> released       (release, admin only)
    authorized  -> refunded       (refund)
    captured    -> refunded       (refund)
    disputed    -> refunded       (refund, admin only)
    disputed    -> captured       (resolve, admin only)
    authorized  -> disputed       (dispute)
    captured    -> disputed       (dispute)
"""

from __future__ import annotations

from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

from winnipeg_connect.domain.enums import JobStatus
from winnipeg_connect.domain.exceptions import InvalidStateTransitionError


class _StatusMachine(StateMachine):
    """Shared constructor and helpers; subclasses declare states and events."""

    def __init__(self, current_status: str) -> None:
        """Initialize the machine at a given status.

        Args:
            current_status: The record's current status value (e.g. "open").
        """
        valid_values = {s.value for s in self.states}
        if current_status not in valid_values:
            valid = ", ".join(sorted(valid_values))
            raise ValueError(f"Unknown status '{current_status}'. Valid states: {valid}")
        super().__init__(start_value=current_status)

    @property
    def status(self) -> str:
        """Return the current state value as a string (matches the status enums)."""
        return str(self.current_state.value)

    def get_allowed_events(self) -> list[str]:
        """Return the event names that can fire from the current state."""
        return [event.id for event in self.allowed_events]


class JobStateMachine(_StatusMachine):
    """Guards job lifecycle transitions.

    Usage:
        sm = JobStateMachine("in_progress")
        sm.complete()
        sm.status  # "completed"
    """

    # --- States ---
    open = State("Open", value="open", initial=True)
    in_progress = State("In progress", value="in_progress")
    completed = State("Completed", value="completed")
    disputed = State("Disputed", value="disputed")
    cancelled = State("Cancelled", value="cancelled", final=True)

    # --- Events / Transitions ---
    assign_provider = open.to(in_progress)
    cancel = open.to(cancelled) | disputed.to(cancelled)
    complete = in_progress.to(completed) | disputed.to(completed)
    dispute = in_progress.to(disputed) | completed.to(disputed)


class QuoteStateMachine(_StatusMachine):
    """Guards quote transitions. Every exit from pending is final."""

    pending = State("Pending", value="pending", initial=True)
    accepted = State("Accepted", value="accepted", final=True)
    rejected = State("Rejected", value="rejected", final=True)
    withdrawn = State("Withdrawn", value="withdrawn", final=True)
    expired = State("Expired", value="expired", final=True)

    accept = pending.to(accepted)
    reject = pending.to(rejected)
    withdraw = pending.to(withdrawn)
    expire = pending.to(expired)


class PaymentStateMachine(_StatusMachine):
    """Guards the gateway-facing payment status."""

    pending = State("Pending", value="pending", initial=True)
    authorized = State("Authorized", value="authorized")
    captured = State("Captured", value="captured")
    disputed = State("Disputed", value="disputed")
    released = State("Released", value="released", final=True)
    refunded = State("Refunded", value="refunded", final=True)
    failed = State("Failed", value="failed", final=True)

    authorize = pending.to(authorized)
    capture = pending.to(captured) | authorized.to(captured)
    fail = pending.to(failed) | authorized.to(failed)
    release = captured.to(released) | disputed.to(released)
    refund = authorized.to(refunded) | captured.to(refunded) | disputed.to(refunded)
    resolve = disputed.to(captured)
    dispute = authorized.to(disputed) | captured.to(disputed)


# Status requested through the job status endpoint -> event that reaches it.
# in_progress is reachable only through quote acceptance.
JOB_STATUS_EVENTS: dict[JobStatus, str] = {
    JobStatus.CANCELLED: "cancel",
    JobStatus.COMPLETED: "complete",
    JobStatus.DISPUTED: "dispute",
}


def fire_transition(
    machine_cls: type[_StatusMachine],
    current_status: str,
    event_name: str,
    entity: str = "job",
) -> str:
    """Validate a transition and return the new status.

    Creates a temporary machine at ``current_status``, fires ``event_name``
    and returns the resulting status string.

    Raises:
        InvalidStateTransitionError: If the event is unknown or illegal here.
        ValueError: If ``current_status`` is not a known state.
    """
    sm = machine_cls(current_status)
    allowed = sm.get_allowed_events()
    event_method = getattr(sm, event_name, None)
    if event_method is None or not callable(event_method):
        raise InvalidStateTransitionError(current_status, event_name, entity, allowed)
    try:
        event_method()
    except TransitionNotAllowed as err:
        raise InvalidStateTransitionError(current_status, event_name, entity, allowed) from err
    return sm.status
