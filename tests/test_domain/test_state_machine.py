"""Tests for the job, quote and payment state machine guards.

These tests verify that:
    1. Every documented transition is allowed.
    2. Illegal transitions are blocked.
    3. fire_transition maps failures onto InvalidStateTransitionError.
"""

from __future__ import annotations

import pytest
from statemachine.exceptions import TransitionNotAllowed

from winnipeg_connect.domain.enums import JobStatus
from winnipeg_connect.domain.exceptions import InvalidStateTransitionError
from winnipeg_connect.domain.state_machine import (
    JOB_STATUS_EVENTS,
    JobStateMachine,
    PaymentStateMachine,
    QuoteStateMachine,
    fire_transition,
)


class TestJobHappyPath:
    """open -> in_progress -> completed."""

    def test_full_lifecycle(self) -> None:
        sm = JobStateMachine("open")
        assert sm.status == "open"

        sm.assign_provider()
        assert sm.status == "in_progress"

        sm.complete()
        assert sm.status == "completed"

    def test_cancel_open_job(self) -> None:
        sm = JobStateMachine("open")
        sm.cancel()
        assert sm.status == "cancelled"


class TestJobDisputePath:
    def test_dispute_in_progress(self) -> None:
        sm = JobStateMachine("in_progress")
        sm.dispute()
        assert sm.status == "disputed"

    def test_dispute_completed(self) -> None:
        sm = JobStateMachine("completed")
        sm.dispute()
        assert sm.status == "disputed"

    def test_disputed_can_complete_or_cancel(self) -> None:
        assert set(JobStateMachine("disputed").get_allowed_events()) == {"complete", "cancel"}


class TestJobIllegalTransitions:
    def test_open_to_completed(self) -> None:
        sm = JobStateMachine("open")
        with pytest.raises(TransitionNotAllowed):
            sm.complete()

    def test_in_progress_cannot_cancel(self) -> None:
        sm = JobStateMachine("in_progress")
        with pytest.raises(TransitionNotAllowed):
            sm.cancel()

    def test_cancelled_is_final(self) -> None:
        assert JobStateMachine("cancelled").get_allowed_events() == []

    def test_in_progress_only_via_quote_acceptance(self) -> None:
        assert JobStatus.IN_PROGRESS not in JOB_STATUS_EVENTS
        assert JobStatus.OPEN not in JOB_STATUS_EVENTS


class TestQuoteMachine:
    @pytest.mark.parametrize(
        ("event", "expected"),
        [
            ("accept", "accepted"),
            ("reject", "rejected"),
            ("withdraw", "withdrawn"),
            ("expire", "expired"),
        ],
    )
    def test_every_exit_from_pending(self, event: str, expected: str) -> None:
        assert fire_transition(QuoteStateMachine, "pending", event, "quote") == expected

    @pytest.mark.parametrize("status", ["accepted", "rejected", "withdrawn", "expired"])
    def test_terminal_statuses(self, status: str) -> None:
        assert QuoteStateMachine(status).get_allowed_events() == []

    def test_accepted_cannot_be_withdrawn(self) -> None:
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            fire_transition(QuoteStateMachine, "accepted", "withdraw", "quote")
        assert exc_info.value.entity == "quote"
        assert exc_info.value.current_state == "accepted"


class TestPaymentMachine:
    def test_authorize_then_capture(self) -> None:
        sm = PaymentStateMachine("pending")
        sm.authorize()
        sm.capture()
        assert sm.status == "captured"

    def test_release_from_captured(self) -> None:
        assert fire_transition(PaymentStateMachine, "captured", "release", "payment") == "released"

    def test_release_from_disputed(self) -> None:
        assert fire_transition(PaymentStateMachine, "disputed", "release", "payment") == "released"

    def test_refund_from_authorized_and_captured(self) -> None:
        for status in ("authorized", "captured"):
            assert fire_transition(PaymentStateMachine, status, "refund", "payment") == "refunded"

    def test_released_payment_cannot_be_refunded(self) -> None:
        with pytest.raises(InvalidStateTransitionError):
            fire_transition(PaymentStateMachine, "released", "refund", "payment")

    def test_disputed_payment_can_be_refunded(self) -> None:
        assert fire_transition(PaymentStateMachine, "disputed", "refund", "payment") == "refunded"

    def test_resolve_returns_disputed_payment_to_captured(self) -> None:
        assert fire_transition(PaymentStateMachine, "disputed", "resolve", "payment") == "captured"

    def test_only_disputed_payments_resolve(self) -> None:
        with pytest.raises(InvalidStateTransitionError):
            fire_transition(PaymentStateMachine, "captured", "resolve", "payment")

    def test_disputed_allowed_events(self) -> None:
        assert set(PaymentStateMachine("disputed").get_allowed_events()) == {
            "release", "refund", "resolve"
        }

    def test_failed_is_final(self) -> None:
        assert PaymentStateMachine("failed").get_allowed_events() == []


class TestFireTransition:
    def test_valid_transition(self) -> None:
        assert fire_transition(JobStateMachine, "open", "assign_provider") == "in_progress"

    def test_unknown_event_name(self) -> None:
        with pytest.raises(InvalidStateTransitionError):
            fire_transition(JobStateMachine, "open", "nonexistent_event")

    def test_invalid_status(self) -> None:
        with pytest.raises(ValueError, match="Unknown status"):
            JobStateMachine("INVALID_STATUS")

    def test_rejection_lists_allowed_events(self) -> None:
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            fire_transition(PaymentStateMachine, "captured", "resolve", "payment")
        assert set(exc_info.value.allowed) == {"release", "refund", "dispute"}
        assert "allowed:" in exc_info.value.message

    def test_final_state_allows_nothing(self) -> None:
        with pytest.raises(InvalidStateTransitionError, match=r"\(allowed: none\)"):
            fire_transition(JobStateMachine, "cancelled", "complete")
