"""Job lifecycle transition tests."""

from __future__ import annotations

import unittest

from reelstudio.domain.job_fsm import (
    ACTIVE_STATES,
    TERMINAL_STATES,
    allowed_next_statuses,
    ensure_transition,
    is_forward_transition,
)
from reelstudio.errors import ApiError
from reelstudio.schemas.job import JobStatus


class JobFsmUnitTests(unittest.TestCase):
    def test_allowed_transitions_across_lifecycle(self) -> None:
        allowed_pairs = [
            (JobStatus.PENDING, JobStatus.SUBMITTED),
            (JobStatus.PENDING, JobStatus.FAILED),
            (JobStatus.SUBMITTED, JobStatus.GENERATING),
            (JobStatus.SUBMITTED, JobStatus.DONE),
            (JobStatus.SUBMITTED, JobStatus.FAILED),
            (JobStatus.GENERATING, JobStatus.DONE),
            (JobStatus.GENERATING, JobStatus.FAILED),
        ]
        for old_status, new_status in allowed_pairs:
            with self.subTest(old_status=old_status, new_status=new_status):
                ensure_transition(old_status, new_status)
                self.assertTrue(is_forward_transition(old_status, new_status))

    def test_backward_and_skipping_transitions_are_rejected(self) -> None:
        invalid_pairs = [
            (JobStatus.PENDING, JobStatus.GENERATING),
            (JobStatus.PENDING, JobStatus.DONE),
            (JobStatus.GENERATING, JobStatus.SUBMITTED),
            (JobStatus.SUBMITTED, JobStatus.PENDING),
        ]
        for old_status, new_status in invalid_pairs:
            with self.subTest(old_status=old_status, new_status=new_status):
                self.assertFalse(is_forward_transition(old_status, new_status))
                with self.assertRaises(ApiError) as context:
                    ensure_transition(old_status, new_status)
                self.assertEqual(context.exception.status_code, 409)
                self.assertEqual(context.exception.payload.code, "FSM_TRANSITION_INVALID")
                details = context.exception.payload.details
                self.assertEqual(details["current_status"], old_status)
                self.assertEqual(details["attempted_status"], new_status)
                self.assertEqual(details["allowed_next_statuses"], allowed_next_statuses(old_status))

    def test_self_transitions_are_not_forward(self) -> None:
        for state in JobStatus:
            with self.subTest(state=state):
                self.assertFalse(is_forward_transition(state, state))

    def test_terminal_states_are_immutable(self) -> None:
        for terminal_status in (JobStatus.DONE, JobStatus.FAILED):
            with self.subTest(terminal_status=terminal_status):
                with self.assertRaises(ApiError) as context:
                    ensure_transition(terminal_status, JobStatus.SUBMITTED)
                self.assertEqual(context.exception.status_code, 409)
                self.assertEqual(context.exception.payload.code, "FSM_TERMINAL_IMMUTABLE")
                self.assertEqual(context.exception.payload.details["allowed_next_statuses"], [])

    def test_state_groups_are_disjoint(self) -> None:
        self.assertEqual(ACTIVE_STATES, {JobStatus.SUBMITTED, JobStatus.GENERATING})
        self.assertEqual(TERMINAL_STATES, {JobStatus.DONE, JobStatus.FAILED})
        self.assertFalse(ACTIVE_STATES & TERMINAL_STATES)

    def test_allowed_next_statuses_are_sorted(self) -> None:
        self.assertEqual(
            allowed_next_statuses(JobStatus.SUBMITTED),
            [JobStatus.DONE, JobStatus.FAILED, JobStatus.GENERATING],
        )


if __name__ == "__main__":
    unittest.main()
