"""Sequence reindexing tests: inserts in the middle and explicit reorders."""

from __future__ import annotations

import os
import tempfile
import unittest
from unittest.mock import patch

from reelstudio.errors import ReindexConflictError
from reelstudio.repositories.database import Database
from reelstudio.repositories.jobs import JobRepository
from reelstudio.repositories.works import WorkRepository
from reelstudio.services.sequence import PositionChange, SequenceReindexer


class _SequenceCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmpdir = tempfile.TemporaryDirectory()
        self.database = Database(f"sqlite:///{os.path.join(self._tmpdir.name, 'sequence.db')}")
        self.database.create_schema()
        with self.database.transaction() as session:
            self.work_id = WorkRepository(session).create(owner_id="user-a", title="Series").id

    def tearDown(self) -> None:
        self.database.dispose()
        self._tmpdir.cleanup()

    def seed(self, prompts: list[str], *, sub_unit: int = 1) -> list[str]:
        ids = []
        with self.database.transaction() as session:
            reindexer = SequenceReindexer(session)
            for prompt in prompts:
                record = reindexer.insert_after(
                    work_id=self.work_id, sub_unit=sub_unit, after_position=None, prompt=prompt
                )
                ids.append(record.id)
        return ids

    def ordering(self, *, sub_unit: int = 1) -> list[tuple[int, str]]:
        with self.database.transaction() as session:
            jobs = JobRepository(session).list_for_scope(work_id=self.work_id, sub_unit=sub_unit)
        return [(job.position, job.prompt) for job in jobs]


class InsertAfterTests(_SequenceCase):
    def test_append_assigns_consecutive_positions(self) -> None:
        self.seed(["a", "b", "c"])

        self.assertEqual(self.ordering(), [(1, "a"), (2, "b"), (3, "c")])

    def test_insert_in_the_middle_shifts_later_jobs_by_one(self) -> None:
        self.seed(["a", "b", "c", "d"])

        with self.database.transaction() as session:
            record = SequenceReindexer(session).insert_after(
                work_id=self.work_id, sub_unit=1, after_position=2, prompt="b-roll"
            )

        self.assertEqual(record.position, 3)
        self.assertEqual(self.ordering(), [(1, "a"), (2, "b"), (3, "b-roll"), (4, "c"), (5, "d")])

    def test_insert_at_the_front(self) -> None:
        self.seed(["a", "b"])

        with self.database.transaction() as session:
            SequenceReindexer(session).insert_after(work_id=self.work_id, sub_unit=1, after_position=0, prompt="cold open")

        self.assertEqual(self.ordering(), [(1, "cold open"), (2, "a"), (3, "b")])

    def test_insert_past_the_tail_is_a_plain_insert(self) -> None:
        self.seed(["a", "b"])

        with self.database.transaction() as session:
            record = SequenceReindexer(session).insert_after(
                work_id=self.work_id, sub_unit=1, after_position=2, prompt="c"
            )

        self.assertEqual(record.position, 3)
        self.assertEqual(self.ordering(), [(1, "a"), (2, "b"), (3, "c")])

    def test_insert_into_an_empty_scope(self) -> None:
        with self.database.transaction() as session:
            record = SequenceReindexer(session).insert_after(
                work_id=self.work_id, sub_unit=3, after_position=None, prompt="first"
            )

        self.assertEqual(record.position, 1)

    def test_other_sub_units_are_untouched(self) -> None:
        self.seed(["a", "b"], sub_unit=1)
        self.seed(["x", "y"], sub_unit=2)

        with self.database.transaction() as session:
            SequenceReindexer(session).insert_after(work_id=self.work_id, sub_unit=1, after_position=0, prompt="new")

        self.assertEqual(self.ordering(sub_unit=2), [(1, "x"), (2, "y")])

    def test_failure_after_shifting_rolls_back_every_position(self) -> None:
        self.seed(["a", "b", "c"])

        with patch.object(JobRepository, "insert", side_effect=RuntimeError("disk full")):
            with self.assertRaises(RuntimeError):
                with self.database.transaction() as session:
                    SequenceReindexer(session).insert_after(
                        work_id=self.work_id, sub_unit=1, after_position=1, prompt="never stored"
                    )

        self.assertEqual(self.ordering(), [(1, "a"), (2, "b"), (3, "c")])


class ReorderTests(_SequenceCase):
    def test_swap_two_jobs(self) -> None:
        a, b, _ = self.seed(["a", "b", "c"])

        with self.database.transaction() as session:
            moved = SequenceReindexer(session).reorder(
                work_id=self.work_id,
                sub_unit=1,
                changes=[PositionChange(a, 2), PositionChange(b, 1)],
            )

        self.assertEqual(moved, 2)
        self.assertEqual(self.ordering(), [(1, "b"), (2, "a"), (3, "c")])

    def test_full_rotation(self) -> None:
        a, b, c = self.seed(["a", "b", "c"])

        with self.database.transaction() as session:
            SequenceReindexer(session).reorder(
                work_id=self.work_id,
                sub_unit=1,
                changes=[PositionChange(a, 3), PositionChange(b, 1), PositionChange(c, 2)],
            )

        self.assertEqual(self.ordering(), [(1, "b"), (2, "c"), (3, "a")])

    def test_applying_the_same_mapping_twice_gives_the_same_order(self) -> None:
        a, b, c = self.seed(["a", "b", "c"])
        changes = [PositionChange(a, 3), PositionChange(b, 2), PositionChange(c, 1)]

        with self.database.transaction() as session:
            first = SequenceReindexer(session).reorder(work_id=self.work_id, sub_unit=1, changes=changes)
        after_first = self.ordering()
        with self.database.transaction() as session:
            second = SequenceReindexer(session).reorder(work_id=self.work_id, sub_unit=1, changes=changes)

        self.assertEqual((first, second), (2, 0))
        self.assertEqual(self.ordering(), after_first)
        self.assertEqual(after_first, [(1, "c"), (2, "b"), (3, "a")])

    def test_move_into_a_gap(self) -> None:
        a, _ = self.seed(["a", "b"])

        with self.database.transaction() as session:
            SequenceReindexer(session).reorder(work_id=self.work_id, sub_unit=1, changes=[PositionChange(a, 7)])

        self.assertEqual(self.ordering(), [(2, "b"), (7, "a")])

    def test_empty_and_identity_mappings_write_nothing(self) -> None:
        a, b = self.seed(["a", "b"])

        with self.database.transaction() as session:
            reindexer = SequenceReindexer(session)
            self.assertEqual(reindexer.reorder(work_id=self.work_id, sub_unit=1, changes=[]), 0)
            self.assertEqual(
                reindexer.reorder(
                    work_id=self.work_id, sub_unit=1, changes=[PositionChange(a, 1), PositionChange(b, 2)]
                ),
                0,
            )

        self.assertEqual(self.ordering(), [(1, "a"), (2, "b")])

    def test_invalid_mappings_are_rejected_before_any_write(self) -> None:
        a, b, _ = self.seed(["a", "b", "c"])
        foreign = self.seed(["z"], sub_unit=2)[0]
        cases = {
            "duplicate job": [PositionChange(a, 2), PositionChange(a, 3)],
            "duplicate target": [PositionChange(a, 3), PositionChange(b, 3)],
            "collides with unmapped job": [PositionChange(a, 3)],
            "non-positive position": [PositionChange(a, 0)],
            "job outside scope": [PositionChange(foreign, 9)],
        }
        for label, changes in cases.items():
            with self.subTest(label):
                with self.assertRaises(ReindexConflictError) as context:
                    with self.database.transaction() as session:
                        SequenceReindexer(session).reorder(work_id=self.work_id, sub_unit=1, changes=changes)
                self.assertEqual(context.exception.status_code, 409)
                self.assertEqual(context.exception.payload.code, "REINDEX_CONFLICT")
                self.assertEqual(self.ordering(), [(1, "a"), (2, "b"), (3, "c")])

    def test_failure_between_phases_leaves_no_scratch_positions(self) -> None:
        a, b, _ = self.seed(["a", "b", "c"])
        original = JobRepository.set_position
        calls = {"count": 0}

        def fail_on_third_write(repository, job_id, position):
            calls["count"] += 1
            if calls["count"] == 3:
                raise RuntimeError("connection dropped")
            return original(repository, job_id, position)

        with patch.object(JobRepository, "set_position", fail_on_third_write):
            with self.assertRaises(RuntimeError):
                with self.database.transaction() as session:
                    SequenceReindexer(session).reorder(
                        work_id=self.work_id,
                        sub_unit=1,
                        changes=[PositionChange(a, 2), PositionChange(b, 1)],
                    )

        ordering = self.ordering()
        self.assertEqual(ordering, [(1, "a"), (2, "b"), (3, "c")])
        self.assertTrue(all(position > 0 for position, _ in ordering))


if __name__ == "__main__":
    unittest.main()
