from __future__ import annotations

import io
import unittest

from regionfix.constants import SECTOR_SIZE
from regionfix.defrag import (
    Move,
    Relocation,
    apply_moves,
    defragment,
    logical_size,
    plan_relocations,
    relocate_table,
)
from regionfix.errors import DefragmentationError
from regionfix.tables import LocationEntry, LocationTable


def _sector_file(count: int) -> io.BytesIO:
    """File whose sector i is filled with byte i."""
    return io.BytesIO(b"".join(bytes([i]) * SECTOR_SIZE for i in range(count)))


def _sector_marks(f: io.BytesIO):
    data = f.getvalue()
    return [data[i * SECTOR_SIZE] for i in range(len(data) // SECTOR_SIZE)]


class PlanTests(unittest.TestCase):
    def test_empty_plan(self):
        self.assertEqual(plan_relocations([], 10), [])

    def test_single_gap(self):
        self.assertEqual(plan_relocations([Relocation(10, -7)], 11), [Move(10, 11, -7)])

    def test_shifts_accumulate_in_order(self):
        moves = plan_relocations([Relocation(8, -2), Relocation(4, -1)], 12)
        self.assertEqual(moves, [Move(4, 8, -1), Move(8, 12, -3)])

    def test_plan_is_pure(self):
        rels = [Relocation(8, -2), Relocation(4, -1)]
        self.assertEqual(plan_relocations(rels, 12), plan_relocations(rels, 12))
        self.assertEqual(rels, [Relocation(8, -2), Relocation(4, -1)])

    def test_inverted_range(self):
        with self.assertRaises(DefragmentationError):
            plan_relocations([Relocation(10, -1)], 5)

    def test_rightward_shift_rejected(self):
        with self.assertRaises(DefragmentationError):
            plan_relocations([Relocation(5, 2)], 10)

    def test_header_overwrite_rejected(self):
        with self.assertRaises(DefragmentationError):
            plan_relocations([Relocation(3, -2)], 5)


class ApplyTests(unittest.TestCase):
    def test_apply_moves_copies_left(self):
        # sector 3 is a gap and sector 5 is dropped
        f = _sector_file(8)
        copied = apply_moves(f, [Move(4, 6, -1), Move(6, 8, -2)])
        self.assertEqual(copied, 4)
        self.assertEqual(_sector_marks(f)[:6], [0, 1, 2, 4, 6, 7])

    def test_zero_shift_is_skipped(self):
        f = _sector_file(4)
        self.assertEqual(apply_moves(f, [Move(2, 4, 0)]), 0)
        self.assertEqual(_sector_marks(f), [0, 1, 2, 3])

    def test_relocate_table(self):
        table = LocationTable()
        table[0] = LocationEntry(2, 1)
        table[1] = LocationEntry(5, 2)
        table[2] = LocationEntry(9, 1)
        updated = relocate_table(table, [Move(5, 9, -2), Move(9, 10, -3)])
        self.assertEqual(updated, 2)
        self.assertEqual(table[0], LocationEntry(2, 1))
        self.assertEqual(table[1], LocationEntry(3, 2))
        self.assertEqual(table[2], LocationEntry(6, 1))
        self.assertEqual(logical_size(table), 7 * SECTOR_SIZE)

    def test_logical_size_of_empty_table(self):
        self.assertEqual(logical_size(LocationTable()), 2 * SECTOR_SIZE)

    def test_defragment_closes_gaps(self):
        # records at sectors 2, 5-6 and 9; gaps 3-4 and 7-8
        f = _sector_file(10)
        table = LocationTable()
        table[0] = LocationEntry(2, 1)
        table[1] = LocationEntry(5, 2)
        table[2] = LocationEntry(9, 1)
        size = defragment(f, table, [Relocation(5, -2), Relocation(9, -2)], 10)
        self.assertEqual(size, 6 * SECTOR_SIZE)
        self.assertEqual([table[i] for i in range(3)], [LocationEntry(2, 1), LocationEntry(3, 2), LocationEntry(5, 1)])
        self.assertEqual(_sector_marks(f)[:6], [0, 1, 2, 5, 6, 9])

    def test_failed_plan_writes_nothing(self):
        f = _sector_file(6)
        before = f.getvalue()
        table = LocationTable()
        table[0] = LocationEntry(4, 1)
        with self.assertRaises(DefragmentationError):
            defragment(f, table, [Relocation(4, -3)], 6)
        self.assertEqual(f.getvalue(), before)
        self.assertEqual(table[0], LocationEntry(4, 1))


if __name__ == "__main__":
    unittest.main()
