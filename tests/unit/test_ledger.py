"""Unit tests for the rotation ledger."""

import pytest

from live_rotator.engine.ledger import (
    EmptyLedger,
    LedgerError,
    OutOfRange,
    RotationLedger,
    filter_rotatable,
)
from tests.fixtures.fakes import make_set


class TestRotationLedgerBasics:

    def test_starts_at_first_set(self, ledger):
        assert ledger.index == 0
        assert ledger.current().name == "A"

    def test_empty_ledger_has_index_zero(self):
        ledger = RotationLedger()
        assert len(ledger) == 0
        assert ledger.index == 0

    def test_current_on_empty_ledger_raises(self):
        with pytest.raises(EmptyLedger):
            RotationLedger().current()

    def test_peek_next_on_empty_ledger_raises(self):
        with pytest.raises(EmptyLedger):
            RotationLedger().peek_next()

    def test_empty_ledger_error_is_lookup_error(self):
        with pytest.raises(LookupError):
            RotationLedger().current()

    def test_peek_next_does_not_move(self, ledger):
        assert ledger.peek_next().name == "B"
        assert ledger.index == 0

    def test_peek_next_wraps(self, ledger):
        ledger.seek(2)
        assert ledger.peek_next().name == "A"


class TestRotationLedgerAdvance:

    def test_advance_moves_to_next(self, ledger):
        ledger.advance()
        assert ledger.current().name == "B"

    def test_advance_wraps_around(self, ledger):
        ledger.seek(2)
        ledger.advance()
        assert ledger.index == 0

    def test_advancing_length_times_returns_to_start(self, product_sets):
        for start in range(len(product_sets)):
            ledger = RotationLedger(product_sets, index=start)
            for _ in range(len(product_sets)):
                ledger.advance()
            assert ledger.index == start

    def test_single_set_never_moves(self):
        ledger = RotationLedger([make_set(1, "Only")])
        for _ in range(5):
            ledger.advance()
            assert ledger.index == 0

    def test_advance_on_empty_ledger_is_noop(self):
        ledger = RotationLedger()
        ledger.advance()
        assert ledger.index == 0


class TestRotationLedgerSeek:

    def test_seek_moves_directly(self, ledger):
        ledger.seek(2)
        assert ledger.current().name == "C"

    @pytest.mark.parametrize("target", [-1, 3, 100])
    def test_seek_out_of_range_raises(self, ledger, target):
        with pytest.raises(OutOfRange):
            ledger.seek(target)
        assert ledger.index == 0

    def test_out_of_range_is_index_error(self, ledger):
        with pytest.raises(IndexError):
            ledger.seek(5)

    def test_seek_on_empty_ledger_raises(self):
        with pytest.raises(LedgerError):
            RotationLedger().seek(0)

    def test_constructor_index_is_validated(self, product_sets):
        with pytest.raises(OutOfRange):
            RotationLedger(product_sets, index=3)


class TestRotationLedgerRebuild:

    def test_rebuild_keeps_index_when_length_unchanged(self, ledger):
        ledger.seek(2)
        ledger.rebuild([make_set(1, "A2"), make_set(2, "B2"), make_set(3, "C2")])
        assert ledger.index == 2
        assert ledger.current().name == "C2"

    def test_rebuild_with_shorter_list_clamps_modulo(self):
        ledger = RotationLedger([make_set(i, str(i)) for i in range(5)], index=4)
        ledger.rebuild([make_set(1, "x"), make_set(2, "y"), make_set(3, "z")])
        assert ledger.index == 1

    def test_rebuild_never_leaves_index_out_of_range(self):
        for old_length in range(1, 6):
            for start in range(old_length):
                for new_length in range(0, 6):
                    ledger = RotationLedger(
                        [make_set(i, str(i)) for i in range(old_length)],
                        index=start
                    )
                    ledger.rebuild([make_set(i, str(i)) for i in range(new_length)])
                    if new_length:
                        assert 0 <= ledger.index < new_length
                    else:
                        assert ledger.index == 0

    def test_rebuild_to_empty_resets_index(self, ledger):
        ledger.seek(1)
        ledger.rebuild([])
        assert ledger.index == 0
        assert len(ledger) == 0

    def test_rebuild_replaces_sets_wholesale(self, ledger, product_sets):
        product_sets.append(make_set(4, "D"))
        assert len(ledger) == 3


def test_filter_rotatable_drops_empty_sets_in_order():
    sets = [make_set(1, "A"), make_set(2, "B", items=0), make_set(3, "C", items=1)]
    assert [ps.name for ps in filter_rotatable(sets)] == ["A", "C"]


def test_filter_rotatable_all_empty():
    assert filter_rotatable([make_set(1, "A", items=0)]) == []
