"""Rotation ledger: the cyclic order in which product sets are applied."""

from typing import Iterable, List, Sequence, Tuple

from live_rotator.models.data_models import ProductSet


class LedgerError(Exception):
    """Base class for rotation ledger failures."""


class OutOfRange(LedgerError, IndexError):
    """A seek target outside [0, length)."""


class EmptyLedger(LedgerError, LookupError):
    """The ledger holds no product sets."""


def filter_rotatable(product_sets: Iterable[ProductSet]) -> List[ProductSet]:
    """Drop product sets that have no items; order is kept."""
    return [ps for ps in product_sets if not ps.is_empty]


class RotationLedger:
    """
    Ordered, cyclic sequence of product sets plus the current position.

    Invariant: 0 <= index < len(self) whenever the ledger is non-empty,
    index == 0 when it is empty. The backing sequence is only ever replaced
    wholesale through rebuild(), so readers never see a half-updated rotation.
    """

    def __init__(self, product_sets: Sequence[ProductSet] = (), index: int = 0):
        self._sets: Tuple[ProductSet, ...] = tuple(product_sets)
        self._index = 0
        if self._sets:
            self.seek(index)

    def __len__(self) -> int:
        return len(self._sets)

    @property
    def index(self) -> int:
        return self._index

    @property
    def sets(self) -> Tuple[ProductSet, ...]:
        return self._sets

    def current(self) -> ProductSet:
        """
        Product set at the current position.

        Raises:
            EmptyLedger: If there are no product sets
        """
        if not self._sets:
            raise EmptyLedger("Rotation ledger is empty")
        return self._sets[self._index]

    def peek_next(self) -> ProductSet:
        """
        Product set that follows current() in rotation order.

        Raises:
            EmptyLedger: If there are no product sets
        """
        if not self._sets:
            raise EmptyLedger("Rotation ledger is empty")
        return self._sets[(self._index + 1) % len(self._sets)]

    def advance(self) -> None:
        """Move to the next position, wrapping around. No-op for length <= 1."""
        if len(self._sets) <= 1:
            return
        self._index = (self._index + 1) % len(self._sets)

    def seek(self, target_index: int) -> None:
        """
        Jump to a position directly.

        Raises:
            OutOfRange: If target_index is not in [0, length)
        """
        if not 0 <= target_index < len(self._sets):
            raise OutOfRange(
                f"Index {target_index} out of range for {len(self._sets)} product sets"
            )
        self._index = target_index

    def rebuild(self, product_sets: Sequence[ProductSet]) -> None:
        """
        Replace the backing sequence, keeping the previous index modulo the new length.

        Refreshing metadata with unchanged content keeps rotation progress;
        a shrinking list clamps the index instead of failing.
        """
        self._sets = tuple(product_sets)
        self._index = self._index % len(self._sets) if self._sets else 0
