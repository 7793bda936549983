"""Fakes shared by the engine tests: clocks, a scripted gateway and product sets."""

import asyncio
from collections import deque
from typing import Callable, Iterable, List, Optional, Tuple

from live_rotator.models.data_models import ProductItem, ProductSet


def make_set(set_id: int, name: str, items: int = 2) -> ProductSet:
    """Product set with `items` generated product items."""
    return ProductSet(
        id=set_id,
        name=name,
        items=[
            ProductItem(
                id=set_id * 100 + i,
                url=f"https://shopee.co.id/product/{set_id}/{i}",
                shop_id=set_id,
                item_id=i
            )
            for i in range(items)
        ]
    )


async def run_until(predicate: Callable[[], bool], limit: int = 10000) -> None:
    """Yield to the event loop until predicate() holds."""
    for _ in range(limit):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


class FakeClock:
    """Clock whose sleeps return at once, advancing fake time."""

    def __init__(self, initial_time: float = 0.0):
        self._current_time = initial_time
        self.sleeps: List[float] = []

    def now(self) -> float:
        return self._current_time

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self._current_time += seconds
        await asyncio.sleep(0)


class GatedClock:
    """Clock whose sleeps block until the test calls release()."""

    def __init__(self):
        self._current_time = 0.0
        self.sleeps: List[float] = []
        self._gates: deque = deque()

    def now(self) -> float:
        return self._current_time

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        gate = asyncio.get_running_loop().create_future()
        self._gates.append((seconds, gate))
        await gate

    def release(self) -> None:
        """Finish the oldest sleep still pending."""
        while self._gates:
            seconds, gate = self._gates.popleft()
            if not gate.done():
                self._current_time += seconds
                gate.set_result(None)
                return
        raise AssertionError("no pending sleep")


class ScriptedGateway:
    """
    Session and application gateway driven by scripts.

    Script entries are consumed one per call; once a script runs out the
    default applies (session_id for lookups, success for applies). An entry
    that is an exception is raised instead of returned.
    """

    def __init__(
        self,
        session_id: Optional[str] = "session-1",
        session_script: Iterable = (),
        apply_script: Iterable = ()
    ):
        self.session_id = session_id
        self.session_script = deque(session_script)
        self.apply_script = deque(apply_script)
        self.session_calls: List[int] = []
        self.apply_calls: List[Tuple[int, str, int]] = []
        self.apply_gate: Optional[asyncio.Event] = None

    async def find_active_sessions(self, account_id: int) -> List[str]:
        self.session_calls.append(account_id)
        result = self.session_script.popleft() if self.session_script else self.session_id
        if isinstance(result, Exception):
            raise result
        return [result] if result else []

    async def apply_product_set(self, account_id: int, session_id: str, product_set_id: int) -> None:
        self.apply_calls.append((account_id, session_id, product_set_id))
        if self.apply_gate is not None:
            await self.apply_gate.wait()
        outcome = self.apply_script.popleft() if self.apply_script else None
        if isinstance(outcome, Exception):
            raise outcome

    @property
    def applied_set_ids(self) -> List[int]:
        return [call[2] for call in self.apply_calls]


class StaticCatalog:
    """Catalog gateway serving a fixed listing, or raising `error` when set."""

    def __init__(self, product_sets: Iterable[ProductSet] = (), error: Optional[Exception] = None):
        self.product_sets = list(product_sets)
        self.error = error
        self.niche_calls: List[Optional[int]] = []

    async def list_product_sets(self, niche_id: Optional[int] = None) -> List[ProductSet]:
        self.niche_calls.append(niche_id)
        if self.error is not None:
            raise self.error
        return list(self.product_sets)

    async def fetch_product_set_items(self, product_set_id: int) -> List[ProductItem]:
        for product_set in self.product_sets:
            if product_set.id == product_set_id:
                return list(product_set.items)
        return []
