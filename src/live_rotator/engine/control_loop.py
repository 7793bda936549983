"""Control loop owning the run/stop lifecycle of one account's rotation."""

import asyncio
from typing import Callable, Optional, Sequence

from live_rotator.engine.error_policy import ErrorPolicy
from live_rotator.engine.ledger import OutOfRange, RotationLedger, filter_rotatable
from live_rotator.engine.scheduler import CancellationToken, Clock, DelayTimer, MonotonicClock
from live_rotator.engine.tick_executor import TickExecutor
from live_rotator.gateway.protocols import ApplicationGateway, CatalogGateway, SessionGateway
from live_rotator.models.data_models import (
    LoopPhase,
    LoopState,
    LoopStatus,
    ProductSet,
    SwitchResult,
    TerminalAlert,
)
from live_rotator.monitoring.logger import StructuredLogger

STARTABLE_PHASES = (LoopPhase.IDLE, LoopPhase.STOPPED_ON_ERROR)


class LoopStateError(RuntimeError):
    """Operation not allowed in the loop's current phase."""


class NoRotatableProductSets(ValueError):
    """None of the given product sets has any items."""


def _validate_delay(seconds: float) -> float:
    if seconds is None or seconds <= 0:
        raise ValueError(f"delay must be positive, got: {seconds}")
    return float(seconds)


class ControlLoop:
    """
    Runs the rotation for one account as a single asyncio task.

    Lifecycle:
        IDLE --start--> RUNNING --stop--> STOPPING --> IDLE
        RUNNING --fatal / escalation threshold--> STOPPED_ON_ERROR
        start is accepted from IDLE and STOPPED_ON_ERROR only.

    Each tick finishes, including its wait, before the next one begins. The
    wait length is read when the wait starts, so set_delay() while a wait is
    in progress only changes the following wait.
    """

    def __init__(
        self,
        session_gateway: SessionGateway,
        application_gateway: ApplicationGateway,
        policy: Optional[ErrorPolicy] = None,
        clock: Optional[Clock] = None,
        logger: Optional[StructuredLogger] = None,
        delay_seconds: float = 60.0,
        on_alert: Optional[Callable[[TerminalAlert], None]] = None
    ):
        """
        Initialize control loop.

        Args:
            session_gateway: Finds the account's active live session
            application_gateway: Publishes product sets into a session
            policy: Failure policy (defaults to ErrorPolicy())
            clock: Time source for waits (defaults to MonotonicClock)
            logger: Structured logger (defaults to StructuredLogger())
            delay_seconds: Delay used when start() is not given one
            on_alert: Called with the terminal alert when the loop stops itself;
                an exception it raises is logged and does not affect the loop
        """
        self.ledger = RotationLedger()
        self.policy = policy or ErrorPolicy()
        self.clock = clock or MonotonicClock()
        self.timer = DelayTimer(self.clock)
        self.logger = logger or StructuredLogger()
        self.on_alert = on_alert
        self.executor = TickExecutor(
            session_gateway,
            application_gateway,
            self.ledger,
            self.policy,
            logger=self.logger
        )
        self._delay_seconds = _validate_delay(delay_seconds)
        self._state: Optional[LoopState] = None
        self._token: Optional[CancellationToken] = None
        self._task: Optional[asyncio.Task] = None
        self._starting = False

    @property
    def phase(self) -> LoopPhase:
        return self._state.phase if self._state else LoopPhase.IDLE

    @property
    def state(self) -> Optional[LoopState]:
        """State of the current or most recent run."""
        return self._state

    async def start(
        self,
        account_id: int,
        product_sets: Sequence[ProductSet],
        delay_seconds: Optional[float] = None
    ) -> LoopStatus:
        """
        Start rotating product sets into the account's live session.

        Empty product sets are dropped before the ledger is rebuilt; the
        ledger keeps its position (clamped), so an index chosen through
        switch_to() while idle takes effect here. The session gateway is
        queried once so an unreachable gateway fails the start instead of
        the run.

        Raises:
            LoopStateError: If the loop is already running or stopping
            NoRotatableProductSets: If no product set has items
            ValueError: If account_id is missing or the delay is not positive
            GatewayError: If the session gateway cannot be reached
        """
        if self.phase not in STARTABLE_PHASES or self._starting:
            raise LoopStateError(f"Cannot start while {self.phase.value}")
        if account_id is None:
            raise ValueError("An account is required to start")

        rotatable = filter_rotatable(product_sets)
        if not rotatable:
            raise NoRotatableProductSets("No product set with items to rotate")

        delay = _validate_delay(delay_seconds if delay_seconds is not None else self._delay_seconds)

        self._starting = True
        try:
            sessions = await self.executor.session_gateway.find_active_sessions(account_id)
        finally:
            self._starting = False

        self._delay_seconds = delay
        self.ledger.rebuild(rotatable)
        self._state = LoopState(
            account_id=account_id,
            delay_seconds=delay,
            phase=LoopPhase.RUNNING,
            session_id=sessions[0] if sessions else None
        )
        self._token = CancellationToken()

        self.logger.loop_start(account=account_id, product_sets=len(rotatable), delay=delay)

        self._task = asyncio.create_task(self._run(self._state, self._token))
        return self.status()

    def request_stop(self) -> None:
        """Signal the running loop to stop without waiting for it."""
        if self._state is None or self._state.phase is not LoopPhase.RUNNING:
            return
        self._state.phase = LoopPhase.STOPPING
        self._token.cancel()

    async def stop(self) -> LoopStatus:
        """
        Stop the loop and wait until it has exited.

        An in-flight gateway call is allowed to finish; its result is discarded.
        """
        self.request_stop()
        return await self.wait_stopped()

    async def wait_stopped(self) -> LoopStatus:
        """Wait for the loop task to end and return the final status."""
        if self._task is not None:
            await self._task
        return self.status()

    def set_delay(self, seconds: float) -> None:
        """
        Change the delay between ticks.

        Takes effect on the next wait; a wait already in progress keeps its length.
        """
        delay = _validate_delay(seconds)
        self._delay_seconds = delay
        if self._state is not None:
            self._state.delay_seconds = delay

    async def switch_to(self, index: int) -> Optional[SwitchResult]:
        """
        Manually select the product set at `index`.

        While idle this only moves the ledger position and returns None.
        While running the set is applied immediately; on success the next
        scheduled tick continues with the set after it.

        Raises:
            OutOfRange: If index is not a valid ledger position
        """
        if self.phase is not LoopPhase.RUNNING:
            self.ledger.seek(index)
            self.logger.manual_switch(
                account=self._state.account_id if self._state else None,
                index=index,
                product_set=self.ledger.current().name,
                applied=False
            )
            return None

        if not 0 <= index < len(self.ledger):
            raise OutOfRange(f"Index {index} out of range for {len(self.ledger)} product sets")

        product_set = self.ledger.sets[index]
        result = await self.executor.apply_out_of_band(self._state, index, product_set)

        self.logger.manual_switch(
            account=self._state.account_id,
            index=index,
            product_set=product_set.name,
            applied=result.applied
        )
        return result

    def refresh_product_sets(self, product_sets: Sequence[ProductSet]) -> int:
        """
        Replace the rotation after product sets changed elsewhere.

        Returns:
            Number of rotatable product sets now in the ledger
        """
        rotatable = filter_rotatable(product_sets)
        self.ledger.rebuild(rotatable)
        self.logger.ledger_rebuild(size=len(self.ledger), index=self.ledger.index)
        return len(rotatable)

    async def reload_product_sets(
        self,
        catalog: CatalogGateway,
        niche_id: Optional[int] = None
    ) -> int:
        """
        Re-read product sets from the catalog and rebuild the rotation.

        Raises:
            GatewayError: If the catalog cannot be read; the ledger is untouched
        """
        product_sets = await catalog.list_product_sets(niche_id)
        return self.refresh_product_sets(product_sets)

    def status(self) -> LoopStatus:
        """Snapshot of the loop for the operator."""
        state = self._state
        next_set = self.ledger.current() if len(self.ledger) else None

        return LoopStatus(
            phase=self.phase,
            account_id=state.account_id if state else None,
            current_set_name=state.active_set.name if state and state.active_set else None,
            next_set_name=next_set.name if next_set else None,
            last_error=state.last_error if state else None,
            consecutive_errors=state.consecutive_errors if state else 0,
            session_id=state.session_id if state else None,
            delay_seconds=state.delay_seconds if state else self._delay_seconds,
            seconds_until_next_tick=self.timer.remaining(),
            last_action=state.last_action if state else "",
            alert=state.alert if state else None,
            applies=state.applies if state else 0
        )

    def _notify_alert(self, state: LoopState) -> None:
        if not self.on_alert or not state.alert:
            return
        try:
            self.on_alert(state.alert)
        except Exception as e:
            self.logger.alert_callback_error(account=state.account_id, error=str(e))

    async def _run(self, state: LoopState, token: CancellationToken) -> None:
        """Tick, wait, repeat until stopped or the policy ends the run."""
        try:
            while state.is_running and not token.cancelled:
                result = await self.executor.execute(state)

                if result.is_terminal:
                    self._notify_alert(state)
                    break

                if not state.is_running or token.cancelled:
                    break

                # Read the delay now so operator changes apply to this wait
                if not await self.timer.wait(state.delay_seconds, token):
                    break
        finally:
            if state.phase in (LoopPhase.RUNNING, LoopPhase.STOPPING):
                state.phase = LoopPhase.IDLE
            self.logger.loop_stop(
                account=state.account_id,
                phase=state.phase.value,
                applies=state.applies
            )
