"""One iteration of the rotation loop: session check, apply, classify."""

import asyncio
from datetime import datetime, timezone
from typing import Optional

from live_rotator.engine.error_policy import ErrorPolicy, error_kind
from live_rotator.engine.ledger import RotationLedger
from live_rotator.gateway.errors import GatewayError
from live_rotator.gateway.protocols import ApplicationGateway, SessionGateway
from live_rotator.models.data_models import (
    ErrorClass,
    ErrorRecord,
    LoopPhase,
    LoopState,
    ProductSet,
    SwitchResult,
    TerminalAlert,
    TickOutcome,
    TickResult,
)
from live_rotator.monitoring.logger import StructuredLogger

MAX_ERROR_HISTORY = 200


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class TickExecutor:
    """
    Executes single ticks against the session and application gateways.

    Responsibilities:
    - Refresh the session token on every tick
    - Apply the ledger's current product set and advance on success
    - Run failures through the error policy and stop on its verdict
    - Discard results of calls that finish after the loop left RUNNING

    Every apply, scheduled or manual, runs under apply_lock so two applies
    for the same account never overlap.
    """

    def __init__(
        self,
        session_gateway: SessionGateway,
        application_gateway: ApplicationGateway,
        ledger: RotationLedger,
        policy: ErrorPolicy,
        logger: Optional[StructuredLogger] = None
    ):
        """
        Initialize tick executor.

        Args:
            session_gateway: Finds the account's active live session
            application_gateway: Publishes product sets into a session
            ledger: Rotation order and position
            policy: Failure classification and stop policy
            logger: Optional structured logger for telemetry
        """
        self.session_gateway = session_gateway
        self.application_gateway = application_gateway
        self.ledger = ledger
        self.policy = policy
        self.logger = logger
        self.apply_lock = asyncio.Lock()

    async def execute(self, state: LoopState) -> TickResult:
        """
        Run one tick.

        "No session" and "no product sets" are wait states, not errors:
        they leave the error count untouched and the loop simply tries again
        after the delay.

        Args:
            state: State of the running loop, mutated in place

        Returns:
            What the tick did
        """
        if not state.is_running:
            return TickResult(TickOutcome.DISCARDED)

        if self.logger:
            self.logger.tick_start(account=state.account_id, index=self.ledger.index)

        try:
            sessions = await self.session_gateway.find_active_sessions(state.account_id)
        except Exception as e:
            if not state.is_running:
                return TickResult(TickOutcome.DISCARDED)
            state.session_id = None
            record = self._record_error(state, "session", e, ErrorClass.TRANSIENT)
            state.last_action = "Session lookup failed, retrying"
            return TickResult(TickOutcome.FAILED, error=record)

        if not state.is_running:
            return TickResult(TickOutcome.DISCARDED)

        # At most one session is expected; extras are ignored
        state.session_id = sessions[0] if sessions else None

        if state.session_id is None:
            state.last_action = "Awaiting active session"
            if self.logger:
                self.logger.session_missing(account=state.account_id, delay=state.delay_seconds)
            return TickResult(TickOutcome.AWAITING_SESSION)

        async with self.apply_lock:
            if not state.is_running:
                return TickResult(TickOutcome.DISCARDED)

            if len(self.ledger) == 0:
                state.last_action = "No product sets"
                if self.logger:
                    self.logger.rotation_empty(account=state.account_id, delay=state.delay_seconds)
                return TickResult(TickOutcome.NO_PRODUCT_SETS)

            index = self.ledger.index
            product_set = self.ledger.current()
            try:
                await self.application_gateway.apply_product_set(
                    state.account_id,
                    state.session_id,
                    product_set.id
                )
            except Exception as e:
                if not state.is_running:
                    return TickResult(TickOutcome.DISCARDED, product_set=product_set)
                return self._handle_failure(state, product_set, e)

            if not state.is_running:
                return TickResult(TickOutcome.DISCARDED, product_set=product_set)

            self._mark_applied(state, product_set)
            self._advance_past(index, product_set)
            next_set = self.ledger.current().name if len(self.ledger) else None

        if self.logger:
            self.logger.apply_success(
                account=state.account_id,
                session=state.session_id,
                product_set=product_set.name,
                next_set=next_set
            )
        return TickResult(TickOutcome.APPLIED, product_set=product_set)

    async def apply_out_of_band(
        self,
        state: LoopState,
        index: int,
        product_set: ProductSet
    ) -> SwitchResult:
        """
        Apply a chosen product set immediately, outside the tick cadence.

        On success the ledger is positioned right after `index` so the next
        scheduled tick continues with the following set. Failures are
        returned to the caller and never touch the phase or the error count.
        """
        async with self.apply_lock:
            session_id = state.session_id
            try:
                if session_id is None:
                    sessions = await self.session_gateway.find_active_sessions(state.account_id)
                    session_id = sessions[0] if sessions else None
                if session_id is None:
                    return SwitchResult(index, product_set, applied=False, error="No active session")
                await self.application_gateway.apply_product_set(
                    state.account_id,
                    session_id,
                    product_set.id
                )
            except Exception as e:
                return SwitchResult(
                    index,
                    product_set,
                    applied=False,
                    error=str(e),
                    kind=error_kind(e)
                )

            state.session_id = session_id
            state.active_set = product_set
            state.applies += 1
            state.last_action = f'Switched to "{product_set.name}"'
            self._advance_past(index, product_set)

        return SwitchResult(index, product_set, applied=True)

    def _advance_past(self, index: int, product_set: ProductSet) -> None:
        """
        Position the ledger after `product_set`, last seen at `index`.

        If the ledger was rebuilt while the apply was in flight and the set is
        no longer at that position, the clamped index is left alone so the
        next tick applies whatever now sits there.
        """
        if index < len(self.ledger) and self.ledger.sets[index].id == product_set.id:
            self.ledger.seek(index)
            self.ledger.advance()

    def _mark_applied(self, state: LoopState, product_set: ProductSet) -> None:
        state.consecutive_errors = 0
        state.active_set = product_set
        state.applies += 1
        state.last_action = f'Applied "{product_set.name}" to session {state.session_id[:8]}'

    def _handle_failure(
        self,
        state: LoopState,
        product_set: ProductSet,
        error: Exception
    ) -> TickResult:
        """Classify an apply failure and stop the loop if the policy says so."""
        decision = self.policy.evaluate(error, state.consecutive_errors)
        state.consecutive_errors = decision.consecutive_errors
        record = self._record_error(state, "apply", error, decision.classification)

        if not decision.should_stop:
            state.last_action = f'Failed to apply "{product_set.name}", retrying'
            return TickResult(TickOutcome.FAILED, product_set=product_set, error=record)

        if decision.classification is ErrorClass.FATAL:
            reason = "Credential no longer matches the registered device"
        else:
            reason = f"{decision.consecutive_errors} consecutive rejected applies"

        state.alert = TerminalAlert(
            reason=reason,
            kind=record.kind,
            message=record.error,
            consecutive_errors=state.consecutive_errors,
            timestamp=record.timestamp
        )
        state.phase = LoopPhase.STOPPED_ON_ERROR
        state.last_action = f"Stopped: {reason}"

        if self.logger:
            self.logger.loop_alert(
                account=state.account_id,
                reason=reason,
                kind=record.kind.value,
                error=record.error
            )
        return TickResult(TickOutcome.STOPPED_ON_ERROR, product_set=product_set, error=record)

    def _record_error(
        self,
        state: LoopState,
        stage: str,
        error: Exception,
        classification: ErrorClass
    ) -> ErrorRecord:
        record = ErrorRecord(
            stage=stage,
            kind=error_kind(error),
            classification=classification,
            code=error.status_code if isinstance(error, GatewayError) else None,
            error=str(error) or type(error).__name__,
            timestamp=_utc_now()
        )
        state.last_error = record
        state.errors.append(record)
        if len(state.errors) > MAX_ERROR_HISTORY:
            del state.errors[:-MAX_ERROR_HISTORY]

        if self.logger:
            self.logger.apply_error(
                account=state.account_id,
                stage=stage,
                kind=record.kind.value,
                classification=classification.value,
                status=record.code,
                error=record.error,
                consecutive_errors=state.consecutive_errors
            )
        return record
