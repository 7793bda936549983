"""Rotation engine: ledger, error policy, tick executor and control loop."""

from .control_loop import ControlLoop, LoopStateError, NoRotatableProductSets
from .error_policy import ErrorPolicy
from .ledger import EmptyLedger, LedgerError, OutOfRange, RotationLedger, filter_rotatable
from .scheduler import CancellationToken, DelayTimer, MonotonicClock
from .tick_executor import TickExecutor

__all__ = [
    "CancellationToken",
    "ControlLoop",
    "DelayTimer",
    "EmptyLedger",
    "ErrorPolicy",
    "LedgerError",
    "LoopStateError",
    "MonotonicClock",
    "NoRotatableProductSets",
    "OutOfRange",
    "RotationLedger",
    "TickExecutor",
    "filter_rotatable",
]
