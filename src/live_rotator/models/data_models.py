"""Core data models for the live rotation loop."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class LoopPhase(Enum):
    """Control loop lifecycle phases."""
    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED_ON_ERROR = "stopped_on_error"


class ErrorKind(Enum):
    """Gateway failure families."""
    VALIDATION_REJECTED = "validation_rejected"
    AUTH_MISMATCH = "auth_mismatch"
    NETWORK = "network"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


class ErrorClass(Enum):
    """How the error policy treats a failure."""
    TRANSIENT = "transient"
    ESCALATING = "escalating"
    FATAL = "fatal"


class TickOutcome(Enum):
    """What a single tick ended up doing."""
    APPLIED = "applied"
    AWAITING_SESSION = "awaiting_session"
    NO_PRODUCT_SETS = "no_product_sets"
    FAILED = "failed"
    STOPPED_ON_ERROR = "stopped_on_error"
    DISCARDED = "discarded"


@dataclass(frozen=True)
class ProductItem:
    """A single product listing inside a product set."""
    id: int
    url: str
    shop_id: Optional[int] = None
    item_id: Optional[int] = None


@dataclass
class ProductSet:
    """Named, ordered group of product items applied to a live session at once."""
    id: int
    name: str
    items: List[ProductItem] = field(default_factory=list)
    description: Optional[str] = None
    niche_id: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return not self.items


@dataclass
class ErrorRecord:
    """Error information for status reporting and the run report."""
    stage: str  # "session", "apply" or "manual"
    kind: ErrorKind
    classification: ErrorClass
    code: Optional[int]
    error: str
    timestamp: str  # ISO-8601 UTC


@dataclass
class TerminalAlert:
    """Raised to the operator when the loop stops itself."""
    reason: str
    kind: ErrorKind
    message: str
    consecutive_errors: int
    timestamp: str  # ISO-8601 UTC


@dataclass
class PolicyDecision:
    """Result of running one failure through the error policy."""
    classification: ErrorClass
    consecutive_errors: int
    should_stop: bool


@dataclass
class TickResult:
    """Outcome of one tick."""
    outcome: TickOutcome
    product_set: Optional[ProductSet] = None
    error: Optional[ErrorRecord] = None

    @property
    def is_terminal(self) -> bool:
        return self.outcome is TickOutcome.STOPPED_ON_ERROR


@dataclass
class SwitchResult:
    """Outcome of a manual switch to a product set."""
    index: int
    product_set: ProductSet
    applied: bool
    error: Optional[str] = None
    kind: Optional[ErrorKind] = None


@dataclass
class LoopState:
    """Mutable state owned by a single running control loop."""
    account_id: int
    delay_seconds: float
    phase: LoopPhase = LoopPhase.IDLE
    consecutive_errors: int = 0
    session_id: Optional[str] = None
    active_set: Optional[ProductSet] = None
    last_error: Optional[ErrorRecord] = None
    last_action: str = ""
    alert: Optional[TerminalAlert] = None
    applies: int = 0
    errors: List[ErrorRecord] = field(default_factory=list)

    @property
    def is_running(self) -> bool:
        return self.phase is LoopPhase.RUNNING


@dataclass(frozen=True)
class LoopStatus:
    """Snapshot of the loop handed to the operator."""
    phase: LoopPhase
    account_id: Optional[int]
    current_set_name: Optional[str]
    next_set_name: Optional[str]
    last_error: Optional[ErrorRecord]
    consecutive_errors: int
    session_id: Optional[str]
    delay_seconds: float
    seconds_until_next_tick: Optional[float]
    last_action: str
    alert: Optional[TerminalAlert]
    applies: int
