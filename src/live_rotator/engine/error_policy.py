"""Failure classification and stop policy for the rotation loop."""

from typing import Dict, Optional

from live_rotator.gateway.errors import GatewayError
from live_rotator.models.data_models import ErrorClass, ErrorKind, PolicyDecision

DEFAULT_CLASSIFICATION: Dict[ErrorKind, ErrorClass] = {
    ErrorKind.VALIDATION_REJECTED: ErrorClass.ESCALATING,
    ErrorKind.AUTH_MISMATCH: ErrorClass.FATAL,
    ErrorKind.NETWORK: ErrorClass.TRANSIENT,
    ErrorKind.TIMEOUT: ErrorClass.TRANSIENT,
    ErrorKind.UNKNOWN: ErrorClass.TRANSIENT,
}


def error_kind(error: BaseException) -> ErrorKind:
    """Kind carried by a gateway error; anything else is UNKNOWN."""
    if isinstance(error, GatewayError):
        return error.kind
    return ErrorKind.UNKNOWN


class ErrorPolicy:
    """
    Maps failures to TRANSIENT / ESCALATING / FATAL and decides when to stop.

    The policy holds no run state: the consecutive error count lives with the
    loop and is passed in and handed back through PolicyDecision.

    - ESCALATING failures add one to the count; reaching the threshold stops
    - FATAL failures stop immediately, whatever the count
    - TRANSIENT failures leave the count alone and never stop

    The loop resets the count to zero on every successful apply.
    """

    def __init__(
        self,
        escalation_threshold: int = 3,
        classification: Optional[Dict[ErrorKind, ErrorClass]] = None
    ):
        """
        Initialize error policy.

        Args:
            escalation_threshold: Consecutive escalating failures that stop the loop
            classification: Per-kind overrides of the default mapping
        """
        if escalation_threshold < 1:
            raise ValueError(f"escalation_threshold must be at least 1, got: {escalation_threshold}")
        self.escalation_threshold = escalation_threshold
        self.classification = {**DEFAULT_CLASSIFICATION, **(classification or {})}

    def classify(self, error: BaseException) -> ErrorClass:
        """
        Classify a failure.

        Errors without a recognizable signal are TRANSIENT, never escalated.
        """
        return self.classification.get(error_kind(error), ErrorClass.TRANSIENT)

    def evaluate(self, error: BaseException, consecutive_errors: int) -> PolicyDecision:
        """
        Run one failure through the policy.

        Args:
            error: The failure raised by the apply call
            consecutive_errors: Escalating failures seen since the last success

        Returns:
            Classification, the updated count, and whether the loop must stop
        """
        classification = self.classify(error)

        if classification is ErrorClass.FATAL:
            return PolicyDecision(classification, consecutive_errors, should_stop=True)

        if classification is ErrorClass.ESCALATING:
            count = consecutive_errors + 1
            return PolicyDecision(
                classification,
                count,
                should_stop=count >= self.escalation_threshold
            )

        return PolicyDecision(classification, consecutive_errors, should_stop=False)
