"""Structured logging for rotation loop monitoring."""

import json
import logging
from typing import Optional


class StructuredLogger:
    """Structured logger with uniform schema."""

    def __init__(self, name: str = "live_rotator", level: str = "INFO"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper()))

        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter('%(message)s'))
            self.logger.addHandler(handler)

    def log(self, event: str, level: int = logging.INFO, **kwargs) -> None:
        """
        Log structured event.

        Standard keys: event, account, session, product_set, status,
                      kind, classification, consecutive_errors, delay
        """
        log_data = {"event": event, **kwargs}
        self.logger.log(level, json.dumps(log_data, default=str))

    def loop_start(self, account: int, product_sets: int, delay: float) -> None:
        self.log("loop_start", account=account, product_sets=product_sets, delay=delay)

    def loop_stop(self, account: int, phase: str, applies: int) -> None:
        self.log("loop_stop", account=account, phase=phase, applies=applies)

    def tick_start(self, account: int, index: Optional[int]) -> None:
        self.log("tick_start", level=logging.DEBUG, account=account, index=index)

    def session_missing(self, account: int, delay: float) -> None:
        self.log("session_missing", account=account, delay=delay)

    def rotation_empty(self, account: int, delay: float) -> None:
        self.log("rotation_empty", level=logging.WARNING, account=account, delay=delay)

    def apply_success(self, account: int, session: str, product_set: str, next_set: Optional[str]) -> None:
        self.log("apply_success", account=account, session=session, product_set=product_set, next_set=next_set)

    def apply_error(
        self,
        account: int,
        stage: str,
        kind: str,
        classification: str,
        status: Optional[int],
        error: str,
        consecutive_errors: int
    ) -> None:
        # Unknown failures go out at ERROR so they stand apart from routine retries
        level = logging.ERROR if kind == "unknown" else logging.WARNING
        self.log(
            "apply_error",
            level=level,
            account=account,
            stage=stage,
            kind=kind,
            classification=classification,
            status=status,
            error=error,
            consecutive_errors=consecutive_errors
        )

    def loop_alert(self, account: int, reason: str, kind: str, error: str) -> None:
        self.log("loop_alert", level=logging.CRITICAL, account=account, reason=reason, kind=kind, error=error)

    def alert_callback_error(self, account: int, error: str) -> None:
        self.log("alert_callback_error", level=logging.ERROR, account=account, error=error)

    def manual_switch(self, account: int, index: int, product_set: str, applied: bool) -> None:
        self.log("manual_switch", account=account, index=index, product_set=product_set, applied=applied)

    def ledger_rebuild(self, size: int, index: int) -> None:
        self.log("ledger_rebuild", size=size, index=index)

    def api_request(self, method: str, path: str) -> None:
        self.log("api_request", level=logging.DEBUG, method=method, path=path)

    def api_response(self, method: str, path: str, status: int, elapsed_ms: float) -> None:
        self.log("api_response", level=logging.DEBUG, method=method, path=path, status=status, elapsed_ms=elapsed_ms)
