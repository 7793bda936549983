"""JSON run report for a finished rotation run.

The report is written when the CLI exits, whether the loop was stopped by the
operator or stopped itself on a terminal alert.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from live_rotator.models.data_models import ErrorRecord, LoopStatus, TerminalAlert


class RunReportFormatter:
    """
    Formats the final loop status and error history as JSON.

    Example output structure:
    {
        "summary": {
            "account_id": 7,
            "phase": "stopped_on_error",
            "applies": 12,
            "errors": 3,
            "alert": {"reason": "3 consecutive rejected applies", ...}
        },
        "rotation": {
            "current_set": "Morning deals",
            "next_set": "Flash sale",
            "session_id": "a1b2c3d4",
            "delay_seconds": 60.0,
            "consecutive_errors": 3,
            "last_action": "Stopped: 3 consecutive rejected applies"
        },
        "errors": [...]
    }
    """

    def format(self, status: LoopStatus, errors: Sequence[ErrorRecord]) -> Dict[str, Any]:
        """
        Format a run as a JSON-serializable dictionary.

        Args:
            status: Final loop status
            errors: Error history of the run, oldest first

        Returns:
            Dictionary with summary, rotation and errors sections
        """
        return {
            "summary": self._format_summary(status, errors),
            "rotation": self._format_rotation(status),
            "errors": self._format_errors(errors)
        }

    def _format_summary(self, status: LoopStatus, errors: Sequence[ErrorRecord]) -> Dict[str, Any]:
        return {
            "account_id": status.account_id,
            "phase": status.phase.value,
            "applies": status.applies,
            "errors": len(errors),
            "alert": self._format_alert(status.alert)
        }

    def _format_alert(self, alert: Optional[TerminalAlert]) -> Optional[Dict[str, Any]]:
        if alert is None:
            return None
        return {
            "reason": alert.reason,
            "kind": alert.kind.value,
            "message": alert.message,
            "consecutive_errors": alert.consecutive_errors,
            "timestamp": alert.timestamp
        }

    def _format_rotation(self, status: LoopStatus) -> Dict[str, Any]:
        return {
            "current_set": status.current_set_name,
            "next_set": status.next_set_name,
            "session_id": status.session_id,
            "delay_seconds": status.delay_seconds,
            "consecutive_errors": status.consecutive_errors,
            "last_action": status.last_action
        }

    def _format_errors(self, errors: Sequence[ErrorRecord]) -> List[Dict[str, Any]]:
        """Format error records for debugging."""
        return [
            {
                "stage": error.stage,
                "kind": error.kind.value,
                "classification": error.classification.value,
                "code": error.code,
                "error": error.error,
                "timestamp": error.timestamp
            }
            for error in errors
        ]

    def save(
        self,
        status: LoopStatus,
        errors: Sequence[ErrorRecord],
        path: str = "out/run_report.json"
    ) -> None:
        """
        Save the formatted report to a JSON file.

        Creates parent directories if they don't exist.

        Args:
            status: Final loop status
            errors: Error history of the run
            path: Output file path
        """
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(self.format(status, errors), f, indent=2, ensure_ascii=False)
