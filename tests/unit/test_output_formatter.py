"""Unit tests for the run report formatter."""

import json

import pytest

from live_rotator.models.data_models import (
    ErrorClass,
    ErrorKind,
    ErrorRecord,
    LoopPhase,
    LoopStatus,
    TerminalAlert,
)
from live_rotator.runner.output import RunReportFormatter


@pytest.fixture
def sample_errors():
    return [
        ErrorRecord(
            stage="apply",
            kind=ErrorKind.VALIDATION_REJECTED,
            classification=ErrorClass.ESCALATING,
            code=400,
            error="HTTP 400: Invalid product set",
            timestamp="2024-01-01T12:00:00+00:00"
        ),
        ErrorRecord(
            stage="session",
            kind=ErrorKind.TIMEOUT,
            classification=ErrorClass.TRANSIENT,
            code=None,
            error="POST /api/shopee-live/active-session timed out",
            timestamp="2024-01-01T12:01:00+00:00"
        ),
    ]


def make_status(alert=None, phase=LoopPhase.IDLE):
    return LoopStatus(
        phase=phase,
        account_id=7,
        current_set_name="Morning deals",
        next_set_name="Flash sale",
        last_error=None,
        consecutive_errors=1,
        session_id="session-1",
        delay_seconds=60.0,
        seconds_until_next_tick=None,
        last_action='Applied "Morning deals" to session session-',
        alert=alert,
        applies=4
    )


class TestRunReportFormatter:

    def test_top_level_sections(self, sample_errors):
        report = RunReportFormatter().format(make_status(), sample_errors)
        assert set(report) == {"summary", "rotation", "errors"}

    def test_summary(self, sample_errors):
        summary = RunReportFormatter().format(make_status(), sample_errors)["summary"]

        assert summary == {
            "account_id": 7,
            "phase": "idle",
            "applies": 4,
            "errors": 2,
            "alert": None,
        }

    def test_alert_is_reported(self):
        alert = TerminalAlert(
            reason="Credential no longer matches the registered device",
            kind=ErrorKind.AUTH_MISMATCH,
            message="HTTP 401: machine mismatch",
            consecutive_errors=0,
            timestamp="2024-01-01T12:00:00+00:00"
        )
        status = make_status(alert=alert, phase=LoopPhase.STOPPED_ON_ERROR)

        summary = RunReportFormatter().format(status, [])["summary"]

        assert summary["phase"] == "stopped_on_error"
        assert summary["alert"]["kind"] == "auth_mismatch"
        assert summary["alert"]["reason"].startswith("Credential")

    def test_rotation(self, sample_errors):
        rotation = RunReportFormatter().format(make_status(), sample_errors)["rotation"]

        assert rotation["current_set"] == "Morning deals"
        assert rotation["next_set"] == "Flash sale"
        assert rotation["session_id"] == "session-1"
        assert rotation["consecutive_errors"] == 1

    def test_errors_use_enum_values(self, sample_errors):
        errors = RunReportFormatter().format(make_status(), sample_errors)["errors"]

        assert errors[0]["kind"] == "validation_rejected"
        assert errors[0]["classification"] == "escalating"
        assert errors[0]["code"] == 400
        assert errors[1]["stage"] == "session"
        assert errors[1]["code"] is None

    def test_save_creates_directories(self, tmp_path, sample_errors):
        path = tmp_path / "nested" / "out" / "report.json"

        RunReportFormatter().save(make_status(), sample_errors, str(path))

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["summary"]["errors"] == 2
        assert len(data["errors"]) == 2
