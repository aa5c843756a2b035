"""
Tests for the CLI interface.
"""
import json
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from quota_watch.cli.main import app, EXIT_CODE_PASS, EXIT_CODE_FAIL

runner = CliRunner()

SAMPLE_REPORT = {
    "period": {
        "from": "20/09/2026",
        "to": "17/10/2026",
        "reset": "20/10/2026",
        "daysElapsed": 27.5,
        "daysRemaining": 2.5,
    },
    "vercel": {
        "proj": {
            "Build Minutes": {
                "used": 4125.0, "limit": 6000, "unit": "min", "dailyRate": 150.0,
                "projected": 4500.0, "remaining": 1875.0, "daysUntil": 13,
                "projPct": 75.0, "risk": "warn", "perApp": {"pole": 4125.0},
            },
        },
        "deploys": {"pole": {"state": "READY", "lastDate": "14/10/2026 08:30"}},
    },
    "openai": {"totalCost": 1234.5, "requests": 2000, "costPerPrompt": 0.6173, "monthlyProjected": 130.0},
    "generatedAt": "2026-10-17T12:00:00.000Z",
}


@pytest.fixture
def credentials(monkeypatch):
    monkeypatch.setenv("VERCEL_TOKEN", "tok")
    monkeypatch.setenv("VERCEL_TEAM_ID", "team_1")


@pytest.fixture
def mock_run_report():
    """Mock the report run."""
    with patch('quota_watch.cli.main._run_report', return_value=SAMPLE_REPORT) as mock:
        yield mock


class TestCLI:
    """Test CLI commands."""

    def test_no_command_shows_hint(self):
        result = runner.invoke(app, [])
        assert result.exit_code == 0
        assert "Quota Watch" in result.output

    def test_report_tables(self, credentials, mock_run_report):
        """Test the default table output."""
        result = runner.invoke(app, ["report"])

        assert result.exit_code == EXIT_CODE_PASS
        assert "Build Minutes" in result.output
        assert "WARN" in result.output
        assert "READY" in result.output
        assert "$1,234.50" in result.output
        assert "20/09/2026" in result.output

    def test_report_json(self, credentials, mock_run_report):
        """Test --json prints the raw report."""
        result = runner.invoke(app, ["report", "--json"])

        assert result.exit_code == EXIT_CODE_PASS
        assert json.loads(result.output) == SAMPLE_REPORT

    def test_missing_credentials_fail(self, monkeypatch, mock_run_report):
        monkeypatch.delenv("VERCEL_TOKEN", raising=False)
        monkeypatch.delenv("VERCEL_TEAM_ID", raising=False)

        result = runner.invoke(app, ["report"])

        assert result.exit_code == EXIT_CODE_FAIL
        assert "VERCEL_TOKEN" in result.output
        mock_run_report.assert_not_called()

    def test_report_failure_exits_nonzero(self, credentials):
        with patch('quota_watch.cli.main._run_report', side_effect=RuntimeError("upstream down")):
            result = runner.invoke(app, ["report"])

        assert result.exit_code == EXIT_CODE_FAIL
        assert "upstream down" in result.output

    def test_serve_runs_uvicorn(self):
        with patch('uvicorn.run') as mock_run:
            result = runner.invoke(app, ["serve", "--port", "9000"])

        assert result.exit_code == 0
        mock_run.assert_called_once_with("quota_watch.api.app:app", host="127.0.0.1", port=9000)
