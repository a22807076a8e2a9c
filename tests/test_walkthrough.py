"""
Tests for the step-by-step walkthrough and CLI runner.
"""

import json
import pytest

from flashsim.core.state import LogEntry, ProtocolState, Step, StepLog
from flashsim.narrative.base import StaticNarrator, STATIC_EXPLANATIONS
from flashsim.simulation.controller import ScenarioController
from flashsim.simulation.runner import main
from flashsim.simulation.walkthrough import (
    ScenarioReport,
    format_report,
    format_step_log,
    run_scenario,
)


class TestRunScenario:
    """Tests for run_scenario."""

    def test_all_steps_run(self):
        """Test a run covers FLASH_LOAN through PROFIT."""
        report = run_scenario()

        assert [s.step for s in report.steps] == list(Step)[1:]
        assert len(report.price_history) == 7

    def test_profit(self):
        """Test the report's profit matches the wallet."""
        report = run_scenario()

        assert report.initial_usdc == 1000
        assert report.final_usdc == pytest.approx(16_592_000)
        assert report.profit == pytest.approx(16_591_000)
        assert report.peak_price == pytest.approx(360)

    def test_block_status_per_step(self):
        """Test the transaction is pending until PROFIT."""
        report = run_scenario()
        statuses = [s.block_status for s in report.steps]

        assert statuses == ["PENDING"] * 5 + ["CONFIRMED"]

    def test_resets_used_controller(self):
        """Test a finished controller is reset before running."""
        controller = ScenarioController()
        for _ in range(6):
            controller.advance()

        report = run_scenario(controller)
        assert len(report.steps) == 6

    def test_explain(self):
        """Test narratives are attached when requested."""
        controller = ScenarioController(narrator=StaticNarrator())
        report = run_scenario(controller, explain=True)

        assert report.steps[0].narrative == STATIC_EXPLANATIONS[Step.FLASH_LOAN]
        assert all(s.narrative for s in report.steps)

    def test_to_dict_serializable(self):
        """Test the report can be dumped as JSON."""
        data = run_scenario().to_dict()
        text = json.dumps(data)

        assert data["steps"][1]["name"] == "ORACLE_MANIPULATION"
        assert "Market Manipulation" in text


class TestFormatting:
    """Tests for console rendering."""

    def test_waiting_screen(self):
        """Test rendering before any step."""
        assert "Waiting for transaction execution" in format_step_log(Step.IDLE, None)

    def test_highlight_marker(self):
        """Test highlighted rows are marked and order is kept."""
        log = StepLog(
            title="T",
            description="D",
            mechanics=(
                LogEntry("Same", "1"),
                LogEntry("Same", "2", highlight=True),
            ),
        )
        lines = format_step_log(Step.FLASH_LOAN, log).split("\n")
        rows = [line for line in lines if "Same" in line]

        assert len(rows) == 2
        assert rows[0].strip().endswith("1")
        assert rows[1].lstrip().startswith(">")

    def test_code_snippet_optional(self):
        """Test contract excerpts only appear when asked for."""
        report = run_scenario()
        item = report.steps[0]

        assert "flashLoan" not in format_step_log(item.step, item.log)
        assert "flashLoan" in format_step_log(item.step, item.log, show_code=True)

    def test_full_report(self):
        """Test the report includes every step and the summary."""
        text = format_report(run_scenario())

        assert "Flash Loan Oracle Manipulation" in text
        assert "Market Manipulation" in text
        assert "Security Vulnerability" in text
        assert "OUTCOME SUMMARY" in text
        assert "$16,591,000" in text

    def test_empty_report(self):
        """Test an empty report still renders a summary."""
        text = format_report(ScenarioReport())
        assert "OUTCOME SUMMARY" in text


class TestRunner:
    """Tests for the CLI entry point."""

    def test_main_offline(self, capsys):
        """Test a default run prints the walkthrough."""
        assert main(["--offline"]) == 0
        out = capsys.readouterr().out

        assert "OUTCOME SUMMARY" in out

    def test_main_json_output(self, tmp_path, capsys):
        """Test results are written as JSON."""
        path = tmp_path / "result.json"
        assert main(["--offline", "--explain", "-o", str(path)]) == 0

        data = json.loads(path.read_text())
        assert data["profit"] == pytest.approx(16_591_000)
        assert data["steps"][0]["narrative"]

    def test_main_reports_engine_error(self, monkeypatch, capsys):
        """Test a degenerate starting pool exits with status 1 and a message."""
        monkeypatch.setattr(ProtocolState, "initial", classmethod(lambda cls: cls(
            dex_price=10,
            pool_liquidity_usdc=0,
            pool_liquidity_gem=0,
            oracle_price=10,
            collateral_factor=0.8,
        )))

        assert main(["--offline"]) == 1
        captured = capsys.readouterr()

        assert "ERROR:" in captured.err
        assert "Invalid pool state" in captured.err
        assert "OUTCOME SUMMARY" not in captured.out
