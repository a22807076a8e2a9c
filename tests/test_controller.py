"""
Tests for the scenario controller.
"""

import pytest

from flashsim.core.errors import InvalidPoolStateError
from flashsim.core.state import PriceHistorySample, ProtocolState, Step, WalletState
from flashsim.narrative.base import (
    FAILURE_TEXT,
    FALLBACK_TEXT,
    AuthError,
    Narrator,
    NetworkError,
    StaticNarrator,
)
from flashsim.simulation.controller import ScenarioController


class RecordingNarrator(Narrator):
    """Narrator that records calls and echoes the step name."""

    def __init__(self):
        self.calls = []

    def explain(self, step, context):
        self.calls.append((step, context))
        return f"explained {Step(step).name}"


class FailingNarrator(Narrator):
    """Narrator that always raises the given error."""

    def __init__(self, error):
        self.error = error

    def explain(self, step, context):
        raise self.error


def run_to_profit(controller):
    while not controller.is_complete:
        controller.advance()


class TestInitialState:
    """Tests for a fresh controller."""

    def test_initial_values(self):
        """Test constants at construction."""
        controller = ScenarioController()

        assert controller.step == Step.IDLE
        assert controller.wallet == WalletState(usdc=1000, gem_token=0, debt=0)
        assert controller.protocol == ProtocolState(
            dex_price=10,
            pool_liquidity_usdc=1_000_000,
            pool_liquidity_gem=100_000,
            oracle_price=10,
            collateral_factor=0.8,
        )
        assert controller.price_history == (PriceHistorySample(step=0, price=10),)
        assert controller.log is None
        assert controller.block_status == "CONFIRMED"


class TestAdvance:
    """Tests for advance()."""

    def test_first_advance(self):
        """Test advancing from IDLE enters FLASH_LOAN."""
        controller = ScenarioController()
        log = controller.advance()

        assert controller.step == Step.FLASH_LOAN
        assert log is controller.log
        assert log.title == "Flash Loan Execution"
        assert controller.wallet.debt == 10_000_000
        assert controller.block_status == "PENDING"

    def test_steps_strictly_increase(self):
        """Test each advance moves exactly one step."""
        controller = ScenarioController()
        run_to_profit(controller)
        seen = [s.step for s in controller.price_history]

        assert seen == list(range(0, 7))
        assert controller.step == Step.PROFIT
        assert controller.block_status == "CONFIRMED"

    def test_advance_at_profit_is_noop(self):
        """Test advance() at PROFIT changes nothing."""
        controller = ScenarioController()
        run_to_profit(controller)
        before = controller.snapshot()

        assert controller.advance() is None
        assert controller.advance() is None
        assert controller.snapshot() == before

    def test_price_history(self):
        """Test one price sample is appended per advance."""
        controller = ScenarioController()
        controller.advance()
        controller.advance()

        history = controller.price_history
        assert len(history) == 3
        assert history[1] == PriceHistorySample(step=1, price=10)
        assert history[2].step == 2
        assert history[2].price == pytest.approx(360)

    def test_only_latest_log_kept(self):
        """Test the log is replaced, not merged."""
        controller = ScenarioController()
        controller.advance()
        controller.advance()

        assert controller.log.title == "Market Manipulation"

    def test_engine_error_leaves_state(self):
        """Test a degenerate pool blocks the advance without partial updates."""
        controller = ScenarioController()
        controller.advance()
        controller.protocol = ProtocolState(
            dex_price=10,
            pool_liquidity_usdc=0,
            pool_liquidity_gem=0,
            oracle_price=10,
            collateral_factor=0.8,
        )
        before = controller.snapshot()

        with pytest.raises(InvalidPoolStateError):
            controller.advance()

        assert controller.snapshot() == before


class TestAdvanceTo:
    """Tests for out-of-sequence protection."""

    def test_next_step_allowed(self):
        """Test advancing to current+1 works."""
        controller = ScenarioController()
        assert controller.advance_to(Step.FLASH_LOAN) is not None
        assert controller.step == Step.FLASH_LOAN

    @pytest.mark.parametrize("target", [0, 2, 5, 6])
    def test_skip_is_noop(self, target):
        """Test any other target is silently ignored."""
        controller = ScenarioController()
        assert controller.advance_to(target) is None
        assert controller.step == Step.IDLE

    def test_past_profit(self):
        """Test nothing follows PROFIT."""
        controller = ScenarioController()
        run_to_profit(controller)
        assert controller.advance_to(7) is None
        assert controller.step == Step.PROFIT


class TestReset:
    """Tests for reset()."""

    def test_reset_restores_constants(self):
        """Test reset after a full run."""
        controller = ScenarioController()
        fresh = controller.snapshot()
        run_to_profit(controller)
        controller.reset()

        assert controller.snapshot() == fresh

    def test_reset_idempotent(self):
        """Test two resets equal one."""
        controller = ScenarioController()
        controller.advance()
        controller.reset()
        once = controller.snapshot()
        controller.reset()

        assert controller.snapshot() == once

    def test_reset_mid_run(self):
        """Test reset from an intermediate step."""
        controller = ScenarioController()
        for _ in range(3):
            controller.advance()
        controller.reset()

        assert controller.step == Step.IDLE
        assert controller.wallet == WalletState.initial()
        assert controller.price_history == (PriceHistorySample(step=0, price=10),)


class TestNarrative:
    """Tests for narrative requests and stale-response handling."""

    def test_explain_current(self):
        """Test the narrator sees the current step and context."""
        narrator = RecordingNarrator()
        controller = ScenarioController(narrator=narrator)
        controller.advance()
        text = controller.explain_current()

        step, context = narrator.calls[0]
        assert text == "explained FLASH_LOAN"
        assert controller.narrative == text
        assert step == Step.FLASH_LOAN
        assert context["wallet"]["debt"] == 10_000_000
        assert context["mechanics"][0]["label"] == "Loan Amount"

    @pytest.mark.parametrize("error,expected", [
        (NetworkError("down"), FAILURE_TEXT),
        (AuthError("no key"), FALLBACK_TEXT),
    ])
    def test_failure_falls_back(self, error, expected):
        """Test narrator errors degrade to a placeholder."""
        controller = ScenarioController(narrator=FailingNarrator(error))
        controller.advance()
        before = (controller.step, controller.wallet, controller.protocol)

        assert controller.explain_current() == expected
        assert (controller.step, controller.wallet, controller.protocol) == before

    def test_unexpected_error_falls_back(self):
        """Test errors outside the narrative taxonomy never escape."""
        controller = ScenarioController(narrator=FailingNarrator(RuntimeError("boom")))
        controller.advance()
        before = controller.snapshot()

        assert controller.explain_current() == FAILURE_TEXT
        assert controller.narrative == FAILURE_TEXT
        assert (controller.step, controller.wallet, controller.protocol) == (
            before.step, before.wallet, before.protocol,
        )
        assert controller.advance() is not None

    def test_no_narrator(self):
        """Test a controller without narrator uses the placeholder."""
        controller = ScenarioController()
        assert controller.explain_current() == FALLBACK_TEXT

    def test_stale_after_advance(self):
        """Test a response for an earlier step is discarded."""
        controller = ScenarioController(narrator=StaticNarrator())
        controller.advance()
        request = controller.request_narrative()
        controller.advance()

        assert controller.deliver_narrative(request, "late") is False
        assert controller.narrative is None

    def test_stale_after_reset(self):
        """Test a response issued before a reset is discarded."""
        controller = ScenarioController()
        request = controller.request_narrative()
        controller.reset()

        assert request.step == controller.step
        assert controller.deliver_narrative(request, "late") is False

    def test_current_delivery(self):
        """Test an up-to-date response is stored."""
        controller = ScenarioController()
        controller.advance()
        request = controller.request_narrative()

        assert controller.deliver_narrative(request, "on time") is True
        assert controller.snapshot().narrative == "on time"

    def test_advance_clears_narrative(self):
        """Test narrative text belongs to a single step."""
        controller = ScenarioController(narrator=StaticNarrator())
        controller.advance()
        controller.explain_current()
        controller.advance()

        assert controller.narrative is None
