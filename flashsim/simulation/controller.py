"""
Scenario Controller

Owns the current (step, wallet, protocol) triple, the price history and
the latest StepLog. Presentation code reads snapshots; only advance() and
reset() replace the held state.

Narrative requests are tagged with the step and reset epoch they were
issued for, so a response that arrives after the user moved on is dropped.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple
import logging

from flashsim.core.engine import apply_step
from flashsim.core.state import (
    PriceHistorySample,
    ProtocolState,
    Step,
    StepLog,
    WalletState,
    initial_price_history,
)
from flashsim.narrative.base import FAILURE_TEXT, FALLBACK_TEXT, AuthError, NarrativeError, Narrator


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScenarioSnapshot:
    """Read-only view handed to presentation collaborators."""
    step: Step
    wallet: WalletState
    protocol: ProtocolState
    log: Optional[StepLog]
    price_history: Tuple[PriceHistorySample, ...]
    narrative: Optional[str]


@dataclass(frozen=True)
class NarrativeRequest:
    """
    A pending explanation request.

    Attributes:
        step: Step the request was issued for
        epoch: Reset counter at issue time
        context: Payload for the narrator (wallet, protocol, mechanics)
    """
    step: Step
    epoch: int
    context: Dict[str, Any]


class ScenarioController:
    """
    Drives the scenario one step at a time.

    Example:
        >>> controller = ScenarioController()
        >>> controller.advance().title
        'Flash Loan Execution'
    """

    def __init__(self, narrator: Optional[Narrator] = None):
        self.narrator = narrator
        self.epoch = 0
        self._set_initial_state()

    def _set_initial_state(self) -> None:
        self.step = Step.IDLE
        self.wallet = WalletState.initial()
        self.protocol = ProtocolState.initial()
        self.price_history: Tuple[PriceHistorySample, ...] = initial_price_history()
        self.log: Optional[StepLog] = None
        self.narrative: Optional[str] = None

    # =========================================================================
    # Triggers
    # =========================================================================

    @property
    def is_complete(self) -> bool:
        return self.step == Step.PROFIT

    @property
    def block_status(self) -> str:
        """PENDING while the flash loan transaction is open."""
        if Step.IDLE < self.step < Step.PROFIT:
            return "PENDING"
        return "CONFIRMED"

    def advance(self) -> Optional[StepLog]:
        """
        Enter the next step.

        Returns:
            The new StepLog, or None when already at PROFIT

        Raises:
            SimulationError: Propagated from the engine; held state is unchanged
        """
        if self.is_complete:
            logger.debug("advance() at PROFIT ignored")
            return None

        next_step = self.step.next()
        result = apply_step(next_step, self.wallet, self.protocol)

        self.step = next_step
        self.wallet = result.wallet
        self.protocol = result.protocol
        self.price_history = self.price_history + (
            PriceHistorySample(step=next_step.value, price=result.protocol.dex_price),
        )
        self.log = result.log
        self.narrative = None

        logger.info(
            "Entered %s: usdc=%.2f gem=%.2f debt=%.2f price=%.4f",
            next_step.name,
            self.wallet.usdc,
            self.wallet.gem_token,
            self.wallet.debt,
            self.protocol.dex_price,
        )
        return result.log

    def advance_to(self, step: int) -> Optional[StepLog]:
        """Advance only if step is exactly the next one; otherwise do nothing."""
        if self.is_complete or step != self.step + 1:
            logger.debug("Out-of-sequence advance to %r from %s ignored", step, self.step.name)
            return None
        return self.advance()

    def reset(self) -> None:
        """Restore the initial scenario. Always safe to call."""
        self.epoch += 1
        self._set_initial_state()
        logger.info("Scenario reset (epoch %d)", self.epoch)

    def snapshot(self) -> ScenarioSnapshot:
        return ScenarioSnapshot(
            step=self.step,
            wallet=self.wallet,
            protocol=self.protocol,
            log=self.log,
            price_history=self.price_history,
            narrative=self.narrative,
        )

    # =========================================================================
    # Narrative
    # =========================================================================

    def request_narrative(self) -> NarrativeRequest:
        """Build a request for the current step."""
        mechanics = [] if self.log is None else [
            {"label": e.label, "value": e.value, "highlight": e.highlight}
            for e in self.log.mechanics
        ]
        context = {
            "wallet": self.wallet.to_dict(),
            "protocol": self.protocol.to_dict(),
            "mechanics": mechanics,
        }
        return NarrativeRequest(step=self.step, epoch=self.epoch, context=context)

    def deliver_narrative(self, request: NarrativeRequest, text: str) -> bool:
        """
        Store a narrative response if it is still current.

        Returns:
            True if stored, False if the controller moved on or was reset
        """
        if request.step != self.step or request.epoch != self.epoch:
            logger.debug(
                "Discarding stale narrative for %s (epoch %d)",
                request.step.name,
                request.epoch,
            )
            return False
        self.narrative = text
        return True

    def explain_current(self) -> str:
        """
        Fetch and store an explanation for the current step.

        No narrator or missing/rejected credentials give FALLBACK_TEXT;
        any other narrator failure gives FAILURE_TEXT. Numeric state is
        never touched.
        """
        request = self.request_narrative()
        if self.narrator is None:
            text = FALLBACK_TEXT
        else:
            try:
                text = self.narrator.explain(request.step, request.context)
            except AuthError as e:
                logger.warning("Narrative not configured for %s: %s", request.step.name, e)
                text = FALLBACK_TEXT
            except NarrativeError as e:
                logger.warning("Narrative unavailable for %s: %s", request.step.name, e)
                text = FAILURE_TEXT
            except Exception as e:
                logger.warning(
                    "Narrator raised %s for %s: %s",
                    type(e).__name__,
                    request.step.name,
                    e,
                )
                text = FAILURE_TEXT

        self.deliver_narrative(request, text)
        return text
