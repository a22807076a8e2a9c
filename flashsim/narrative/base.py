"""
Narrative Interface

Narrators turn a step and its computed state into short prose for the
reader. They are advisory only: nothing they return or raise may change
the numeric scenario state.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict

from flashsim.core.state import Step


FALLBACK_TEXT = "AI explanation unavailable. Using static descriptions."
FAILURE_TEXT = "Could not fetch AI explanation."


class NarrativeError(Exception):
    """Base class for narrator failures."""


class NetworkError(NarrativeError):
    """The narrative backend could not be reached or refused the request."""


class AuthError(NarrativeError):
    """Missing or rejected credentials for the narrative backend."""


class Narrator(ABC):
    """
    Capability that explains a scenario step.

    Implementations receive the step index and a context dict with
    "wallet", "protocol" and "mechanics" keys.
    """

    @abstractmethod
    def explain(self, step: Step, context: Dict[str, Any]) -> str:
        """
        Explain what happens at a step.

        Raises:
            NetworkError: Backend unreachable, rate limited or failing
            AuthError: Credentials missing or rejected
        """
        pass


STATIC_EXPLANATIONS = {
    Step.IDLE: (
        "We start as an attacker with almost no money, looking for a lending "
        "protocol that prices collateral from a shallow DEX."
    ),
    Step.FLASH_LOAN: (
        "We borrow a huge amount of USDC with no collateral. The only rule is "
        "that it must be paid back before the transaction ends."
    ),
    Step.ORACLE_MANIPULATION: (
        "We spend part of the loan buying GEM on a small DEX. The big buy "
        "pushes the GEM price far above its real value."
    ),
    Step.DEPOSIT_COLLATERAL: (
        "We deposit the GEM into a lending protocol. It trusts the DEX price, "
        "so it thinks our deposit is worth a fortune."
    ),
    Step.MAX_BORROW: (
        "We borrow real USDC against that fake valuation, taking out much more "
        "than the GEM is actually worth."
    ),
    Step.REPAY_LOAN: (
        "We pay back the flash loan plus its small fee, which makes the whole "
        "transaction valid."
    ),
    Step.PROFIT: (
        "What is left is profit made from nothing. The lending protocol keeps "
        "overpriced GEM and a loan that will never be repaid."
    ),
}


class StaticNarrator(Narrator):
    """Deterministic offline narrator with one fixed explanation per step."""

    def explain(self, step: Step, context: Dict[str, Any]) -> str:
        return STATIC_EXPLANATIONS[Step(step)]
