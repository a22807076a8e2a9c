"""
flashsim - DeFi Exploit Simulator

Deterministic, step-by-step simulation of a flash loan oracle manipulation
attack: flash loan, AMM price pump, collateral deposit at the manipulated
oracle price, maximal borrow, loan repayment and profit.
"""

__version__ = "0.1.0"
__author__ = "flashsim contributors"

from flashsim.core.state import Step, WalletState, ProtocolState, StepLog
from flashsim.core.engine import apply_step
from flashsim.simulation.controller import ScenarioController

__all__ = [
    "Step",
    "WalletState",
    "ProtocolState",
    "StepLog",
    "apply_step",
    "ScenarioController",
]
