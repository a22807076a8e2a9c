"""flashsim core - state model, AMM math and the step engine."""

from flashsim.core.state import (
    Step,
    WalletState,
    ProtocolState,
    LogEntry,
    StepLog,
    PriceHistorySample,
    StepResult,
)
from flashsim.core.engine import apply_step
from flashsim.core.errors import SimulationError, InvalidPoolStateError, InvalidStepError

__all__ = [
    "Step",
    "WalletState",
    "ProtocolState",
    "LogEntry",
    "StepLog",
    "PriceHistorySample",
    "StepResult",
    "apply_step",
    "SimulationError",
    "InvalidPoolStateError",
    "InvalidStepError",
]
