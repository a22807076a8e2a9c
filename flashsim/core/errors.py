"""
Simulation Errors

Failure kinds raised by the step engine. Narrative failures live in
flashsim.narrative.base because they never reach the numeric state.
"""


class SimulationError(Exception):
    """Base class for errors that block the scenario from advancing."""


class InvalidPoolStateError(SimulationError):
    """Raised when AMM reserves are zero, negative or not finite."""

    def __init__(self, reserve_in: float, reserve_out: float, amount_in: float = 0.0):
        self.reserve_in = reserve_in
        self.reserve_out = reserve_out
        self.amount_in = amount_in
        super().__init__(
            f"Invalid pool state: reserves ({reserve_in!r}, {reserve_out!r}), "
            f"swap input {amount_in!r}"
        )


class InvalidStepError(SimulationError):
    """Raised when a step value falls outside the scenario enumeration."""
