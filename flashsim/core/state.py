"""
Scenario State Model

Immutable snapshots threaded through the step engine:
- WalletState: the attacker's holdings
- ProtocolState: AMM reserves, spot/oracle price, lending LTV
- StepLog: explanatory record for one transition
- PriceHistorySample: one point of the price-impact chart

All monetary values are plain floats (USDC and GEM units).
"""

from __future__ import annotations
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Optional, Tuple
from enum import IntEnum


# =============================================================================
# Scenario Constants
# =============================================================================

INITIAL_LIQUIDITY_USDC = 1_000_000   # 1M USDC
INITIAL_LIQUIDITY_GEM = 100_000      # 100k GEM
INITIAL_PRICE = 10                   # $10 per GEM
INITIAL_USDC = 1000
COLLATERAL_FACTOR = 0.8              # 80% LTV

FLASH_LOAN_AMOUNT = 10_000_000       # 10M USDC
SWAP_AMOUNT = 5_000_000              # 5M USDC used to pump GEM
FLASH_LOAN_FEE_RATE = 0.0009         # 0.09%
BORROW_SAFE_MARGIN = 0.9             # borrow 90% of max

# Relative tolerance for the constant-product identity
INVARIANT_TOLERANCE = 1e-9


class Step(IntEnum):
    """Ordinal steps of the attack scenario."""
    IDLE = 0
    FLASH_LOAN = 1
    ORACLE_MANIPULATION = 2
    DEPOSIT_COLLATERAL = 3
    MAX_BORROW = 4
    REPAY_LOAN = 5
    PROFIT = 6

    @property
    def display_name(self) -> str:
        """Human readable step title."""
        return STEP_NAMES[self]

    @property
    def is_terminal(self) -> bool:
        return self == Step.PROFIT

    def next(self) -> "Step":
        """Following step. PROFIT has no successor."""
        if self.is_terminal:
            raise ValueError("PROFIT is the terminal step")
        return Step(self.value + 1)


STEP_NAMES = {
    Step.IDLE: "Initial State",
    Step.FLASH_LOAN: "Flash Loan Execution",
    Step.ORACLE_MANIPULATION: "Oracle Manipulation (Pump)",
    Step.DEPOSIT_COLLATERAL: "Collateral Deposit",
    Step.MAX_BORROW: "Exploitative Borrowing",
    Step.REPAY_LOAN: "Loan Repayment & Dump",
    Step.PROFIT: "Profit Realization",
}


# =============================================================================
# Data Structures
# =============================================================================

@dataclass(frozen=True)
class WalletState:
    """
    Attacker's holdings.

    Attributes:
        usdc: Stable-asset balance (not clamped at zero)
        gem_token: Balance of the manipulated asset
        debt: Outstanding flash-loan principal
    """
    usdc: float
    gem_token: float
    debt: float

    @classmethod
    def initial(cls) -> "WalletState":
        return cls(usdc=INITIAL_USDC, gem_token=0, debt=0)

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class ProtocolState:
    """
    Shared market and lending state.

    The lending protocol's oracle reads the DEX spot price directly, so
    oracle_price tracks dex_price after every swap.

    Attributes:
        dex_price: AMM spot price of GEM in USDC
        pool_liquidity_usdc: USDC reserve of the AMM pool
        pool_liquidity_gem: GEM reserve of the AMM pool
        oracle_price: Price trusted by the lending protocol
        collateral_factor: Loan-to-value ratio in [0, 1]
    """
    dex_price: float
    pool_liquidity_usdc: float
    pool_liquidity_gem: float
    oracle_price: float
    collateral_factor: float

    @classmethod
    def initial(cls) -> "ProtocolState":
        return cls(
            dex_price=INITIAL_PRICE,
            pool_liquidity_usdc=INITIAL_LIQUIDITY_USDC,
            pool_liquidity_gem=INITIAL_LIQUIDITY_GEM,
            oracle_price=INITIAL_PRICE,
            collateral_factor=COLLATERAL_FACTOR,
        )

    @property
    def constant_product(self) -> float:
        """k = x * y for the current reserves."""
        return self.pool_liquidity_usdc * self.pool_liquidity_gem

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class LogEntry:
    """One labelled row of a step's state changes."""
    label: str
    value: str
    highlight: bool = False


@dataclass(frozen=True)
class StepLog:
    """
    Explanatory record for a single transition.

    Attributes:
        title: Short step title
        description: Narrative of what happened
        mechanics: Ordered rows; duplicate labels are kept as-is
        formula: Equation used by the step
        vulnerability_note: Why the step is exploitable
        code_snippet: Attacker contract excerpt performing the step
    """
    title: str
    description: str
    mechanics: Tuple[LogEntry, ...] = field(default_factory=tuple)
    formula: Optional[str] = None
    vulnerability_note: Optional[str] = None
    code_snippet: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["mechanics"] = [asdict(entry) for entry in self.mechanics]
        return data


@dataclass(frozen=True)
class PriceHistorySample:
    """Spot price observed after entering a step."""
    step: int
    price: float


@dataclass(frozen=True)
class StepResult:
    """Output of the step engine."""
    wallet: WalletState
    protocol: ProtocolState
    log: StepLog


def initial_price_history() -> Tuple[PriceHistorySample, ...]:
    """Seed history containing only the starting price."""
    return (PriceHistorySample(step=Step.IDLE.value, price=INITIAL_PRICE),)
