"""
Step Engine

Pure transition function for the flash loan oracle manipulation scenario.

Given the step being entered and the pre-transition wallet/protocol
snapshots, apply_step returns replacement snapshots plus a StepLog.
No I/O, no randomness, inputs are never mutated.

Scenario (all amounts in USDC unless noted):
    1. Flash loan 10M
    2. Buy GEM with 5M on a shallow AMM, pumping the spot price
    3. Deposit GEM into a lender whose oracle reads the AMM spot price
    4. Borrow 90% of the max the inflated collateral allows
    5. Repay the flash loan plus 0.09% fee
    6. Keep the difference
"""

from __future__ import annotations
from dataclasses import replace
from typing import Callable, Dict
import math

from flashsim.core.amm import constant_product_swap
from flashsim.core.errors import InvalidStepError
from flashsim.core.formatting import format_number, format_percent, format_usd
from flashsim.core.state import (
    BORROW_SAFE_MARGIN,
    FLASH_LOAN_AMOUNT,
    FLASH_LOAN_FEE_RATE,
    INITIAL_PRICE,
    INITIAL_USDC,
    SWAP_AMOUNT,
    LogEntry,
    ProtocolState,
    Step,
    StepLog,
    StepResult,
    WalletState,
)


def flash_loan_fee() -> float:
    """Fee owed on the flash loan at repayment."""
    return FLASH_LOAN_AMOUNT * FLASH_LOAN_FEE_RATE


def collateral_value(wallet: WalletState, protocol: ProtocolState) -> float:
    """Value the lending protocol assigns to the attacker's GEM."""
    return wallet.gem_token * protocol.oracle_price


def borrow_amount(wallet: WalletState, protocol: ProtocolState) -> int:
    """Amount borrowed at MAX_BORROW: floor(value * LTV * safety margin)."""
    max_borrow = collateral_value(wallet, protocol) * protocol.collateral_factor
    return math.floor(max_borrow * BORROW_SAFE_MARGIN)


# =============================================================================
# Step Handlers
# =============================================================================

def _idle(wallet: WalletState, protocol: ProtocolState) -> StepResult:
    log = StepLog(
        title="Initialization",
        description="System initialized. Waiting for user input.",
    )
    return StepResult(wallet, protocol, log)


def _flash_loan(wallet: WalletState, protocol: ProtocolState) -> StepResult:
    fee = flash_loan_fee()
    new_wallet = replace(
        wallet,
        usdc=wallet.usdc + FLASH_LOAN_AMOUNT,
        debt=wallet.debt + FLASH_LOAN_AMOUNT,
    )

    log = StepLog(
        title="Flash Loan Execution",
        description=(
            f"We borrow {format_number(FLASH_LOAN_AMOUNT)} USDC from a flash loan "
            "provider. No collateral is posted: the loan only has to be repaid "
            "before the transaction ends, so for one block we trade like a whale."
        ),
        formula=f"Debt = Loan + (Loan * {FLASH_LOAN_FEE_RATE})",
        mechanics=(
            LogEntry("Loan Amount", format_usd(FLASH_LOAN_AMOUNT), highlight=True),
            LogEntry(f"Protocol Fee ({format_percent(FLASH_LOAN_FEE_RATE, 2)})", format_usd(fee)),
            LogEntry("Total Debt Due", format_usd(FLASH_LOAN_AMOUNT + fee), highlight=True),
            LogEntry("Block Valid", "YES (Pending Repayment)"),
        ),
        vulnerability_note=(
            "The loan itself is not the bug. Flash loans let anyone borrow "
            "whale-sized capital for a single transaction, and that capital "
            "is what moves the prices other protocols rely on."
        ),
        code_snippet=(
            "function attack(address provider, uint256 amount) external {\n"
            "    IFlashLoanProvider(provider).flashLoan(amount);\n"
            "}"
        ),
    )
    return StepResult(new_wallet, protocol, log)


def _oracle_manipulation(wallet: WalletState, protocol: ProtocolState) -> StepResult:
    x = protocol.pool_liquidity_usdc
    y = protocol.pool_liquidity_gem
    quote = constant_product_swap(x, y, SWAP_AMOUNT)
    new_price = quote.spot_price

    new_wallet = replace(
        wallet,
        usdc=wallet.usdc - SWAP_AMOUNT,
        gem_token=wallet.gem_token + quote.amount_out,
    )
    # The lender's oracle is the AMM spot price: both move together
    new_protocol = replace(
        protocol,
        pool_liquidity_usdc=quote.new_reserve_in,
        pool_liquidity_gem=quote.new_reserve_out,
        dex_price=new_price,
        oracle_price=new_price,
    )

    log = StepLog(
        title="Market Manipulation",
        description=(
            f"We push {format_number(SWAP_AMOUNT)} USDC into the shallow DEX pool. "
            "The buy order slides far along the AMM curve and the spot price of "
            f"GEM jumps from ${format_number(protocol.dex_price)} to "
            f"${format_number(new_price)}."
        ),
        formula="k = x * y (Constant Product AMM)",
        mechanics=(
            LogEntry("Initial Pool", f"{format_number(x)} USDC / {format_number(y)} GEM"),
            LogEntry("Swap Input", format_usd(SWAP_AMOUNT), highlight=True),
            LogEntry("GEM Received", f"{format_number(quote.amount_out)} GEM"),
            LogEntry("New Price", f"${format_number(new_price)}", highlight=True),
            LogEntry("Price Increase", f"+{(new_price / INITIAL_PRICE - 1) * 100:.0f}%"),
        ),
        vulnerability_note=(
            "The lending protocol's oracle reads this spot price in the same "
            "block. It now believes GEM is worth many times its real value."
        ),
        code_snippet=(
            "uint256 swapAmount = 5_000_000 * 1e18;\n"
            "usdc.approve(address(dex), swapAmount);\n"
            "uint256 gemBought = dex.swapUSDCForGem(swapAmount);"
        ),
    )
    return StepResult(new_wallet, new_protocol, log)


def _deposit_collateral(wallet: WalletState, protocol: ProtocolState) -> StepResult:
    value = collateral_value(wallet, protocol)

    log = StepLog(
        title="Strategic Deposit",
        description=(
            "We deposit the GEM into the lending protocol. Its oracle is the "
            "manipulated DEX price, so the deposit is valued at the inflated price."
        ),
        formula="CollateralValue = Amount * OraclePrice",
        mechanics=(
            LogEntry("Deposit Amount", f"{format_number(wallet.gem_token)} GEM"),
            LogEntry("Oracle Price", format_usd(protocol.oracle_price), highlight=True),
            LogEntry("Real Market Value", format_usd(wallet.gem_token * INITIAL_PRICE)),
            LogEntry("Protocol Perceived Value", format_usd(value), highlight=True),
        ),
        vulnerability_note=(
            "The protocol books tens of millions in collateral that the market "
            "could never absorb at this price."
        ),
        code_snippet=(
            "gem.approve(address(pool), gemBought);\n"
            "// value = collateral * dex.getSpotPrice() / 1e18\n"
            "pool.deposit(gemBought);"
        ),
    )
    return StepResult(wallet, protocol, log)


def _max_borrow(wallet: WalletState, protocol: ProtocolState) -> StepResult:
    value = collateral_value(wallet, protocol)
    max_borrow = value * protocol.collateral_factor
    amount = borrow_amount(wallet, protocol)

    new_wallet = replace(wallet, usdc=wallet.usdc + amount)

    log = StepLog(
        title="Exploitative Borrow",
        description=(
            "We borrow real USDC against the inflated collateral, far more than "
            "the GEM we deposited is actually worth."
        ),
        formula="MaxBorrow = CollateralValue * LTV",
        mechanics=(
            LogEntry("Collateral Value", format_usd(value)),
            LogEntry("LTV Factor", format_percent(protocol.collateral_factor)),
            LogEntry("Max Borrow Limit", format_usd(max_borrow)),
            LogEntry("Actual Borrow", format_usd(amount), highlight=True),
        ),
        vulnerability_note=(
            "The manipulated value is now cashed out. Whatever happens to the "
            "GEM price next, the borrowed USDC stays with us."
        ),
        code_snippet=(
            "uint256 poolBalance = usdc.balanceOf(address(pool));\n"
            "pool.borrow(poolBalance);"
        ),
    )
    return StepResult(new_wallet, protocol, log)


def _repay_loan(wallet: WalletState, protocol: ProtocolState) -> StepResult:
    fee = flash_loan_fee()
    total_repay = FLASH_LOAN_AMOUNT + fee
    new_wallet = replace(wallet, usdc=wallet.usdc - total_repay, debt=0)

    log = StepLog(
        title="Cleanup & Repayment",
        description=(
            f"We repay the flash loan provider ({format_number(FLASH_LOAN_AMOUNT)} "
            f"USDC plus the {format_percent(FLASH_LOAN_FEE_RATE, 2)} fee). "
            "With the loan settled the whole transaction is valid and lands on-chain."
        ),
        mechanics=(
            LogEntry("Wallet Balance", format_usd(wallet.usdc)),
            LogEntry("Repayment Amount", "-" + format_usd(total_repay), highlight=True),
            LogEntry("Transaction Status", "SUCCESS"),
        ),
        vulnerability_note=(
            "The flash loan provider is made whole. The lending protocol is left "
            "holding overvalued collateral."
        ),
        code_snippet=(
            "uint256 amountOwed = amount + fee;\n"
            "usdc.transfer(msg.sender, amountOwed);"
        ),
    )
    return StepResult(new_wallet, protocol, log)


def _profit(wallet: WalletState, protocol: ProtocolState) -> StepResult:
    profit = wallet.usdc - INITIAL_USDC

    log = StepLog(
        title="Attack Complete",
        description=(
            "We walk away with the profit. Once GEM falls back to "
            f"${format_number(INITIAL_PRICE)} the lending protocol is insolvent "
            "and carries the bad debt."
        ),
        mechanics=(
            LogEntry("Initial Capital", format_usd(INITIAL_USDC)),
            LogEntry("Final Capital", format_usd(wallet.usdc)),
            LogEntry("Net Profit", format_usd(profit), highlight=True),
            LogEntry("Protocol Status", "INSOLVENT"),
        ),
        vulnerability_note=(
            "Everything happened inside one transaction, faster than most "
            "circuit breakers can react."
        ),
        code_snippet=(
            "uint256 profit = usdc.balanceOf(address(this));\n"
            "usdc.transfer(owner, profit);"
        ),
    )
    return StepResult(wallet, protocol, log)


_HANDLERS: Dict[Step, Callable[[WalletState, ProtocolState], StepResult]] = {
    Step.IDLE: _idle,
    Step.FLASH_LOAN: _flash_loan,
    Step.ORACLE_MANIPULATION: _oracle_manipulation,
    Step.DEPOSIT_COLLATERAL: _deposit_collateral,
    Step.MAX_BORROW: _max_borrow,
    Step.REPAY_LOAN: _repay_loan,
    Step.PROFIT: _profit,
}


def apply_step(
    step: int,
    wallet: WalletState,
    protocol: ProtocolState,
) -> StepResult:
    """
    Compute the state after entering a step.

    Args:
        step: Step being entered (Step or its integer value)
        wallet: Pre-transition wallet snapshot
        protocol: Pre-transition protocol snapshot

    Returns:
        StepResult with replacement snapshots and the step's log

    Raises:
        InvalidStepError: If step is outside IDLE..PROFIT
        InvalidPoolStateError: If the swap meets degenerate reserves
    """
    try:
        step = Step(step)
    except ValueError:
        raise InvalidStepError(f"Unknown step: {step!r}") from None

    return _HANDLERS[step](wallet, protocol)
