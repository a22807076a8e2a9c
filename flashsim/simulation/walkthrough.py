"""
Step-by-Step Attack Walkthrough

Runs the flash loan oracle manipulation scenario from IDLE to PROFIT and
renders it as a terminal "transaction debugger" console:

- Step title and description
- Mathematical model (formula)
- State changes and calculations, highlighted rows marked with '>'
- Security vulnerability note
- Optional attacker contract excerpt
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from flashsim.core.formatting import format_compact, format_number, format_usd
from flashsim.core.state import (
    INITIAL_PRICE,
    INITIAL_USDC,
    PriceHistorySample,
    ProtocolState,
    Step,
    StepLog,
    WalletState,
)
from flashsim.simulation.controller import ScenarioController


WIDTH = 75


# =============================================================================
# Data Structures
# =============================================================================

@dataclass
class WalkthroughStep:
    """
    One executed step with the state it produced.

    Attributes:
        step: Step entered
        log: Engine log for the transition
        wallet: Wallet after the step
        protocol: Protocol after the step
        block_status: PENDING while the flash loan is open
        narrative: Explanation text, if requested
    """
    step: Step
    log: StepLog
    wallet: WalletState
    protocol: ProtocolState
    block_status: str
    narrative: Optional[str] = None


@dataclass
class ScenarioReport:
    """
    Complete run of the scenario.

    Attributes:
        steps: Executed steps in order
        price_history: Spot price after each step, seeded with the start
        initial_usdc: Attacker capital before the attack
        final_usdc: Attacker capital after PROFIT
    """
    steps: List[WalkthroughStep] = field(default_factory=list)
    price_history: Tuple[PriceHistorySample, ...] = ()
    initial_usdc: float = INITIAL_USDC
    final_usdc: float = INITIAL_USDC

    @property
    def profit(self) -> float:
        return self.final_usdc - self.initial_usdc

    @property
    def peak_price(self) -> float:
        return max((s.price for s in self.price_history), default=INITIAL_PRICE)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "profit": self.profit,
            "initial_usdc": self.initial_usdc,
            "final_usdc": self.final_usdc,
            "peak_price": self.peak_price,
            "price_history": [{"step": s.step, "price": s.price} for s in self.price_history],
            "steps": [
                {
                    "step": s.step.value,
                    "name": s.step.name,
                    "block_status": s.block_status,
                    "wallet": s.wallet.to_dict(),
                    "protocol": s.protocol.to_dict(),
                    "log": s.log.to_dict(),
                    "narrative": s.narrative,
                }
                for s in self.steps
            ],
        }


# =============================================================================
# Running
# =============================================================================

def run_scenario(
    controller: Optional[ScenarioController] = None,
    explain: bool = False,
) -> ScenarioReport:
    """
    Reset the controller and advance it to PROFIT.

    Args:
        controller: Controller to drive (a fresh offline one if omitted)
        explain: Ask the controller's narrator about every step

    Returns:
        ScenarioReport with every step's log and state
    """
    controller = controller or ScenarioController()
    controller.reset()

    report = ScenarioReport(initial_usdc=controller.wallet.usdc)

    while not controller.is_complete:
        log = controller.advance()
        narrative = controller.explain_current() if explain else None
        report.steps.append(WalkthroughStep(
            step=controller.step,
            log=log,
            wallet=controller.wallet,
            protocol=controller.protocol,
            block_status=controller.block_status,
            narrative=narrative,
        ))

    report.price_history = controller.price_history
    report.final_usdc = controller.wallet.usdc
    return report


# =============================================================================
# Formatting
# =============================================================================

def format_step_log(
    step: Step,
    log: Optional[StepLog],
    show_code: bool = False,
) -> str:
    """
    Render one StepLog as a debugger console block.

    Args:
        step: Step the log belongs to
        log: Log to render (None renders the waiting screen)
        show_code: Include the attacker contract excerpt

    Returns:
        Formatted string for terminal display
    """
    lines = []

    if log is None:
        lines.append(">> Waiting for transaction execution...")
        return "\n".join(lines)

    lines.append(f">> {log.title}   [Step {step.value} of {Step.PROFIT.value}]")
    lines.append("-" * WIDTH)
    lines.append(f"  {log.description}")

    if log.formula:
        lines.append("")
        lines.append("  Mathematical Model:")
        lines.append(f"    {log.formula}")

    if log.mechanics:
        lines.append("")
        lines.append("  State Changes & Calculations:")
        label_width = max(len(e.label) for e in log.mechanics)
        for entry in log.mechanics:
            marker = ">" if entry.highlight else " "
            lines.append(f"  {marker} {entry.label:<{label_width}}  {entry.value}")

    if log.vulnerability_note:
        lines.append("")
        lines.append("  [!] Security Vulnerability:")
        lines.append(f"      {log.vulnerability_note}")

    if show_code and log.code_snippet:
        lines.append("")
        lines.append("  Attacker Contract:")
        for code_line in log.code_snippet.split("\n"):
            lines.append(f"    {code_line}")

    return "\n".join(lines)


def format_state(wallet: WalletState, protocol: ProtocolState, block_status: str) -> str:
    """One-line wallet/market summary."""
    return (
        f"  Wallet: {format_usd(wallet.usdc)} | {format_number(wallet.gem_token)} GEM"
        f" | debt {format_usd(wallet.debt)}   "
        f"Pool: {format_compact(protocol.pool_liquidity_usdc)} USDC / "
        f"{format_compact(protocol.pool_liquidity_gem)} GEM   "
        f"Spot: ${format_number(protocol.dex_price)}   Block: {block_status}"
    )


def format_report(report: ScenarioReport, show_code: bool = False) -> str:
    """
    Render a full scenario run with an outcome summary.

    Args:
        report: ScenarioReport to render
        show_code: Include attacker contract excerpts

    Returns:
        Formatted string for terminal display
    """
    lines = []

    lines.append("=" * WIDTH)
    lines.append("  Flash Loan Oracle Manipulation - Step-by-Step Walkthrough")
    lines.append("=" * WIDTH)
    lines.append("")

    for item in report.steps:
        lines.append(format_step_log(item.step, item.log, show_code=show_code))
        lines.append("")
        lines.append(format_state(item.wallet, item.protocol, item.block_status))
        if item.narrative:
            lines.append("")
            lines.append(f"  Explanation: {item.narrative}")
        lines.append("")

    lines.append("=" * WIDTH)
    lines.append("  OUTCOME SUMMARY")
    lines.append("=" * WIDTH)
    lines.append(f"  Initial capital:   {format_usd(report.initial_usdc)}")
    lines.append(f"  Final capital:     {format_usd(report.final_usdc)}")
    lines.append(f"  [$$] Net profit:   {format_usd(report.profit)}")
    lines.append(
        f"  Price impact:      ${format_number(INITIAL_PRICE)} -> "
        f"${format_number(report.peak_price)}"
    )
    lines.append("  Lending protocol:  INSOLVENT (collateral reverts to market value)")
    lines.append("=" * WIDTH)

    return "\n".join(lines)
