#!/usr/bin/env python3
"""
Flash Loan Walkthrough Demo

Interactive-style demonstration of the flash loan oracle manipulation
attack, one step at a time, followed by a reset.

This script demonstrates:
1. Stepping the scenario controller manually
2. Degenerate pool handling
3. Stale narrative responses being discarded

Usage:
    python examples/flash_loan_walkthrough.py
"""

import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from flashsim.core.errors import InvalidPoolStateError
from flashsim.core.state import ProtocolState
from flashsim.narrative import build_narrator
from flashsim.simulation.controller import ScenarioController
from flashsim.simulation.walkthrough import format_state, format_step_log


def print_section(title: str, char: str = "="):
    """Print a section header."""
    width = 75
    print()
    print(char * width)
    print(f"  {title}")
    print(char * width)
    print()


def demo_step_by_step():
    """Advance the controller one step at a time."""
    print_section("DEMO 1: Step-by-Step Attack")

    controller = ScenarioController(narrator=build_narrator())
    print(format_step_log(controller.step, controller.log))

    while not controller.is_complete:
        controller.advance()
        print()
        print(format_step_log(controller.step, controller.log))
        print(format_state(controller.wallet, controller.protocol, controller.block_status))
        print(f"  Explanation: {controller.explain_current()}")

    print("\nPrice history:")
    for sample in controller.price_history:
        print(f"  step {sample.step}: ${sample.price:,.2f}")

    controller.reset()
    print(f"\nAfter reset: step={controller.step.name}, usdc={controller.wallet.usdc}")


def demo_degenerate_pool():
    """Show the blocking error for an empty pool."""
    print_section("DEMO 2: Degenerate Pool")

    controller = ScenarioController()
    controller.advance()
    controller.protocol = ProtocolState(
        dex_price=0,
        pool_liquidity_usdc=0,
        pool_liquidity_gem=0,
        oracle_price=0,
        collateral_factor=0.8,
    )

    try:
        controller.advance()
    except InvalidPoolStateError as e:
        print(f"  ERROR: {e}")
        print(f"  Controller still at {controller.step.name}")


def demo_stale_narrative():
    """Show a late narrative response being dropped."""
    print_section("DEMO 3: Late Narrative Response")

    controller = ScenarioController()
    controller.advance()
    request = controller.request_narrative()
    controller.advance()

    accepted = controller.deliver_narrative(request, "Explanation for the flash loan")
    print(f"  Response for {request.step.name} arrived at {controller.step.name}: "
          f"{'stored' if accepted else 'discarded'}")


def main():
    """Run all demos."""
    demo_step_by_step()
    demo_degenerate_pool()
    demo_stale_narrative()


if __name__ == "__main__":
    main()
