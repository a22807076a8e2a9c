"""
Simulation Runner

CLI entry point for the flash loan oracle manipulation walkthrough.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from flashsim.core.errors import SimulationError
from flashsim.narrative import NarrativeSettings, StaticNarrator, build_narrator
from flashsim.simulation.controller import ScenarioController
from flashsim.simulation.walkthrough import format_report, run_scenario


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="DeFi Exploit Sim - Flash Loan Oracle Manipulation"
    )

    parser.add_argument(
        "--explain",
        action="store_true",
        help="Add a narrative explanation to every step "
             "(uses the LLM backend when FLASHSIM_API_KEY is set)"
    )

    parser.add_argument(
        "--offline",
        action="store_true",
        help="Use the built-in static explanations even if an API key is set"
    )

    parser.add_argument(
        "--show-code",
        action="store_true",
        help="Show the attacker contract excerpt for each step"
    )

    parser.add_argument(
        "--plot",
        type=str,
        default=None,
        help="Save a scenario dashboard chart to this path"
    )

    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        help="Output file for results (JSON)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)"
    )

    return parser


def main(argv=None) -> int:
    """Main entry point for the simulation runner."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.offline:
        narrator = StaticNarrator()
    else:
        narrator = build_narrator(NarrativeSettings())

    controller = ScenarioController(narrator=narrator)

    try:
        report = run_scenario(controller, explain=args.explain)
    except SimulationError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    print(format_report(report, show_code=args.show_code))

    if args.plot:
        from flashsim.visualization.price_plot import plot_scenario_dashboard
        plot_scenario_dashboard(report, save_path=args.plot)
        print(f"\nChart saved to: {args.plot}")

    if args.output:
        output_path = Path(args.output)
        with open(output_path, 'w') as f:
            json.dump(report.to_dict(), f, indent=2, default=str)
        print(f"\nResults saved to: {output_path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
