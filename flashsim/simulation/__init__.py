"""flashsim simulation - scenario controller, walkthrough and CLI runner."""

from flashsim.simulation.controller import (
    NarrativeRequest,
    ScenarioController,
    ScenarioSnapshot,
)
from flashsim.simulation.walkthrough import (
    ScenarioReport,
    WalkthroughStep,
    format_report,
    format_step_log,
    run_scenario,
)

__all__ = [
    "NarrativeRequest",
    "ScenarioController",
    "ScenarioSnapshot",
    "ScenarioReport",
    "WalkthroughStep",
    "format_report",
    "format_step_log",
    "run_scenario",
]
