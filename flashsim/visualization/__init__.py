"""flashsim visualization - charts for scenario runs."""

from flashsim.visualization.price_plot import plot_price_history, plot_scenario_dashboard

__all__ = [
    "plot_price_history",
    "plot_scenario_dashboard",
]
