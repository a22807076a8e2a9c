"""
Tests for scenario charts.
"""

import matplotlib
matplotlib.use("Agg")

import matplotlib.pyplot as plt

from flashsim.core.state import PriceHistorySample
from flashsim.simulation.walkthrough import run_scenario
from flashsim.visualization import plot_price_history, plot_scenario_dashboard


class TestPlots:
    """Smoke tests for chart construction."""

    def teardown_method(self):
        plt.close("all")

    def test_price_history(self):
        """Test the price chart plots one point per sample."""
        history = [PriceHistorySample(0, 10), PriceHistorySample(1, 10), PriceHistorySample(2, 360)]
        fig = plot_price_history(history)
        line = fig.axes[0].lines[0]

        assert list(line.get_ydata()) == [10, 10, 360]

    def test_dashboard_saved(self, tmp_path):
        """Test the dashboard renders three panels and saves."""
        path = tmp_path / "dashboard.png"
        fig = plot_scenario_dashboard(run_scenario(), save_path=str(path))

        assert len(fig.axes) == 3
        assert path.exists()
