"""
Scenario Visualization

Charts for the flash loan oracle manipulation walkthrough: spot price
impact, pool reserves and attacker capital per step.
"""

from typing import Optional, Sequence, Tuple
import numpy as np
import matplotlib.pyplot as plt

from flashsim.core.state import INITIAL_PRICE, PriceHistorySample, Step
from flashsim.simulation.walkthrough import ScenarioReport


# Colors
COLORS = {
    'price': '#c084fc',     # Purple
    'baseline': '#94a3b8',  # Slate
    'usdc': '#3b82f6',      # Blue
    'gem': '#f97316',       # Orange
    'profit': '#22c55e',    # Green
    'loss': '#ef4444',      # Red
}


def plot_price_history(
    history: Sequence[PriceHistorySample],
    title: str = "Price Impact",
    figsize: Tuple[int, int] = (8, 4),
    save_path: Optional[str] = None,
    ax: Optional[plt.Axes] = None,
) -> plt.Figure:
    """
    Line chart of the GEM spot price after each step.

    Args:
        history: Price samples, seeded with the starting price
        title: Plot title
        figsize: Figure size (ignored when ax is given)
        save_path: Path to save
        ax: Existing axes to draw on

    Returns:
        matplotlib Figure
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)
    else:
        fig = ax.figure

    steps = np.array([s.step for s in history])
    prices = np.array([s.price for s in history], dtype=float)

    ax.plot(steps, prices, color=COLORS['price'], linewidth=2, marker='o')
    ax.axhline(INITIAL_PRICE, color=COLORS['baseline'], linestyle='--',
               linewidth=1, label=f'Market value (${INITIAL_PRICE})')

    if len(prices):
        peak = int(np.argmax(prices))
        ax.annotate(f'${prices[peak]:,.2f}', (steps[peak], prices[peak]),
                    textcoords='offset points', xytext=(0, 8), ha='center')

    ax.set_xticks([s.value for s in Step])
    ax.set_xlabel('Step', fontsize=11)
    ax.set_ylabel('GEM Spot Price ($)', fontsize=11)
    ax.set_title(title, fontsize=12)
    ax.legend(loc='upper left')
    ax.grid(True, alpha=0.3)

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches='tight')

    return fig


def plot_scenario_dashboard(
    report: ScenarioReport,
    title: str = "Flash Loan Oracle Manipulation",
    figsize: Tuple[int, int] = (15, 4.5),
    save_path: Optional[str] = None,
) -> plt.Figure:
    """
    Three-panel dashboard of a scenario run.

    Shows:
    - Left: Spot price history
    - Middle: Pool reserves after each step
    - Right: Attacker USDC balance after each step

    Args:
        report: Completed ScenarioReport
        title: Figure title
        figsize: Figure size
        save_path: Path to save

    Returns:
        matplotlib Figure
    """
    fig, axes = plt.subplots(1, 3, figsize=figsize)

    plot_price_history(report.price_history, ax=axes[0])

    # Middle: reserves
    ax2 = axes[1]
    labels = [item.step.name.replace('_', '\n') for item in report.steps]
    x = np.arange(len(report.steps))
    width = 0.4

    usdc_reserve = np.array([item.protocol.pool_liquidity_usdc for item in report.steps])
    gem_reserve = np.array([item.protocol.pool_liquidity_gem for item in report.steps])

    ax2.bar(x - width/2, usdc_reserve, width, label='Pool USDC', color=COLORS['usdc'], alpha=0.8)
    ax2.bar(x + width/2, gem_reserve, width, label='Pool GEM', color=COLORS['gem'], alpha=0.8)
    ax2.set_xticks(x)
    ax2.set_xticklabels(labels, fontsize=7)
    ax2.set_yscale('log')
    ax2.set_title('AMM Reserves', fontsize=12)
    ax2.legend()

    # Right: wallet
    ax3 = axes[2]
    balances = np.array([item.wallet.usdc for item in report.steps])
    colors = [COLORS['profit'] if b >= report.initial_usdc else COLORS['loss'] for b in balances]
    ax3.bar(x, balances, color=colors, alpha=0.8)
    ax3.set_xticks(x)
    ax3.set_xticklabels(labels, fontsize=7)
    ax3.set_title('Attacker USDC', fontsize=12)
    ax3.yaxis.set_major_formatter(plt.FuncFormatter(lambda v, p: f'${v/1e6:,.0f}M'))

    ax3.text(0.98, 0.95, f'Net profit: ${report.profit:,.0f}',
             transform=ax3.transAxes, ha='right', va='top',
             fontsize=10, fontweight='bold', color=COLORS['profit'])

    fig.suptitle(title, fontsize=14, fontweight='bold')
    fig.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches='tight')

    return fig
