"""
Profit/Loss Plotting

Draws a strategy's profit/loss curve against the stock price, either as a
static matplotlib figure or an interactive plotly figure.

The chart shows:
    - the P/L curve with shaded profit and loss regions
    - a zero (breakeven) line and the break-even prices
    - a marker at the current stock price
    - horizontal lines at the profit target and loss limit, when set

Plotting only reads the evaluation result; it never modifies it.

Usage:
    from strategylab.analytics.visualization import plot_pl

    fig = plot_pl(outputs, backend='plotly', save_path='pl.html', show=False)
"""

import logging
import os
from typing import Any, List, Optional

import numpy as np

from strategylab.analytics.export import get_pl
from strategylab.core.exceptions import StrategyLabError
from strategylab.core.models import Outputs

# Configure module logger
logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

DEFAULT_FIGSIZE = (12, 6)

# Color schemes (colorblind-friendly)
COLOR_PROFIT = '#2E7D32'       # Dark green
COLOR_LOSS = '#C62828'         # Dark red
COLOR_BENCHMARK = '#757575'    # Gray
COLOR_HIGHLIGHT = '#FF9800'    # Orange
COLOR_TARGET = '#1565C0'       # Blue

PLOTLY_COLORS = {
    'profit': 'rgb(46, 125, 50)',
    'loss': 'rgb(198, 40, 40)',
    'benchmark': 'rgb(117, 117, 117)',
    'highlight': 'rgb(255, 152, 0)',
    'target': 'rgb(21, 101, 192)',
}

SUPPORTED_BACKENDS = ['matplotlib', 'plotly']

FILE_FORMATS = {
    '.png': 'png',
    '.svg': 'svg',
    '.pdf': 'pdf',
    '.jpg': 'jpeg',
    '.jpeg': 'jpeg',
    '.html': 'html',
}


# =============================================================================
# Exceptions
# =============================================================================

class VisualizationError(StrategyLabError):
    """Base exception for visualization errors."""
    pass


class InvalidBackendError(VisualizationError):
    """Exception raised for an unknown plotting backend."""
    pass


# =============================================================================
# Helper Functions
# =============================================================================

def _ensure_directory(path: str) -> None:
    """Create directory for save path if it doesn't exist."""
    directory = os.path.dirname(path)
    if directory and not os.path.exists(directory):
        os.makedirs(directory, exist_ok=True)


def _validate_backend(backend: str) -> str:
    """Validate and normalize backend string."""
    backend = backend.lower().strip()
    if backend not in SUPPORTED_BACKENDS:
        raise InvalidBackendError(
            f"Backend must be one of {SUPPORTED_BACKENDS}, got '{backend}'"
        )
    return backend


def _get_save_format(save_path: str) -> str:
    """Determine file format from save path extension."""
    ext = os.path.splitext(save_path)[1].lower()
    return FILE_FORMATS.get(ext, 'png')


def _setup_matplotlib_style() -> None:
    import seaborn as sns
    sns.set_style("whitegrid")
    sns.set_context("notebook", font_scale=1.1)


def find_break_even_points(stock_prices: np.ndarray, profits: np.ndarray) -> List[float]:
    """
    Prices where the P/L curve crosses zero.

    Each crossing is located by linear interpolation between the two grid
    points around it. A grid point exactly at zero counts once.

    Example:
        >>> find_break_even_points(np.array([100., 110., 120.]), np.array([-5., -5., 5.]))
        [115.0]
    """
    s = np.asarray(stock_prices, dtype=float)
    p = np.asarray(profits, dtype=float)
    points: List[float] = []

    for i in range(len(p) - 1):
        if p[i] == 0.0:
            if i == 0 or p[i - 1] != 0.0:
                points.append(float(s[i]))
        elif p[i] * p[i + 1] < 0:
            points.append(float(s[i] - p[i] * (s[i + 1] - s[i]) / (p[i + 1] - p[i])))

    if len(p) > 1 and p[-1] == 0.0 and p[-2] != 0.0:
        points.append(float(s[-1]))

    return points


# =============================================================================
# Public API
# =============================================================================

def plot_pl(
    outputs: Outputs,
    leg: Optional[int] = None,
    backend: str = 'matplotlib',
    save_path: Optional[str] = None,
    show: bool = True,
    title: Optional[str] = None,
) -> Any:
    """
    Plot the profit/loss curve of a strategy (or one of its legs).

    Args:
        outputs: Result of a strategy evaluation
        leg: Leg index to plot instead of the whole strategy
        backend: 'matplotlib' or 'plotly'. Default 'matplotlib'.
        save_path: Path to save figure. If None, figure is not saved.
        show: If True, display the figure. Default True.
        title: Chart title. Auto-generated when None.

    Returns:
        matplotlib Figure or plotly Figure

    Example:
        >>> fig = plot_pl(outputs, show=False)
    """
    backend = _validate_backend(backend)
    inputs = outputs.inputs

    stock_prices, profits = get_pl(outputs, leg)
    breakevens = find_break_even_points(stock_prices, profits)

    if title is None:
        title = 'Strategy P/L' if leg is None else f'Leg {leg} P/L'
        title += f' (PoP {outputs.probability_of_profit:.1%})'

    profit_target = inputs.profit_target
    loss_limit = inputs.loss_limit if inputs.loss_limit is not None and inputs.loss_limit < 0 else None

    if backend == 'matplotlib':
        return _plot_pl_matplotlib(
            stock_prices, profits, breakevens, inputs.stock_price,
            profit_target, loss_limit, save_path, show, title
        )
    return _plot_pl_plotly(
        stock_prices, profits, breakevens, inputs.stock_price,
        profit_target, loss_limit, save_path, show, title
    )


def _plot_pl_matplotlib(
    spots: np.ndarray,
    profits: np.ndarray,
    breakevens: List[float],
    current_spot: float,
    profit_target: Optional[float],
    loss_limit: Optional[float],
    save_path: Optional[str],
    show: bool,
    title: str
) -> Any:
    """Matplotlib implementation of the P/L chart."""
    import matplotlib.pyplot as plt
    _setup_matplotlib_style()

    fig, ax = plt.subplots(figsize=DEFAULT_FIGSIZE)

    ax.fill_between(spots, profits, 0, where=profits >= 0,
                    color=COLOR_PROFIT, alpha=0.3, label='Profit')
    ax.fill_between(spots, profits, 0, where=profits < 0,
                    color=COLOR_LOSS, alpha=0.3, label='Loss')

    ax.plot(spots, profits, color='black', linewidth=2)
    ax.axhline(y=0, color='black', linewidth=0.5)

    for be in breakevens:
        ax.axvline(x=be, color=COLOR_BENCHMARK, linestyle='--', linewidth=1)
        ax.annotate(f'BE: ${be:.2f}', xy=(be, 0),
                    xytext=(5, 10), textcoords='offset points',
                    fontsize=9, alpha=0.8)

    if profit_target is not None:
        ax.axhline(y=profit_target, color=COLOR_TARGET, linestyle='--',
                   linewidth=1, label=f'Profit target: ${profit_target:,.2f}')
    if loss_limit is not None:
        ax.axhline(y=loss_limit, color=COLOR_LOSS, linestyle='--',
                   linewidth=1, label=f'Loss limit: ${loss_limit:,.2f}')

    idx = np.abs(spots - current_spot).argmin()
    ax.scatter([current_spot], [profits[idx]], color=COLOR_HIGHLIGHT,
               s=100, zorder=5, label=f'Current: ${current_spot:.2f}')

    ax.set_title(title, fontsize=14, fontweight='bold')
    ax.set_xlabel('Stock Price ($)', fontsize=11)
    ax.set_ylabel('Profit/Loss ($)', fontsize=11)
    ax.legend(loc='best', framealpha=0.9)
    ax.grid(True, alpha=0.3)

    plt.tight_layout()

    if save_path:
        _ensure_directory(save_path)
        fig.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Saved P/L chart to {save_path}")

    if show:
        plt.show()
    else:
        plt.close(fig)

    return fig


def _plot_pl_plotly(
    spots: np.ndarray,
    profits: np.ndarray,
    breakevens: List[float],
    current_spot: float,
    profit_target: Optional[float],
    loss_limit: Optional[float],
    save_path: Optional[str],
    show: bool,
    title: str
) -> Any:
    """Plotly implementation of the P/L chart."""
    import plotly.graph_objects as go

    fig = go.Figure()

    fig.add_trace(go.Scatter(
        x=spots, y=np.where(profits >= 0, profits, 0),
        mode='lines',
        name='Profit',
        fill='tozeroy',
        line=dict(color=PLOTLY_COLORS['profit'], width=0),
        fillcolor='rgba(46, 125, 50, 0.3)',
        hoverinfo='skip'
    ))
    fig.add_trace(go.Scatter(
        x=spots, y=np.where(profits < 0, profits, 0),
        mode='lines',
        name='Loss',
        fill='tozeroy',
        line=dict(color=PLOTLY_COLORS['loss'], width=0),
        fillcolor='rgba(198, 40, 40, 0.3)',
        hoverinfo='skip'
    ))
    fig.add_trace(go.Scatter(
        x=spots, y=profits,
        mode='lines',
        name='P/L',
        line=dict(color='black', width=2),
        hovertemplate='Stock: $%{x:.2f}<br>P/L: $%{y:,.2f}<extra></extra>'
    ))

    fig.add_hline(y=0, line=dict(color='black', width=0.5))

    for be in breakevens:
        fig.add_vline(x=be, line=dict(color=PLOTLY_COLORS['benchmark'],
                      dash='dash', width=1),
                      annotation_text=f'BE: ${be:.2f}',
                      annotation_position='top')

    if profit_target is not None:
        fig.add_hline(y=profit_target, line=dict(color=PLOTLY_COLORS['target'], dash='dash', width=1),
                      annotation_text='Profit target')
    if loss_limit is not None:
        fig.add_hline(y=loss_limit, line=dict(color=PLOTLY_COLORS['loss'], dash='dash', width=1),
                      annotation_text='Loss limit')

    idx = np.abs(spots - current_spot).argmin()
    fig.add_trace(go.Scatter(
        x=[current_spot], y=[profits[idx]],
        mode='markers',
        name=f'Current: ${current_spot:.2f}',
        marker=dict(color=PLOTLY_COLORS['highlight'], size=12),
    ))

    fig.update_layout(
        title=dict(text=title, x=0.5, xanchor='center', font=dict(size=16)),
        xaxis=dict(title='Stock Price ($)', tickformat='$,.0f'),
        yaxis=dict(title='Profit/Loss ($)', tickformat='$,.0f'),
        hovermode='x unified',
        showlegend=True,
        template='plotly_white'
    )

    if save_path:
        _ensure_directory(save_path)
        if _get_save_format(save_path) == 'html':
            fig.write_html(save_path)
        else:
            fig.write_image(save_path, scale=2)
        logger.info(f"Saved P/L chart to {save_path}")

    if show:
        fig.show()

    return fig


__all__ = [
    'VisualizationError',
    'InvalidBackendError',
    'find_break_even_points',
    'plot_pl',
]
