from __future__ import annotations

import math

import pandas as pd


def total_return(equity: pd.Series) -> float:
    if len(equity) < 2 or equity.iloc[0] == 0:
        return 0.0
    return float(equity.iloc[-1] / equity.iloc[0] - 1.0)


def max_drawdown(equity: pd.Series) -> float:
    if equity.empty:
        return 0.0
    running_max = equity.cummax()
    drawdown = (equity / running_max) - 1.0
    return float(drawdown.min())


def sharpe_ratio(equity: pd.Series, periods_per_year: int = 252) -> float:
    """Per-tick Sharpe ratio scaled by ``periods_per_year`` (zero risk-free rate)."""
    returns = equity.pct_change().dropna()
    if returns.empty:
        return 0.0
    std = returns.std(ddof=1)
    if std == 0 or math.isnan(std):
        return 0.0
    return float((returns.mean() / std) * math.sqrt(periods_per_year))
