"""
Statistical transformations applied to records before drawing.

count/sum per slot and stacking for bars, LOESS smoothing for trends,
and seeded jitter against overplotting.
"""

from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd


def resolution(values: np.ndarray) -> float:
    """Smallest gap between distinct finite values (1.0 when there is no gap)."""
    distinct = np.unique(values[np.isfinite(values)])
    if len(distinct) < 2:
        return 1.0
    return float(np.diff(distinct).min())


def jitter(values: np.ndarray, amount: float, rng: np.random.Generator) -> np.ndarray:
    """Add uniform noise in [-amount, amount]; amount 0 returns the values unchanged."""
    if not amount:
        return values
    return values + rng.uniform(-amount, amount, size=len(values))


def bar_heights(
    slots: np.ndarray,
    y: Optional[np.ndarray] = None,
    groups: Optional[pd.Series] = None,
    group_order: Optional[List] = None,
) -> Dict[object, pd.Series]:
    """
    Bar height per slot, split by group.

    Without y each record counts 1 (count stat); with y the values are summed.

    Returns:
        group level -> Series indexed by slot (a single None group when ungrouped)
    """
    frame = pd.DataFrame({
        "slot": slots,
        "value": np.ones(len(slots)) if y is None else y,
        "group": None if groups is None else groups.to_numpy(),
    })
    frame = frame[np.isfinite(frame["slot"]) & np.isfinite(frame["value"])]

    if groups is None:
        return {None: frame.groupby("slot")["value"].sum()}

    heights = {}
    for level in group_order or list(pd.unique(frame["group"])):
        subset = frame[frame["group"] == level]
        if len(subset):
            heights[level] = subset.groupby("slot")["value"].sum()
    return heights


def stack(heights: Dict[object, pd.Series]) -> List[Tuple[object, pd.Series, pd.Series]]:
    """
    Stack grouped bar heights in group order.

    Positive and negative heights stack away from zero separately.

    Returns:
        [(group level, heights, bottoms)] with heights and bottoms indexed by slot
    """
    positive_top: Dict[float, float] = {}
    negative_top: Dict[float, float] = {}
    stacked = []
    for level, series in heights.items():
        bottoms = []
        for slot, height in series.items():
            tops = positive_top if height >= 0 else negative_top
            base = tops.get(slot, 0.0)
            bottoms.append(base)
            tops[slot] = base + height
        stacked.append((level, series, pd.Series(bottoms, index=series.index)))
    return stacked


def loess(x: np.ndarray, y: np.ndarray, span: float = 0.75, n_points: int = 80) -> Tuple[np.ndarray, np.ndarray]:
    """
    Locally weighted linear regression evaluated on an even grid over the range of x.

    Each grid point is fitted from its ceil(span * n) nearest neighbours, weighted by
    the tricube of their distance scaled to the farthest neighbour.

    Returns:
        (grid, fitted), both of length n_points
    """
    keep = np.isfinite(x) & np.isfinite(y)
    x, y = x[keep], y[keep]
    n = len(x)
    if n == 0:
        return np.array([]), np.array([])

    k = min(n, max(int(np.ceil(span * n)), 2))
    grid = np.linspace(x.min(), x.max(), n_points)
    fitted = np.empty_like(grid)

    for i, x0 in enumerate(grid):
        distance = np.abs(x - x0)
        nearest = np.argsort(distance, kind="stable")[:k]
        reach = distance[nearest].max()
        if reach == 0:
            fitted[i] = y[nearest].mean()
            continue
        weights = (1.0 - (distance[nearest] / reach) ** 3) ** 3
        root = np.sqrt(weights)
        design = np.column_stack([np.ones(k), x[nearest] - x0])
        coef, _, _, _ = np.linalg.lstsq(design * root[:, None], y[nearest] * root, rcond=None)
        fitted[i] = coef[0]

    return grid, fitted
