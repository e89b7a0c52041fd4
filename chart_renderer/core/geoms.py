"""
Drawing functions, one per geometry.

Each function draws the records of one panel onto a matplotlib Axes and
returns the artists it created. All scales come in pre-built, so a function
never looks beyond the records it is handed.
"""

import logging
from itertools import product
from typing import Any, Dict, Iterator, List, Optional, Tuple

import numpy as np
import pandas as pd
from matplotlib.collections import LineCollection, PatchCollection
from matplotlib.patches import Rectangle

from .chart_registry import ChartRegistry
from .constants import Geometry
from .mapping import AestheticMapping, LayerOptions
from .scales import Encodings, level_keys
from .stat_transforms import bar_heights, jitter, loess, stack

logger = logging.getLogger(__name__)


def _column(frame: pd.DataFrame, name: Optional[str]) -> Optional[pd.Series]:
    return None if name is None else frame[name]


def iter_groups(
    frame: pd.DataFrame,
    mapping: AestheticMapping,
    encodings: Encodings,
    groups: List[str],
) -> Iterator[Tuple[Dict[str, Any], pd.DataFrame]]:
    """
    Yield (levels, records) for each discrete color/shape group present in the frame.

    levels maps each grouping field to its level; ungrouped frames yield one empty dict.
    """
    if not groups:
        yield {}, frame
        return

    keys = {name: level_keys(frame[name]) for name in groups}
    ordered_levels = []
    for name in groups:
        if name == mapping.color and encodings.color.levels:
            ordered_levels.append(encodings.color.levels)
        else:
            ordered_levels.append(encodings.shape.levels)

    for combo in product(*ordered_levels):
        mask = pd.Series(True, index=frame.index)
        for name, level in zip(groups, combo):
            mask &= keys[name] == level
        if mask.any():
            yield dict(zip(groups, combo)), frame[mask]


def _group_style(levels: Dict[str, Any], mapping: AestheticMapping, encodings: Encodings):
    color = encodings.color.color_for_level(levels.get(mapping.color)) if mapping.color in levels else encodings.color.constant
    marker = encodings.shape.marker_for_level(levels[mapping.shape]) if mapping.shape in levels else None
    return color, marker


def _sorted_xy(frame: pd.DataFrame, mapping: AestheticMapping, encodings: Encodings) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    x = encodings.x.to_numeric(frame[mapping.x])
    y = encodings.y.to_numeric(frame[mapping.y])
    order = np.argsort(x, kind="stable")
    return x[order], y[order], order


def draw_point(ax, frame: pd.DataFrame, mapping: AestheticMapping, encodings: Encodings,
               options: LayerOptions, settings: Dict[str, Any], rng: np.random.Generator, **_) -> List[Any]:
    """One marker per record; color, shape and size per record."""
    if len(frame) == 0:
        return []

    x = jitter(encodings.x.to_numeric(frame[mapping.x]), options.jitter_width, rng)
    y = jitter(encodings.y.to_numeric(frame[mapping.y]), options.jitter_height, rng)
    colors = encodings.color.colors_for(_column(frame, mapping.color), len(frame))
    sizes = encodings.size.sizes_for(_column(frame, mapping.size), len(frame))

    if not encodings.shape.is_mapped:
        return [ax.scatter(x, y, c=colors, s=sizes, marker=encodings.shape.default_marker,
                           alpha=options.alpha, linewidths=0)]

    artists = []
    shape_keys = level_keys(frame[mapping.shape]).to_numpy()
    for level in encodings.shape.levels:
        mask = shape_keys == level
        if not mask.any():
            continue
        artists.append(ax.scatter(x[mask], y[mask], c=colors[mask], s=sizes[mask],
                                  marker=encodings.shape.marker_for_level(level),
                                  alpha=options.alpha, linewidths=0))
    return artists


def draw_line(ax, frame: pd.DataFrame, mapping: AestheticMapping, encodings: Encodings,
              options: LayerOptions, settings: Dict[str, Any], groups: List[str], **_) -> List[Any]:
    """One polyline per group, records joined in x order."""
    artists = []
    line_width = settings["line_width"]

    for levels, records in iter_groups(frame, mapping, encodings, groups):
        x, y, order = _sorted_xy(records, mapping, encodings)

        if encodings.color.is_continuous:
            # Each segment takes the color of its left end
            colors = encodings.color.colors_for(records[mapping.color], len(records))[order]
            points = np.column_stack([x, y]).reshape(-1, 1, 2)
            segments = np.concatenate([points[:-1], points[1:]], axis=1)
            collection = LineCollection(segments, colors=colors[:-1], linewidths=line_width, alpha=options.alpha)
            ax.add_collection(collection)
            ax.autoscale_view()
            artists.append(collection)
            continue

        color, marker = _group_style(levels, mapping, encodings)
        lines = ax.plot(x, y, color=color, marker=marker, linewidth=line_width, alpha=options.alpha)
        artists.extend(lines)
    return artists


def draw_area(ax, frame: pd.DataFrame, mapping: AestheticMapping, encodings: Encodings,
              options: LayerOptions, settings: Dict[str, Any], groups: List[str], **_) -> List[Any]:
    """Filled area between zero and y per group; groups overlap, they are not stacked."""
    artists = []
    alpha = options.alpha if options.alpha is not None else settings["area_alpha"]
    for levels, records in iter_groups(frame, mapping, encodings, groups):
        x, y, _ = _sorted_xy(records, mapping, encodings)
        color, _ = _group_style(levels, mapping, encodings)
        artists.append(ax.fill_between(x, 0, y, color=color, alpha=alpha, linewidth=0))
    return artists


def draw_bar(ax, frame: pd.DataFrame, mapping: AestheticMapping, encodings: Encodings,
             options: LayerOptions, settings: Dict[str, Any], **_) -> List[Any]:
    """Count (or sum of y) per x slot, stacked by a discrete color field."""
    if len(frame) == 0:
        return []

    slots = encodings.x.to_numeric(frame[mapping.x])
    y = encodings.y.to_numeric(frame[mapping.y]) if mapping.y else None
    width = settings["bar_width"] * encodings.x.resolution

    discrete_color = encodings.color.is_mapped and not encodings.color.is_continuous
    groups = level_keys(frame[mapping.color]) if discrete_color else None
    heights = bar_heights(slots, y, groups, encodings.color.levels if discrete_color else None)

    artists = []
    for level, series, bottoms in stack(heights):
        if discrete_color:
            colors = encodings.color.color_for_level(level)
        elif encodings.color.is_continuous:
            # Continuous fill shows the mean value of each bar's records
            means = frame[mapping.color].groupby(slots).mean().reindex(series.index)
            colors = encodings.color.colors_for(means, len(means))
        else:
            colors = encodings.color.constant
        artists.append(ax.bar(series.index.to_numpy(), series.to_numpy(), width=width,
                              bottom=bottoms.to_numpy(), color=colors, alpha=options.alpha,
                              edgecolor="white", linewidth=0.5))
    return artists


def draw_tile(ax, frame: pd.DataFrame, mapping: AestheticMapping, encodings: Encodings,
              options: LayerOptions, settings: Dict[str, Any], **_) -> List[Any]:
    """One rectangle per record centred on its (x, y) cell and filled by color."""
    if len(frame) == 0:
        return []

    x = encodings.x.to_numeric(frame[mapping.x])
    y = encodings.y.to_numeric(frame[mapping.y])
    width, height = encodings.x.resolution, encodings.y.resolution
    colors = encodings.color.colors_for(_column(frame, mapping.color), len(frame))

    keep = np.isfinite(x) & np.isfinite(y)
    rectangles = [
        Rectangle((xi - width / 2, yi - height / 2), width, height)
        for xi, yi in zip(x[keep], y[keep])
    ]
    collection = PatchCollection(rectangles, facecolors=colors[keep], edgecolors="white",
                                 linewidths=0.5, alpha=options.alpha)
    ax.add_collection(collection)
    ax.autoscale_view()
    return [collection]


def draw_smooth(ax, frame: pd.DataFrame, mapping: AestheticMapping, encodings: Encodings,
                options: LayerOptions, settings: Dict[str, Any], groups: List[str], **_) -> List[Any]:
    """LOESS trend per group over the range of its x values."""
    artists = []
    span = options.span if options.span is not None else settings["smooth_span"]

    for levels, records in iter_groups(frame, mapping, encodings, groups):
        x = encodings.x.to_numeric(records[mapping.x])
        y = encodings.y.to_numeric(records[mapping.y])
        distinct = np.unique(x[np.isfinite(x)])
        if len(distinct) < 3:
            label = ", ".join(f"{k}={v}" for k, v in levels.items()) or "all records"
            logger.warning(f"Skipping trend for {label}: needs at least 3 distinct x values, got {len(distinct)}")
            continue

        grid, fitted = loess(x, y, span=span, n_points=int(settings["smooth_points"]))
        color, _ = _group_style(levels, mapping, encodings)
        artists.extend(ax.plot(grid, fitted, color=color, linewidth=settings["line_width"], alpha=options.alpha))
    return artists


def register_default_geoms(registry: ChartRegistry) -> ChartRegistry:
    """Register built-in drawing functions."""
    registry.register(Geometry.POINT, draw_point)
    registry.register(Geometry.LINE, draw_line)
    registry.register(Geometry.BAR, draw_bar)
    registry.register(Geometry.AREA, draw_area)
    registry.register(Geometry.TILE, draw_tile)
    registry.register(Geometry.SMOOTH, draw_smooth)
    return registry
