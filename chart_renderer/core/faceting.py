"""
Faceting: partition records into panels laid out as a wrapped sequence or a grid.

Every record lands in exactly one panel. Records with a missing facet value
form their own panel rather than being dropped.
"""

import math
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

import pandas as pd

from .constants import FacetKind
from .errors import TooManyPanels
from .mapping import FacetSpec
from .scales import discrete_levels, level_keys


@dataclass
class Panel:
    """One sub-chart: its facet key, grid position and the records it draws."""
    key: Tuple[Any, ...]
    row: int
    col: int
    frame: pd.DataFrame
    title: Optional[str] = None
    axes: Any = None
    artists: List[Any] = field(default_factory=list)

    @property
    def record_count(self) -> int:
        return len(self.frame)


@dataclass
class FacetLayout:
    panels: List[Panel]
    nrows: int
    ncols: int
    kind: Optional[FacetKind] = None


def wrap_dimensions(count: int, ncol: Optional[int] = None) -> Tuple[int, int]:
    """(nrows, ncols) for a wrapped layout: near-square unless ncol is given."""
    if count <= 0:
        return 1, 1
    ncols = min(ncol, count) if ncol else math.ceil(math.sqrt(count))
    return math.ceil(count / ncols), ncols


def partition(frame: pd.DataFrame, facet: Optional[FacetSpec], max_panels: int = 64) -> FacetLayout:
    """
    Split a frame into panels according to a facet specification.

    Args:
        frame: Records to split
        facet: Wrap or grid spec; None yields a single panel with every record
        max_panels: Upper bound on the number of panels

    Returns:
        FacetLayout with panels in display order (row-major)

    Raises:
        TooManyPanels: if the partition would exceed max_panels
    """
    if facet is None:
        return FacetLayout(panels=[Panel(key=(), row=0, col=0, frame=frame)], nrows=1, ncols=1)

    if facet.kind == FacetKind.WRAP:
        return _wrap(frame, facet, max_panels)
    return _grid(frame, facet, max_panels)


def _check_limit(count: int, max_panels: int, description: str) -> None:
    if count > max_panels:
        raise TooManyPanels(f"Faceting by {description} yields {count} panels (limit {max_panels})")


def _wrap(frame: pd.DataFrame, facet: FacetSpec, max_panels: int) -> FacetLayout:
    field_name = facet.fields[0]
    levels = discrete_levels(frame[field_name])
    _check_limit(len(levels), max_panels, field_name)

    keys = level_keys(frame[field_name])
    nrows, ncols = wrap_dimensions(len(levels), facet.ncol)
    panels = []
    for i, level in enumerate(levels):
        panels.append(Panel(
            key=(level,),
            row=i // ncols,
            col=i % ncols,
            frame=frame[keys == level],
            title=str(level),
        ))
    return FacetLayout(panels=panels, nrows=nrows, ncols=ncols, kind=FacetKind.WRAP)


def _grid(frame: pd.DataFrame, facet: FacetSpec, max_panels: int) -> FacetLayout:
    row_levels = discrete_levels(frame[facet.rows]) if facet.rows else [None]
    col_levels = discrete_levels(frame[facet.cols]) if facet.cols else [None]
    _check_limit(len(row_levels) * len(col_levels), max_panels, f"{facet.rows} x {facet.cols}")

    all_rows = pd.Series(True, index=frame.index)
    row_keys = level_keys(frame[facet.rows]) if facet.rows else None
    col_keys = level_keys(frame[facet.cols]) if facet.cols else None

    panels = []
    for r, row_level in enumerate(row_levels):
        row_mask = all_rows if row_keys is None else (row_keys == row_level)
        for c, col_level in enumerate(col_levels):
            col_mask = all_rows if col_keys is None else (col_keys == col_level)
            key = tuple(level for level in (row_level, col_level) if level is not None)
            title_parts = []
            if facet.rows:
                title_parts.append(f"{facet.rows} = {row_level}")
            if facet.cols:
                title_parts.append(f"{facet.cols} = {col_level}")
            panels.append(Panel(
                key=key,
                row=r,
                col=c,
                frame=frame[row_mask & col_mask],
                title=", ".join(title_parts),
            ))
    return FacetLayout(panels=panels, nrows=len(row_levels), ncols=len(col_levels), kind=FacetKind.GRID)
