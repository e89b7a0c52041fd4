"""
Scales: turning field values into positions, colors, markers and sizes.

Every encoding is built once from the full dataset so all facet panels share
the same legend and axis ranges.
"""

import logging
from typing import Dict, Any, List, Optional, Tuple

import matplotlib
import matplotlib.dates as mdates
import numpy as np
import pandas as pd
from matplotlib.colors import Normalize, to_rgba

from .constants import Channel, FieldKind, MISSING_LEVEL, ScaleTransform
from .errors import InvalidScale
from .stat_transforms import resolution

logger = logging.getLogger(__name__)

MISSING_COLOR = (0.6, 0.6, 0.6, 1.0)


def discrete_levels(series: pd.Series) -> List[Any]:
    """Distinct values in display order: level order for categoricals, sorted otherwise."""
    if isinstance(series.dtype, pd.CategoricalDtype):
        present = set(series.dropna().unique())
        levels = [level for level in series.cat.categories if level in present]
    else:
        values = list(series.dropna().unique())
        try:
            levels = sorted(values)
        except TypeError:
            levels = sorted(values, key=str)
    if series.isnull().any():
        levels.append(MISSING_LEVEL)
    return levels


def level_keys(series: pd.Series) -> pd.Series:
    """Series of level keys with missing values replaced by the missing-level sentinel."""
    keys = series.astype(object).to_numpy(copy=True)
    keys[series.isnull().to_numpy()] = MISSING_LEVEL
    return pd.Series(keys, index=series.index, name=series.name, dtype=object)


def transform_values(values: np.ndarray, transform: ScaleTransform, label: str) -> np.ndarray:
    """Apply a transform to encoded (color/size) values, checking its domain."""
    check_domain(values, transform, label)
    if transform == ScaleTransform.LOG10:
        return np.log10(values)
    if transform == ScaleTransform.SQRT:
        return np.sqrt(values)
    if transform == ScaleTransform.REVERSE:
        return -values
    return values


def check_domain(values: np.ndarray, transform: ScaleTransform, label: str) -> None:
    finite = values[~np.isnan(values)]
    if transform == ScaleTransform.LOG10 and (finite <= 0).any():
        raise InvalidScale(f"log10 scale on {label} needs strictly positive values")
    if transform == ScaleTransform.SQRT and (finite < 0).any():
        raise InvalidScale(f"sqrt scale on {label} needs non-negative values")


class PositionScale:
    """Maps an x or y field to float coordinates (slots for discrete fields)."""

    def __init__(self, series: pd.Series, kind: FieldKind, transform: ScaleTransform = ScaleTransform.IDENTITY):
        self.kind = kind
        self.transform = transform
        self.field = str(series.name)
        self.levels: Optional[List[Any]] = None if kind.is_continuous else discrete_levels(series)
        self.is_timedelta = pd.api.types.is_timedelta64_dtype(series)
        self._slots = {level: float(i) for i, level in enumerate(self.levels or [])}
        # Slot width for bars and tiles, shared by every panel
        self.resolution = 1.0 if self.is_discrete else resolution(self.to_numeric(series))

    @property
    def is_discrete(self) -> bool:
        return self.levels is not None

    def to_numeric(self, series: pd.Series) -> np.ndarray:
        """Float coordinates for the given values (dates become matplotlib date numbers)."""
        if self.is_discrete:
            return level_keys(series).map(self._slots).to_numpy(dtype=float)
        if self.kind == FieldKind.TEMPORAL:
            if pd.api.types.is_timedelta64_dtype(series):
                return series.dt.total_seconds().to_numpy(dtype=float)
            return mdates.date2num(pd.to_datetime(series).to_numpy())
        return pd.to_numeric(series, errors="coerce").to_numpy(dtype=float)

    def check(self, series: pd.Series, axis_name: str) -> None:
        if not self.is_discrete:
            check_domain(self.to_numeric(series), self.transform, f"{axis_name} ({self.field})")

    def configure_axis(self, ax, axis_name: str) -> None:
        """Apply ticks, date formatting and the transform to one axis of a panel."""
        axis = ax.xaxis if axis_name == "x" else ax.yaxis
        if self.is_discrete:
            axis.set_ticks(range(len(self.levels)))
            axis.set_ticklabels([str(level) for level in self.levels])
            if axis_name == "x" and len(self.levels) > 4:
                for label in axis.get_ticklabels():
                    label.set_rotation(45)
                    label.set_horizontalalignment("right")
        elif self.kind == FieldKind.TEMPORAL and not self.is_timedelta:
            locator = mdates.AutoDateLocator()
            axis.set_major_locator(locator)
            axis.set_major_formatter(mdates.ConciseDateFormatter(locator))

        set_scale = ax.set_xscale if axis_name == "x" else ax.set_yscale
        if self.transform == ScaleTransform.LOG10:
            set_scale("log")
        elif self.transform == ScaleTransform.SQRT:
            set_scale("function", functions=(np.sqrt, np.square))
        elif self.transform == ScaleTransform.REVERSE:
            # Shared axes: set_inverted is idempotent across panels, invert_*axis toggles
            axis.set_inverted(True)


class ColorEncoding:
    """Qualitative palette for categories, sequential steps for ordinals, a colormap for numbers."""

    def __init__(self, series: Optional[pd.Series], kind: Optional[FieldKind], settings: Dict[str, Any],
                 transform: ScaleTransform = ScaleTransform.IDENTITY, constant: Optional[str] = None):
        self.field = None if series is None else str(series.name)
        self.kind = kind
        self.transform = transform
        self.constant = to_rgba(constant or settings["default_color"])
        self.cmap = matplotlib.colormaps[settings["continuous_colormap"]]
        self.levels: List[Any] = []
        self.lookup: Dict[Any, Tuple[float, ...]] = {}
        self.norm: Optional[Normalize] = None

        if series is None:
            return
        if kind.is_continuous:
            values = self._values(series)
            finite = values[~np.isnan(values)]
            vmin, vmax = (finite.min(), finite.max()) if len(finite) else (0.0, 1.0)
            self.norm = Normalize(vmin=vmin, vmax=vmax if vmax > vmin else vmin + 1.0)
            return

        self.levels = discrete_levels(series)
        real_levels = discrete_levels(series.dropna())
        if kind == FieldKind.ORDINAL:
            steps = np.linspace(0.0, 1.0, max(len(real_levels), 1))
            colors = [self.cmap(step) for step in steps]
        else:
            palette = settings["palette"]
            if len(real_levels) > len(palette):
                logger.warning(
                    f"Color field {self.field} has {len(real_levels)} categories but the palette has "
                    f"{len(palette)} colors; colors will repeat"
                )
            colors = [to_rgba(palette[i % len(palette)]) for i in range(len(real_levels))]
        self.lookup = dict(zip(real_levels, colors))
        self.lookup.setdefault(MISSING_LEVEL, MISSING_COLOR)

    @property
    def is_mapped(self) -> bool:
        return self.field is not None

    @property
    def is_continuous(self) -> bool:
        return self.norm is not None

    def _values(self, series: pd.Series) -> np.ndarray:
        if self.kind == FieldKind.TEMPORAL and pd.api.types.is_timedelta64_dtype(series):
            values = series.dt.total_seconds().to_numpy(dtype=float)
        elif self.kind == FieldKind.TEMPORAL:
            values = mdates.date2num(pd.to_datetime(series).to_numpy())
        else:
            values = pd.to_numeric(series, errors="coerce").to_numpy(dtype=float)
        return transform_values(values, self.transform, f"color ({self.field})")

    def colors_for(self, series: Optional[pd.Series], count: int) -> np.ndarray:
        """RGBA array, one row per value."""
        if not self.is_mapped or series is None:
            return np.tile(self.constant, (count, 1))
        if self.is_continuous:
            values = self._values(series)
            colors = self.cmap(self.norm(values))
            colors[np.isnan(values)] = MISSING_COLOR
            return colors
        return np.array([self.lookup.get(key, MISSING_COLOR) for key in level_keys(series)])

    def color_for_level(self, level: Any) -> Tuple[float, ...]:
        if not self.is_mapped:
            return self.constant
        return self.lookup.get(level, MISSING_COLOR)


class ShapeEncoding:
    """Marker per discrete level."""

    def __init__(self, series: Optional[pd.Series], settings: Dict[str, Any]):
        self.field = None if series is None else str(series.name)
        self.default_marker = settings["shapes"][0]
        self.levels: List[Any] = []
        self.lookup: Dict[Any, str] = {}
        if series is None:
            return
        self.levels = discrete_levels(series)
        markers = settings["shapes"]
        if len(self.levels) > len(markers):
            logger.warning(
                f"Shape field {self.field} has {len(self.levels)} categories but only {len(markers)} "
                f"markers are configured; markers will repeat"
            )
        self.lookup = {level: markers[i % len(markers)] for i, level in enumerate(self.levels)}

    @property
    def is_mapped(self) -> bool:
        return self.field is not None

    def marker_for_level(self, level: Any) -> str:
        return self.lookup.get(level, self.default_marker)


class SizeEncoding:
    """Linear map from (transformed) numbers to marker area within size_range."""

    def __init__(self, series: Optional[pd.Series], settings: Dict[str, Any],
                 transform: ScaleTransform = ScaleTransform.IDENTITY, constant: Optional[float] = None):
        self.field = None if series is None else str(series.name)
        self.transform = transform
        self.constant = float(constant if constant is not None else settings["point_size"])
        self.min_area, self.max_area = (float(v) for v in settings["size_range"])
        self.vmin = self.vmax = None
        if series is None:
            return
        values = self._values(series)
        finite = values[~np.isnan(values)]
        if len(finite):
            self.vmin, self.vmax = float(finite.min()), float(finite.max())

    @property
    def is_mapped(self) -> bool:
        return self.field is not None

    def _values(self, series: pd.Series) -> np.ndarray:
        values = pd.to_numeric(series, errors="coerce").to_numpy(dtype=float)
        return transform_values(values, self.transform, f"size ({self.field})")

    def sizes_for(self, series: Optional[pd.Series], count: int) -> np.ndarray:
        if not self.is_mapped or series is None or self.vmin is None:
            return np.full(count, self.constant)
        values = self._values(series)
        span = self.vmax - self.vmin
        if span == 0:
            scaled = np.full(count, 0.5)
        else:
            scaled = (values - self.vmin) / span
        sizes = self.min_area + scaled * (self.max_area - self.min_area)
        return np.where(np.isnan(sizes), self.min_area, sizes)

    def legend_values(self, n: int = 4) -> List[float]:
        """Representative (transformed) values for a size legend."""
        if self.vmin is None:
            return []
        return list(np.linspace(self.vmin, self.vmax, n))


class Encodings:
    """All scales of one render request, built over the full dataset."""

    def __init__(self, frame: pd.DataFrame, schema: Dict[str, FieldKind], mapping, scales: Dict[Channel, ScaleTransform],
                 settings: Dict[str, Any], options=None):
        def scale(channel: Channel) -> ScaleTransform:
            return scales.get(channel, ScaleTransform.IDENTITY)

        def column(name: Optional[str]) -> Optional[pd.Series]:
            return None if name is None else frame[name]

        self.x = PositionScale(frame[mapping.x], schema[mapping.x], scale(Channel.X))
        self.x.check(frame[mapping.x], "x")
        self.y = None
        if mapping.y is not None:
            self.y = PositionScale(frame[mapping.y], schema[mapping.y], scale(Channel.Y))
            self.y.check(frame[mapping.y], "y")
        self.y_transform = scale(Channel.Y)

        constant_color = options.color if options else None
        constant_size = options.point_size if options else None
        self.color = ColorEncoding(
            column(mapping.color), schema.get(mapping.color), settings, scale(Channel.COLOR), constant_color
        )
        self.shape = ShapeEncoding(column(mapping.shape), settings)
        self.size = SizeEncoding(column(mapping.size), settings, scale(Channel.SIZE), constant_size)
