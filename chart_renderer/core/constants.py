"""
Core constants and identifiers used across the chart renderer.

Centralizing these values avoids hardcoded strings scattered throughout
the codebase and makes it easier to extend with new config keys or geometries.
"""

from enum import Enum

# Configuration keys
CONFIG_KEY_DATASETS = "datasets"
CONFIG_KEY_CHARTS = "charts"
CONFIG_KEY_RENDER_DEFAULTS = "render_defaults"
CONFIG_KEY_GLOBAL_DEFAULTS = "global_defaults"

# Auxiliary config filenames (without extension)
GLOBAL_DEFAULTS_STEM = "global_defaults"

# Output filenames
CHART_SUMMARY_FILE = "chart_summary.json"
TEXT_REPORT_FILE = "render_report.txt"
DEFAULT_IMAGE_FORMAT = "png"

# Label used for records whose facet value is missing
MISSING_FACET_LABEL = "NA"


class MissingLevel:
    """Level key for missing values. Displays as the missing label but never equals a real value."""
    __slots__ = ()

    def __repr__(self) -> str:
        return MISSING_FACET_LABEL

    __str__ = __repr__


MISSING_LEVEL = MissingLevel()


class Geometry(str, Enum):
    """Drawing primitives, used as registry keys."""
    POINT = "point"
    LINE = "line"
    BAR = "bar"
    AREA = "area"
    TILE = "tile"
    SMOOTH = "smooth"


# Alternative spellings accepted when parsing a geometry name
GEOMETRY_ALIASES = {
    "col": Geometry.BAR,
    "column": Geometry.BAR,
    "scatter": Geometry.POINT,
    "heatmap": Geometry.TILE,
    "trend": Geometry.SMOOTH,
}


class Channel(str, Enum):
    """Visual channels a field can be mapped to."""
    X = "x"
    Y = "y"
    COLOR = "color"
    SHAPE = "shape"
    SIZE = "size"
    FACET = "facet"


class FieldKind(str, Enum):
    """Value kind of a dataset field."""
    NUMERIC = "numeric"
    TEMPORAL = "temporal"
    ORDINAL = "ordinal"
    CATEGORICAL = "categorical"

    @property
    def is_continuous(self) -> bool:
        return self in (FieldKind.NUMERIC, FieldKind.TEMPORAL)


class ScaleTransform(str, Enum):
    """Per-channel scale transforms."""
    IDENTITY = "identity"
    LOG10 = "log10"
    SQRT = "sqrt"
    REVERSE = "reverse"


class FacetKind(str, Enum):
    WRAP = "wrap"
    GRID = "grid"


# Geometries whose x axis may hold discrete slots
DISCRETE_X_GEOMETRIES = (Geometry.BAR, Geometry.TILE)
# Geometries whose y axis may hold discrete slots
DISCRETE_Y_GEOMETRIES = (Geometry.TILE,)

DEFAULT_RENDER_SETTINGS = {
    "dpi": 100,
    "panel_width": 5.0,
    "panel_height": 4.0,
    "font_family": "sans-serif",
    "font_size": 10,
    "title_size": 12,
    "grid_alpha": 0.3,
    "point_size": 36.0,
    "size_range": [9.0, 196.0],
    "line_width": 1.5,
    "bar_width": 0.8,
    "area_alpha": 0.5,
    "default_color": "#1f77b4",
    "continuous_colormap": "viridis",
    "palette": [
        '#1f77b4',  # blue
        '#ff7f0e',  # orange
        '#2ca02c',  # green
        '#d62728',  # red
        '#9467bd',  # purple
        '#8c564b',  # brown
        '#e377c2',  # pink
        '#7f7f7f',  # gray
        '#bcbd22',  # olive
        '#17becf',  # cyan
    ],
    "shapes": ["o", "^", "s", "D", "v", "P", "X", "*", "<", ">"],
    "max_facet_panels": 64,
    "facet_max_columns": 4,
    "smooth_span": 0.75,
    "smooth_points": 80,
    "jitter_seed": 0,
    "null_indicators": ["", "NULL", "null", "NA", "N/A", "nan", "NaN"],
    "encoding_fallbacks": ["utf-8", "latin-1", "cp1252"],
}
