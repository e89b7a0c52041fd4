"""
Adapters for using ggplot-style shorthand chart requests with the renderer.

Chart requests can be written the way the grammar-of-graphics literature
writes them (aes/geom/facet_wrap/facet_grid/scale_*). This adapter translates
those configs into the canonical structure expected by the framework
(datasets + charts with dataset/geometry/mapping/scales/facet/options).
"""

from typing import Dict, Any, List, Optional, Tuple

from .constants import CONFIG_KEY_CHARTS, CONFIG_KEY_DATASETS
from .errors import ConfigurationError

DEFAULT_DATASET_NAME = "primary"

# Shorthand key -> canonical key inside a chart entry
_CHART_KEY_ALIASES = {
    "geom": "geometry",
    "aes": "mapping",
    "file": "output",
    "filename": "output",
}

_SCALE_PREFIX = "scale_"


def parse_facet_formula(formula: str) -> Tuple[Optional[str], Optional[str]]:
    """
    Split a facet formula into (rows, cols).

    "drv ~ cyl" -> ("drv", "cyl"), ". ~ cyl" -> (None, "cyl"),
    "~ class" and "class" -> (None, "class").
    """
    text = str(formula).strip()
    if "~" not in text:
        return None, text or None

    left, _, right = text.partition("~")
    left, right = left.strip(), right.strip()
    rows = left if left and left != "." else None
    cols = right if right and right != "." else None
    if rows is None and cols is None:
        raise ConfigurationError(f"Facet formula names no fields: {formula!r}")
    return rows, cols


class ChartRequestAdapter:
    """Convert shorthand chart-request configs into the canonical configuration."""

    def __init__(self, raw_config: Dict[str, Any]):
        self.raw_config = raw_config or {}

    def to_canonical_config(self) -> Dict[str, Any]:
        """Produce a configuration compatible with the renderer components."""
        config = {k: v for k, v in self.raw_config.items() if k not in ("data", CONFIG_KEY_CHARTS)}

        if CONFIG_KEY_DATASETS not in config and "data" in self.raw_config:
            config[CONFIG_KEY_DATASETS] = {DEFAULT_DATASET_NAME: self._dataset_entry(self.raw_config["data"])}

        charts = self.raw_config.get(CONFIG_KEY_CHARTS)
        if charts is not None:
            config[CONFIG_KEY_CHARTS] = {
                name: self._normalize_chart(name, entry)
                for name, entry in self._iter_charts(charts)
            }
        return config

    def _dataset_entry(self, data: Any) -> Dict[str, Any]:
        if isinstance(data, dict):
            return data
        return {"filename": str(data)}

    def _iter_charts(self, charts: Any) -> List[Tuple[str, Dict[str, Any]]]:
        """Accept charts as a mapping of name -> entry or as a list of entries."""
        if isinstance(charts, dict):
            return list(charts.items())
        if isinstance(charts, list):
            named = []
            for i, entry in enumerate(charts):
                if not isinstance(entry, dict):
                    raise ConfigurationError(f"Chart entry #{i} must be a mapping")
                named.append((str(entry.get("name") or f"chart_{i + 1}"), entry))
            return named
        raise ConfigurationError("'charts' must be a mapping or a list")

    def _normalize_chart(self, name: str, entry: Dict[str, Any]) -> Dict[str, Any]:
        if not isinstance(entry, dict):
            raise ConfigurationError(f"Chart '{name}' must be a mapping")

        chart: Dict[str, Any] = {}
        scales = dict(entry.get("scales") or {})
        for key, value in entry.items():
            if key in ("facet_wrap", "facet_grid", "scales", "name"):
                continue
            if key.startswith(_SCALE_PREFIX):
                scales[key[len(_SCALE_PREFIX):]] = value
                continue
            chart[_CHART_KEY_ALIASES.get(key, key)] = value

        chart.setdefault("dataset", DEFAULT_DATASET_NAME)
        chart["mapping"] = dict(chart.get("mapping") or {})
        if scales:
            chart["scales"] = scales

        facet = self._build_facet(name, entry)
        if facet is not None:
            chart["facet"] = facet

        if "geometry" not in chart:
            raise ConfigurationError(f"Chart '{name}' does not name a geometry")
        return chart

    def _build_facet(self, name: str, entry: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Translate facet_wrap/facet_grid shorthand into a facet entry."""
        if "facet_wrap" in entry and "facet_grid" in entry:
            raise ConfigurationError(f"Chart '{name}' sets both facet_wrap and facet_grid")

        if "facet_wrap" in entry:
            spec = entry["facet_wrap"]
            ncol = None
            if isinstance(spec, dict):
                ncol = spec.get("ncol")
                spec = spec.get("field") or spec.get("fields")
            if isinstance(spec, list):
                fields = [str(f) for f in spec]
            else:
                _, field = parse_facet_formula(spec)
                fields = [field]
            facet = {"kind": "wrap", "fields": fields}
            if ncol:
                facet["ncol"] = ncol
            return facet

        if "facet_grid" in entry:
            rows, cols = parse_facet_formula(entry["facet_grid"])
            return {"kind": "grid", "rows": rows, "cols": cols}

        return entry.get("facet")
