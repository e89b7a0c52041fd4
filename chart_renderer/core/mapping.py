"""
Aesthetic mappings, facet specifications and layer options, plus their
validation against a dataset schema.

Nothing here draws; these are the per-request inputs of the renderer.
"""

from dataclasses import dataclass, fields
from typing import Dict, Any, List, Optional, Union

from .config_adapter import parse_facet_formula
from .constants import (
    Channel,
    DISCRETE_X_GEOMETRIES,
    DISCRETE_Y_GEOMETRIES,
    FacetKind,
    FieldKind,
    GEOMETRY_ALIASES,
    Geometry,
    ScaleTransform,
)
from .errors import ConfigurationError, InvalidGeometry, InvalidMapping, InvalidScale, TypeMismatch


@dataclass(frozen=True)
class AestheticMapping:
    """Channel -> field name. x is always required; y for everything but bar."""
    x: Optional[str] = None
    y: Optional[str] = None
    color: Optional[str] = None
    shape: Optional[str] = None
    size: Optional[str] = None
    facet: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "AestheticMapping":
        """Build a mapping from a plain dict, accepting 'colour' and 'fill' as color."""
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in (raw or {}).items():
            channel = {"colour": "color", "fill": "color"}.get(key, key)
            if channel not in known:
                raise InvalidMapping(f"Unknown aesthetic channel: {key}", channel=key)
            values[channel] = None if value is None else str(value)
        return cls(**values)

    def channels(self) -> Dict[Channel, str]:
        """Mapped channels only, in declaration order."""
        return {
            Channel(f.name): getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    def group_fields(self, schema: Dict[str, FieldKind]) -> List[str]:
        """Discrete color/shape fields that split records into separate lines, areas or trends."""
        grouping = []
        for name in (self.color, self.shape):
            if name and not schema[name].is_continuous and name not in grouping:
                grouping.append(name)
        return grouping


@dataclass(frozen=True)
class FacetSpec:
    """Partition a chart into panels: wrap over one field, or a rows x cols grid."""
    kind: FacetKind = FacetKind.WRAP
    fields: tuple = ()
    rows: Optional[str] = None
    cols: Optional[str] = None
    ncol: Optional[int] = None

    @classmethod
    def wrap(cls, field_name: str, ncol: Optional[int] = None) -> "FacetSpec":
        return cls(kind=FacetKind.WRAP, fields=(field_name,), ncol=ncol)

    @classmethod
    def grid(cls, rows: Optional[str] = None, cols: Optional[str] = None) -> "FacetSpec":
        if rows is None and cols is None:
            raise InvalidMapping("A facet grid needs a rows field, a cols field, or both")
        return cls(kind=FacetKind.GRID, rows=rows, cols=cols)

    @classmethod
    def from_config(cls, raw: Union[str, Dict[str, Any], "FacetSpec", None]) -> Optional["FacetSpec"]:
        """Accept a FacetSpec, a formula string, or a {kind, fields|rows|cols, ncol} dict."""
        if raw is None or isinstance(raw, FacetSpec):
            return raw
        if isinstance(raw, str):
            rows, cols = parse_facet_formula(raw)
            return cls.grid(rows, cols) if rows else cls.wrap(cols)
        if not isinstance(raw, dict):
            raise ConfigurationError(f"Unsupported facet specification: {raw!r}")

        try:
            kind = FacetKind(raw.get("kind", FacetKind.WRAP.value))
        except ValueError:
            raise ConfigurationError(f"Unknown facet kind: {raw.get('kind')}")

        if kind == FacetKind.GRID:
            return cls.grid(raw.get("rows"), raw.get("cols"))

        wrap_fields = raw.get("fields") or raw.get("field")
        if isinstance(wrap_fields, str):
            wrap_fields = [wrap_fields]
        if not wrap_fields or len(wrap_fields) != 1:
            raise ConfigurationError("A facet wrap takes exactly one field")
        return cls.wrap(str(wrap_fields[0]), raw.get("ncol"))

    def referenced_fields(self) -> List[str]:
        if self.kind == FacetKind.WRAP:
            return list(self.fields)
        return [f for f in (self.rows, self.cols) if f]


@dataclass(frozen=True)
class LayerOptions:
    """Per-request drawing knobs, mostly for overplotting control."""
    alpha: Optional[float] = None
    jitter_width: float = 0.0
    jitter_height: float = 0.0
    jitter_seed: Optional[int] = None
    point_size: Optional[float] = None
    color: Optional[str] = None
    span: Optional[float] = None
    title: Optional[str] = None
    x_label: Optional[str] = None
    y_label: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> "LayerOptions":
        known = {f.name for f in fields(cls)}
        raw = dict(raw or {})
        # jitter: {width, height} shorthand
        jitter = raw.pop("jitter", None)
        if jitter is not None and not isinstance(jitter, dict):
            raise ConfigurationError(f"jitter must be a mapping with width and/or height, got {jitter!r}")
        if isinstance(jitter, dict):
            raw.setdefault("jitter_width", jitter.get("width", 0.0))
            raw.setdefault("jitter_height", jitter.get("height", 0.0))
        unknown = set(raw) - known
        if unknown:
            raise ConfigurationError(f"Unknown layer options: {sorted(unknown)}")
        return cls(**raw)


def parse_geometry(geometry: Union[str, Geometry]) -> Geometry:
    """Resolve a geometry name (or alias) to its enum member."""
    if isinstance(geometry, Geometry):
        return geometry
    key = str(geometry).strip().lower()
    if key.startswith("geom_"):
        key = key[len("geom_"):]
    if key in GEOMETRY_ALIASES:
        return GEOMETRY_ALIASES[key]
    try:
        return Geometry(key)
    except ValueError:
        known = sorted([g.value for g in Geometry] + list(GEOMETRY_ALIASES))
        raise InvalidGeometry(f"Unknown geometry '{geometry}'. Expected one of: {', '.join(known)}")


def parse_scales(raw: Optional[Dict[str, Any]]) -> Dict[Channel, ScaleTransform]:
    """Parse a channel -> transform dict; missing channels default to identity."""
    scales = {}
    for channel_name, transform in (raw or {}).items():
        channel_name = {"colour": "color", "fill": "color"}.get(channel_name, channel_name)
        try:
            channel = Channel(channel_name)
        except ValueError:
            raise InvalidScale(f"Unknown scale channel: {channel_name}")
        if channel == Channel.FACET:
            raise InvalidScale("The facet channel has no scale")
        try:
            scales[channel] = transform if isinstance(transform, ScaleTransform) else ScaleTransform(str(transform))
        except ValueError:
            known = ", ".join(t.value for t in ScaleTransform)
            raise InvalidScale(f"Unknown scale transform '{transform}' for {channel_name}. Expected one of: {known}")
    return scales


def resolve_facet(mapping: AestheticMapping, facet: Optional[FacetSpec]) -> Optional[FacetSpec]:
    """An explicit facet spec wins; otherwise a mapped facet channel means wrap on that field."""
    if facet is not None:
        return facet
    if mapping.facet:
        return FacetSpec.wrap(mapping.facet)
    return None


def validate_request(
    schema: Dict[str, FieldKind],
    mapping: AestheticMapping,
    geometry: Geometry,
    scales: Optional[Dict[Channel, ScaleTransform]] = None,
    facet: Optional[FacetSpec] = None,
) -> None:
    """
    Check a render request against the dataset schema.

    Raises:
        InvalidMapping: a referenced field is absent, or x (or y, except for bar) is unmapped
        TypeMismatch: a channel received a field of a kind it cannot encode
        InvalidScale: a non-identity transform is set on a discrete or unmapped channel
    """
    if mapping.x is None:
        raise InvalidMapping("The x channel must be mapped", channel=Channel.X.value)
    if mapping.y is None and geometry != Geometry.BAR:
        raise InvalidMapping(f"The y channel must be mapped for {geometry.value}", channel=Channel.Y.value)

    referenced = [(channel.value, name) for channel, name in mapping.channels().items()]
    if facet is not None:
        referenced += [(Channel.FACET.value, name) for name in facet.referenced_fields()]

    for channel, name in referenced:
        if name not in schema:
            raise InvalidMapping(
                f"Field '{name}' mapped to {channel} does not exist. Available fields: {', '.join(schema)}",
                field=name,
                channel=channel,
            )

    def require_continuous(channel: Channel, name: Optional[str], reason: str):
        if name is None:
            return
        kind = schema[name]
        if not kind.is_continuous:
            raise TypeMismatch(
                f"{channel.value} requires numeric data {reason}, but '{name}' is {kind.value}",
                field=name,
                channel=channel.value,
                kind=kind.value,
            )

    if mapping.size is not None and schema[mapping.size] != FieldKind.NUMERIC:
        kind = schema[mapping.size]
        raise TypeMismatch(
            f"size requires a numeric field, but '{mapping.size}' is {kind.value}",
            field=mapping.size,
            channel=Channel.SIZE.value,
            kind=kind.value,
        )

    if geometry not in DISCRETE_X_GEOMETRIES:
        require_continuous(Channel.X, mapping.x, f"for {geometry.value}")
    if geometry not in DISCRETE_Y_GEOMETRIES:
        require_continuous(Channel.Y, mapping.y, f"for {geometry.value}")

    if mapping.shape is not None and schema[mapping.shape].is_continuous:
        raise TypeMismatch(
            f"shape requires a discrete field, but '{mapping.shape}' is {schema[mapping.shape].value}",
            field=mapping.shape,
            channel=Channel.SHAPE.value,
            kind=schema[mapping.shape].value,
        )

    mapped = mapping.channels()
    for channel, transform in (scales or {}).items():
        if transform == ScaleTransform.IDENTITY:
            continue
        name = mapped.get(channel)
        if name is None:
            # bar y without a mapped field carries the count stat
            if channel == Channel.Y and geometry == Geometry.BAR:
                continue
            raise InvalidScale(f"Scale {transform.value} set on unmapped channel {channel.value}")
        if not schema[name].is_continuous:
            raise InvalidScale(
                f"Scale {transform.value} cannot apply to {schema[name].value} field '{name}' on {channel.value}"
            )
        if schema[name] == FieldKind.TEMPORAL and transform != ScaleTransform.REVERSE:
            raise InvalidScale(f"Scale {transform.value} cannot apply to temporal field '{name}'")
