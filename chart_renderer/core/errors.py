"""
Error taxonomy for chart rendering.

Every error is raised synchronously to the caller of the failing operation.
Rendering is deterministic, so retrying with the same inputs raises the same error.
"""


class ChartError(ValueError):
    """Base class for all chart rendering errors."""


class InvalidMapping(ChartError):
    """A mapped field is absent from the dataset schema, or a required channel is unmapped."""

    def __init__(self, message: str, field: str = None, channel: str = None):
        super().__init__(message)
        self.field = field
        self.channel = channel


class TypeMismatch(ChartError):
    """A channel received a field whose value kind it cannot encode."""

    def __init__(self, message: str, field: str = None, channel: str = None, kind: str = None):
        super().__init__(message)
        self.field = field
        self.channel = channel
        self.kind = kind


class EmptyDataset(ChartError):
    """There are no records to render."""


class InconsistentSchema(ChartError):
    """Records of one dataset do not share the same fields."""


class InvalidGeometry(ChartError):
    """The geometry name is not a known drawing mode."""


class InvalidScale(ChartError):
    """A scale transform cannot be applied to a channel or its values."""


class TooManyPanels(ChartError):
    """A facet specification would produce more panels than allowed."""


class ConfigurationError(ChartError):
    """A chart-request configuration is malformed."""
