from dataclasses import dataclass, field
from datetime import datetime
from typing import NamedTuple


class SampleFeature(NamedTuple):
    label: str
    export_label: str
    unit: str
    aliases: tuple[str, ...]


@dataclass
class DepthMeasurement:
    """
    Represents one probe reading within a station visit.

    Attributes
    ----------
    depth : float
        Depth of the reading in meters.
    temperature : float | None
        Water temperature in °C, if available.
    dissolved_oxygen : float | None
        Dissolved oxygen in mg/L, if available.
    specific_conductance : float | None
        Specific conductance, if available.
    total_dissolved_solids : float | None
        Total dissolved solids, if available.
    ph : float | None
        pH, if available.
    """

    depth: float
    temperature: float | None = None
    dissolved_oxygen: float | None = None
    specific_conductance: float | None = None
    total_dissolved_solids: float | None = None
    ph: float | None = None


@dataclass
class SamplingRecord:
    """
    Represents one station visit parsed from a field sheet, with its metadata and depth profile.

    Attributes
    ----------
    lake : str | None
        Name of the lake, supplied by the caller.
    station : str | None
        Short uppercase station code.
    timestamp : datetime | None
        Sampling instant in UTC, or None when no date could be resolved.
    samplers : list[str]
        People who took the samples.
    weather : str | None
        Free-text weather description.
    air_temperature : float | None
        Air temperature in °C.
    secchi_depth : list[float | None]
        Two independent secchi readings in meters, in label order.
    nitrogen : float | None
        Nitrogen concentration.
    phosphorus : float | None
        Phosphorus concentration.
    data_notes : str | None
        Free-text notes.
    measurements : list[DepthMeasurement] | tuple[DepthMeasurement, ...]
        Depth readings in sheet order. Finalized records hold a tuple.
    """

    lake: str | None
    station: str | None
    timestamp: datetime | None = None
    samplers: list[str] = field(default_factory=list)
    weather: str | None = None
    air_temperature: float | None = None
    secchi_depth: list[float | None] = field(default_factory=lambda: [None, None])
    nitrogen: float | None = None
    phosphorus: float | None = None
    data_notes: str | None = None
    measurements: list[DepthMeasurement] | tuple[DepthMeasurement, ...] = field(
        default_factory=list
    )

    def finalize(self) -> "SamplingRecord":
        """Freezes the depth profile so it can no longer be appended to."""
        self.measurements = tuple(self.measurements)
        return self

    @property
    def is_finalized(self) -> bool:
        return isinstance(self.measurements, tuple)
