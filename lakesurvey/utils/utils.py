import json
import logging
import re
from os import path, getcwd
import sys

import polars as pl

from lakesurvey.constants.constants import *
from lakesurvey.dataclasses.dataclasses import DepthMeasurement, SamplingRecord
from lakesurvey.exceptions.exceptions import FatalIOFailure
from lakesurvey.loadsheet.dates import format_instant, parse_instant

logger = logging.getLogger("lakesurvey")

_NUMBER = r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?"
_LEADING_NUMBER_RE = re.compile(rf"^\s*({_NUMBER})")
_WHOLE_NUMBER_RE = re.compile(rf"^\s*{_NUMBER}\s*$")


def parse_float(value) -> float | None:
    """
    Best-effort number parsing of a sheet cell.

    The longest leading number is used, so ``"15.2 C"`` reads as ``15.2``.

    Parameters
    ----------
    value : str | float | None
        The cell value.

    Returns
    -------
    float | None
        The number, or None when the cell does not start with one.
    """
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    match = _LEADING_NUMBER_RE.match(str(value))
    if not match:
        return None
    return float(match.group(1))


def is_number(value) -> bool:
    """Returns True when the whole cell is a number."""
    if value is None:
        return False
    return bool(_WHOLE_NUMBER_RE.match(str(value)))


def clean_dissolved_oxygen(value) -> float | None:
    """
    Parses a dissolved oxygen cell, dropping the trailing saturation marker.

    Parameters
    ----------
    value : str | None
        The cell value, e.g. ``"8.1x"``.

    Returns
    -------
    float | None
        The dissolved oxygen value without the marker.
    """
    if value is None:
        return None
    text = str(value)
    if text.endswith(DO_SATURATION_MARKER):
        text = text[: -len(DO_SATURATION_MARKER)]
    return parse_float(text)


def measurement_to_dict(measurement: DepthMeasurement) -> dict:
    return {
        feature.export_label: getattr(measurement, feature.label)
        for feature in MEASUREMENT_FEATURES
    }


def measurement_from_dict(data: dict) -> DepthMeasurement:
    values = {}
    for feature in MEASUREMENT_FEATURES:
        value = data.get(feature.export_label)
        for alias in feature.aliases:
            if value is not None:
                break
            value = data.get(alias)
        values[feature.label] = parse_float(value)
    if values[DEPTH.label] is None:
        values[DEPTH.label] = 0.0
    return DepthMeasurement(**values)


def record_to_dict(record: SamplingRecord) -> dict:
    """
    Converts a record to the exported JSON shape.

    Parameters
    ----------
    record : SamplingRecord
        The record to export.

    Returns
    -------
    dict
        The record with the key names chart consumers read.
    """
    return {
        LAKE_LABEL: record.lake,
        STATION_LABEL: record.station,
        DATE_LABEL: format_instant(record.timestamp),
        SAMPLERS_LABEL: list(record.samplers),
        WEATHER_LABEL: record.weather,
        AIR_TEMPERATURE_LABEL: record.air_temperature,
        SECCHI_DEPTH_LABEL: list(record.secchi_depth),
        NITROGEN_LABEL: record.nitrogen,
        PHOSPHORUS_LABEL: record.phosphorus,
        DATA_NOTES_LABEL: record.data_notes,
        MEASUREMENTS_LABEL: [measurement_to_dict(m) for m in record.measurements],
    }


def record_from_dict(data: dict) -> SamplingRecord:
    """
    Builds a finalized record from its exported JSON shape.

    Parameters
    ----------
    data : dict
        One exported record. Both current and legacy measurement keys are accepted.

    Returns
    -------
    SamplingRecord
        The finalized record.

    Raises
    ------
    ValueError
        When the date is present but not ISO-8601, the lake is not a string,
        or a measurement is not an object.
    """
    lake = data.get(LAKE_LABEL)
    if lake is not None and not isinstance(lake, str):
        raise ValueError(f"lake must be a string, got {lake!r}")
    measurements = data.get(MEASUREMENTS_LABEL) or []
    if not isinstance(measurements, list) or not all(isinstance(m, dict) for m in measurements):
        raise ValueError("measurements must be a list of objects")
    secchi = list(data.get(SECCHI_DEPTH_LABEL) or [])[:2]
    secchi += [None] * (2 - len(secchi))
    record = SamplingRecord(
        lake=lake or None,
        station=data.get(STATION_LABEL),
        timestamp=parse_instant(data.get(DATE_LABEL)),
        samplers=list(data.get(SAMPLERS_LABEL) or []),
        weather=data.get(WEATHER_LABEL),
        air_temperature=parse_float(data.get(AIR_TEMPERATURE_LABEL)),
        secchi_depth=[parse_float(value) for value in secchi],
        nitrogen=parse_float(data.get(NITROGEN_LABEL)),
        phosphorus=parse_float(data.get(PHOSPHORUS_LABEL)),
        data_notes=data.get(DATA_NOTES_LABEL),
        measurements=[measurement_from_dict(m) for m in measurements],
    )
    return record.finalize()


def save_to_json(records: list[SamplingRecord], output_file: str) -> list[dict]:
    """
    Writes records as a pretty-printed JSON array.

    Parameters
    ----------
    records : list[SamplingRecord]
        The records to write.
    output_file : str
        The output JSON file path.

    Returns
    -------
    list[dict]
        The exported records.

    Raises
    ------
    FatalIOFailure
        When the file cannot be written.
    """
    exported = [record_to_dict(record) for record in records]
    try:
        with open(output_file, "w", encoding="utf-8") as file:
            json.dump(exported, file, indent=JSON_INDENT, ensure_ascii=False)
    except OSError as error:
        raise FatalIOFailure(f"{ERROR_WRITE_FAILED}: {error}", output_file)
    logger.info(f"Wrote {len(exported)} records to {output_file}")
    return exported


def records_to_frame(records: list[SamplingRecord], pandas: bool = False):
    """
    Flattens records into one row per depth reading.

    Record level values are repeated on every reading of the record. A record
    without readings still gives one row with empty reading columns.

    Parameters
    ----------
    records : list[SamplingRecord]
        The records to flatten.
    pandas : bool, default False
        If True, a pandas DataFrame is returned instead of a polars one.

    Returns
    -------
    pl.DataFrame | pd.DataFrame
        The flattened readings.
    """
    rows = []
    for index, record in enumerate(records):
        base = {
            "record_index": index,
            LAKE_LABEL: record.lake,
            STATION_LABEL: record.station,
            "timestamp": record.timestamp,
            AIR_TEMPERATURE_LABEL: record.air_temperature,
            "secchi_depth_1": record.secchi_depth[0],
            "secchi_depth_2": record.secchi_depth[1],
            NITROGEN_LABEL: record.nitrogen,
            PHOSPHORUS_LABEL: record.phosphorus,
        }
        readings = record.measurements or [None]
        for measurement in readings:
            row = dict(base)
            for feature in MEASUREMENT_FEATURES:
                row[feature.label] = (
                    getattr(measurement, feature.label) if measurement else None
                )
            rows.append(row)
    schema = {
        "record_index": pl.Int64,
        LAKE_LABEL: pl.Utf8,
        STATION_LABEL: pl.Utf8,
        "timestamp": pl.Datetime(time_unit="us", time_zone="UTC"),
        AIR_TEMPERATURE_LABEL: pl.Float64,
        "secchi_depth_1": pl.Float64,
        "secchi_depth_2": pl.Float64,
        NITROGEN_LABEL: pl.Float64,
        PHOSPHORUS_LABEL: pl.Float64,
    }
    schema.update({feature.label: pl.Float64 for feature in MEASUREMENT_FEATURES})
    df = pl.DataFrame(rows, schema=schema)
    if pandas:
        return df.to_pandas()
    return df


def summarize_by_lake(records: list[SamplingRecord]) -> pl.DataFrame:
    """
    Counts records per lake together with the first and last sampling instant.

    Parameters
    ----------
    records : list[SamplingRecord]
        The records to summarize.

    Returns
    -------
    pl.DataFrame
        Columns ``lake``, ``records``, ``first_date`` and ``last_date``, sorted by lake.
    """
    df = pl.DataFrame(
        {
            LAKE_LABEL: [record.lake for record in records],
            "timestamp": [record.timestamp for record in records],
        },
        schema={
            LAKE_LABEL: pl.Utf8,
            "timestamp": pl.Datetime(time_unit="us", time_zone="UTC"),
        },
    )
    return (
        df.group_by(LAKE_LABEL)
        .agg(
            pl.len().alias("records"),
            pl.col("timestamp").min().alias("first_date"),
            pl.col("timestamp").max().alias("last_date"),
        )
        .sort(LAKE_LABEL)
    )


def get_cwd():
    """
    Gets the current working directory.

    Returns
    -------
    str
        The current working directory, or the directory of the executable when frozen.
    """
    if getattr(sys, "frozen", False):
        return path.dirname(sys.executable)
    return getcwd()
