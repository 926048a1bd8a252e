"""
Label/value metadata found anywhere in a field sheet row.

Sheets are authored by hand, so labels are matched as lower-case substrings
of a cell and the value is always the cell right after the label.
"""
import logging
from typing import Callable, NamedTuple

from lakesurvey.dataclasses.dataclasses import SamplingRecord
from lakesurvey.exceptions.exceptions import DateParseFailure
from lakesurvey.loadsheet.dates import resolve_date
from lakesurvey.utils.utils import parse_float

logger = logging.getLogger("lakesurvey")


class MetadataLabel(NamedTuple):
    patterns: tuple[str, ...]
    apply: Callable[[SamplingRecord, str, str | None], None]


def _set_timestamp(record, value, filename):
    try:
        record.timestamp = resolve_date(value)
    except DateParseFailure as error:
        record.timestamp = None
        logger.warning(f"{filename} - station {record.station} - {error}")


def _set_weather(record, value, filename):
    record.weather = value


def _set_samplers(record, value, filename):
    record.samplers = [name.strip() for name in value.split(",") if name.strip()]


def _numeric_setter(attribute):
    def apply(record, value, filename):
        number = parse_float(value)
        if number is not None:
            setattr(record, attribute, number)

    return apply


def _secchi_setter(slot):
    def apply(record, value, filename):
        number = parse_float(value)
        if number is not None:
            record.secchi_depth[slot] = number

    return apply


def _set_data_notes(record, value, filename):
    record.data_notes = value


METADATA_LABELS = [
    MetadataLabel(("date/time:",), _set_timestamp),
    MetadataLabel(("weather:",), _set_weather),
    MetadataLabel(("people:",), _set_samplers),
    MetadataLabel(("air temp",), _numeric_setter("air_temperature")),
    MetadataLabel(("secchi 1",), _secchi_setter(0)),
    MetadataLabel(("secchi 2",), _secchi_setter(1)),
    MetadataLabel(("nitrogen",), _numeric_setter("nitrogen")),
    MetadataLabel(("phosphorus", "phosporus"), _numeric_setter("phosphorus")),
    MetadataLabel(("data notes",), _set_data_notes),
]


def extract_metadata(tokens: list[str | None], record: SamplingRecord, filename: str | None = None):
    """
    Applies every recognised label/value pair of a row to the record.

    Parameters
    ----------
    tokens : list[str | None]
        The tokenized row.
    record : SamplingRecord
        The active record, modified in place.
    filename : str, optional
        Source name used in log messages.

    Notes
    -----
    A label followed by an empty cell is ignored. When a label occurs twice in
    a row the later value wins. Numeric values that do not parse leave the
    field unchanged. A date that cannot be resolved clears the timestamp and is
    logged.
    """
    for index, token in enumerate(tokens):
        if token is None:
            continue
        value = tokens[index + 1] if index + 1 < len(tokens) else None
        if value is None:
            continue
        text = token.lower()
        for label in METADATA_LABELS:
            if any(pattern in text for pattern in label.patterns):
                label.apply(record, value, filename)
