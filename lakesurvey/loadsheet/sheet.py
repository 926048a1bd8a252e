"""
Row classification of limnology field sheets.

A sheet interleaves station rows (a station code in the first column and the
first depth reading), further depth readings, free-form metadata rows and
year marker rows. ``process_row`` looks at one tokenized row at a time and
returns the next ``ParserState``; ``parse_lake_data`` folds it over a sheet.
"""
import logging
import re
from dataclasses import dataclass, field, replace
from os import path

from lakesurvey.constants.constants import *
from lakesurvey.dataclasses.dataclasses import DepthMeasurement, SamplingRecord
from lakesurvey.exceptions.exceptions import (
    FatalIOFailure,
    SourceReadFailure,
    raise_warning_malformed_row,
)
from lakesurvey.loadsheet.tokenizer import split_rows, tokenize
from lakesurvey.metadata.extractor import extract_metadata
from lakesurvey.utils.utils import clean_dissolved_oxygen, is_number, parse_float

logger = logging.getLogger("lakesurvey")

_STATION_RE = re.compile(STATION_PATTERN)
_YEAR_RE = re.compile(YEAR_PATTERN)


@dataclass(frozen=True)
class ParserState:
    """
    State of a single sheet parse.

    Attributes
    ----------
    lake : str
        Lake name given to every record.
    filename : str | None
        Source name used in log messages.
    record : SamplingRecord | None
        The active record. None means no station row has been seen yet.
    year : int | None
        The last year marker row seen.
    records : tuple[SamplingRecord, ...]
        Finalized records in sheet order.
    """

    lake: str
    filename: str | None = None
    record: SamplingRecord | None = None
    year: int | None = None
    records: tuple[SamplingRecord, ...] = field(default_factory=tuple)

    @property
    def has_active_record(self) -> bool:
        return self.record is not None

    def finish(self) -> "ParserState":
        """Finalizes the active record, if any."""
        if self.record is None:
            return self
        return replace(self, record=None, records=self.records + (self.record.finalize(),))


def is_year_row(tokens: list[str | None]) -> bool:
    first = tokens[0] if tokens else None
    return first is not None and bool(_YEAR_RE.match(first))


def is_station_row(tokens: list[str | None]) -> bool:
    first = tokens[0] if tokens else None
    return first is not None and bool(_STATION_RE.match(first)) and first != STATION_EXCLUDED


def is_measurement_row(tokens: list[str | None]) -> bool:
    return len(tokens) > 1 and is_number(tokens[1])


def parse_measurement(tokens: list[str | None]) -> DepthMeasurement:
    """
    Reads the depth reading held in columns 1 to 6 of a row.

    Parameters
    ----------
    tokens : list[str | None]
        The tokenized row, at least ``MEASUREMENT_ROW_WIDTH`` long.

    Returns
    -------
    DepthMeasurement
        The reading. Depth falls back to 0 when it does not parse.
    """
    depth = parse_float(tokens[MEASUREMENT_COLUMNS[DEPTH.label]])
    return DepthMeasurement(
        depth=depth if depth is not None else 0.0,
        temperature=parse_float(tokens[MEASUREMENT_COLUMNS[TEMPERATURE.label]]),
        dissolved_oxygen=clean_dissolved_oxygen(
            tokens[MEASUREMENT_COLUMNS[DISSOLVED_OXYGEN.label]]
        ),
        specific_conductance=parse_float(
            tokens[MEASUREMENT_COLUMNS[SPECIFIC_CONDUCTANCE.label]]
        ),
        total_dissolved_solids=parse_float(
            tokens[MEASUREMENT_COLUMNS[TOTAL_DISSOLVED_SOLIDS.label]]
        ),
        ph=parse_float(tokens[MEASUREMENT_COLUMNS[PH.label]]),
    )


def _padded(tokens, state, row_number):
    if len(tokens) >= MEASUREMENT_ROW_WIDTH:
        return tokens
    raise_warning_malformed_row(WARNING_MALFORMED_ROW, state.filename, row_number)
    return tokens + [None] * (MEASUREMENT_ROW_WIDTH - len(tokens))


def process_row(state: ParserState, tokens: list[str | None], row_number: int = 0) -> ParserState:
    """
    Classifies one row and returns the resulting state.

    Parameters
    ----------
    state : ParserState
        The state before the row.
    tokens : list[str | None]
        The tokenized row.
    row_number : int, default 0
        Index of the row in the sheet, used in warnings.

    Returns
    -------
    ParserState
        The state after the row.

    Notes
    -----
    Rows are tried as, in order: year marker, station row, measurement row,
    metadata-only row. Rows before the first station row that are none of
    the first two are ignored.
    """
    if is_year_row(tokens):
        return replace(state, year=int(tokens[0]))

    if is_station_row(tokens):
        state = state.finish()
        record = SamplingRecord(lake=state.lake, station=tokens[0])
        row = _padded(tokens, state, row_number)
        # Any reading column counts, not only depth; a missing depth reads as 0.
        if any(value is not None for value in row[1:MEASUREMENT_ROW_WIDTH]):
            record.measurements.append(parse_measurement(row))
        extract_metadata(tokens, record, state.filename)
        logger.debug(f"{state.filename} - row {row_number} - new station {record.station}")
        return replace(state, record=record)

    if not state.has_active_record:
        return state

    if is_measurement_row(tokens):
        row = _padded(tokens, state, row_number)
        state.record.measurements.append(parse_measurement(row))

    extract_metadata(tokens, state.record, state.filename)
    return state


def parse_lake_data(csv_content: str, lake_name: str = "Unknown", filename: str | None = None) -> list[SamplingRecord]:
    """
    Parses the text of a field sheet into sampling records.

    Parameters
    ----------
    csv_content : str
        The sheet text. The first non-blank row is a header and is skipped.
    lake_name : str, default "Unknown"
        Lake name given to every record.
    filename : str, optional
        Source name used in log messages.

    Returns
    -------
    list[SamplingRecord]
        Finalized records in sheet order.

    Examples
    --------
    .. code-block:: python

        records = parse_lake_data("Header\\nDWG,1.5,15.2,8.1,250,180,7.4", "TestLake")
        records[0].station
        # 'DWG'
    """
    state = ParserState(lake=lake_name, filename=filename)
    for row_number, line in enumerate(split_rows(csv_content)):
        if row_number == 0:
            continue
        state = process_row(state, tokenize(line), row_number)
    state = state.finish()
    logger.info(f"{filename} - parsed {len(state.records)} sampling events for {lake_name}")
    return list(state.records)


def load_file_sheet(sheet_file_path: str, lake_name: str) -> list[SamplingRecord]:
    """
    Reads and parses a field sheet CSV file.

    Parameters
    ----------
    sheet_file_path : str
        The file path to the CSV export.
    lake_name : str
        Lake name given to every record.

    Returns
    -------
    list[SamplingRecord]
        Finalized records in sheet order.

    Raises
    ------
    FatalIOFailure
        When the file does not exist.
    SourceReadFailure
        When the file exists but cannot be read as UTF-8 text.
    """
    filename = path.basename(sheet_file_path)
    if not path.isfile(sheet_file_path):
        raise FatalIOFailure(ERROR_INPUT_MISSING, sheet_file_path)
    try:
        with open(sheet_file_path, "r", encoding="utf-8") as file:
            content = file.read()
    except (OSError, UnicodeDecodeError) as error:
        raise SourceReadFailure(filename=filename, reason=str(error))
    return parse_lake_data(content, lake_name, filename)
