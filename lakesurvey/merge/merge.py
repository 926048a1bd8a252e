"""
Merging of parsed sources into one dataset.

Records are keyed by lake and UTC calendar date. Sources are processed in the
order given and the first record seen for a key is kept, so the caller's
source order decides every collision. Output is sorted by lake, then time.
"""
import json
import logging
from concurrent.futures import ProcessPoolExecutor
from datetime import timezone
from os import path, listdir
from typing import Iterable, Sequence

from lakesurvey.constants.constants import *
from lakesurvey.dataclasses.dataclasses import SamplingRecord
from lakesurvey.exceptions.exceptions import (
    FatalIOFailure,
    LakeSurveyError,
    MissingMergeKey,
    SourceParseFailure,
    SourceReadFailure,
)
from lakesurvey.loadsheet.sheet import load_file_sheet
from lakesurvey.utils.utils import record_from_dict, save_to_json

logger = logging.getLogger("lakesurvey")


def merge_key(record: SamplingRecord, filename: str | None = None) -> str:
    """
    Returns the de-duplication key of a record, e.g. ``hague-2019-03-28``.

    Raises
    ------
    MissingMergeKey
        When the record has no lake or no timestamp.
    """
    if not record.lake or record.timestamp is None:
        raise MissingMergeKey(filename=filename, station=record.station)
    day = record.timestamp.astimezone(timezone.utc).date()
    return f"{record.lake.lower()}-{day.isoformat()}"


def sort_records(records: Iterable[SamplingRecord]) -> list[SamplingRecord]:
    return sorted(records, key=lambda record: (record.lake, record.timestamp))


def merge_records(
    sources: Iterable[Sequence[SamplingRecord]],
    source_names: Sequence[str] | None = None,
) -> list[SamplingRecord]:
    """
    Combines several record lists into one de-duplicated, sorted list.

    Parameters
    ----------
    sources : Iterable[Sequence[SamplingRecord]]
        Record lists in processing order.
    source_names : Sequence[str], optional
        Names of the sources, used in log messages.

    Returns
    -------
    list[SamplingRecord]
        One record per merge key, sorted by lake name then timestamp.

    Notes
    -----
    Records without a lake or timestamp are dropped with a warning. When a key
    is already taken the later record is dropped and the collision is logged.
    Merging an already merged list returns an equal list.
    """
    merged: dict[str, SamplingRecord] = {}
    for index, records in enumerate(sources):
        name = source_names[index] if source_names else f"source {index}"
        for record in records:
            try:
                key = merge_key(record, name)
            except MissingMergeKey as error:
                logger.warning(f"{error}, skipping")
                continue
            if key in merged:
                logger.info(f"Duplicate key found: {key}, keeping first occurrence")
                continue
            merged[key] = record
    return sort_records(merged.values())


def load_json_source(json_file_path: str) -> list[SamplingRecord]:
    """
    Reads an exported JSON array of records.

    Parameters
    ----------
    json_file_path : str
        Path to the JSON file.

    Returns
    -------
    list[SamplingRecord]
        The records that could be read. Entries that are not records, or whose
        date is not ISO-8601, are skipped with a warning.

    Raises
    ------
    SourceReadFailure
        When the file cannot be opened or decoded.
    SourceParseFailure
        When the content is not JSON or not an array.
    """
    filename = path.basename(json_file_path)
    try:
        with open(json_file_path, "r", encoding="utf-8") as file:
            content = file.read()
    except (OSError, UnicodeDecodeError) as error:
        raise SourceReadFailure(filename=filename, reason=str(error))
    try:
        data = json.loads(content)
    except json.JSONDecodeError as error:
        raise SourceParseFailure(f"{ERROR_INVALID_JSON}: {error}", filename)
    if not isinstance(data, list):
        raise SourceParseFailure(ERROR_NOT_AN_ARRAY, filename)

    records = []
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            logger.warning(f"{filename} - entry {index} is not a record, skipping")
            continue
        try:
            records.append(record_from_dict(item))
        except (TypeError, ValueError) as error:
            logger.warning(f"{filename} - entry {index} could not be read ({error}), skipping")
    return records


def get_json_filenames_in_dir(directory: str, excluded: str | None = None) -> list[str]:
    """
    Lists the JSON files of a directory in name order, leaving out ``excluded``.
    """
    excluded_name = path.basename(excluded) if excluded else None
    return [
        path.join(directory, f)
        for f in sorted(listdir(directory))
        if f.endswith(JSON_FILE_MARKER) and f != excluded_name
    ]


def merge_files(files: Sequence[str]) -> list[SamplingRecord]:
    """
    Loads and merges JSON sources in the given order.

    A file that cannot be read or parsed contributes no records; its error is
    logged and the remaining files are still merged.
    """
    sources, names = [], []
    for file in files:
        filename = path.basename(file)
        logger.info(f"Processing {filename}...")
        try:
            records = load_json_source(file)
        except LakeSurveyError as error:
            logger.error(f"Error processing {error}")
            continue
        logger.info(f"Processed {len(records)} records from {filename}")
        sources.append(records)
        names.append(filename)
    return merge_records(sources, names)


def run_merge(data_dir: str, output_file: str | None = None) -> list[SamplingRecord]:
    """
    Merges every JSON export of a data directory into a single file.

    Parameters
    ----------
    data_dir : str
        Directory holding the per-source JSON exports.
    output_file : str, optional
        Output path. Defaults to ``water-data.json`` inside ``data_dir``. The
        output file itself is never read as a source.

    Returns
    -------
    list[SamplingRecord]
        The merged records that were written.

    Raises
    ------
    FatalIOFailure
        When the data directory does not exist or the output cannot be written.
    """
    if not path.isdir(data_dir):
        raise FatalIOFailure(ERROR_DATA_DIR_MISSING, data_dir)
    if output_file is None:
        output_file = path.join(data_dir, DEFAULT_OUTPUT_FILE)
    files = [
        file
        for file in get_json_filenames_in_dir(data_dir)
        if path.abspath(file) != path.abspath(output_file)
    ]
    logger.info(f"Found {len(files)} JSON files to process")
    records = merge_files(files)
    logger.info(f"Merged data contains {len(records)} unique records")
    save_to_json(records, output_file)
    return records


def _parse_source(lake_name: str, sheet_file_path: str):
    try:
        return load_file_sheet(sheet_file_path, lake_name), None
    except LakeSurveyError as error:
        return [], str(error)


def parse_sources(
    sources: Sequence[tuple[str, str]], max_workers: int | None = None
) -> list[list[SamplingRecord]]:
    """
    Parses several field sheets in worker processes.

    Parameters
    ----------
    sources : Sequence[tuple[str, str]]
        ``(lake name, CSV path)`` pairs.
    max_workers : int, optional
        Maximum number of worker processes.

    Returns
    -------
    list[list[SamplingRecord]]
        Records per source, in the order of ``sources`` whatever order the
        workers finish in. A source that fails gives an empty list.
    """
    if not sources:
        return []
    with ProcessPoolExecutor(max_workers=max_workers) as executor:
        futures = [
            executor.submit(_parse_source, lake_name, sheet_file_path)
            for lake_name, sheet_file_path in sources
        ]
        results = []
        for (lake_name, sheet_file_path), future in zip(sources, futures):
            records, error = future.result()
            if error:
                logger.error(f"Error processing {error}")
            results.append(records)
    return results
