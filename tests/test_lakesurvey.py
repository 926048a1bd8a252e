import logging
import os
from datetime import date, datetime, timezone
from pathlib import Path

import pandas as pd
import polars as pl
import pytest

from lakesurvey.Survey import Survey
from lakesurvey.constants.constants import *
from lakesurvey.dataclasses.dataclasses import DepthMeasurement, SamplingRecord
from lakesurvey.exceptions.exceptions import (
    DateParseFailure,
    FatalIOFailure,
    MalformedRow,
)
from lakesurvey.loadsheet.dates import format_instant, parse_instant, resolve_date
from lakesurvey.loadsheet.sheet import ParserState, parse_lake_data, process_row
from lakesurvey.loadsheet.tokenizer import split_rows, tokenize
from lakesurvey.metadata.extractor import extract_metadata
from lakesurvey.utils.utils import (
    clean_dissolved_oxygen,
    is_number,
    parse_float,
    record_from_dict,
    record_to_dict,
    records_to_frame,
)

SAMPLE_SHEET = os.path.join(Path(__file__).parent, "hague_2019.csv")


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def survey():
    return Survey(SAMPLE_SHEET, "Hague")


@pytest.fixture
def record():
    return SamplingRecord(lake="Hague", station="DWG")


# Tokenizer

def test_tokenize_doubled_quotes():
    assert tokenize('A,"He said ""hi""",C') == ["A", 'He said "hi"', "C"]


def test_tokenize_empty_fields_are_none():
    assert tokenize(" DWG , ,1.5,,") == ["DWG", None, "1.5", None, None]


def test_tokenize_quoted_comma():
    assert tokenize('People:,"Ann Lee, Bo Park"') == ["People:", "Ann Lee, Bo Park"]


def test_tokenize_unterminated_quote_runs_to_end():
    assert tokenize('A,"open, field') == ["A", "open, field"]


def test_split_rows_keeps_quoted_newline():
    text = 'Header\r\nDWG,1,"line one\nline two"\n\n   \nNTH,2'
    assert split_rows(text) == ["Header", 'DWG,1,"line one\nline two"', "NTH,2"]


def test_split_rows_stray_quote_ends_with_line():
    text = 'Header\nDWG,0,1,2,3,4,5,,Data Notes:,6" of ice\n,1,1,2,3,4,5\nNTH,0.5,1,2,3,4,5'
    assert split_rows(text) == [
        "Header",
        'DWG,0,1,2,3,4,5,,Data Notes:,6" of ice',
        ",1,1,2,3,4,5",
        "NTH,0.5,1,2,3,4,5",
    ]


def test_stray_quote_keeps_later_stations():
    sheet = (
        "Station,Depth,Temp,DO,SPC,TDS,pH\n"
        'DWG,0,15.2,8.1,250,180,7.4,,Data Notes:,6" of ice\n'
        ",1,15.0,8.0,251,181,7.3\n"
        "NTH,0.5,16.0,9.2,240,170,7.8\n"
        "SOU,0.5,16.1,9.0,241,171,7.7\n"
    )
    records = parse_lake_data(sheet, "Hague")
    assert [(r.station, len(r.measurements)) for r in records] == [
        ("DWG", 2),
        ("NTH", 1),
        ("SOU", 1),
    ]
    assert records[0].data_notes == "6 of ice"


# Date resolver

@pytest.mark.parametrize(
    "token,expected",
    [
        ("03/28/2019 12:45 PM", utc(2019, 3, 28, 20, 45)),
        ("2019/Mar/28 13:45", utc(2019, 3, 28, 21, 45)),
        ("2025-03-02", utc(2025, 3, 2, 8, 0)),
        ('"2025-03-02"', utc(2025, 3, 2, 8, 0)),
        ("01/02/2020 12:15 AM", utc(2020, 1, 2, 8, 15)),
        ("12/31/2019 11:59 PM", utc(2020, 1, 1, 7, 59)),
        ("16/07/2019 05: 00 PM", utc(2019, 7, 17, 1, 0)),
        ("16/07/2019 05:00 PM", utc(2019, 7, 17, 1, 0)),
        ("07/16/2019 16:00 PM", utc(2019, 7, 17, 0, 0)),
        ("3/31/21 4:10", utc(2021, 3, 31, 12, 10)),
        ("3/31/99 4:10", utc(1999, 3, 31, 12, 10)),
        ("16/06/2019 14.50", utc(2019, 6, 16, 22, 50)),
        ("06/16/2019 14.50", utc(2019, 6, 16, 22, 50)),
        ("16/07/2019 09:00", utc(2019, 7, 16, 17, 0)),
        ("07/16/2019 09:00", utc(2019, 7, 16, 17, 0)),
        ("10/18/22", utc(2022, 10, 18, 8, 0)),
        ("10/18/63", utc(1963, 10, 18, 8, 0)),
    ],
)
def test_resolve_date(token, expected):
    assert resolve_date(token) == expected


def test_resolve_date_ambiguous_day_month_is_day_first():
    # Both numbers could be a month: the first one is read as the day.
    assert resolve_date("05/06/2019 09:00") == utc(2019, 6, 5, 17, 0)


def test_resolve_date_summer_uses_fixed_offset():
    assert resolve_date("07/01/2019 12:00 PM") == utc(2019, 7, 1, 20, 0)


def test_resolve_date_time_only_uses_today():
    assert resolve_date("10:30", today=date(2024, 7, 1)) == utc(2024, 7, 1, 18, 30)


@pytest.mark.parametrize(
    "token", ["not a date", "2019/Foo/28 13:45", "13/13/2019 10:00", "2019-02-30", "25:99"]
)
def test_resolve_date_failure(token):
    with pytest.raises(DateParseFailure):
        resolve_date(token)


def test_format_and_parse_instant():
    instant = utc(2019, 3, 28, 20, 45)
    assert format_instant(instant) == "2019-03-28T20:45:00.000Z"
    assert parse_instant("2019-03-28T20:45:00.000Z") == instant
    assert format_instant(None) is None
    assert parse_instant(None) is None


# Numeric cells

@pytest.mark.parametrize(
    "value,expected",
    [("15.2", 15.2), ("15.2 C", 15.2), (" -3", -3.0), (".5", 0.5), ("abc", None), (None, None), (7, 7.0)],
)
def test_parse_float(value, expected):
    assert parse_float(value) == expected


def test_is_number_is_strict():
    assert is_number("1.5")
    assert is_number(" 2 ")
    assert not is_number("1.5m")
    assert not is_number("nan")
    assert not is_number(None)


def test_clean_dissolved_oxygen_drops_marker():
    assert clean_dissolved_oxygen("8.1x") == 8.1
    assert clean_dissolved_oxygen("8.1") == 8.1
    assert clean_dissolved_oxygen("x") is None
    assert clean_dissolved_oxygen(None) is None


# Metadata extractor

def test_extract_metadata_labels(record):
    tokens = [
        None, None, "Weather:", "Overcast", "People:", "Ann, , Bo ",
        "Air Temp:", "12.5", "Nitrogen (mg/L)", "0.4", "Phosporus", "0.02",
        "Data notes", "Probe swapped",
    ]
    extract_metadata(tokens, record)
    assert record.weather == "Overcast"
    assert record.samplers == ["Ann", "Bo"]
    assert record.air_temperature == 12.5
    assert record.nitrogen == 0.4
    assert record.phosphorus == 0.02
    assert record.data_notes == "Probe swapped"


def test_extract_metadata_secchi_by_label(record):
    extract_metadata(["Secchi 2", "3.1", "Secchi 1", "2.9"], record)
    assert record.secchi_depth == [2.9, 3.1]


def test_extract_metadata_people_replaces(record):
    record.samplers = ["Old"]
    extract_metadata(["People:", "New One"], record)
    assert record.samplers == ["New One"]


def test_extract_metadata_unparsed_number_keeps_value(record):
    record.air_temperature = 10.0
    extract_metadata(["Air temp", "warm"], record)
    assert record.air_temperature == 10.0


def test_extract_metadata_last_label_in_row_wins(record):
    extract_metadata(["Weather:", "Rain", "Weather:", "Sun"], record)
    assert record.weather == "Sun"


def test_extract_metadata_label_without_value(record):
    extract_metadata(["Weather:", None, "Secchi 1"], record)
    assert record.weather is None
    assert record.secchi_depth == [None, None]


def test_extract_metadata_bad_date_leaves_timestamp_empty(record, caplog, monkeypatch):
    monkeypatch.setattr(logging.getLogger("lakesurvey"), "propagate", True)
    extract_metadata(["Date/Time:", "not a date"], record, "sheet.csv")
    assert record.timestamp is None
    assert "not a date" in caplog.text


# Row classifier

def test_parse_lake_data_single_station():
    records = parse_lake_data("Header\nDWG,1.5,15.2,8.1,250,180,7.4", "TestLake")
    assert len(records) == 1
    parsed = records[0]
    assert parsed.lake == "TestLake"
    assert parsed.station == "DWG"
    assert parsed.timestamp is None
    assert list(parsed.measurements) == [
        DepthMeasurement(
            depth=1.5,
            temperature=15.2,
            dissolved_oxygen=8.1,
            specific_conductance=250,
            total_dissolved_solids=180,
            ph=7.4,
        )
    ]


def test_header_row_is_skipped():
    records = parse_lake_data("DWG,1,2,3,4,5,6\nNTH,1,2,3,4,5,6", "TestLake")
    assert [r.station for r in records] == ["NTH"]


def test_rows_before_first_station_are_ignored():
    sheet = "Header\n,1,2,3,4,5,6\n,,Weather:,Sun\nDWG,0,2,3,4,5,6"
    records = parse_lake_data(sheet, "TestLake")
    assert len(records) == 1
    assert records[0].weather is None
    assert len(records[0].measurements) == 1


def test_year_row_updates_state_only():
    state = process_row(ParserState(lake="Hague"), ["2021", None, None])
    assert state.year == 2021
    assert not state.has_active_record
    assert state.records == ()


def test_station_row_finalizes_previous_record():
    state = ParserState(lake="Hague")
    state = process_row(state, ["DWG", "0", "1", "2", "3", "4", "5"])
    state = process_row(state, [None, "1", "1", "2", "3", "4", "5"])
    first = state.record
    state = process_row(state, ["NTH", "0", "1", "2", "3", "4", "5"])
    assert state.records == (first,)
    assert first.is_finalized
    assert len(first.measurements) == 2
    assert state.record.station == "NTH"
    assert not state.record.is_finalized


def test_station_row_unparseable_depth_defaults_to_zero():
    records = parse_lake_data("Header\nDWG,surface,15,8,250,180,7", "TestLake")
    assert records[0].measurements[0].depth == 0.0
    assert records[0].measurements[0].temperature == 15.0


def test_station_row_without_readings_has_no_measurement():
    records = parse_lake_data("Header\nSOU,,,,,,,Weather:,Sun", "TestLake")
    assert records[0].measurements == ()
    assert records[0].weather == "Sun"


def test_lowercase_first_column_is_not_a_station():
    records = parse_lake_data("Header\nDWG,0,1,2,3,4,5\nMarch,,,\nDwg,2,1,2,3,4,5", "TestLake")
    assert len(records) == 1
    assert [m.depth for m in records[0].measurements] == [0.0, 2.0]


def test_measurement_row_can_carry_metadata():
    sheet = "Header\nDWG,0,1,2,3,4,5\n,1,1,2,3,4,5,,Secchi 1,2.2"
    records = parse_lake_data(sheet, "TestLake")
    assert len(records[0].measurements) == 2
    assert records[0].secchi_depth == [2.2, None]


def test_non_numeric_second_column_is_metadata_only():
    sheet = "Header\nDWG,0,1,2,3,4,5\n,deep,1,2,3,4,5"
    records = parse_lake_data(sheet, "TestLake")
    assert len(records[0].measurements) == 1


def test_short_row_warns_and_pads():
    with pytest.warns(MalformedRow):
        records = parse_lake_data("Header\nDWG,2.5,14", "TestLake")
    measurement = records[0].measurements[0]
    assert measurement.depth == 2.5
    assert measurement.temperature == 14.0
    assert measurement.ph is None


def test_zero_readings_are_kept():
    records = parse_lake_data("Header\nDWG,0,0,0,0,0,0", "TestLake")
    assert records[0].measurements[0] == DepthMeasurement(0.0, 0.0, 0.0, 0.0, 0.0, 0.0)


# Survey

def test_survey_initialization(survey):
    assert isinstance(survey, Survey)
    assert len(survey) == 3
    assert [r.station for r in survey.get_records()] == ["DWG", "NTH", "SOU"]


def test_survey_first_record(survey):
    first = survey.get_records()[0]
    assert first.lake == "Hague"
    assert first.timestamp == utc(2019, 3, 28, 20, 45)
    assert [m.depth for m in first.measurements] == [0.0, 1.0, 2.0]
    assert first.measurements[1].dissolved_oxygen == 8.0
    assert first.weather == "Sunny, calm"
    assert first.samplers == ["Ann Lee", "Bo Park"]
    assert first.air_temperature == 12.5
    assert first.secchi_depth == [2.9, 3.1]
    assert first.nitrogen == 0.41
    assert first.phosphorus == 0.02
    assert first.data_notes == 'Probe "B" used'


def test_survey_other_records(survey):
    _, second, third = survey.get_records()
    assert second.timestamp == utc(2019, 4, 2, 17, 30)
    assert len(second.measurements) == 2
    assert third.timestamp is None
    assert third.measurements == ()
    assert survey.undated_records() == [third]


def test_survey_any_file_extension(tmp_path):
    sheet = tmp_path / "hague_2019.txt"
    sheet.write_text(Path(SAMPLE_SHEET).read_text(encoding="utf-8"), encoding="utf-8")
    survey = Survey(str(sheet), "Hague")
    assert [r.station for r in survey.get_records()] == ["DWG", "NTH", "SOU"]


def test_survey_missing_file(tmp_path):
    with pytest.raises(FatalIOFailure):
        Survey(str(tmp_path / "missing.csv"), "Hague")


@pytest.mark.parametrize("pandas", [False, True])
def test_get_df(survey, pandas):
    df = survey.get_df(pandas=pandas)
    if pandas:
        assert isinstance(df, pd.DataFrame)
        assert len(df) == 6
    else:
        assert isinstance(df, pl.DataFrame)
        assert df.height == 6
        assert df.filter(pl.col(STATION_LABEL) == "SOU").select(DEPTH.label).item() is None


def test_save_to_json(survey, tmp_path):
    output_file = tmp_path / "hague.json"
    exported = survey.save_to_json(str(output_file))
    assert output_file.exists()
    first = exported[0]
    assert first[DATE_LABEL] == "2019-03-28T20:45:00.000Z"
    assert first[SECCHI_DEPTH_LABEL] == [2.9, 3.1]
    assert set(first[MEASUREMENTS_LABEL][0]) == {"depth", "temperature", "DO", "SPC", "TDS", "PH"}
    assert exported[2][DATE_LABEL] is None


def test_record_dict_reads_legacy_measurement_keys():
    data = {
        "lake": "Gunflint",
        "station": "GUN",
        "date": "2019-06-01T16:00:00.000Z",
        "secchi_depth": [4.0],
        "measurements": [
            {"depth": 1, "water_temp": 18.5, "dissolved_oxygen": 9.1, "spc": 40, "tds": 28, "ph": 7.0}
        ],
    }
    parsed = record_from_dict(data)
    assert parsed.secchi_depth == [4.0, None]
    assert parsed.measurements == (DepthMeasurement(1.0, 18.5, 9.1, 40.0, 28.0, 7.0),)
    assert record_to_dict(parsed)[MEASUREMENTS_LABEL][0] == {
        "depth": 1.0, "temperature": 18.5, "DO": 9.1, "SPC": 40.0, "TDS": 28.0, "PH": 7.0,
    }


def test_records_to_frame_empty():
    assert records_to_frame([]).is_empty()


@pytest.mark.parametrize(
    "changes",
    [
        {"lake": 5},
        {"measurements": [5]},
        {"measurements": "0,1,2"},
    ],
)
def test_record_from_dict_rejects_bad_shapes(changes):
    data = {"lake": "Hague", "station": "DWG", "date": "2019-03-28T20:45:00.000Z", "measurements": []}
    data.update(changes)
    with pytest.raises(ValueError):
        record_from_dict(data)
