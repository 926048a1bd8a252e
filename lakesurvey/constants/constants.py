"""
Constants used throughout the lakesurvey package.

This module contains the JSON keys of the exported records, the column layout
of the field sheets, the fixed local offset used for timestamps, log and error
messages, and the defaults of the command line tools.
"""
from datetime import timedelta, timezone

from lakesurvey.dataclasses.dataclasses import SampleFeature

# --------------
# Record keys
# --------------

LAKE_LABEL = "lake"
STATION_LABEL = "station"
DATE_LABEL = "date"
SAMPLERS_LABEL = "samplers"
WEATHER_LABEL = "weather"
AIR_TEMPERATURE_LABEL = "air_temperature"
SECCHI_DEPTH_LABEL = "secchi_depth"
NITROGEN_LABEL = "nitrogen"
PHOSPHORUS_LABEL = "phosphorus"
DATA_NOTES_LABEL = "data_notes"
MEASUREMENTS_LABEL = "measurements"

# --------------
# Measurement features
# --------------

# ``export_label`` is the key written to JSON, ``aliases`` are the keys older
# conversions used for the same value.
DEPTH = SampleFeature(label="depth", export_label="depth", unit="m", aliases=())
TEMPERATURE = SampleFeature(
    label="temperature", export_label="temperature", unit="°C", aliases=("water_temp",)
)
DISSOLVED_OXYGEN = SampleFeature(
    label="dissolved_oxygen", export_label="DO", unit="mg/L", aliases=("dissolved_oxygen",)
)
SPECIFIC_CONDUCTANCE = SampleFeature(
    label="specific_conductance", export_label="SPC", unit="µS/cm", aliases=("spc",)
)
TOTAL_DISSOLVED_SOLIDS = SampleFeature(
    label="total_dissolved_solids", export_label="TDS", unit="mg/L", aliases=("tds",)
)
PH = SampleFeature(label="ph", export_label="PH", unit="", aliases=("ph",))

# Sheet column order of a depth reading, starting at column 1.
MEASUREMENT_FEATURES = [
    DEPTH,
    TEMPERATURE,
    DISSOLVED_OXYGEN,
    SPECIFIC_CONDUCTANCE,
    TOTAL_DISSOLVED_SOLIDS,
    PH,
]
MEASUREMENT_COLUMNS = {
    feature.label: index for index, feature in enumerate(MEASUREMENT_FEATURES, 1)
}
MEASUREMENT_ROW_WIDTH = len(MEASUREMENT_FEATURES) + 1

# --------------
# Sheet layout
# --------------

STATION_PATTERN = r"^[A-Z]+$"
YEAR_PATTERN = r"^\d{4}$"
# Month column header that also matches the station pattern.
STATION_EXCLUDED = "March"
DO_SATURATION_MARKER = "x"

# --------------
# Time
# --------------

LOCAL_UTC_OFFSET = timezone(timedelta(hours=-8), name="UTC-08:00")
TWO_DIGIT_YEAR_PIVOT = 50
MONTH_ABBREVIATIONS = {
    "Jan": 1,
    "Feb": 2,
    "Mar": 3,
    "Apr": 4,
    "May": 5,
    "Jun": 6,
    "Jul": 7,
    "Aug": 8,
    "Sep": 9,
    "Oct": 10,
    "Nov": 11,
    "Dec": 12,
}

# --------------
# Files
# --------------

JSON_FILE_MARKER = ".json"
DEFAULT_DATA_DIR = "src/data"
DEFAULT_OUTPUT_FILE = "water-data.json"
DEFAULT_PLOTS_FOLDER = "surveyplots"
LOG_FILE = "lakesurvey.log"
JSON_INDENT = 2

# --------------
# Charts
# --------------

MAX_VISIBLE_DEFAULT = 12
BASE_COLOR_PALETTES = {
    "Gunflint": ["#FF6B6B", "#FF8E53", "#FF9F43"],
    "Hague": ["#4ECDC4", "#45B7D1", "#6C5CE7"],
}
FALLBACK_COLORMAP = "tab10"
DEPTH_RANGES = [
    ("Surface (0-2m)", 0, 2),
    ("Mid-depth (3-8m)", 3, 8),
    ("Deep (9m+)", 9, 50),
]

# --------------
# Messages
# --------------

ERROR_INPUT_MISSING = "Input file does not exist"
ERROR_NOT_AN_ARRAY = "File does not contain an array of records"
ERROR_INVALID_JSON = "File is not valid JSON"
ERROR_DATA_DIR_MISSING = "Data directory does not exist"
ERROR_WRITE_FAILED = "Could not write output file"
ERROR_MISSING_MERGE_KEY = "Record missing lake or date"
WARNING_MALFORMED_ROW = "Row has fewer columns than a depth reading needs, missing columns read as empty"
WARNING_UNPARSED_DATE = "Could not parse date format"
