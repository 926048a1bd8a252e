import logging
import sys
from argparse import ArgumentParser
from os import path

from rich.console import Console
from rich.status import Status
from rich.table import Table, box
from rich_argparse import RichHelpFormatter

from lakesurvey.Survey import Survey
from lakesurvey.constants.constants import *
from lakesurvey.exceptions.exceptions import FatalIOFailure, LakeSurveyError
from lakesurvey.loggersetup import setup_logging
from lakesurvey.merge.merge import (
    load_json_source,
    merge_records,
    parse_sources,
    run_merge,
)
from lakesurvey.utils.utils import get_cwd, save_to_json, summarize_by_lake
from lakesurvey.visualize import survey_plot

console = Console()
logger = logging.getLogger("lakesurvey")


class SurveyArgumentParser(ArgumentParser):
    """Argument parser that exits with status 1 and the usage text on bad arguments."""

    def error(self, message):
        self.print_usage(sys.stderr)
        console.print(f"Error: {message}", style="red")
        sys.exit(1)


def run_convert(lake_name, input_file, output_file):
    """
    Converts one field sheet to a JSON array of records.

    Parameters
    ----------
    lake_name : str
        Name of the lake, e.g. "Hague".
    input_file : str
        Path to the CSV export.
    output_file : str
        Path to the JSON output.

    Returns
    -------
    int
        The process exit status.
    """
    if not path.isfile(input_file):
        console.print(f"Error: Input file '{input_file}' does not exist.", style="red")
        return 1
    try:
        console.print(f"Reading data from: {input_file}")
        console.print(f"Parsing lake data for: {lake_name}")
        survey = Survey(input_file, lake_name)
        console.print(f"Writing {len(survey)} entries to: {output_file}")
        survey.save_to_json(output_file)
    except LakeSurveyError as error:
        logger.error(error)
        console.print(f"Error processing file: {error}", style="red")
        return 1
    console.print("✓ Processing complete!", style="green")
    console.print(f"✓ Parsed {len(survey)} sampling events", style="green")
    records = survey.get_records()
    if records:
        first = records[0]
        console.print("\nFirst entry summary:")
        console.print(f"  Lake: {first.lake}")
        console.print(f"  Station: {first.station}")
        console.print(f"  Date: {first.timestamp.isoformat() if first.timestamp else None}")
        console.print(f"  Measurements: {len(first.measurements)} depth levels")
        console.print(f"  Samplers: {', '.join(first.samplers) or 'None specified'}")
    return 0


def generate_summary_table(records):
    """
    Generates a table with the number of records and date range of each lake.

    Parameters
    ----------
    records : list[SamplingRecord]
        The merged records.

    Returns
    -------
    rich.table.Table
        One row per lake.
    """
    table = Table(title="Summary by lake", box=box.SQUARE)
    table.add_column("Lake", style="cyan", no_wrap=True)
    table.add_column("Records", style="magenta")
    table.add_column("First date")
    table.add_column("Last date")
    for row in summarize_by_lake(records).iter_rows(named=True):
        table.add_row(
            str(row[LAKE_LABEL]),
            str(row["records"]),
            str(row["first_date"]),
            str(row["last_date"]),
        )
    return table


def run_merge_command(data_dir, output_file):
    """
    Merges every JSON export of ``data_dir`` and prints a per-lake summary.

    Returns
    -------
    int
        The process exit status.
    """
    console.print("Starting water data merge...")
    try:
        with Status("Merging water data", spinner="earth", console=console):
            records = run_merge(data_dir, output_file)
    except FatalIOFailure as error:
        logger.error(error)
        console.print(f"Error: {error}", style="red")
        return 1
    console.print(f"Merged data contains {len(records)} unique records")
    console.print(generate_summary_table(records))
    return 0


def parse_source_argument(value):
    """Splits a ``LAKE=PATH`` option value."""
    lake_name, separator, sheet_path = value.partition("=")
    if not separator or not lake_name or not sheet_path:
        raise ValueError(f"Source must look like LAKE=PATH, got '{value}'")
    return lake_name, sheet_path


def run_build(sources, output_file, max_workers):
    """
    Parses several field sheets in parallel and merges them in the given order.

    Returns
    -------
    int
        The process exit status.
    """
    try:
        pairs = [parse_source_argument(value) for value in sources]
    except ValueError as error:
        console.print(f"Error: {error}", style="red")
        return 1
    with Status(
        f"Processing {len(pairs)} field sheets", spinner="earth", console=console
    ):
        parsed = parse_sources(pairs, max_workers=max_workers)
        records = merge_records(parsed, [sheet_path for _, sheet_path in pairs])
    try:
        save_to_json(records, output_file)
    except FatalIOFailure as error:
        logger.error(error)
        console.print(f"Error: {error}", style="red")
        return 1
    console.print(f"Wrote {len(records)} unique records to {output_file}")
    console.print(generate_summary_table(records))
    return 0


def run_plot(input_file, plots_folder, show_all):
    """
    Renders depth profiles and scatter charts from a merged JSON file.

    Returns
    -------
    int
        The process exit status.
    """
    try:
        records = load_json_source(input_file)
    except LakeSurveyError as error:
        console.print(f"Error: {error}", style="red")
        return 1
    tracker = survey_plot.SeriesTracker(records)
    if show_all:
        tracker.toggle_all(True)
    saved = []
    with Status("Plotting", spinner="earth", console=console):
        for measurement in (TEMPERATURE.label, DISSOLVED_OXYGEN.label):
            saved.extend(survey_plot.plot_depth_profiles(tracker, measurement, plots_folder))
        for depth_range in DEPTH_RANGES:
            saved.append(
                survey_plot.plot_scatter(
                    tracker, TEMPERATURE.label, DISSOLVED_OXYGEN.label, plots_folder, depth_range
                )
            )
            saved.append(
                survey_plot.plot_scatter(
                    tracker, PH.label, DISSOLVED_OXYGEN.label, plots_folder, depth_range
                )
            )
        saved.append(
            survey_plot.plot_scatter(
                tracker, SPECIFIC_CONDUCTANCE.label, TOTAL_DISSOLVED_SOLIDS.label, plots_folder
            )
        )
    saved = [plot_path for plot_path in saved if plot_path]
    console.print(f"Saved {len(saved)} plots to {plots_folder}")
    return 0


def build_parser():
    """
    Builds the argument parser for the command-line interface.

    Returns
    -------
    argparse.ArgumentParser
        The configured argument parser.
    """
    parser = SurveyArgumentParser(
        prog="lakesurvey", description="lakesurvey", formatter_class=RichHelpFormatter
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        dest="verbosity",
        default=0,
        help="Verbose logger output to lakesurvey.log (repeat for increased verbosity)",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_const",
        const=-1,
        default=0,
        dest="verbosity",
        help="Quiet output (show errors only)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    parser_convert = subparsers.add_parser(
        "convert",
        help="Convert one field sheet CSV to JSON",
        formatter_class=RichHelpFormatter,
    )
    parser_convert.add_argument("lake", help='Name of the lake (e.g., "Hague")')
    parser_convert.add_argument("input", help="Path to the CSV input file")
    parser_convert.add_argument("output", help="Path to the JSON output file")

    parser_merge = subparsers.add_parser(
        "merge",
        help="Merge the JSON files of the data directory",
        formatter_class=RichHelpFormatter,
    )
    parser_merge.add_argument(
        "--data-dir", type=str, default=None, help=f"Data directory (default ./{DEFAULT_DATA_DIR})"
    )
    parser_merge.add_argument(
        "-o", "--output", type=str, default=None, help=f"Output file (default <data-dir>/{DEFAULT_OUTPUT_FILE})"
    )

    parser_build = subparsers.add_parser(
        "build",
        help="Parse several field sheets in parallel and merge them",
        formatter_class=RichHelpFormatter,
    )
    parser_build.add_argument(
        "-s", "--source", action="append", required=True, help="LAKE=PATH, repeat in priority order"
    )
    parser_build.add_argument(
        "-o", "--output", type=str, default=DEFAULT_OUTPUT_FILE, help="Output file path"
    )
    parser_build.add_argument(
        "-w", "--workers", type=int, nargs="?", const=1, help="Max workers"
    )

    parser_plot = subparsers.add_parser(
        "plot",
        help="Plot depth profiles and scatter charts of a merged JSON file",
        formatter_class=RichHelpFormatter,
    )
    parser_plot.add_argument("input", help="Path to the merged JSON file")
    parser_plot.add_argument(
        "--folder", type=str, default=DEFAULT_PLOTS_FOLDER, help="Folder to save plots in"
    )
    parser_plot.add_argument(
        "-a", "--all", action="store_true", help=f"Plot every series, not only the first {MAX_VISIBLE_DEFAULT}"
    )
    return parser


def main(argv=None):
    """
    The main entry point for the application. Parses arguments and runs the requested command.

    Parameters
    ----------
    argv : list[str], optional
        Arguments without the program name. Defaults to ``sys.argv[1:]``.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbosity, get_cwd())
    if args.command == "convert":
        status = run_convert(args.lake, args.input, args.output)
    elif args.command == "merge":
        data_dir = args.data_dir or path.join(get_cwd(), DEFAULT_DATA_DIR)
        status = run_merge_command(data_dir, args.output)
    elif args.command == "build":
        status = run_build(args.source, args.output, args.workers)
    else:
        status = run_plot(args.input, args.folder, args.all)
    sys.exit(status)


if __name__ == "__main__":
    main()
