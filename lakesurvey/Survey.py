from lakesurvey.dataclasses.dataclasses import SamplingRecord
from lakesurvey.loadsheet.sheet import load_file_sheet
from lakesurvey.utils import utils
from os import path
import logging

logger = logging.getLogger("lakesurvey")


class Survey:
    """
    Read a field sheet and initialize a Survey object.

    Parameters
    ----------
    sheet_file_path : str
        The file path to the CSV export of a field sheet.
    lake_name : str
        Name of the lake the sheet belongs to, given to every record.

    Raises
    ------
    FatalIOFailure
        When the file does not exist.
    SourceReadFailure
        When the file cannot be read as UTF-8 text.

    Examples
    --------
    Hague field sheet
    .. code-block:: python

        survey = Survey('hague-2019.csv', 'Hague')
        survey.save_to_json('hague-2019.json')
        print(survey.get_df().head(3))

    """

    _records: list[SamplingRecord]
    _filename: str = None
    lake: str = None

    def __init__(self, sheet_file_path: str, lake_name: str):
        self._filename = path.basename(sheet_file_path)
        self.lake = lake_name
        self._records = load_file_sheet(sheet_file_path, lake_name)

    def __len__(self):
        return len(self._records)

    def get_records(self) -> list[SamplingRecord]:
        """
        Returns the finalized records of the sheet in sheet order.

        Returns
        -------
        list[SamplingRecord]
            A copy of the record list; the records themselves are shared.
        """
        return list(self._records)

    def get_df(self, pandas=False):
        """
        Returns the readings of the sheet as a table, one row per depth reading.

        Parameters
        ----------
        pandas : bool, default False
            If True, a pandas DataFrame is returned instead of a polars one.

        Returns
        -------
        pl.DataFrame | pd.DataFrame
            The flattened readings.
        """
        return utils.records_to_frame(self._records, pandas=pandas)

    def undated_records(self) -> list[SamplingRecord]:
        """Returns the records whose date could not be resolved."""
        return [record for record in self._records if record.timestamp is None]

    def save_to_json(self, output_file: str):
        """
        Writes the records to a pretty-printed JSON array.

        Parameters
        ----------
        output_file : str
            The output JSON file path.

        Raises
        ------
        FatalIOFailure
            When the output cannot be written.
        """
        return utils.save_to_json(self._records, output_file)
