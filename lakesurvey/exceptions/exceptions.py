import logging
import warnings

logger = logging.getLogger("lakesurvey")


class LakeSurveyError(Exception):
    """
    Base exception class for lake survey errors.

    Parameters
    ----------
    message : str
        Explanation of the error.
    filename : str, optional
        Input dataset which caused the error.
    """

    def __init__(self, message, filename=None):
        full_message = f"{filename} - {message}" if filename else message
        super().__init__(full_message)
        self.filename = filename


class DateParseFailure(LakeSurveyError):
    """
    Exception raised when no known date pattern matches a date/time token.

    Parameters
    ----------
    token : str
        The text that could not be resolved.
    filename : str, optional
        Input dataset which caused the error.
    """

    def __init__(self, token, filename=None):
        super().__init__(f'Could not parse date format: "{token}"', filename)
        self.token = token


class MissingMergeKey(LakeSurveyError):
    """
    Exception raised when a record has no lake or no timestamp and cannot be merged.

    Parameters
    ----------
    filename : str, optional
        Input dataset which caused the error.
    """

    def __init__(self, filename=None, station=None):
        super().__init__(f"Record missing lake or date (station {station})", filename)


class SourceReadFailure(LakeSurveyError):
    """
    Exception raised when a source file cannot be read.

    Parameters
    ----------
    filename : str, optional
        Input dataset which caused the error.
    reason : str, optional
        The underlying error message.
    """

    def __init__(self, filename=None, reason=None):
        message = "Could not read source file"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, filename)


class SourceParseFailure(LakeSurveyError):
    """
    Exception raised when a source file was read but its content is not a list of records.

    Parameters
    ----------
    message : str
        Explanation of the error.
    filename : str, optional
        Input dataset which caused the error.
    """


class FatalIOFailure(LakeSurveyError):
    """
    Exception raised when a required input is missing or the output cannot be written.

    Parameters
    ----------
    message : str
        Explanation of the error.
    filename : str, optional
        Input or output path which caused the error.
    """


class MalformedRow(UserWarning):
    def __init__(self, message):
        self.message = message

    def __str__(self):
        return self.message


def raise_warning_malformed_row(message, filename=None, row_number=None):
    """
    Short sheet row warning function.

    Parameters
    ----------
    message : str
        Explanation of the warning.
    filename : str, default None
        Input dataset which caused the warning.
    row_number : int, default None
        Zero based index of the offending row.
    """
    text = f"{filename} - row {row_number} - {message}"
    warnings.warn(MalformedRow(text))
    logger.debug(text)
