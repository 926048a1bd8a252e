import colorlog
import logging
from os import path

from lakesurvey.constants.constants import LOG_FILE

formatter = colorlog.ColoredFormatter(
    "%(log_color)s%(asctime)s - %(levelname)s - %(message)s (%(filename)s:%(lineno)d) - %(name)s",
    datefmt="%H:%M",
    reset=True,
    log_colors={
        "DEBUG": "white",
        "INFO": "cyan",
        "WARNING": "yellow",
        "ERROR": "red",
        "CRITICAL": "red,bg_white",
    },
    secondary_log_colors={},
    style="%",
)
file_formatter = logging.Formatter(
    "%(asctime)s, %(levelname)-8s [%(filename)s:%(lineno)d] %(message)s", "%H:%M:%S"
)


def setup_logging(verbosity, log_dir=None):
    """
    Sets up the ``lakesurvey`` logger with a colored console handler and a log file.

    Parameters
    ----------
    verbosity : int
        0 logs warnings, 1 info, 2 or more debug; -1 only errors.
    log_dir : str, optional
        Directory of ``lakesurvey.log``. No file is written when None.

    Returns
    -------
    logging.Logger
        The configured logger.
    """
    base_loglevel = 30
    verbosity = min(verbosity, 2)
    loglevel = base_loglevel - (verbosity * 10)
    for logger_name in ["matplotlib", "PIL"]:
        logging.getLogger(logger_name).setLevel(logging.ERROR)
    logger = logging.getLogger("lakesurvey")
    # Clear existing handlers if they exist
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.setLevel(loglevel)
    logger.propagate = False
    console = colorlog.StreamHandler()
    console.setFormatter(formatter)
    console.setLevel(loglevel)
    logger.addHandler(console)

    if log_dir is not None:
        file_log = logging.FileHandler(path.join(log_dir, LOG_FILE))
        file_log.setFormatter(file_formatter)
        file_log.setLevel(loglevel)
        logger.addHandler(file_log)
    return logger
