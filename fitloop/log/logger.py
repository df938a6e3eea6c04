import os
from pathlib import Path


class Logger:
    r"""
    Provide minimal file-based logging utilities for training runs.

    Args:
        filepath (str): Path to the file to write.
        mode (str): File open mode for the first write: ``'w'`` (truncate
            the file once) or ``'a'`` (append). Later writes always append.
        debug (bool): if ``True``, every line is also printed to stdout.
    """

    def __init__(self, filepath, mode="a", debug=False):
        r"""
        Initialize the logger and ensure the log directory exists.

        Args:
            filepath (str | pathlib.Path): Log file path.
            mode (str): File open mode: ``'w'`` or ``'a'``.
            debug (bool): Echo log lines to stdout.

        Raises:
            ValueError: If ``mode`` is not ``'w'`` or ``'a'``.

        Side effects:
            Creates the parent directory of ``filepath`` if it does not exist.
        """
        self.debug = debug
        self.filepath = Path(filepath)
        if not os.path.exists(self.filepath.parent):
            os.makedirs(self.filepath.parent)

        if mode not in ["w", "a"]:
            raise ValueError("Mode must be one of w or a")
        else:
            self.mode = mode

    def log(self, content):
        r"""
        Write a single line to the configured log file.

        Args:
            content (str): Line content to write. A trailing newline is added.

        Side effects:
            Writes to disk. With ``mode='w'`` the file is truncated by the
            first call only.
        """
        with open(self.filepath, self.mode) as f:
            f.write(content + "\n")
        self.mode = "a"
        if self.debug:
            print(content)


def log(msg, logger: Logger):
    """
    Logs a message using a logger, if any
    """
    if logger is not None:
        logger.log(msg)


def fmt(x, decimals=2, sci_decimals=2):
    """Format number with fixed-point unless it's small, then scientific."""
    if x is None:
        return "N/A"
    thresh = 10 ** (-decimals - 1)
    x = float(x)
    if x == 0.0:
        return f"{0:.{decimals}f}"
    if abs(x) < thresh:
        return f"{x:.{sci_decimals}e}"
    return f"{x:.{decimals}f}"
