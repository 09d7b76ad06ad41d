import logging
import sys

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def setup_logging(level=logging.WARNING, log_file=None):
    """Configure logging for the image ranker.

    stderr gets records at ``level``; the optional log file always gets DEBUG.
    """
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    handlers = [console]
    root_level = level
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        handlers.append(file_handler)
        root_level = logging.DEBUG
    logging.basicConfig(level=root_level, format=LOG_FORMAT, handlers=handlers, force=True)
