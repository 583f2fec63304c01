import logging
import sys
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# marks handlers installed here so a second call only replaces ours
_HANDLER_TAG_ATTR = "_smartlogger_handler"


def setup_logging(log_level_str: str = 'INFO', log_file: Optional[str] = None) -> logging.Logger:
    """Configures the root logger for smartlogger's own diagnostics.

    This is separate from SmartLogger's output file: it only carries what the
    library reports about itself (rotations, failed writes, config problems).

    Args:
        log_level_str: The desired logging level as a string (e.g., 'DEBUG', 'INFO', 'WARNING').
        log_file: Optional path to a file to log messages to.
    """
    log_level = getattr(logging, str(log_level_str).upper(), logging.INFO)
    if not isinstance(log_level, int):
        log_level = logging.INFO

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    root = logging.getLogger()
    root.setLevel(log_level)

    # remove handlers from a previous call
    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_TAG_ATTR, False):
            root.removeHandler(handler)
            handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    setattr(console_handler, _HANDLER_TAG_ATTR, True)
    root.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setFormatter(formatter)
            setattr(file_handler, _HANDLER_TAG_ATTR, True)
            root.addHandler(file_handler)
            logging.info(f"diagnostics also logged to file: {log_file}")
        except OSError as e:
            logging.error(f"failed to set up log file handler at {log_file}: {e}", exc_info=False)

    logging.debug(f"logging setup complete. level set to {logging.getLevelName(log_level)}")
    return root
