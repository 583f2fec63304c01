import logging
from enum import IntFlag

logger = logging.getLogger(__name__)


class LogLevel(IntFlag):
    """severity of a log entry. NONE skips the file and only goes to the console."""
    NONE = 0
    DEBUG = 1 << 0
    VERBOSE = 1 << 1
    INFO = 1 << 2
    WARNING = 1 << 3
    ERROR = 1 << 4
    SUCCESS = 1 << 5
    IMPORTANT = 1 << 6

    @property
    def display_name(self) -> str:
        """name as it appears in the log file, e.g. 'Warning'."""
        return (self.name or str(int(self))).capitalize()


# NONE included; iterating a flag enum skips it
_LEVEL_VALUES = frozenset(int(m) for m in LogLevel.__members__.values())


def parse_level(value) -> LogLevel:
    """converts a level name (any case) or an int to a single LogLevel.

    combinations such as DEBUG | INFO and bools are rejected with ValueError.
    """
    if isinstance(value, bool):
        raise ValueError(f"Unknown log level value: {value!r}")
    if isinstance(value, int):
        if int(value) not in _LEVEL_VALUES:
            raise ValueError(f"Unknown log level value: {int(value)}")
        return LogLevel(value)

    name = str(value).strip().upper()
    try:
        return LogLevel[name]
    except KeyError:
        logger.debug(f"rejected unknown level name '{value}'")
        raise ValueError(f"Unknown log level: {value!r}") from None
