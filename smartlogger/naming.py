import logging
import os
import re
import sys
from datetime import date, datetime
from typing import Optional

logger = logging.getLogger(__name__)

LOGS_DIR_NAME = "Logs"
LAST_RESORT_LOG_NAME = "Application.log"

# equivalent of "yyyy-MM-dd hh:mm:ss.fff tt"; %f is milliseconds here (see format_timestamp)
DEFAULT_TIME_FORMAT = "%Y-%m-%d %I:%M:%S.%f %p"

# any strftime directive, scanned left to right so %% is consumed as a pair
_DIRECTIVE = re.compile(r"%.")


def program_name() -> str:
    """name of the running program, without extension (e.g. 'worker' for worker.py)."""
    argv0 = sys.argv[0] if sys.argv else ""
    name = os.path.splitext(os.path.basename(argv0))[0]
    if name and name != "-c":
        return name

    # interactive sessions and `python -c` have no useful argv[0]
    main_module = sys.modules.get("__main__")
    main_file = getattr(main_module, "__file__", None)
    if main_file:
        return os.path.splitext(os.path.basename(main_file))[0]
    raise RuntimeError("could not determine the running program's name")


def alternate_program_name() -> str:
    """identity of the interpreter itself, used when the program name can't be found."""
    name = os.path.splitext(os.path.basename(sys.executable or ""))[0]
    if not name:
        raise RuntimeError("could not determine the interpreter's name")
    return name


def safe_program_name() -> str:
    """program_name(), then the interpreter's name, then 'Application'."""
    for resolve in (program_name, alternate_program_name):
        try:
            return resolve()
        except Exception as e:
            logger.debug(f"{resolve.__name__} failed: {e}")
    return os.path.splitext(LAST_RESORT_LOG_NAME)[0]


def default_base_dir() -> str:
    """directory the running program lives in, or the cwd when there is none."""
    argv0 = sys.argv[0] if sys.argv else ""
    if argv0 and argv0 != "-c":
        directory = os.path.dirname(os.path.abspath(argv0))
        if os.path.isdir(directory):
            return directory
    return os.getcwd()


def dated_log_dir(base_dir: str, day: date) -> str:
    """<base>/Logs/<year>/<MM>-<MonthName>"""
    month_folder = f"{day.month:02d}-{day.strftime('%B')}"
    return os.path.join(base_dir, LOGS_DIR_NAME, str(day.year), month_folder)


def dated_log_name(base_dir: str, day: date, name: Optional[str] = None) -> str:
    """<base>/Logs/<year>/<MM>-<MonthName>/<program>_<DD>.log"""
    name = name or safe_program_name()
    return os.path.join(dated_log_dir(base_dir, day), f"{name}_{day.day:02d}.log")


def generate_log_name(base_dir: str, day: date) -> str:
    """creates the dated directory and returns the log file path for that day.

    never raises: if the directory can't be created the log goes to the current
    working directory, named after the program (or the interpreter, or as a
    last resort 'Application.log').
    """
    try:
        os.makedirs(dated_log_dir(base_dir, day), exist_ok=True)
        return dated_log_name(base_dir, day)
    except Exception as e:
        logger.debug(f"could not prepare dated log directory under {base_dir}: {e}")

    try:
        return os.path.join(os.getcwd(), f"{program_name()}.log")
    except Exception as e:
        logger.debug(f"falling back to interpreter name for log file: {e}")

    try:
        return os.path.join(os.getcwd(), f"{alternate_program_name()}.log")
    except Exception as e:
        logger.debug(f"falling back to '{LAST_RESORT_LOG_NAME}': {e}")
        return LAST_RESORT_LOG_NAME


def format_timestamp(moment: datetime, time_format: str) -> str:
    """formats a local time with a strftime pattern.

    %f gives milliseconds (3 digits) rather than strftime's microseconds, so the
    default pattern prints e.g. '2024-05-06 02:03:09.123 PM'.
    """
    millis = f"{moment.microsecond // 1000:03d}"
    pattern = _DIRECTIVE.sub(lambda m: millis if m.group(0) == "%f" else m.group(0), time_format)
    return moment.strftime(pattern)


def format_line(moment: datetime, time_format: str, level_name: str, message: str) -> str:
    """builds one log line: [<time>] [<Level>] <message> (no terminator)."""
    return f"[{format_timestamp(moment, time_format)}] [{level_name}] {message}"
