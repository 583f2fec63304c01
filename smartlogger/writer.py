import asyncio
import logging
import os
import sys
import threading
import time
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, Optional, TextIO, Union

from smartlogger import naming
from smartlogger.event_bus import EventBus, EVENT_WRITE_FAILURE
from smartlogger.history import History
from smartlogger.levels import LogLevel, parse_level
from smartlogger.locking import append_line, is_file_locked

logger = logging.getLogger(__name__)

DEFAULT_MAX_HISTORY = 50
DEFAULT_STALE_TIME = timedelta(minutes=30)
DEFAULT_DEFERRED_RETRIES = 50
DEFERRED_RETRY_INTERVAL = 0.01  # seconds between lock checks

WriteFailureHandler = Callable[[str, BaseException], None]


class SmartLogger:
    """writes timestamped lines to a text file, skipping recent duplicates.

    a (message, level) pair that was written within the stale window (and is
    still among the last max_history entries) is not written again. set
    max_history or stale_time to 0 to write every message.

    with an empty log_file_path the file is named by date under
    <base_dir>/Logs/<year>/<MM>-<Month>/<program>_<DD>.log and moves to a new
    file when the day changes.

    writes never raise. failures are published to on_write_failure handlers.
    dispose() stops further file writes but does not wait for writes already
    in progress.
    """

    def __init__(self, log_file_path: str = "",
                 time_format: str = naming.DEFAULT_TIME_FORMAT,
                 max_history: int = DEFAULT_MAX_HISTORY,
                 stale_time: Union[timedelta, float, None] = None,
                 *,
                 base_dir: Optional[str] = None,
                 console: Optional[TextIO] = None,
                 event_bus: Optional[EventBus] = None,
                 clock: Optional[Callable[[], datetime]] = None,
                 monotonic: Optional[Callable[[], float]] = None,
                 deferred_retries: int = DEFAULT_DEFERRED_RETRIES):
        if isinstance(max_history, bool) or not isinstance(max_history, int) or max_history < 0:
            raise ValueError(f"max_history must be a non-negative integer, got {max_history!r}")
        stale_seconds = _to_seconds(stale_time)
        if stale_seconds < 0:
            raise ValueError(f"stale_time must not be negative, got {stale_time!r}")
        if isinstance(deferred_retries, bool) or not isinstance(deferred_retries, int) or deferred_retries < 0:
            raise ValueError(f"deferred_retries must be a non-negative integer, got {deferred_retries!r}")
        if not time_format:
            time_format = naming.DEFAULT_TIME_FORMAT

        self._time_format = time_format
        self._deferred_retries = deferred_retries
        self._console = console
        self._clock = clock or datetime.now
        self._event_bus = event_bus or EventBus()
        self._history = History(max_count=max_history, stale_seconds=stale_seconds,
                                clock=monotonic or time.monotonic)
        self._disposed = False

        self._using_date_names = not log_file_path
        self._base_dir = base_dir or naming.default_base_dir()
        if self._using_date_names:
            self._rotation_date: Optional[date] = self._today()
            self._log_file_path = naming.generate_log_name(self._base_dir, self._rotation_date)
        else:
            self._rotation_date = None
            self._log_file_path = log_file_path

        logger.debug(f"SmartLogger initialized: file={self._log_file_path}, max_history={max_history}, stale_seconds={stale_seconds}")

    @classmethod
    def from_config(cls, config: Dict[str, Any], **kwargs) -> "SmartLogger":
        """builds a writer from a dict produced by config.load_config()."""
        options = dict(time_format=config.get("time_format") or naming.DEFAULT_TIME_FORMAT,
                       max_history=config.get("max_history", DEFAULT_MAX_HISTORY),
                       stale_time=config.get("stale_seconds"),
                       base_dir=config.get("base_dir") or None,
                       deferred_retries=config.get("deferred_retries", DEFAULT_DEFERRED_RETRIES))
        options.update(kwargs)
        return cls(config.get("log_file_path") or "", **options)

    # --- properties ---

    @property
    def max_history(self) -> int:
        return self._history.max_count

    @property
    def stale_time(self) -> timedelta:
        return timedelta(seconds=self._history.stale_seconds)

    @property
    def deferred_retries(self) -> int:
        return self._deferred_retries

    @property
    def time_format(self) -> str:
        return self._time_format

    @property
    def using_date_names(self) -> bool:
        return self._using_date_names

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def history(self) -> History:
        return self._history

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    # --- failure notification ---

    def on_write_failure(self, handler: WriteFailureHandler) -> bool:
        """registers handler(message, error), called whenever a write fails.

        handlers may be called from several threads at once.
        """
        return self._event_bus.subscribe(EVENT_WRITE_FAILURE, handler)

    def remove_write_failure_handler(self, handler: WriteFailureHandler) -> bool:
        return self._event_bus.unsubscribe(EVENT_WRITE_FAILURE, handler)

    # --- writes ---

    def write(self, message: str, level: LogLevel = LogLevel.INFO):
        """writes message to the log file, blocking until the append is done."""
        self._write_internal(message, level)

    async def write_async(self, message: str, level: LogLevel = LogLevel.INFO):
        """same as write() but the file i/o runs in a worker thread."""
        await asyncio.to_thread(self._write_internal, message, level)

    def write_deferred(self, message: str, level: LogLevel = LogLevel.INFO,
                       retries: Optional[int] = None) -> threading.Thread:
        """fire-and-forget write that first waits for the file to be unlocked.

        the target file is checked up to `retries` times (default: the writer's
        deferred_retries), DEFERRED_RETRY_INTERVAL apart. the write is attempted
        afterwards whether or not the file came free. returns the background
        thread, which callers normally ignore.
        """
        if retries is None:
            retries = self._deferred_retries
        thread = threading.Thread(target=self._deferred_worker, args=(message, level, retries),
                                  name="smartlogger-deferred", daemon=True)
        thread.start()
        return thread

    def _deferred_worker(self, message: str, level: LogLevel, retries: int):
        attempts = 0
        while attempts < retries and is_file_locked(self._log_file_path):
            attempts += 1
            time.sleep(DEFERRED_RETRY_INTERVAL)
        if attempts:
            logger.debug(f"deferred write waited {attempts} lock check(s) on {self._log_file_path}")
        self._write_internal(message, level)

    def _write_internal(self, message: str, level: LogLevel):
        try:
            level = parse_level(level)
        except ValueError as e:
            self._report_failure(message, e)
            return

        if level == LogLevel.NONE:
            self._echo(message, level)
            return

        try:
            if self._disposed:
                return
            self._check_file_rotation()

            if not self._history.admit(message, level):
                return
            # dispose() may have run while this write was in progress
            if self._disposed:
                return

            append_line(self._log_file_path, self._format(message, level))
        except Exception as e:
            self._report_failure(message, e)

    def _report_failure(self, message: str, error: BaseException):
        logger.debug(f"log write failed for {self._log_file_path}: {error}", exc_info=error)
        self._event_bus.publish(EVENT_WRITE_FAILURE, message, error)

    def _format(self, message: str, level: LogLevel) -> str:
        return naming.format_line(self._clock(), self._time_format, level.display_name, message)

    def _echo(self, message: str, level: LogLevel):
        stream = self._console or sys.stdout
        try:
            stream.write(self._format(message, level) + "\n")
            stream.flush()
        except Exception as e:
            # console output is best effort
            logger.debug(f"console echo failed: {e}")

    # --- rotation / naming ---

    def _today(self) -> date:
        return self._clock().date()

    def _check_file_rotation(self):
        """moves to a new dated file once the calendar day changes."""
        if not self._using_date_names:
            return
        today = self._today()
        with self._history.lock:
            if today == self._rotation_date:
                return
        # directory creation stays outside the lock
        new_path = naming.generate_log_name(self._base_dir, today)
        with self._history.lock:
            if today == self._rotation_date:
                return
            self._rotation_date = today
            self._log_file_path = new_path
        logger.info(f"log file rotated to {new_path}")

    def get_log_path(self) -> str:
        """directory the log file is (or will be) written to."""
        if self._using_date_names:
            return naming.dated_log_dir(self._base_dir, self._today())
        if os.sep in self._log_file_path or (os.altsep and os.altsep in self._log_file_path):
            return os.path.dirname(self._log_file_path) or self._log_file_path
        return self._log_file_path

    def get_log_name(self) -> str:
        """full path of the log file for today (or the fixed path given)."""
        if self._using_date_names:
            return naming.dated_log_name(self._base_dir, self._today())
        return self._log_file_path

    @property
    def current_file(self) -> str:
        """the file the next write goes to, as of the last rotation."""
        return self._log_file_path

    # --- lifecycle ---

    def clear_history(self):
        self._history.clear()

    def dispose(self):
        """clears history and stops file writes. safe to call more than once."""
        if self._disposed:
            return
        self._history.clear()
        self._disposed = True
        logger.debug(f"SmartLogger for {self._log_file_path} disposed.")

    def __enter__(self) -> "SmartLogger":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.dispose()

    def __repr__(self) -> str:
        return f"SmartLogger(file='{self._log_file_path}', max_history={self.max_history}, stale_time={self.stale_time})"


def _to_seconds(value: Union[timedelta, float, None]) -> float:
    if value is None:
        return DEFAULT_STALE_TIME.total_seconds()
    if isinstance(value, timedelta):
        return value.total_seconds()
    return float(value)
