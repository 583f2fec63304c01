"""file lock helpers for the log writer.

on posix these use advisory flock() locks: appends take a shared lock so any
number of writers and readers can hold the file together, while a holder of an
exclusive lock keeps appends (and the deferred-write lock check) out. on windows
the os sharing rules play the same role and only the open itself is attempted.
"""
import errno
import logging
import os

if os.name == "nt":
    fcntl = None
else:
    import fcntl

logger = logging.getLogger(__name__)

# errno values meaning "someone else holds the file"
CONTENTION_ERRNOS = (errno.EACCES, errno.EAGAIN)

# newline translation is left to the text wrapper
_APPEND_FLAGS = os.O_WRONLY | os.O_APPEND | getattr(os, "O_BINARY", 0)


def is_file_locked(path: str) -> bool:
    """best-effort check whether another handle holds the file exclusively.

    asks for the same shared lock an append takes, so other appenders don't
    trip it. only lock contention counts as locked. anything else (missing
    file, bad path, permissions...) is treated as unlocked so the write goes
    ahead and reports its own failure.
    """
    try:
        f = open(path, "r+b")
    except OSError as e:
        # 32/33: windows sharing and lock violations
        if getattr(e, "winerror", None) in (32, 33):
            logger.debug(f"lock check: {path} is held by another handle")
            return True
        logger.debug(f"lock check could not open {path}, assuming unlocked: {e}")
        return False

    with f:
        if fcntl is None:
            return False
        try:
            fcntl.flock(f.fileno(), fcntl.LOCK_SH | fcntl.LOCK_NB)
        except OSError as e:
            if e.errno in CONTENTION_ERRNOS:
                logger.debug(f"lock check: {path} is held by another handle")
                return True
            logger.debug(f"lock check on {path} failed, assuming unlocked: {e}")
            return False
        fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        return False


def _open_for_append(path: str):
    """returns (fd, created). the file is only created when it doesn't exist yet."""
    while True:
        try:
            return os.open(path, _APPEND_FLAGS), False
        except FileNotFoundError:
            pass
        try:
            return os.open(path, _APPEND_FLAGS | os.O_CREAT | os.O_EXCL, 0o666), True
        except FileExistsError:
            # another writer created it in between
            continue


def append_line(path: str, line: str, encoding: str = "utf-8"):
    """appends one line (plus newline) to path and closes it straight away.

    raises OSError (BlockingIOError on contention) if the file can't be written.
    a file created by this call is removed again when the lock can't be taken,
    so a failed write never leaves an empty log behind.
    """
    fd, created = _open_for_append(path)
    with os.fdopen(fd, "a", encoding=encoding) as f:
        if fcntl is not None:
            try:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH | fcntl.LOCK_NB)
            except OSError:
                if created:
                    _discard(path)
                raise
        try:
            f.write(line + "\n")
            f.flush()
        finally:
            if fcntl is not None:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)


def _discard(path: str):
    try:
        os.remove(path)
    except OSError as e:
        logger.debug(f"could not remove empty log file {path}: {e}")
