import argparse
import asyncio
import logging
import os
import sys
import time
from typing import List, Optional

# add project root to path so we can import stuff easier
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from smartlogger.config import load_config, default_config, ConfigError
from smartlogger.logger import setup_logging
from smartlogger.levels import LogLevel
from smartlogger.writer import SmartLogger

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="smartlogger",
        description="Writes bursts of duplicate messages to show SmartLogger's duplicate suppression.",
    )
    p.add_argument("--config", dest="config_path", default=None,
                   help="JSON config file (see smartlogger/config.py for the keys).")
    p.add_argument("--count", type=int, default=20,
                   help="How many duplicate messages each test writes.")
    p.add_argument("--interval", type=float, default=0.25,
                   help="Seconds between duplicate messages.")
    p.add_argument("--stale", type=float, default=None,
                   help="Override the stale window in seconds.")
    p.add_argument("--log-level", default=None,
                   help="Level for smartlogger's own diagnostics.")
    return p


def _print_failure(message: str, error: BaseException):
    print(f"failed during write '{message}': {error}", file=sys.stderr)


async def run_async_test(smart_logger: SmartLogger, count: int, interval: float):
    smart_logger.write("Starting duplicate write test...")
    for i in range(1, count + 1):
        await asyncio.sleep(interval)
        print(f"writing duplicate message #{i}")
        await smart_logger.write_async("This is a test message for duplicate checking.")


def run_deferred_test(smart_logger: SmartLogger, count: int, interval: float):
    smart_logger.write_deferred("Starting deferred write test...")
    for i in range(1, count + 1):
        time.sleep(interval)
        print(f"writing deferred message #{i}")
        smart_logger.write_deferred("This is a test message for deferred writing.")


def main(argv: Optional[List[str]] = None) -> int:
    """sample program: duplicate bursts through write_async and write_deferred."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config_path) if args.config_path else default_config()
    except ConfigError as e:
        logging.basicConfig(level=logging.ERROR)
        logging.error(f"Configuration error: {e}")
        print(f"error: Configuration error - {e}", file=sys.stderr)
        return 1

    setup_logging(args.log_level or config["log_level"])
    if args.stale is not None:
        config["stale_seconds"] = args.stale

    stale = config["stale_seconds"]
    print(f"creating SmartLogger (with memory of {stale:g} seconds)...")
    with SmartLogger.from_config(config) as smart_logger:
        smart_logger.on_write_failure(_print_failure)

        asyncio.run(run_async_test(smart_logger, args.count, args.interval))
        run_deferred_test(smart_logger, args.count, args.interval)

        # give the last deferred writes a moment to land
        time.sleep(0.5)
        smart_logger.write("Logging tests completed.")
        smart_logger.write(f"Log found here => {smart_logger.get_log_name()}", LogLevel.NONE)
        print("Each test should leave one 'test message' line per stale window elapsed.")

    print("logger disposed. exiting...")
    return 0


if __name__ == "__main__":
    sys.exit(main())
