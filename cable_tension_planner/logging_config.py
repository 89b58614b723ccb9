"""
Logging setup for replay scripts and rig-side callers.

Library modules only create module-level loggers under the
``cable_tension_planner`` namespace; attaching handlers is left to the
application, which calls setup_logging once at start-up.
"""
import logging
import sys
from typing import Optional

PACKAGE_LOGGER = "cable_tension_planner"

# per-cycle traces are dense, keep the time to the millisecond
LOG_FORMAT = "%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%H:%M:%S"


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
    """
    Routes the planner's log records to stdout, and to log_file when given.

    Calling it again replaces the handlers of the previous call. Use
    logging.DEBUG (or PlannerConfig.debug) to get the per-cycle solver trace.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode="w", encoding="utf-8"))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.debug(f"Planner logging at {logging.getLevelName(level)}, file: {log_file or 'none'}")
    return logger
