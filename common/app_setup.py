"""
Reusable logging and print setup for all parts of the project.

Functions:
    setup_logging      - Configure and return a logger.
    set_print_logger   - Set the logger print_error mirrors to.
    print_error        - Print and log an error message.
"""

import logging
import logging.handlers
import os
import sys
from typing import Optional, TextIO

from rich.console import Console

# Module-level variable to hold the logger for print_error
_print_logger = None

def setup_logging(app_name: str = "escopen", daemon: bool = False, loglevel: int = logging.INFO, logfile: Optional[str] = None) -> logging.Logger:
    """
    Set up logging for the application.
    - If daemon=True, logs to syslog (Linux only), falling back to stderr.
    - Otherwise, logs to a file in ~/.<app_name>/log.txt or to a custom logfile.
    Returns the configured logger.
    """
    logger = logging.getLogger()
    logger.setLevel(loglevel)
    handler: logging.Handler
    if daemon:
        formatter = logging.Formatter(f'%(asctime)s %(levelname)s %(process)d [{app_name}] %(message)s')
        try:
            handler = logging.handlers.SysLogHandler(address='/dev/log')
        except OSError:
            handler = logging.StreamHandler()
    else:
        formatter = logging.Formatter('%(asctime)s %(levelname)s %(process)d %(message)s')
        if logfile is None:
            log_dir = os.path.expanduser(f"~/.{app_name}")
            os.makedirs(log_dir, exist_ok=True)
            logfile = os.path.join(log_dir, "log.txt")
        handler = logging.FileHandler(logfile)

    # Remove any existing handlers
    for h in logger.handlers[:]:
        logger.removeHandler(h)

    handler.setFormatter(formatter)
    logger.addHandler(handler)
    set_print_logger(logger)
    logger.debug("Logger initialized for %s", app_name)
    return logger

def set_print_logger(logger: Optional[logging.Logger]):
    """
    Set the logger to be used by print_error.
    setup_logging calls this; pass None to stop mirroring prints to the log.
    """
    global _print_logger
    _print_logger = logger


def print_error(message: str, file: Optional[TextIO] = None):
    """
    Print and log an error message (stderr and error level), using the logger set by set_print_logger.
    """
    Console(file=file or sys.stderr, highlight=False, soft_wrap=True).print(message, style="bold red", markup=False)
    if _print_logger is not None:
        _print_logger.error(message)
