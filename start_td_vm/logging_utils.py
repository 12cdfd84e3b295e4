#!/usr/bin/env python3
"""
Shared logging utilities for start-td-vm.

Provides coloured warning/error output for the terminal and timestamped
debug logging to file for diagnostic purposes.
"""

import sys
import time

from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import FormattedText

from . import config as app_config

WARN_STYLE = "ansiyellow bold"
ERROR_STYLE = "ansired bold"


def debug_log(debug_file, message):
    """
    Write a timestamped debug message to the debug file if enabled.

    Args:
        debug_file: An open file handle for writing debug messages,
                    or None if debug logging is disabled.
        message: The debug message string to write.

    Returns:
        None
    """
    if debug_file:
        try:
            timestamp = time.time()
            debug_file.write(f"[{timestamp:.6f}] {message}\n")
            debug_file.flush()
        except (ValueError, OSError):
            # File might be closed if called from atexit, ignore silently
            pass


def warn(message):
    """Prints a yellow warning. Falls back to plain text when not on a terminal."""
    print_formatted_text(FormattedText([(WARN_STYLE, f"WARN: {message}")]), file=sys.stderr)
    debug_log(app_config.DEBUG_FILE, f"WARN: {message}")


def error(message, exit_code=1):
    """Prints a red error and terminates the launcher."""
    print_formatted_text(FormattedText([(ERROR_STYLE, f"ERROR: {message}")]), file=sys.stderr)
    debug_log(app_config.DEBUG_FILE, f"ERROR: {message}")
    sys.exit(exit_code)
