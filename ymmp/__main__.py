#!/usr/bin/env python3
import os
import sys

import loguru
from loguru import logger

from ymmp.cli.main import cli
from ymmp.utils.app_info import AppInfo
from ymmp.utils.obfuscate_message import obfuscate_message


def formatter(record: "loguru.Record") -> str:
    """Custom formatter for loguru logger"""
    format_string = (
        "[{level}]"
        "[{time:YYYY-MM-DD HH:mm:ss}]"
        "[{process.id}]"
        "[{module}]"
        "[{function}][{line}]"
        " : "
    )

    record["extra"]["obfuscated_message"] = obfuscate_message(record["message"])
    return format_string + "{extra[obfuscated_message]}\n"


def setup_logging(debug_mode: bool = False) -> None:
    """
    Route loguru output to the user log folder and to stderr.

    We have log_file (ymmp.log) and old_log_file (ymmp.old.log). If old_log_file exists,
    remove it. If log_file exists, rename it to old_log_file. The logger creates
    log_file when the sink is added.
    """
    log_folder = AppInfo().user_log_folder
    log_file = log_folder / (AppInfo().app_name + ".log")
    old_log_file = log_folder / (AppInfo().app_name + ".old.log")

    # Remove the default stderr logger
    logger.remove()

    try:
        log_folder.mkdir(parents=True, exist_ok=True)
        if old_log_file.exists() and old_log_file.is_file():
            old_log_file.unlink()
        if log_file.exists() and log_file.is_file():
            log_file.rename(old_log_file)
        # Create the file logger
        logger.add(log_file, level="DEBUG" if debug_mode else "INFO", format=formatter)
    except OSError as e:
        print(f"Logging to {log_file} disabled: {e}", file=sys.stderr)

    # Add a "WARNING" or higher stderr logger
    logger.add(
        sys.stderr,
        level="WARNING",
        format=formatter,
        colorize=False,
    )


def main() -> None:
    setup_logging(debug_mode=bool(os.environ.get("DEBUG")))
    logger.info(f"Starting ymmp {AppInfo().app_version}")
    cli()


if __name__ == "__main__":
    main()
