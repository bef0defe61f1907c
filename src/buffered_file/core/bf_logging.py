# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Custom buffered-file logging configuration."""

import logging
import sys

from typing_extensions import override

from buffered_file.core import utils

# Number of BufferedFile instances currently open in this process, for logging purposes only.
_OPEN_FILES = 0


def update_open_file_count(delta: int):
    """Adjusts the count of open buffered files reported in logs.

    Args:
        delta: The amount to add to the count (negative to subtract). The count never goes below zero.
    """
    global _OPEN_FILES
    _OPEN_FILES = max(0, _OPEN_FILES + delta)


def get_open_file_count() -> int:
    """Returns the number of buffered files currently open."""
    return _OPEN_FILES


class OpenFilesContextFormatter(logging.Formatter):
    """A logging formatter that stamps each record with the number of open buffered files."""

    @override
    def format(self, record):
        """Formats the log record to include the open file count.

        Args:
            record: The log record to format.

        Returns:
            The formatted log record as a string.
        """
        record.open_files = _OPEN_FILES
        return super().format(record)


def get_logger(name: str, stream=sys.stderr) -> logging.Logger:
    """Get a logger with a custom format that includes the open file count.

    Args:
        name: The name of the logger.
        stream: The stream to write log records to. Defaults to sys.stderr.

    Returns:
        A logger with a custom format.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(stream=stream)
        formatter = OpenFilesContextFormatter(
            "[BF %(asctime)s %(levelname)s Open=%(open_files)s %(name)s:%(lineno)d] %(message)s"
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        log_level_str = utils.get_env_val_str("LOG_LEVEL", "INFO")
        log_level = logging.getLevelName(log_level_str.upper())
        logger.setLevel(log_level if isinstance(log_level, int) else logging.INFO)
    logger.propagate = False
    return logger
