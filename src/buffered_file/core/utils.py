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

import logging
import os
import time
from contextlib import contextmanager


def get_env_var_prefix() -> str:
    """Returns the prefix shared by every buffered-file configuration variable."""
    return "BUFFERED_FILE"


def get_env_val_bool(env_var_name: str, default_val: bool) -> bool:
    """Reads a `BUFFERED_FILE_<env_var_name>` switch, such as `BUFFERED_FILE_FLUSH_ON_TEARDOWN`.

    Only "true" (any case) turns a switch on; any other value turns it off.

    Args:
        env_var_name: The variable name without the `BUFFERED_FILE_` prefix.
        default_val: Used when the variable is not set.

    Returns:
        Whether the switch is on.
    """
    return str(os.environ.get(f"{get_env_var_prefix()}_{env_var_name}", default_val)).lower() == "true"


def get_env_val_str(env_var_name: str, default_val: str) -> str:
    """Reads a `BUFFERED_FILE_<env_var_name>` setting as text, such as `BUFFERED_FILE_LOG_LEVEL`.

    Args:
        env_var_name: The variable name without the `BUFFERED_FILE_` prefix.
        default_val: Used when the variable is not set.

    Returns:
        The raw value of the variable, or `default_val`.
    """
    return os.environ.get(f"{get_env_var_prefix()}_{env_var_name}", default_val)


def get_env_val_int(env_var_name: str, default_val: int) -> int:
    """Reads a numeric `BUFFERED_FILE_<env_var_name>` setting, such as `BUFFERED_FILE_MIN_GROWTH_BYTES`.

    Range checks are left to the caller (see `defaults.min_growth_bytes` and `defaults.growth_factor`).

    Args:
        env_var_name: The variable name without the `BUFFERED_FILE_` prefix.
        default_val: Used when the variable is not set or is not an integer.

    Returns:
        The parsed value, or `default_val`.
    """
    env_val = os.environ.get(f"{get_env_var_prefix()}_{env_var_name}", default_val)
    if env_val is None:
        return default_val
    try:
        return int(env_val)
    except ValueError:
        return default_val


@contextmanager
def log_execution_time(logger: logging.Logger, name: str, level: int = logging.DEBUG):
    """Simple context manager for timing storage calls and other code blocks.

    Args:
        logger: The logger to use for recording the time.
        name: The name of the operation being timed.
        level: The logging level to use. Defaults to logging.DEBUG.

    Yields:
        None.
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        logger.log(level, "%s took %.4fs", name, time.perf_counter() - start)
