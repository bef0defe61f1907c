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

from buffered_file.core import utils

MAX_FILE_SIZE = 2**31 - 1
"""The largest content length a buffered file can hold. Offsets are bounded by this value."""

EOF_SENTINEL = 0
"""Returned by get_char() when the cursor is at the end of the content."""

WHITESPACE = frozenset(b" \t\n\v\f\r")

DEFAULT_MIN_GROWTH_BYTES = 64
DEFAULT_GROWTH_FACTOR = 2


def min_growth_bytes() -> int:
    """Returns the minimum number of bytes a buffer grows by when it overflows.

    Returns:
        The configured minimum increment, or the default when unset or not positive.
    """
    val = utils.get_env_val_int("MIN_GROWTH_BYTES", DEFAULT_MIN_GROWTH_BYTES)
    return val if val > 0 else DEFAULT_MIN_GROWTH_BYTES


def growth_factor() -> int:
    """Returns the geometric factor a buffer's capacity is multiplied by when it overflows."""
    val = utils.get_env_val_int("GROWTH_FACTOR", DEFAULT_GROWTH_FACTOR)
    return val if val >= 2 else DEFAULT_GROWTH_FACTOR


def flush_on_teardown() -> bool:
    """Returns whether an open file should attempt a best-effort flush when it is garbage collected."""
    return utils.get_env_val_bool("FLUSH_ON_TEARDOWN", True)
