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

"""Mode flags and their resolution into a concrete access policy."""

import dataclasses
import enum
from typing import Optional, Tuple

from buffered_file.core.bf_logging import get_logger
from buffered_file.core.errors import ConfigurationError

_LOGGER = get_logger(__name__)


class Mode(enum.IntFlag):
    """Bit flags specifying how a file should be opened."""

    # Privileges
    WRITE = 0x00000001  # Read-write.
    READ = 0x00000002  # Read only.

    # Translation
    BINARY = 0x00000004
    TEXT = 0x00000008  # Accepted and recorded, bytes are not translated.

    # Handling of existing content
    CLEAR = 0x00000010  # Discard existing content.
    APPEND = 0x00000020  # Keep existing content, start at the end.
    OVERWRITE = 0x00000040  # Keep existing content, start at the beginning.

    PROTECT = 0x00000080  # Make existing content read-only. Used with APPEND or OVERWRITE.

    CREATE = 0x00000100  # Create the file if it does not exist.

    SAME = 0x80000000  # Reuse the previous resolution. Only valid when re-opening.


DEFAULT_MODE = Mode.WRITE | Mode.BINARY | Mode.OVERWRITE

_KNOWN_BITS = sum(flag.value for flag in Mode)


class ContentPolicy(enum.Enum):
    CLEAR = "clear"
    APPEND = "append"
    OVERWRITE = "overwrite"


@dataclasses.dataclass(frozen=True)
class ResolvedMode:
    """The effective policy of one open session, resolved once from raw mode flags."""

    writable: bool
    binary: bool
    content_policy: ContentPolicy
    protect: bool
    create: bool

    @property
    def preserves_content(self) -> bool:
        """True if existing bytes are loaded when the file is opened."""
        return self.content_policy is not ContentPolicy.CLEAR

    @property
    def may_create(self) -> bool:
        """True if a missing path should be materialized as an empty file instead of failing."""
        return self.create or self.content_policy is ContentPolicy.CLEAR

    def initial_positions(self, content_length: int) -> Tuple[int, int]:
        """Returns the starting cursor and protected end for a session over `content_length` bytes.

        Args:
            content_length: Number of bytes loaded into the buffer, measured before any writes.

        Returns:
            A `(cursor, protected_end)` tuple.
        """
        if self.content_policy is ContentPolicy.CLEAR:
            return 0, 0
        cursor = content_length if self.content_policy is ContentPolicy.APPEND else 0
        protected_end = content_length if self.protect else 0
        return cursor, protected_end


def _fail(message: str):
    _LOGGER.error(message)
    raise ConfigurationError(message)


def resolve_mode(mode: Mode, previous: Optional[ResolvedMode] = None) -> ResolvedMode:
    """Resolves raw mode flags into a `ResolvedMode`, applying defaults.

    Defaults are WRITE, BINARY and OVERWRITE. WRITE takes precedence over READ. When
    SAME is set, every other flag is ignored and `previous` is returned as-is.

    Args:
        mode: The mode flags given by the caller.
        previous: The resolution of the previously opened file, if any.

    Returns:
        The resolved mode.

    Raises:
        ConfigurationError: If SAME is given without a previous resolution, if unknown bits
            are set, or if the flags are contradictory.
    """
    if mode & Mode.SAME:
        if previous is None:
            _fail("Mode.SAME requires a previously opened file.")
        return previous

    if int(mode) & ~_KNOWN_BITS:
        _fail(f"Unknown mode bits: {int(mode) & ~_KNOWN_BITS:#x}")

    writable = bool(mode & Mode.WRITE) or not mode & Mode.READ

    if mode & Mode.BINARY and mode & Mode.TEXT:
        _fail("Mode.BINARY and Mode.TEXT are mutually exclusive.")
    binary = not mode & Mode.TEXT

    policies = [
        policy
        for flag, policy in (
            (Mode.CLEAR, ContentPolicy.CLEAR),
            (Mode.APPEND, ContentPolicy.APPEND),
            (Mode.OVERWRITE, ContentPolicy.OVERWRITE),
        )
        if mode & flag
    ]
    if len(policies) > 1:
        _fail(f"Only one of Mode.CLEAR, Mode.APPEND and Mode.OVERWRITE may be set, got {mode!r}.")
    content_policy = policies[0] if policies else ContentPolicy.OVERWRITE

    if content_policy is ContentPolicy.CLEAR and not writable:
        _fail("Mode.CLEAR requires write privilege.")

    # PROTECT has nothing to protect once the content is cleared.
    protect = bool(mode & Mode.PROTECT) and content_policy is not ContentPolicy.CLEAR

    return ResolvedMode(
        writable=writable,
        binary=binary,
        content_policy=content_policy,
        protect=protect,
        create=bool(mode & Mode.CREATE),
    )
