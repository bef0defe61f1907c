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

import io
from typing import Optional

from buffered_file.core import defaults
from buffered_file.core.bf_logging import get_logger
from buffered_file.core.errors import AllocationError, ProtectionError, SizeExceededError

_LOGGER = get_logger(__name__)


class ByteBuffer:
    """An owned, growable byte buffer with a cursor and a write-protected prefix.

    The buffer tracks its allocated capacity separately from the number of meaningful
    bytes it holds (its length), and keeps these invariants at all times:

        length <= capacity
        cursor <= length
        protected_end <= length

    Bytes in ``[0, protected_end)`` are never modified by `write`.
    """

    def __init__(
        self,
        content: bytes = b"",
        capacity: int = 0,
        growth_factor: Optional[int] = None,
        min_growth: Optional[int] = None,
    ):
        """Initializes the buffer with a copy of `content`.

        Args:
            content: The initial meaningful bytes.
            capacity: The minimum capacity to allocate. The actual capacity is at least `len(content)`.
            growth_factor: Factor the capacity is multiplied by on overflow. Defaults to the configured value.
            min_growth: Minimum number of bytes added on overflow. Defaults to the configured value.

        Raises:
            SizeExceededError: If `content` is larger than `MAX_FILE_SIZE`.
            AllocationError: If the memory could not be allocated.
        """
        length = len(content)
        if length > defaults.MAX_FILE_SIZE:
            error_msg = f"Content of {length} bytes exceeds the maximum file size of {defaults.MAX_FILE_SIZE} bytes."
            _LOGGER.error(error_msg)
            raise SizeExceededError(error_msg)

        self._growth_factor = growth_factor if growth_factor is not None else defaults.growth_factor()
        self._min_growth = min_growth if min_growth is not None else defaults.min_growth_bytes()

        capacity = min(max(capacity, length), defaults.MAX_FILE_SIZE)
        try:
            self._data = bytearray(capacity)
            self._data[:length] = content
        except MemoryError as e:
            _LOGGER.exception("Failed to allocate a buffer of %d bytes.", capacity)
            raise AllocationError(f"Could not allocate a buffer of {capacity} bytes") from e

        self._length = length
        self._pos = 0
        self._protected_end = 0

    # --- Properties ---

    @property
    def length(self) -> int:
        """Number of meaningful bytes currently held."""
        return self._length

    @property
    def capacity(self) -> int:
        """Number of bytes currently allocated."""
        return len(self._data)

    @property
    def pos(self) -> int:
        """The next read/write offset."""
        return self._pos

    @property
    def protected_end(self) -> int:
        """Offsets below this value are write-protected."""
        return self._protected_end

    @property
    def at_end(self) -> bool:
        return self._pos == self._length

    @property
    def cursor_protected(self) -> bool:
        """True if a write at the current cursor would target a protected byte."""
        return self._pos < self._protected_end

    def set_positions(self, pos: int, protected_end: int):
        """Sets the cursor and the protected end together.

        Args:
            pos: The new cursor, within ``[0, length]``.
            protected_end: The new protected end, within ``[0, length]``.

        Raises:
            ValueError: If either value is out of range. Nothing is changed in that case.
        """
        if not 0 <= pos <= self._length or not 0 <= protected_end <= self._length:
            error_msg = (
                f"Positions (pos={pos}, protected_end={protected_end}) must lie within [0, {self._length}]."
            )
            _LOGGER.error(error_msg)
            raise ValueError(error_msg)
        self._pos = pos
        self._protected_end = protected_end

    # --- Reading ---

    def read_byte(self) -> int:
        """Returns the byte at the cursor and advances past it, or `EOF_SENTINEL` at the end."""
        if self._pos >= self._length:
            return defaults.EOF_SENTINEL
        value = self._data[self._pos]
        self._pos += 1
        return value

    def peek_byte(self) -> Optional[int]:
        """Returns the byte at the cursor without advancing, or None at the end."""
        if self._pos >= self._length:
            return None
        return self._data[self._pos]

    def skip_whitespace(self):
        """Advances the cursor past any run of whitespace bytes."""
        while self._pos < self._length and self._data[self._pos] in defaults.WHITESPACE:
            self._pos += 1

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        """Moves the cursor within the meaningful bytes.

        Args:
            offset: The byte offset to move the cursor by.
            whence: `io.SEEK_SET`, `io.SEEK_CUR` or `io.SEEK_END`.

        Returns:
            The new cursor.

        Raises:
            ValueError: If `whence` is invalid or the target lies outside ``[0, length]``.
        """
        if whence == io.SEEK_SET:
            new_pos = offset
        elif whence == io.SEEK_CUR:
            new_pos = self._pos + offset
        elif whence == io.SEEK_END:
            new_pos = self._length + offset
        else:
            error_msg = f"invalid whence value ({whence})"
            _LOGGER.error(error_msg)
            raise ValueError(error_msg)

        if not 0 <= new_pos <= self._length:
            error_msg = f"Seek position {new_pos} is outside of the content [0, {self._length}]."
            _LOGGER.error(error_msg)
            raise ValueError(error_msg)

        self._pos = new_pos
        return self._pos

    def getvalue(self) -> bytes:
        """Returns a copy of the meaningful bytes."""
        return bytes(self._data[: self._length])

    # --- Writing ---

    def resize(self, desired_size: int):
        """Grows the capacity to at least `desired_size`. Never shrinks.

        Either fully succeeds or leaves the buffer untouched.

        Raises:
            ValueError: If `desired_size` is negative.
            AllocationError: If `desired_size` exceeds `MAX_FILE_SIZE` or the memory could not be allocated.
        """
        if desired_size < 0:
            raise ValueError(f"Buffer size must be non-negative, got {desired_size}")
        if desired_size <= self.capacity:
            return
        if desired_size > defaults.MAX_FILE_SIZE:
            error_msg = f"Requested capacity {desired_size} exceeds the maximum file size of {defaults.MAX_FILE_SIZE}."
            _LOGGER.error(error_msg)
            raise AllocationError(error_msg)

        try:
            new_data = bytearray(desired_size)
        except MemoryError as e:
            _LOGGER.exception("Failed to grow buffer from %d to %d bytes.", self.capacity, desired_size)
            raise AllocationError(f"Could not grow buffer to {desired_size} bytes") from e
        new_data[: self._length] = self._data[: self._length]
        self._data = new_data

    def _ensure_capacity(self, required: int):
        """Grows the buffer geometrically so that `required` bytes fit.

        The new capacity is the largest of `required`, the current capacity times the
        growth factor, and the current capacity plus the minimum increment, capped at
        `MAX_FILE_SIZE`. This keeps the amortized cost of appending a byte constant.
        """
        current = self.capacity
        if required <= current:
            return
        new_capacity = min(
            max(required, current * self._growth_factor, current + self._min_growth),
            defaults.MAX_FILE_SIZE,
        )
        _LOGGER.debug(
            "Auto-resizing buffer from %d to %d bytes (required: %d)",
            current,
            new_capacity,
            required,
        )
        self.resize(new_capacity)

    def write(self, data: bytes) -> int:
        """Writes `data` at the cursor, growing the buffer as needed.

        The cursor advances past the written bytes and the length is extended if the
        cursor moves beyond it. On failure nothing is changed.

        Args:
            data: The bytes to write.

        Returns:
            The number of bytes written.

        Raises:
            ProtectionError: If the cursor is inside the protected region.
            SizeExceededError: If the content would grow beyond `MAX_FILE_SIZE`.
            AllocationError: If the buffer could not be grown.
        """
        data_len = len(data)
        if data_len == 0:
            return 0

        if self.cursor_protected:
            error_msg = f"Cannot write at offset {self._pos}: bytes below {self._protected_end} are protected."
            _LOGGER.error(error_msg)
            raise ProtectionError(error_msg)

        end = self._pos + data_len
        if end > defaults.MAX_FILE_SIZE:
            error_msg = (
                f"Writing {data_len} bytes at offset {self._pos} would exceed "
                f"the maximum file size of {defaults.MAX_FILE_SIZE} bytes."
            )
            _LOGGER.error(error_msg)
            raise SizeExceededError(error_msg)

        self._ensure_capacity(end)
        self._data[self._pos : end] = data
        self._pos = end
        if end > self._length:
            self._length = end
        return data_len

    def copy(self) -> "ByteBuffer":
        """Returns an independent buffer with the same content, capacity and positions.

        Raises:
            AllocationError: If the memory for the copy could not be allocated.
        """
        clone = ByteBuffer(
            self._data[: self._length],
            capacity=self.capacity,
            growth_factor=self._growth_factor,
            min_growth=self._min_growth,
        )
        clone._pos = self._pos
        clone._protected_end = self._protected_end
        return clone
