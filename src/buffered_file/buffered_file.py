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
import os
from typing import Optional, Union

from buffered_file.core import defaults
from buffered_file.core.bf_logging import get_logger, update_open_file_count
from buffered_file.core.buffer_engine import ByteBuffer
from buffered_file.core.errors import (
    AllocationError,
    BufferedFileError,
    ConfigurationError,
    FileNotOpenError,
    OpenError,
    ReadOnlyError,
    SizeExceededError,
)
from buffered_file.core.mode import DEFAULT_MODE, Mode, ResolvedMode, resolve_mode
from buffered_file.core.utils import log_execution_time
from buffered_file.storage.storage_adapter import LocalFileStorage, StorageAdapter

_LOGGER = get_logger(__name__)

ByteLike = Union[int, bytes, bytearray]


def _as_byte(value: ByteLike) -> int:
    """Normalizes an int in [0, 255] or a single-byte bytes object to an int."""
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 1:
            raise ValueError(f"Expected a single byte, got {len(value)} bytes.")
        return value[0]
    if isinstance(value, int) and 0 <= value <= 0xFF:
        return value
    raise ValueError(f"Expected a byte value in [0, 255], got {value!r}.")


class BufferedFile:
    """A file loaded fully into memory and accessed through a cursor.

    The whole content of the file is read into an owned buffer when it is opened. Reads
    and writes act on the buffer only, and the buffer is written back to storage when the
    file is closed. A prefix of the buffer can be protected from writes with `Mode.PROTECT`.

    On failure, operations leave the file in a well-defined state:

      - `open`: the file is closed.
      - `close`: no change, the file stays open so the caller can retry.
      - `put_char`, `put_string`, `resize`, `seek`, `write_file`: no change.

    Example:

        with BufferedFile("notes.txt", Mode.CLEAR | Mode.WRITE) as f:
            f.put_string(b"hello")
    """

    def __init__(
        self,
        path: Optional[Union[str, os.PathLike]] = None,
        mode: Mode = DEFAULT_MODE,
        storage: Optional[StorageAdapter] = None,
    ):
        """Initializes the file, opening `path` if given.

        Args:
            path: The file to open. If None, the instance starts closed.
            mode: How to open the file. `Mode.SAME` is not allowed here.
            storage: The storage backend. Defaults to the local filesystem.

        Raises:
            ConfigurationError: If `mode` contains `Mode.SAME`.
            See `open` for the other errors.
        """
        self._storage = storage if storage is not None else LocalFileStorage()
        self._open = False
        self._path: Optional[str] = None
        self._buffer: Optional[ByteBuffer] = None
        self._mode: Optional[ResolvedMode] = None
        self._last_mode: Optional[ResolvedMode] = None
        self._dirty = False

        if path is not None:
            if mode & Mode.SAME:
                _LOGGER.error("Mode.SAME cannot be used when constructing a BufferedFile.")
                raise ConfigurationError("Mode.SAME cannot be used when constructing a BufferedFile.")
            self.open(path, mode)

    # --- Lifecycle ---

    def open(self, path: Union[str, os.PathLike], mode: Mode = Mode.SAME) -> None:
        """Opens `path` in the given mode. A file that is already open is closed first.

        Args:
            path: The file to open.
            mode: How to open the file. `Mode.SAME` reuses the mode of the previously opened file.

        Raises:
            OpenError: If the storage could not provide the file, or the file is missing and
                neither `Mode.CREATE` nor `Mode.CLEAR` applies.
            SizeExceededError: If the file is larger than `MAX_FILE_SIZE`.
            AllocationError: If the buffer could not be allocated.
            ConfigurationError: If the mode flags are contradictory.
        Status after raising: the file is closed.
        """
        if self._open:
            try:
                self.close()
            except BufferedFileError:
                _LOGGER.error("Could not flush '%s' before opening another file, discarding it.", self._path)
                self._release()
                raise

        resolved = resolve_mode(mode, self._last_mode)
        path = os.fspath(path)
        if not path:
            _LOGGER.error("Cannot open a file with an empty path.")
            raise OpenError("Cannot open a file with an empty path.")

        content = self._load(path, resolved)
        buffer = ByteBuffer(content)
        cursor, protected_end = resolved.initial_positions(buffer.length)
        buffer.set_positions(cursor, protected_end)

        self._path = path
        self._buffer = buffer
        self._mode = resolved
        self._last_mode = resolved
        self._dirty = False
        self._open = True
        update_open_file_count(1)
        _LOGGER.info(
            "Opened '%s' (%d bytes, cursor=%d, protected_end=%d, mode=%s).",
            path,
            buffer.length,
            cursor,
            protected_end,
            resolved,
        )

    def _load(self, path: str, resolved: ResolvedMode) -> bytes:
        """Returns the bytes the buffer of a new session over `path` starts with."""
        try:
            if not self._storage.exists(path):
                if not resolved.may_create:
                    _LOGGER.error("File '%s' does not exist and the mode does not allow creating it.", path)
                    raise OpenError(f"File '{path}' does not exist")
                _LOGGER.info("Creating empty file '%s'.", path)
                with log_execution_time(_LOGGER, f"create '{path}'"):
                    self._storage.store(path, b"")
                return b""

            if not resolved.preserves_content:
                return b""

            size = self._storage.size(path)
            if size > defaults.MAX_FILE_SIZE:
                error_msg = f"File '{path}' has {size} bytes, the maximum is {defaults.MAX_FILE_SIZE}."
                _LOGGER.error(error_msg)
                raise SizeExceededError(error_msg)

            with log_execution_time(_LOGGER, f"fetch '{path}'"):
                return self._storage.fetch(path)
        except OSError as e:
            _LOGGER.exception("Storage failed while opening '%s'.", path)
            raise OpenError(f"Could not open '{path}'") from e
        except MemoryError as e:
            _LOGGER.exception("Out of memory while reading '%s'.", path)
            raise AllocationError(f"Could not allocate memory for '{path}'") from e

    def _store(self, path: str) -> None:
        try:
            with log_execution_time(_LOGGER, f"store '{path}'"):
                self._storage.store(path, self._buffer.getvalue())
        except OSError as e:
            _LOGGER.exception("Storage failed while writing '%s'.", path)
            raise OpenError(f"Could not write '{path}'") from e

    def close(self) -> None:
        """Writes the buffer back to its path and closes the file.

        The file is re-created if it was deleted since it was opened. Files opened without
        write privilege are not written back.

        Raises:
            FileNotOpenError: If the file is not open.
            OpenError: If the storage could not accept the bytes.
        Status after raising: no change, the file is still open.
        """
        self._check_open()
        if self._mode.writable:
            self._store(self._path)
        _LOGGER.info("Closed '%s' (%d bytes, dirty=%s).", self._path, self._buffer.length, self._dirty)
        self._release()

    def _release(self) -> None:
        """Drops the buffer and resets the file to the closed state without flushing."""
        if self._open:
            update_open_file_count(-1)
        self._open = False
        self._path = None
        self._buffer = None
        self._mode = None
        self._dirty = False

    def write_file(self, path: Union[str, os.PathLike]) -> None:
        """Writes the current buffer to `path` without closing or altering this file.

        Raises:
            FileNotOpenError: If the file is not open.
            OpenError: If the storage could not accept the bytes.
        """
        self._check_open()
        path = os.fspath(path)
        _LOGGER.info("Exporting %d bytes of '%s' to '%s'.", self._buffer.length, self._path, path)
        self._store(path)

    # --- Copying ---

    def copy(self) -> "BufferedFile":
        """Returns an independent snapshot of this file's buffer and status.

        Changes made to either file afterwards are not seen by the other. Both files keep
        the same path, so whichever is closed last determines the stored content.

        Raises:
            AllocationError: If the buffer could not be copied.
        """
        clone = type(self)(storage=self._storage)
        clone._copy_status(self)
        return clone

    def __copy__(self) -> "BufferedFile":
        return self.copy()

    def __deepcopy__(self, memo) -> "BufferedFile":
        return self.copy()

    def assign(self, other: "BufferedFile") -> "BufferedFile":
        """Makes this file a snapshot of `other`, like `copy` but in place.

        If this file is open, its content is discarded without being flushed first.

        Raises:
            AllocationError: If the buffer could not be copied.
        Status after raising: the file is closed.
        """
        if other is self:
            return self
        if self._open:
            _LOGGER.warning("Discarding unflushed content of '%s' before assigning from '%s'.", self._path, other._path)
            self._release()
        self._storage = other._storage
        self._copy_status(other)
        return self

    def _copy_status(self, other: "BufferedFile") -> None:
        self._last_mode = other._last_mode
        if not other._open:
            return
        self._buffer = other._buffer.copy()
        self._path = other._path
        self._mode = other._mode
        self._dirty = other._dirty
        self._open = True
        update_open_file_count(1)
        _LOGGER.debug("Copied status of '%s' (%d bytes).", self._path, self._buffer.length)

    # --- Reading ---

    def end_of_file(self) -> bool:
        """Returns True if the cursor is at the end of the content. Nothing needs to have been read past it."""
        self._check_open()
        return self._buffer.at_end

    def get_char(self, skip_whitespace: bool = False) -> int:
        """Returns the next byte and advances the cursor past it.

        Args:
            skip_whitespace: If True, whitespace bytes are skipped first.

        Returns:
            The byte value, or `EOF_SENTINEL` (0) if the end of the content was reached.
        """
        self._check_open()
        if skip_whitespace:
            self._buffer.skip_whitespace()
        return self._buffer.read_byte()

    def get_pos(self) -> int:
        """Returns the current cursor."""
        self._check_open()
        return self._buffer.pos

    def get_string(self, out: Union[bytearray, memoryview], max_length: int, terminator: ByteLike = b"\n") -> int:
        """Reads the next string into `out`, null-terminated.

        Leading whitespace is skipped. Bytes are then copied until `terminator` is found, the
        end of the content is reached, or `max_length - 1` bytes were copied. The terminator is
        consumed but not copied.

        Args:
            out: A writable buffer of at least `max_length` bytes.
            max_length: The maximum number of bytes written to `out`, including the null byte.
            terminator: The byte that ends the string.

        Returns:
            The number of bytes written to `out`, including the null byte.

        Raises:
            TypeError: If `out` is not writable.
            ValueError: If `max_length` is less than 1 or larger than `out`.
        """
        self._check_open()
        if not isinstance(out, (bytearray, memoryview)) or (isinstance(out, memoryview) and out.readonly):
            _LOGGER.error("The buffer provided to get_string() must be a writable bytes-like object.")
            raise TypeError(f"get_string() argument must be a writable bytes-like object, not {type(out).__name__}")
        if max_length < 1:
            raise ValueError(f"max_length must be at least 1, got {max_length}")
        if len(out) < max_length:
            raise ValueError(f"Output buffer of {len(out)} bytes is smaller than max_length={max_length}")
        terminator = _as_byte(terminator)

        self._buffer.skip_whitespace()
        collected = bytearray()
        while len(collected) < max_length - 1:
            value = self._buffer.peek_byte()
            if value is None:
                break
            self._buffer.read_byte()
            if value == terminator:
                break
            collected.append(value)
        collected.append(0)

        out[: len(collected)] = collected
        return len(collected)

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        """Moves the cursor within the content. See `ByteBuffer.seek`."""
        self._check_open()
        return self._buffer.seek(offset, whence)

    def getvalue(self) -> bytes:
        """Returns a copy of the buffer's meaningful bytes."""
        self._check_open()
        return self._buffer.getvalue()

    # --- Writing ---

    def put_char(self, character: ByteLike, ignore_errors: bool = False) -> None:
        """Puts a byte at the cursor and advances the cursor past it.

        Args:
            character: The byte to put, as an int or a single-byte bytes object.
            ignore_errors: If True, a write into the protected region or into a read-only file
                does nothing instead of raising.

        Raises:
            ProtectionError: If the cursor is inside the protected region.
            ReadOnlyError: If the file was opened without write privilege.
            SizeExceededError: If the content would grow beyond `MAX_FILE_SIZE`.
            AllocationError: If the buffer could not be grown.
        Status after raising: no change.
        """
        self._put(bytes((_as_byte(character),)), ignore_errors)

    def put_string(self, data: Union[bytes, bytearray], ignore_errors: bool = False) -> int:
        """Puts a byte string at the cursor, up to its first null byte if it has one.

        The whole write is validated before any byte is changed, so on failure nothing is written.

        Args:
            data: The bytes to put.
            ignore_errors: See `put_char`.

        Returns:
            The number of bytes written.

        Raises:
            See `put_char`.
        Status after raising: no change.
        """
        return self._put(bytes(data).split(b"\0", 1)[0], ignore_errors)

    def _put(self, data: bytes, ignore_errors: bool) -> int:
        self._check_open()
        if not self._mode.writable:
            if ignore_errors:
                return 0
            _LOGGER.error("Attempted to write to '%s', which was opened read-only.", self._path)
            raise ReadOnlyError(f"'{self._path}' was opened read-only")
        if ignore_errors and self._buffer.cursor_protected:
            _LOGGER.debug("Ignoring write at protected offset %d of '%s'.", self._buffer.pos, self._path)
            return 0

        written = self._buffer.write(data)
        if written:
            self._dirty = True
        return written

    def resize(self, desired_size: int) -> None:
        """Grows the buffer capacity to at least `desired_size`. Smaller sizes do nothing.

        Raises:
            AllocationError: If the buffer could not be grown.
        Status after raising: no change.
        """
        self._check_open()
        self._buffer.resize(desired_size)

    # --- Properties and Context Manager ---

    def _check_open(self) -> None:
        if not self._open:
            _LOGGER.error("Attempted to perform an operation on a closed BufferedFile.")
            raise FileNotOpenError("Operation on a closed BufferedFile")

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def closed(self) -> bool:
        return not self._open

    @property
    def path(self) -> Optional[str]:
        return self._path

    @property
    def mode(self) -> Optional[ResolvedMode]:
        """The resolved mode of the open file, or None when closed."""
        return self._mode

    @property
    def dirty(self) -> bool:
        """True if a byte was written since the file was opened."""
        return self._dirty

    @property
    def content_length(self) -> int:
        return self._buffer.length if self._open else 0

    @property
    def capacity(self) -> int:
        return self._buffer.capacity if self._open else 0

    @property
    def protected_end(self) -> int:
        return self._buffer.protected_end if self._open else 0

    def __enter__(self) -> "BufferedFile":
        self._check_open()
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        """Closes the file, flushing it, unless it was already closed inside the block."""
        if self._open:
            self.close()

    def __del__(self):
        """Releases the buffer when the file is garbage collected.

        If configured (the default), an open file with unflushed writes is flushed first. Files
        without writes are released as-is, so a discarded copy never overwrites newer content.
        Flush failures are logged and the unflushed content is discarded, as nothing can be
        raised from here.
        """
        if not getattr(self, "_open", False):
            return
        try:
            if self._dirty and defaults.flush_on_teardown():
                self.close()
        except Exception:
            _LOGGER.exception("Failed to flush '%s' during teardown, its changes are discarded.", self._path)
        finally:
            self._release()
