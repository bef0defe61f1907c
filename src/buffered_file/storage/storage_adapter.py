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

"""Storage backends that hold the bytes of buffered files."""

import os
from typing import Protocol, runtime_checkable

from buffered_file.core.bf_logging import get_logger

_LOGGER = get_logger(__name__)


@runtime_checkable
class StorageAdapter(Protocol):
    """Protocol for the raw byte storage a buffered file is loaded from and flushed to.

    Implementations raise `FileNotFoundError` for missing paths and `OSError` for any
    other failure. They never interpret the bytes.
    """

    def exists(self, path: str) -> bool:
        """Returns True if `path` holds a file."""
        ...

    def size(self, path: str) -> int:
        """Returns the number of bytes stored at `path`."""
        ...

    def fetch(self, path: str) -> bytes:
        """Returns all bytes stored at `path`."""
        ...

    def store(self, path: str, data: bytes) -> None:
        """Replaces the content at `path` with `data`, creating the file if needed."""
        ...


class LocalFileStorage:
    """Storage adapter over the local filesystem, using binary file I/O."""

    def exists(self, path: str) -> bool:
        return os.path.isfile(path)

    def size(self, path: str) -> int:
        return os.path.getsize(path)

    def fetch(self, path: str) -> bytes:
        _LOGGER.debug("Reading '%s' from local storage.", path)
        with open(path, "rb") as f:
            return f.read()

    def store(self, path: str, data: bytes) -> None:
        """Writes `data` to a temporary file beside `path`, then renames it over `path`.

        The target keeps its previous content if the write fails.
        """
        _LOGGER.debug("Writing %d bytes to '%s' in local storage.", len(data), path)
        tmp_path = path + ".tmp"
        try:
            with open(tmp_path, "wb") as tmp_file:
                tmp_file.write(data)
            os.replace(tmp_path, path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
