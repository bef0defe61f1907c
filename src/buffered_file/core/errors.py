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

"""Exception hierarchy for buffered files."""


class BufferedFileError(Exception):
    """Base exception for all buffered file errors."""


class OpenError(BufferedFileError):
    """Raised when the storage backend could not provide or accept the file's bytes."""


class SizeExceededError(BufferedFileError):
    """Raised when content would be larger than the maximum addressable offset."""


class AllocationError(BufferedFileError):
    """Raised when the buffer could not be grown or copied."""


class ProtectionError(BufferedFileError):
    """Raised when a write targets the protected region of the file."""


class ReadOnlyError(ProtectionError):
    """Raised when a write is attempted on a file opened without write privilege."""


class ConfigurationError(BufferedFileError):
    """Raised when mode flags are contradictory or not valid for the call."""


class FileNotOpenError(BufferedFileError, ValueError):
    """Raised when an operation other than open is attempted on a closed file."""
