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

import pytest

from buffered_file.core.errors import ConfigurationError
from buffered_file.core.mode import DEFAULT_MODE, ContentPolicy, Mode, ResolvedMode, resolve_mode


class TestModeFlags:
    def test_bit_values(self):
        assert Mode.WRITE == 0x1
        assert Mode.READ == 0x2
        assert Mode.BINARY == 0x4
        assert Mode.TEXT == 0x8
        assert Mode.CLEAR == 0x10
        assert Mode.APPEND == 0x20
        assert Mode.OVERWRITE == 0x40
        assert Mode.PROTECT == 0x80
        assert Mode.CREATE == 0x100
        assert Mode.SAME == 0x80000000

    def test_default_mode(self):
        assert DEFAULT_MODE == Mode.WRITE | Mode.BINARY | Mode.OVERWRITE


class TestResolveDefaults:
    def test_empty_flags_resolve_to_defaults(self):
        resolved = resolve_mode(Mode(0))

        assert resolved == ResolvedMode(
            writable=True,
            binary=True,
            content_policy=ContentPolicy.OVERWRITE,
            protect=False,
            create=False,
        )

    def test_read_only(self):
        resolved = resolve_mode(Mode.READ)

        assert resolved.writable is False
        assert resolved.content_policy is ContentPolicy.OVERWRITE

    def test_write_takes_precedence_over_read(self):
        assert resolve_mode(Mode.READ | Mode.WRITE).writable is True

    def test_text_mode_is_recorded(self):
        assert resolve_mode(Mode.TEXT).binary is False

    @pytest.mark.parametrize(
        "flag, policy",
        [
            (Mode.CLEAR, ContentPolicy.CLEAR),
            (Mode.APPEND, ContentPolicy.APPEND),
            (Mode.OVERWRITE, ContentPolicy.OVERWRITE),
        ],
    )
    def test_content_policy(self, flag, policy):
        assert resolve_mode(Mode.WRITE | flag).content_policy is policy

    def test_create_flag(self):
        assert resolve_mode(Mode.CREATE).create is True

    def test_plain_int_flags_are_accepted(self):
        assert resolve_mode(0x1 | 0x20).content_policy is ContentPolicy.APPEND


class TestResolveProtect:
    @pytest.mark.parametrize("flag", [Mode.APPEND, Mode.OVERWRITE])
    def test_protect_with_preserving_policy(self, flag):
        assert resolve_mode(flag | Mode.PROTECT).protect is True

    def test_protect_with_clear_is_a_no_op(self):
        assert resolve_mode(Mode.CLEAR | Mode.PROTECT).protect is False


class TestResolveSame:
    def test_same_returns_previous_resolution(self):
        previous = resolve_mode(Mode.READ | Mode.APPEND | Mode.PROTECT)

        assert resolve_mode(Mode.SAME, previous) is previous

    def test_same_ignores_other_flags(self):
        previous = resolve_mode(Mode.READ)

        assert resolve_mode(Mode.SAME | Mode.CLEAR | Mode.APPEND, previous) is previous

    def test_same_without_previous_raises(self):
        with pytest.raises(ConfigurationError, match="requires a previously opened file"):
            resolve_mode(Mode.SAME)


class TestResolveContradictions:
    def test_binary_and_text(self):
        with pytest.raises(ConfigurationError, match="mutually exclusive"):
            resolve_mode(Mode.BINARY | Mode.TEXT)

    @pytest.mark.parametrize(
        "flags",
        [
            Mode.CLEAR | Mode.APPEND,
            Mode.CLEAR | Mode.OVERWRITE,
            Mode.APPEND | Mode.OVERWRITE,
        ],
    )
    def test_multiple_content_policies(self, flags):
        with pytest.raises(ConfigurationError, match="Only one of"):
            resolve_mode(flags)

    def test_clear_without_write_privilege(self):
        with pytest.raises(ConfigurationError, match="requires write privilege"):
            resolve_mode(Mode.READ | Mode.CLEAR)

    def test_unknown_bits(self):
        with pytest.raises(ConfigurationError, match="Unknown mode bits"):
            resolve_mode(Mode.WRITE | 0x200)


class TestInitialPositions:
    def test_overwrite_starts_at_zero(self):
        assert resolve_mode(Mode.OVERWRITE).initial_positions(5) == (0, 0)

    def test_append_starts_at_end(self):
        assert resolve_mode(Mode.APPEND).initial_positions(5) == (5, 0)

    def test_protect_covers_existing_content(self):
        assert resolve_mode(Mode.APPEND | Mode.PROTECT).initial_positions(5) == (5, 5)
        assert resolve_mode(Mode.OVERWRITE | Mode.PROTECT).initial_positions(5) == (0, 5)

    def test_clear_discards_everything(self):
        assert resolve_mode(Mode.CLEAR).initial_positions(5) == (0, 0)

    def test_preserves_content_and_may_create(self):
        clear = resolve_mode(Mode.CLEAR)
        append = resolve_mode(Mode.APPEND)
        created = resolve_mode(Mode.APPEND | Mode.CREATE)

        assert not clear.preserves_content and clear.may_create
        assert append.preserves_content and not append.may_create
        assert created.may_create
