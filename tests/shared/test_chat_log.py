import pytest
from pydantic import ValidationError

from chatbridge.shared.chat_log import (
    ChatLogEntry,
    append_chat_log,
    sanitize_path_segment,
)


class TestSanitizePathSegment:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("xQc", "xqc"),
            ("  spaced name ", "spaced_name"),
            ("../../etc/passwd", ".._.._etc_passwd"),
            ("", "unknown"),
            ("a" * 100, "a" * 80),
        ],
    )
    def test_sanitize(self, value, expected):
        assert sanitize_path_segment(value) == expected


class TestAppendChatLog:
    def test_writes_dated_channel_file(self, tmp_path):
        # Arrange
        entry = ChatLogEntry(
            platform="kick",
            channel="XQC",
            username="bob",
            display_name="Bob",
            message="hello\nworld",
            timestamp="2024-03-01T12:30:00.000Z",
        )

        # Act
        path = append_chat_log(tmp_path, entry)

        # Assert
        assert path == tmp_path / "2024-03-01" / "kick" / "xqc.log"
        assert path.read_text(encoding="utf-8") == (
            "[2024-03-01T12:30:00.000Z] Bob: hello world\n"
        )

    def test_appends_and_falls_back_to_username(self, tmp_path):
        first = ChatLogEntry(
            platform="twitch", channel="c", username="alice", message="one",
            timestamp="2024-03-01T00:00:00Z",
        )
        second = ChatLogEntry(
            platform="twitch", channel="c", message="two", timestamp="2024-03-01T00:00:01Z"
        )

        append_chat_log(tmp_path, first)
        path = append_chat_log(tmp_path, second)

        lines = path.read_text(encoding="utf-8").splitlines()
        assert lines == [
            "[2024-03-01T00:00:00.000Z] alice: one",
            "[2024-03-01T00:00:01.000Z] unknown: two",
        ]

    def test_unknown_platform_is_rejected(self):
        with pytest.raises(ValidationError):
            ChatLogEntry(platform="irc", channel="c", message="m")
