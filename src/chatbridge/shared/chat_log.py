"""Per-channel chat transcripts on disk.

Layout: ``<base>/<YYYY-MM-DD>/<platform>/<channel>.log``, one line per
message.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Literal

from pydantic import BaseModel

_UNSAFE = re.compile(r"[^a-z0-9._-]+")


class ChatLogEntry(BaseModel):
    platform: Literal["twitch", "kick", "youtube"]
    channel: str
    username: str = ""
    display_name: str = ""
    message: str
    timestamp: str = ""


def sanitize_path_segment(value: str) -> str:
    cleaned = _UNSAFE.sub("_", value.strip().lower())[:80]
    return cleaned or "unknown"


def _parse_timestamp(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return datetime.now(timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _iso(moment: datetime) -> str:
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def append_chat_log(base_dir: Path, entry: ChatLogEntry) -> Path:
    """Append ``entry`` to its channel's transcript and return the file path."""
    moment = _parse_timestamp(entry.timestamp)
    folder = (
        Path(base_dir)
        / moment.date().isoformat()
        / sanitize_path_segment(entry.platform)
    )
    folder.mkdir(parents=True, exist_ok=True)
    file_path = folder / f"{sanitize_path_segment(entry.channel)}.log"

    display = entry.display_name or entry.username or "unknown"
    text = re.sub(r"\r?\n", " ", entry.message)
    with file_path.open("a", encoding="utf-8") as handle:
        handle.write(f"[{_iso(moment)}] {display}: {text}\n")
    return file_path
