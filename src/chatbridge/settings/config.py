"""Application configuration.

Values come from the environment, optionally seeded from a ``.env`` file.
Blank client credentials are valid: they put the matching provider in
guest mode.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

TWITCH_DEFAULT_REDIRECT_URI = "http://localhost:51730/twitch/callback"
KICK_DEFAULT_REDIRECT_URI = "http://localhost:51730/kick/callback"
KICK_SCOPE_VERSION = 2


class AppConfig(BaseModel):
    """Provider credentials and local paths."""

    twitch_client_id: str = ""
    twitch_redirect_uri: str = TWITCH_DEFAULT_REDIRECT_URI
    kick_client_id: str = ""
    kick_client_secret: str = ""
    kick_redirect_uri: str = KICK_DEFAULT_REDIRECT_URI
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".chatbridge")

    @property
    def settings_path(self) -> Path:
        return self.data_dir / "settings.json"

    @property
    def log_path(self) -> Path:
        return self.data_dir / "app.log"

    @property
    def chat_logs_dir(self) -> Path:
        return self.data_dir / "chat-logs"


def _env(name: str, default: str) -> str:
    value = os.getenv(name)
    return value.strip() if value is not None else default


def load_config(dotenv_path: str | Path | None = None) -> AppConfig:
    """Build the configuration from ``.env`` and the process environment.

    Variables already set in the environment win over the ``.env`` file.
    """
    load_dotenv(dotenv_path)

    defaults = AppConfig()
    return AppConfig(
        twitch_client_id=_env("TWITCH_CLIENT_ID", defaults.twitch_client_id),
        twitch_redirect_uri=_env("TWITCH_REDIRECT_URI", defaults.twitch_redirect_uri),
        kick_client_id=_env("KICK_CLIENT_ID", defaults.kick_client_id),
        kick_client_secret=_env("KICK_CLIENT_SECRET", defaults.kick_client_secret),
        kick_redirect_uri=_env("KICK_REDIRECT_URI", defaults.kick_redirect_uri),
        data_dir=Path(_env("CHATBRIDGE_DATA_DIR", str(defaults.data_dir))).expanduser(),
    )
