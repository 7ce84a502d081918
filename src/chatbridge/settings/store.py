"""Key-value credential store.

Sign-in results land here only after a flow has fully succeeded, so a
failed attempt leaves the previous credentials untouched.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, ValidationError

from chatbridge.settings.config import KICK_SCOPE_VERSION, AppConfig

logger = logging.getLogger(__name__)


class AppSettings(BaseModel):
    """Persisted settings record.

    Unknown keys (renderer preferences and the like) are kept as-is.
    """

    model_config = ConfigDict(extra="allow")

    twitch_token: str = ""
    twitch_username: str = ""
    twitch_guest: bool = False
    twitch_client_id: str = ""
    twitch_redirect_uri: str = ""
    kick_client_id: str = ""
    kick_client_secret: str = ""
    kick_redirect_uri: str = ""
    kick_access_token: str = ""
    kick_refresh_token: str = ""
    kick_username: str = ""
    kick_guest: bool = False
    kick_scope_version: int = KICK_SCOPE_VERSION
    verbose_logs: bool = False
    overlay_transparent: bool = True
    columns: int = 2


class CredentialStore(Protocol):
    """Durable key-value store holding tokens, usernames and guest flags."""

    @property
    def record(self) -> dict[str, Any]: ...

    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, updates: dict[str, Any]) -> dict[str, Any]:
        """Merge ``updates`` and return the complete record."""
        ...


class JsonCredentialStore:
    """Credential store persisted as pretty-printed JSON.

    A missing or corrupt file is treated as empty; the merged record is
    written back immediately so the file always reflects current state.
    """

    def __init__(self, path: Path, defaults: dict[str, Any] | None = None):
        self.path = Path(path)
        base = AppSettings(**(defaults or {})).model_dump()
        self._state = self._validated({**base, **self._read_from_disk()}, base)
        self._write_to_disk()

    @property
    def record(self) -> dict[str, Any]:
        return dict(self._state)

    def get(self, key: str, default: Any = None) -> Any:
        return self._state.get(key, default)

    def set(self, updates: dict[str, Any]) -> dict[str, Any]:
        merged = {**self._state, **updates}
        try:
            self._state = AppSettings(**merged).model_dump()
        except ValidationError as e:
            raise ValueError(f"Invalid settings update: {e}") from e
        self._write_to_disk()
        return self.record

    def _validated(self, merged: dict[str, Any], fallback: dict[str, Any]) -> dict[str, Any]:
        try:
            return AppSettings(**merged).model_dump()
        except ValidationError as e:
            logger.warning(f"Ignoring invalid settings in {self.path}: {e}")
            return fallback

    def _read_from_disk(self) -> dict[str, Any]:
        try:
            if not self.path.exists():
                return {}
            parsed = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read settings from {self.path}: {e}")
            return {}
        return parsed if isinstance(parsed, dict) else {}

    def _write_to_disk(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._state, indent=2) + "\n", encoding="utf-8")


class MemoryCredentialStore:
    """Non-persistent store, handy for tests and one-off scripts."""

    def __init__(self, initial: dict[str, Any] | None = None):
        self._state = AppSettings(**(initial or {})).model_dump()

    @property
    def record(self) -> dict[str, Any]:
        return dict(self._state)

    def get(self, key: str, default: Any = None) -> Any:
        return self._state.get(key, default)

    def set(self, updates: dict[str, Any]) -> dict[str, Any]:
        self._state = AppSettings(**{**self._state, **updates}).model_dump()
        return self.record


def apply_managed_defaults(store: CredentialStore, config: AppConfig) -> dict[str, Any]:
    """Reconcile stored settings with the configuration at start-up.

    - Fill blank client ids, secret and redirect URIs from ``config``
    - Drop a stale guest flag once real credentials exist, keeping the
      username only when a token is stored
    - Wipe Kick tokens granted under an older scope set
    """
    for key in (
        "twitch_client_id",
        "twitch_redirect_uri",
        "kick_client_id",
        "kick_client_secret",
        "kick_redirect_uri",
    ):
        managed = (getattr(config, key) or "").strip()
        if managed and not (store.get(key) or "").strip():
            store.set({key: managed})

    if store.get("twitch_guest") and (store.get("twitch_client_id") or "").strip():
        store.set(
            {
                "twitch_guest": False,
                "twitch_username": store.get("twitch_username") if store.get("twitch_token") else "",
            }
        )

    kick_configured = (store.get("kick_client_id") or "").strip() and (
        store.get("kick_client_secret") or ""
    ).strip()
    if store.get("kick_guest") and kick_configured:
        store.set(
            {
                "kick_guest": False,
                "kick_username": store.get("kick_username") if store.get("kick_access_token") else "",
            }
        )

    if (store.get("kick_scope_version") or 0) < KICK_SCOPE_VERSION:
        logger.info("Kick scopes changed since last sign-in, clearing Kick tokens")
        store.set(
            {
                "kick_access_token": "",
                "kick_refresh_token": "",
                "kick_username": "",
                "kick_guest": False,
                "kick_scope_version": KICK_SCOPE_VERSION,
            }
        )

    return store.record
