"""Caller-facing entry point.

``ChatBridge`` owns the credential store, the sign-in manager and the
channel resolver. User interfaces talk to it either through its methods,
which raise ``ChatBridgeError`` subclasses, or through ``invoke``, which
dispatches by channel name and turns any failure into a message string.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from chatbridge.auth.auth_client import AuthManager
from chatbridge.auth.models.flow import Provider
from chatbridge.channels.resolver import ChannelResolver
from chatbridge.channels.strategies import BrowserEvasionStrategy, DirectHttpStrategy
from chatbridge.settings.config import AppConfig
from chatbridge.settings.store import CredentialStore, apply_managed_defaults
from chatbridge.shared.chat_log import ChatLogEntry, append_chat_log
from chatbridge.shared.errors import ChatBridgeError
from chatbridge.shared.logs import configure_logging, write_renderer_log
from chatbridge.surface.base import SurfaceHost

logger = logging.getLogger(__name__)

Handler = Callable[..., Awaitable[Any]]


@dataclass(frozen=True)
class OperationResult:
    """Outcome of ``ChatBridge.invoke``: a value, or an error message."""

    ok: bool
    value: Any = None
    error: str | None = None


class ChatBridge:
    """Sign-in, sign-out and chat-room resolution behind one object."""

    def __init__(
        self,
        config: AppConfig,
        store: CredentialStore,
        host: SurfaceHost,
        auth: AuthManager | None = None,
        resolver: ChannelResolver | None = None,
    ):
        self.config = config
        self.store = store
        self.auth = auth or AuthManager(store, host)
        self.resolver = resolver or ChannelResolver(
            DirectHttpStrategy(), BrowserEvasionStrategy(host)
        )
        self._handlers: dict[str, Handler] = {
            "settings:get": self._get_settings,
            "settings:set": self._set_settings,
            "auth:twitch:signIn": lambda: self.sign_in(Provider.TWITCH),
            "auth:twitch:signOut": lambda: self.sign_out(Provider.TWITCH),
            "auth:kick:signIn": lambda: self.sign_in(Provider.KICK),
            "auth:kick:signOut": lambda: self.sign_out(Provider.KICK),
            "kick:resolveChatroom": self.resolve_chatroom,
            "log:write": self._write_log,
            "log:toggle": self._toggle_log,
            "chatlog:append": self._append_chat_log,
        }

    def start(self) -> dict[str, Any]:
        """Reconcile stored settings with the configuration and set up logging."""
        record = apply_managed_defaults(self.store, self.config)
        configure_logging(self.config.log_path, bool(record.get("verbose_logs")))
        return record

    async def sign_in(self, provider: Provider | str) -> dict[str, Any]:
        return await self.auth.sign_in(provider)

    async def sign_out(self, provider: Provider | str) -> dict[str, Any]:
        return self.auth.sign_out(provider)

    async def resolve_chatroom(self, channel: str) -> dict[str, int]:
        lookup = await self.resolver.resolve_chatroom(channel)
        return {"chatroomId": lookup.chatroom_id}

    async def invoke(self, channel: str, *args: Any) -> OperationResult:
        """Dispatch ``channel`` and report its outcome without raising."""
        handler = self._handlers.get(channel)
        if handler is None:
            return OperationResult(ok=False, error=f"Unknown operation: {channel}")

        try:
            value = await handler(*args)
        except ChatBridgeError as e:
            logger.warning(f"{channel} failed: {e}")
            return OperationResult(ok=False, error=str(e))
        except ValueError as e:
            logger.warning(f"{channel} rejected its arguments: {e}")
            return OperationResult(ok=False, error=str(e))
        except Exception as e:
            logger.error(f"{channel} failed unexpectedly: {e!r}")
            return OperationResult(ok=False, error=str(e) or type(e).__name__)
        return OperationResult(ok=True, value=value)

    async def _get_settings(self) -> dict[str, Any]:
        return self.store.record

    async def _set_settings(self, updates: dict[str, Any]) -> dict[str, Any]:
        if not isinstance(updates, dict):
            raise ValueError("Settings update must be an object.")
        record = self.store.set(updates)
        configure_logging(self.config.log_path, bool(record.get("verbose_logs")))
        return record

    async def _write_log(self, message: str) -> None:
        if self.store.get("verbose_logs"):
            write_renderer_log(message)

    async def _toggle_log(self, enabled: bool) -> None:
        self.store.set({"verbose_logs": bool(enabled)})
        configure_logging(self.config.log_path, bool(enabled))

    async def _append_chat_log(self, entry: dict[str, Any]) -> None:
        append_chat_log(self.config.chat_logs_dir, ChatLogEntry(**entry))

    async def close(self) -> None:
        await self.auth.close()
        await self.resolver.close()
