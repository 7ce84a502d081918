"""
Sign in to Twitch and Kick, then resolve a Kick channel's chat room.

Reads TWITCH_CLIENT_ID, KICK_CLIENT_ID and KICK_CLIENT_SECRET from the
environment or a .env file; leave them unset to try guest mode.

Usage: python -m chatbridge.examples.sign_in <kick-channel>
"""

import asyncio
import logging
import sys

from chatbridge.bridge import ChatBridge
from chatbridge.settings.config import load_config
from chatbridge.settings.store import JsonCredentialStore
from chatbridge.surface.playwright_host import PlaywrightSurfaceHost


async def main(channel: str) -> None:
    config = load_config()
    store = JsonCredentialStore(config.settings_path)

    async with PlaywrightSurfaceHost() as host:
        bridge = ChatBridge(config, store, host)
        bridge.start()
        try:
            for operation in ("auth:twitch:signIn", "auth:kick:signIn"):
                result = await bridge.invoke(operation)
                if result.ok:
                    logging.info(f"{operation}: ok")
                else:
                    logging.error(f"{operation}: {result.error}")

            result = await bridge.invoke("kick:resolveChatroom", channel)
            if result.ok:
                logging.info(f"Chatroom for {channel}: {result.value['chatroomId']}")
            else:
                logging.error(f"Chatroom lookup failed: {result.error}")
        finally:
            await bridge.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "xqc"))
