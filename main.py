#!/usr/bin/env python3
"""
Main entry point for the chat relay
"""

import asyncio
import signal
import sys

import aiohttp

from chatrelay.app import build_hub
from chatrelay.config import config_path, load_config
from chatrelay.console import ConsoleConsumer
from chatrelay.errors import log_error
from chatrelay.logging_config import LoggerConfigurator
from chatrelay.logs import logger
from chatrelay.server import LocalRelayServer


def _install_signal_handlers(stop: asyncio.Event) -> None:  # pragma: no cover - system interaction
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, stop.set)
        except NotImplementedError:
            # Windows event loops: KeyboardInterrupt still ends asyncio.run
            return


async def main():
    """Main function"""
    config = load_config()
    logger.log_event("app", "start", user=config.account.login if config.account else None)

    async with aiohttp.ClientSession() as session:
        hub = build_hub(config, session)
        server = (
            LocalRelayServer(hub, config.server_host, config.server_port)
            if config.server_port
            else None
        )
        stop = asyncio.Event()
        _install_signal_handlers(stop)
        try:
            hub.start()
            for channel in config.channels:
                hub.watch(ConsoleConsumer(channel, config.message_cap), channel)
            if server is not None:
                await server.start()
            await stop.wait()
        finally:
            if server is not None:
                await server.stop()
            await hub.close()
            logger.log_event("app", "shutdown")


if __name__ == "__main__":
    LoggerConfigurator().configure()

    # Simple health check mode
    if len(sys.argv) > 1 and sys.argv[1] == "--health-check":
        try:
            relay_config = load_config()
            logger.log_event(
                "app",
                "health_check",
                human=f"✅ Health check passed - {config_path()} ({len(relay_config.channels)} channel(s))",
            )
            sys.exit(0)
        except ValueError as e:
            log_error("Health check failed", e)
            sys.exit(1)

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.log_event("app", "interrupted")
        sys.exit(0)
    except Exception as e:
        log_error("Top-level error", e)
        sys.exit(1)
