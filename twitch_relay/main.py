#!/usr/bin/env python3
"""
Main entry point for the Twitch chat relay
"""

import asyncio
import logging
import signal
import sys

import aiohttp

from .api.helix import HelixClient
from .commands.builtin import default_registry
from .commands.router import CommandCatalog, CommandRouter
from .config import RelayConfig, get_configuration, print_config_summary
from .errors.handling import log_error
from .errors.internal import ConfigurationError
from .irc.session import Session
from .logging_config import LoggerConfigurator, error_aggregator
from .logs.logger import logger
from .orchestrator import Orchestrator
from .protocols import RelaySink
from .rate.retry_scheduler import RetryScheduler
from .relay import ChannelRelay, NullRelay, PostCallable
from .token.client import OAuthCredential, TokenClient
from .token.secret_store import JsonSecretStore


def build_helix(
    config: RelayConfig, http_session: aiohttp.ClientSession
) -> HelixClient | None:
    """Create the Helix client, preferring tokens persisted by earlier runs."""
    if not config.client_id:
        return None
    store = JsonSecretStore(config.secrets_file) if config.secrets_file else None
    access_token = (store.get("access_token") if store else None) or config.access_token
    refresh_token = (
        store.get("refresh_token") if store else None
    ) or config.refresh_token
    if not access_token:
        return None
    token_client = (
        TokenClient(config.client_id, config.client_secret, http_session)
        if config.client_secret
        else None
    )
    return HelixClient(
        http_session,
        config.client_id,
        OAuthCredential(access_token=access_token, refresh_token=refresh_token or ""),
        token_client=token_client,
        secret_store=store,
        scheduler=RetryScheduler(),
    )


def build_relay(
    session: Session, config: RelayConfig, post: PostCallable | None
) -> RelaySink:
    """Pick the relay sink. Relaying needs both the config flag and a post callable."""
    if not config.relay_enabled:
        return NullRelay()
    if post is None:
        logger.log_event("relay", "no_sink", level=logging.WARNING)
        return NullRelay()
    return ChannelRelay(session.channels, post)


def build_orchestrator(
    config: RelayConfig,
    http_session: aiohttp.ClientSession,
    post: PostCallable | None = None,
) -> Orchestrator:
    session = Session(
        config.nick,
        config.secret,
        config.channel_targets(),
        config.prefixes,
    )
    catalog = CommandCatalog.build(
        public=config.functions,
        whitelisted=config.restricted_functions,
        private=config.private_functions,
        responses=config.responses,
    )
    router = CommandRouter(
        session,
        default_registry(),
        catalog,
        whitelist=config.whitelist,
        relay=build_relay(session, config, post),
    )
    return Orchestrator(session, router, helix=build_helix(config, http_session))


def _install_signal_handlers(orchestrator: Orchestrator) -> None:  # pragma: no cover
    loop = asyncio.get_running_loop()

    def handler() -> None:
        logging.warning("🛑 Signal received - initiating shutdown")
        loop.create_task(orchestrator.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, handler)
        except (NotImplementedError, RuntimeError):
            pass


async def main() -> None:
    """Load configuration, start the relay and run until it stops.

    Raises:
        SystemExit: On configuration errors or an unrecoverable session failure.
    """
    try:
        print("🚀 Starting Twitch chat relay")
        config = get_configuration()
        LoggerConfigurator({"verbose": config.verbose}).configure()
        print_config_summary(config)
        async with aiohttp.ClientSession() as http_session:
            orchestrator = build_orchestrator(config, http_session)
            _install_signal_handlers(orchestrator)
            await orchestrator.run()
    except asyncio.CancelledError:
        raise
    except KeyboardInterrupt:
        pass
    except ConfigurationError as e:
        log_error("Configuration error", e)
        sys.exit(2)
    except Exception as e:
        log_error("Main application error", e)
        sys.exit(1)
    finally:
        error_aggregator.log_summary_report()
        logging.info("✅ Application shutdown complete")


def run() -> None:
    """Synchronous entry point for the application."""
    LoggerConfigurator().configure()
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        sys.exit(0)
    except asyncio.CancelledError:
        sys.exit(0)


if __name__ == "__main__":
    run()
