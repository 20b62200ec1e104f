import asyncio
import functools
import signal

import structlog
from prometheus_client import start_http_server

from quotabar.browser.navigator import Navigator
from quotabar.browser.session import BrowserSessionManager
from quotabar.cli import parse_args
from quotabar.client import QuotaClient
from quotabar.config import Config
from quotabar.indicator.base import CompositeIndicator, Indicator
from quotabar.indicator.console import ConsoleIndicator
from quotabar.logging import setup_logging
from quotabar.metrics import MetricsIndicator
from quotabar.orchestrator import RefreshOrchestrator
from quotabar.runtime import RuntimeGate

logger = structlog.get_logger()


def _parse_listen_address(addr: "str") -> "tuple[str, int]":
    """
    parses listen address in format ':9187' or '0.0.0.0:9187'.
    """
    if addr.startswith(":"):
        return ("0.0.0.0", int(addr[1:]))

    host, port = addr.rsplit(":", 1)
    return (host, int(port))


def _reload_config(initial: "Config") -> "Config":
    """
    re-reads the environment (and the env file, if any) while keeping
    the process-level settings given on the command line.
    """
    config = Config.from_env(initial.env_file)
    config.listen_address = initial.listen_address
    config.log_level = initial.log_level
    config.log_format = initial.log_format
    return config


def main() -> "None":
    config = parse_args()
    setup_logging(config.log_level, config.log_format)

    indicators: "list[Indicator]" = [
        ConsoleIndicator(
            warning_threshold=config.warning_threshold,
            visible=config.show_in_indicator,
        )
    ]

    if config.listen_address:
        indicators.append(MetricsIndicator())
        host, port = _parse_listen_address(config.listen_address)
        start_http_server(port, addr=host)
        logger.info("metrics_server_started", host=host, port=port)

    client = QuotaClient(
        session=BrowserSessionManager(headless=config.headless),
        navigator=Navigator(),
    )
    gate = RuntimeGate(auto_install=config.auto_install)

    async def _run() -> "None":
        orchestrator = RefreshOrchestrator(
            client,
            gate,
            CompositeIndicator(indicators),
            load_config=functools.partial(_reload_config, config),
        )

        loop = asyncio.get_running_loop()
        # SIGINT/SIGTERM stop, SIGHUP reloads configuration,
        # SIGUSR1 refreshes on demand
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, orchestrator.stop)
        loop.add_signal_handler(signal.SIGHUP, orchestrator.trigger_config_change)
        loop.add_signal_handler(signal.SIGUSR1, orchestrator.trigger_refresh)

        if not config.credentials_configured:
            logger.warning(
                "credentials_not_configured",
                hint="set QUOTABAR_SESSION_KEY and QUOTABAR_ORGANIZATION_ID",
            )

        try:
            await orchestrator.run()
        finally:
            logger.info("shutting_down")
            # an in-flight browser operation is not interrupted here
            await orchestrator.close()
            logger.info("shutdown_complete")

    asyncio.run(_run())


if __name__ == "__main__":
    main()
