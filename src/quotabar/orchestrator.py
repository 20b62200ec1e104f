import asyncio
from typing import Any, Callable, Coroutine, Protocol

import structlog

from quotabar.config import Config
from quotabar.credentials import normalize_session_key
from quotabar.indicator.base import Indicator
from quotabar.models import Credentials, QuotaInfo, UsagePeriod

logger = structlog.get_logger()

# delay before the first refresh after startup
_DEFAULT_INITIAL_DELAY_SECONDS = 2.0


class QuotaSource(Protocol):
    """
    the part of QuotaClient the orchestrator depends on.
    """

    @property
    def credentials(self) -> "Credentials": ...

    @property
    def last_result(self) -> "QuotaInfo | None": ...

    async def update_credentials(
        self, session_key: "str", organization_id: "str"
    ) -> "None": ...

    async def fetch_quota(self, preferred: "UsagePeriod") -> "QuotaInfo": ...

    async def close(self) -> "None": ...


class AvailabilityGate(Protocol):
    auto_install: "bool"

    async def ensure_available(self) -> "bool": ...


class RefreshOrchestrator:
    """
    RefreshOrchestrator drives refresh cycles on a timer, on manual
    triggers and on configuration changes. Each cycle re-reads the
    configuration, checks the browser runtime is available, fetches
    the quota and reports loading/success/error to the indicator.

    Cycles are serialized through a single-slot guard: a timer or
    manual trigger that arrives while a cycle is in flight is a
    no-op, a configuration change waits for it. A failed cycle keeps
    the last good quota.
    """

    def __init__(
        self,
        client: "QuotaSource",
        gate: "AvailabilityGate",
        indicator: "Indicator",
        load_config: "Callable[[], Config]",
        guard: "asyncio.Lock | None" = None,
        initial_delay: "float" = _DEFAULT_INITIAL_DELAY_SECONDS,
    ) -> "None":
        self._client = client
        self._gate = gate
        self._indicator = indicator
        self._load_config = load_config
        self._guard: "asyncio.Lock" = guard or asyncio.Lock()
        self._initial_delay = initial_delay
        self._stop_event: "asyncio.Event" = asyncio.Event()
        # set to reschedule the timer or to wake the loop for stopping
        self._wake_event: "asyncio.Event" = asyncio.Event()
        self._tasks: "set[asyncio.Task[Any]]" = set()

    @property
    def current_quota(self) -> "QuotaInfo | None":
        return self._client.last_result

    @property
    def in_progress(self) -> "bool":
        return self._guard.locked()

    def stop(self) -> "None":
        """
        signals the refresh loop to stop. An in-flight cycle is not
        interrupted.
        """
        self._stop_event.set()
        self._wake_event.set()

    def reschedule(self) -> "None":
        """
        restarts the timer with the currently configured interval.
        """
        self._wake_event.set()

    def trigger_refresh(self) -> "None":
        """
        schedules a manual refresh. Safe to call from signal handlers.
        """
        self._spawn(self.refresh())

    def trigger_config_change(self) -> "None":
        self._spawn(self.handle_config_change())

    async def close(self) -> "None":
        """
        waits for triggered tasks and disposes the client.
        """
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        await self._client.close()

    async def run(self) -> "None":
        """
        runs the timer loop until stop() is called. The first refresh
        happens after the initial delay, later ones every configured
        interval; a non-positive interval disables the timer.
        """
        timeout: "float | None" = self._initial_delay

        while not self._stop_event.is_set():
            woken = await self._wait(timeout)
            if self._stop_event.is_set():
                break

            if not woken:
                logger.debug("auto_refresh_triggered")
                await self.refresh()

            interval = self._load_config().refresh_interval_seconds
            timeout = interval if interval > 0 else None
            logger.debug("auto_refresh_scheduled", interval_seconds=timeout)

    async def handle_config_change(self) -> "None":
        """
        applies a changed configuration: new credentials drop the
        browser context, the indicator picks up its settings, the
        timer restarts and a refresh runs right away.

        Unlike other triggers a config change waits for an in-flight
        cycle to finish instead of being skipped, so the new
        credentials are always fetched.
        """
        if self._guard.locked():
            logger.info("config_change_waiting_for_cycle")

        async with self._guard:
            config = self._load_config()
            logger.info(
                "config_changed",
                has_session_key=bool(config.session_key),
                has_organization_id=bool(config.organization_id),
                show_in_indicator=config.show_in_indicator,
            )

            await self._client.update_credentials(
                config.session_key, config.organization_id
            )
            self._gate.auto_install = config.auto_install
            self._indicator.apply_config(config)
            self.reschedule()
            await self._run_cycle()

    async def refresh(self) -> "bool":
        """
        runs one refresh cycle unless another one is in flight.
        Returns whether a cycle ran.
        """
        if self._guard.locked():
            logger.info("refresh_skipped_in_progress")
            return False

        async with self._guard:
            await self._run_cycle()
        return True

    async def _run_cycle(self) -> "None":
        config = self._load_config()
        logger.info("refresh_cycle_start", usage_period=config.usage_period.value)

        await self._sync_credentials(config)
        if not self._client.credentials.complete:
            logger.info("refresh_skipped_unconfigured")
            self._indicator.update_quota(None)
            return

        if not await self._gate.ensure_available():
            logger.warning("refresh_skipped_runtime_unavailable")
            self._indicator.show_error(
                "Chromium is not available. Install it with: playwright install chromium"
            )
            return

        self._indicator.show_loading()
        try:
            quota = await self._client.fetch_quota(config.usage_period)
        except Exception as exc:
            logger.exception("refresh_cycle_failed")
            self._indicator.show_error(f"Failed to fetch quota: {exc}")
            return

        self._indicator.update_quota(quota)
        logger.info(
            "refresh_cycle_end",
            usage=quota.usage,
            remaining=quota.remaining,
        )

    async def _sync_credentials(self, config: "Config") -> "None":
        wanted = Credentials(
            session_key=normalize_session_key(config.session_key),
            organization_id=config.organization_id.strip(),
        )
        if wanted != self._client.credentials:
            await self._client.update_credentials(
                config.session_key, config.organization_id
            )

    async def _wait(self, timeout: "float | None") -> "bool":
        """
        waits for the wake event or the timeout. Returns True if
        woken, False if the timeout elapsed.
        """
        try:
            await asyncio.wait_for(self._wake_event.wait(), timeout=timeout)
        except TimeoutError:
            return False

        self._wake_event.clear()
        return True

    def _spawn(self, coro: "Coroutine[Any, Any, Any]") -> "None":
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

