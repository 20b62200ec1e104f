import time
from datetime import datetime

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram

from quotabar.config import Config
from quotabar.models import QuotaInfo, UsageWindow

STATE_OK = 0
STATE_LOADING = 1
STATE_ERROR = 2
STATE_UNCONFIGURED = 3


class MetricsIndicator:
    """
    exposes the quota state as Prometheus metrics:
     - window_utilization_percent / window_resets_at_seconds,
     labeled by window (five_hour, seven_day).
     - usage_percent / remaining_percent for the selected window.
     - state: 0 ok, 1 loading, 2 error, 3 unconfigured.
     - refresh_errors_total and last_success_timestamp_seconds.
    """

    def __init__(self, registry: "CollectorRegistry" = REGISTRY) -> "None":
        self._window_utilization: "Gauge" = Gauge(
            "quotabar_window_utilization_percent",
            "Utilization of each usage window",
            ["window"],
            registry=registry,
        )
        self._window_resets_at: "Gauge" = Gauge(
            "quotabar_window_resets_at_seconds",
            "Unix timestamp at which each usage window resets",
            ["window"],
            registry=registry,
        )
        self._usage: "Gauge" = Gauge(
            "quotabar_usage_percent",
            "Usage of the selected window",
            registry=registry,
        )
        self._remaining: "Gauge" = Gauge(
            "quotabar_remaining_percent",
            "Remaining quota of the selected window",
            registry=registry,
        )
        self._state: "Gauge" = Gauge(
            "quotabar_state",
            "Indicator state (0 ok, 1 loading, 2 error, 3 unconfigured)",
            registry=registry,
        )
        self._errors: "Counter" = Counter(
            "quotabar_refresh_errors_total",
            "Total number of failed refresh cycles",
            registry=registry,
        )
        self._last_success: "Gauge" = Gauge(
            "quotabar_last_success_timestamp_seconds",
            "Unix timestamp of the last successful refresh",
            registry=registry,
        )
        self._refresh_duration: "Histogram" = Histogram(
            "quotabar_refresh_duration_seconds",
            "Duration of refresh cycles that reached the browser",
            buckets=(1, 2, 5, 10, 20, 30, 60, 120),
            registry=registry,
        )
        self._loading_started: "float | None" = None

    def apply_config(self, config: "Config") -> "None":
        # the metrics endpoint is unaffected by indicator visibility
        pass

    def update_quota(self, quota: "QuotaInfo | None") -> "None":
        if quota is None:
            self._state.set(STATE_UNCONFIGURED)
            self._loading_started = None
            return

        self._set_window("five_hour", quota.five_hour)
        self._set_window("seven_day", quota.seven_day)
        self._usage.set(quota.usage)
        self._remaining.set(quota.remaining)
        self._state.set(STATE_OK)
        self._last_success.set(time.time())
        self._observe_duration()

    def show_loading(self) -> "None":
        self._state.set(STATE_LOADING)
        self._loading_started = time.monotonic()

    def show_error(self, message: "str") -> "None":
        self._state.set(STATE_ERROR)
        self._errors.inc()
        self._observe_duration()

    def _observe_duration(self) -> "None":
        if self._loading_started is None:
            return
        self._refresh_duration.observe(time.monotonic() - self._loading_started)
        self._loading_started = None

    def _set_window(self, name: "str", window: "UsageWindow | None") -> "None":
        if window is None:
            for gauge in (self._window_utilization, self._window_resets_at):
                try:
                    gauge.remove(name)
                except KeyError:
                    pass
            return

        self._window_utilization.labels(window=name).set(window.utilization)
        resets_at = _timestamp(window.resets_at)
        if resets_at is not None:
            self._window_resets_at.labels(window=name).set(resets_at)


def _timestamp(resets_at: "str") -> "float | None":
    try:
        return datetime.fromisoformat(resets_at).timestamp()
    except ValueError:
        return None
