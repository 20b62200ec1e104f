from datetime import datetime
from typing import Any

import structlog

from quotabar.models import (
    QUOTA_LIMIT,
    PeriodInfo,
    QuotaInfo,
    UsagePeriod,
    UsageWindow,
)

logger = structlog.get_logger()

FIVE_HOUR_KEY = "five_hour"
SEVEN_DAY_KEY = "seven_day"

PERIOD_LABELS: "dict[UsagePeriod, str]" = {
    UsagePeriod.FIVE_HOUR: "5-hour window",
    UsagePeriod.SEVEN_DAY: "7-day window",
}


def _parse_window(raw: "Any") -> "UsageWindow | None":
    """
    reads a single usage window. null or non-object windows
    count as absent.
    """
    if not isinstance(raw, dict):
        return None

    try:
        utilization = float(raw.get("utilization") or 0)
    except (TypeError, ValueError):
        utilization = 0.0

    return UsageWindow(
        utilization=utilization,
        resets_at=str(raw.get("resets_at") or ""),
    )


def _parse_reset(resets_at: "str") -> "datetime | None":
    if not resets_at:
        return None
    try:
        return datetime.fromisoformat(resets_at)
    except ValueError:
        logger.debug("usage_reset_unparseable", resets_at=resets_at)
        return None


def _select_window(
    windows: "dict[UsagePeriod, UsageWindow | None]",
    preferred: "UsagePeriod",
) -> "tuple[UsagePeriod, UsageWindow] | None":
    for period in (preferred, UsagePeriod.FIVE_HOUR, UsagePeriod.SEVEN_DAY):
        window = windows[period]
        if window is not None:
            return period, window
    return None


def normalize_usage(raw: "Any", preferred: "UsagePeriod") -> "QuotaInfo":
    """
    maps the raw usage response onto a QuotaInfo. The preferred
    window wins when present, otherwise the five-hour window, then
    the seven-day one. With no window at all every derived field is
    zero. Both raw windows are kept regardless of the selection.
    """
    data = raw if isinstance(raw, dict) else {}
    windows: "dict[UsagePeriod, UsageWindow | None]" = {
        UsagePeriod.FIVE_HOUR: _parse_window(data.get(FIVE_HOUR_KEY)),
        UsagePeriod.SEVEN_DAY: _parse_window(data.get(SEVEN_DAY_KEY)),
    }

    five_hour = windows[UsagePeriod.FIVE_HOUR]
    seven_day = windows[UsagePeriod.SEVEN_DAY]

    selection = _select_window(windows, preferred)
    if selection is None:
        logger.debug("usage_no_window")
        return QuotaInfo(
            usage=0.0,
            percentage=0.0,
            remaining=QUOTA_LIMIT,
        )

    selected, window = selection
    usage = window.utilization

    return QuotaInfo(
        usage=usage,
        percentage=usage,
        remaining=QUOTA_LIMIT - usage,
        reset_date=_parse_reset(window.resets_at),
        period=PeriodInfo(type=PERIOD_LABELS[selected], resets_at=window.resets_at),
        five_hour=five_hour,
        seven_day=seven_day,
    )
