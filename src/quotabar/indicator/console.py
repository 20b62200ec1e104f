from datetime import datetime

import structlog

from quotabar.config import Config
from quotabar.models import QuotaInfo, UsageWindow

logger = structlog.get_logger()

BAR_LENGTH = 10
CRITICAL_THRESHOLD = 95.0

LEVEL_NORMAL = "normal"
LEVEL_WARNING = "warning"
LEVEL_CRITICAL = "critical"


def progress_bar(utilization: "float", length: "int" = BAR_LENGTH) -> "str":
    filled = round(min(max(utilization, 0.0), 100.0) / 100 * length)
    return "█" * filled + "░" * (length - filled)


def _format_reset(resets_at: "str") -> "str":
    try:
        reset = datetime.fromisoformat(resets_at)
    except ValueError:
        return resets_at or "unknown"
    return reset.astimezone().strftime("%Y-%m-%d %H:%M")


def status_text(quota: "QuotaInfo | None") -> "str":
    """
    renders the one-line indicator text, e.g.
    "Claude: 5h ████░░░░░░ 42% | 7d 12%".
    """
    if quota is None:
        return "Claude: N/A"

    text = "Claude:"
    if quota.five_hour is not None:
        pct = quota.five_hour.utilization
        text += f" 5h {progress_bar(pct)} {pct:.0f}%"
    if quota.seven_day is not None:
        if quota.five_hour is not None:
            text += " |"
        text += f" 7d {quota.seven_day.utilization:.0f}%"
    if quota.five_hour is None and quota.seven_day is None:
        text += f" {quota.percentage:.0f}%"
    return text


def tooltip_lines(quota: "QuotaInfo | None") -> "list[str]":
    if quota is None:
        return ["Configure a session key and organization id"]

    lines = ["Claude Usage", "─" * 17]
    windows: "list[tuple[str, UsageWindow | None]]" = [
        ("5-Hour Window", quota.five_hour),
        ("7-Day Window", quota.seven_day),
    ]
    for label, window in windows:
        if window is None:
            continue
        lines.append(f"{label}: {window.utilization:.1f}%")
        lines.append(f"  Resets: {_format_reset(window.resets_at)}")
    return lines


def severity(quota: "QuotaInfo | None", warning_threshold: "float") -> "str":
    if quota is None:
        return LEVEL_NORMAL
    if quota.percentage >= CRITICAL_THRESHOLD:
        return LEVEL_CRITICAL
    if quota.percentage >= warning_threshold:
        return LEVEL_WARNING
    return LEVEL_NORMAL


def format_details(quota: "QuotaInfo") -> "str":
    """
    renders the detailed usage summary shown on demand.
    """
    lines = [
        "Claude Usage",
        "",
        f"Used: {quota.usage:g}%",
        f"Limit: {quota.limit:g}%",
        f"Remaining: {quota.remaining:g}%",
        f"Usage: {quota.percentage:.2f}%",
    ]
    if quota.period is not None:
        lines.append("")
        lines.append(f"Period: {quota.period.type}")
        if quota.reset_date is not None:
            lines.append(f"Resets: {quota.reset_date.astimezone():%Y-%m-%d %H:%M}")
    return "\n".join(lines)


class ConsoleIndicator:
    """
    ConsoleIndicator renders the status-bar text, tooltip and
    severity level into the structured log. Nothing is emitted
    while the indicator is hidden.
    """

    def __init__(
        self,
        warning_threshold: "float" = 80.0,
        visible: "bool" = True,
    ) -> "None":
        self._warning_threshold = warning_threshold
        self._visible = visible
        self.text: "str" = status_text(None)
        self.level: "str" = LEVEL_NORMAL
        self.tooltip: "list[str]" = tooltip_lines(None)

    @property
    def visible(self) -> "bool":
        return self._visible

    def apply_config(self, config: "Config") -> "None":
        self._warning_threshold = config.warning_threshold
        self._visible = config.show_in_indicator

    def update_quota(self, quota: "QuotaInfo | None") -> "None":
        self.text = status_text(quota)
        self.tooltip = tooltip_lines(quota)
        self.level = severity(quota, self._warning_threshold)
        self._emit()

    def show_loading(self) -> "None":
        self.text = "Claude: loading..."
        self._emit()

    def show_error(self, message: "str") -> "None":
        self.text = "Claude: error"
        self.tooltip = [message]
        self.level = LEVEL_CRITICAL
        self._emit()

    def _emit(self) -> "None":
        if not self._visible:
            return
        logger.info(
            "indicator",
            text=self.text,
            level=self.level,
            tooltip=" / ".join(self.tooltip),
        )
