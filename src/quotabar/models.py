from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

# usage is reported on a percentage scale
QUOTA_LIMIT = 100.0


class UsagePeriod(Enum):
    """
    UsagePeriod is the usage window the user prefers to see
    in the indicator.
    """

    FIVE_HOUR = "five-hour"
    SEVEN_DAY = "seven-day"

    @classmethod
    def parse(cls, value: "str | None") -> "UsagePeriod":
        """
        parses a configuration value, falling back to the
        five-hour window for anything unrecognised.
        """
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.FIVE_HOUR


class ChallengeResult(Enum):
    CLEARED = "cleared"
    TIMED_OUT = "timed_out"
    ERROR = "error"


class SessionState(Enum):
    ABSENT = "absent"
    BROWSER_READY = "browser_ready"
    CONTEXT_READY = "context_ready"


@dataclass(frozen=True, slots=True)
class Credentials:
    """
    Credentials authenticate the browser session against
    the target service.
    """

    session_key: "str" = ""
    organization_id: "str" = ""

    @property
    def complete(self) -> "bool":
        return bool(self.session_key) and bool(self.organization_id)


@dataclass(frozen=True, slots=True)
class UsageWindow:
    """
    UsageWindow is a raw usage window as reported by the
    service, kept verbatim for display.
    """

    utilization: "float"
    # ISO-8601 timestamp, may be empty when the window has no usage yet
    resets_at: "str"


@dataclass(frozen=True, slots=True)
class PeriodInfo:
    # human-readable label, e.g. "5-hour window"
    type: "str"
    resets_at: "str"


@dataclass(frozen=True, slots=True)
class QuotaInfo:
    """
    QuotaInfo is the normalized quota record derived from the
    selected usage window. usage is itself a percentage, so
    percentage always equals usage and remaining is measured
    against a limit of 100.
    """

    usage: "float"
    percentage: "float"
    remaining: "float"
    limit: "float" = QUOTA_LIMIT
    reset_date: "datetime | None" = None
    period: "PeriodInfo | None" = None
    five_hour: "UsageWindow | None" = None
    seven_day: "UsageWindow | None" = None


@dataclass(frozen=True, slots=True)
class FetchResult:
    """
    FetchResult is the plain data returned by the in-page
    fetch procedure.
    """

    status: "int"
    status_text: "str" = ""
    headers: "dict[str, str]" = field(default_factory=dict)
    body: "Any" = None
    # in-page exception message, if the request never completed
    error: "str | None" = None

    @property
    def ok(self) -> "bool":
        return self.error is None and self.status == 200
