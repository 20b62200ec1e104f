import os
from dataclasses import dataclass

import structlog
from dotenv import load_dotenv

from quotabar.credentials import organization_from_cookie
from quotabar.models import UsagePeriod

logger = structlog.get_logger()

_DEFAULT_REFRESH_INTERVAL_MS = 300_000
_DEFAULT_WARNING_THRESHOLD = 80.0


def _env_int(name: "str", default: "int") -> "int":
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("config_invalid_value", name=name, value=raw)
        return default


def _env_float(name: "str", default: "float") -> "float":
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("config_invalid_value", name=name, value=raw)
        return default


def _env_bool(name: "str", default: "bool") -> "bool":
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


@dataclass
class Config:
    # listen_address: format ":9187" or
    # "0.0.0.0:9187", empty disables the metrics server
    listen_address: "str" = ":9187"
    log_level: "str" = "info"
    log_format: "str" = "console"
    # optional dotenv file, re-read on every configuration reload
    env_file: "str" = ""

    session_key: "str" = ""
    organization_id: "str" = ""
    usage_period: "UsagePeriod" = UsagePeriod.FIVE_HOUR
    # non-positive disables auto-refresh
    refresh_interval_ms: "int" = _DEFAULT_REFRESH_INTERVAL_MS
    # indicator turns to warning at this percentage
    warning_threshold: "float" = _DEFAULT_WARNING_THRESHOLD
    show_in_indicator: "bool" = True

    headless: "bool" = False
    auto_install: "bool" = True

    @classmethod
    def from_env(cls, env_file: "str" = "") -> "Config":
        """
        reads configuration from the environment, loading env_file
        first when given so that its values override the process
        environment.
        """
        if env_file:
            load_dotenv(env_file, override=True)

        session_key = os.environ.get("QUOTABAR_SESSION_KEY", "")
        organization_id = os.environ.get("QUOTABAR_ORGANIZATION_ID", "").strip()
        if not organization_id:
            # a pasted cookie header usually carries the active org
            organization_id = organization_from_cookie(session_key)

        return cls(
            env_file=env_file,
            session_key=session_key,
            organization_id=organization_id,
            usage_period=UsagePeriod.parse(os.environ.get("QUOTABAR_USAGE_PERIOD")),
            refresh_interval_ms=_env_int(
                "QUOTABAR_REFRESH_INTERVAL_MS", _DEFAULT_REFRESH_INTERVAL_MS
            ),
            warning_threshold=_env_float(
                "QUOTABAR_WARNING_THRESHOLD", _DEFAULT_WARNING_THRESHOLD
            ),
            show_in_indicator=_env_bool("QUOTABAR_SHOW_IN_INDICATOR", True),
            headless=_env_bool("QUOTABAR_HEADLESS", False),
            auto_install=_env_bool("QUOTABAR_AUTO_INSTALL", True),
        )

    @property
    def credentials_configured(self) -> "bool":
        return bool(self.session_key) and bool(self.organization_id)

    @property
    def refresh_interval_seconds(self) -> "float":
        return self.refresh_interval_ms / 1000
