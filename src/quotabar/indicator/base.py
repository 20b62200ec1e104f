from typing import Protocol, Sequence

from quotabar.config import Config
from quotabar.models import QuotaInfo


class Indicator(Protocol):
    """
    Indicator stands as the protocol for everything that displays
    quota state on the host side.

    update_quota(None) means the credentials are not configured;
    a populated record is the data of the last successful cycle.
    """

    def update_quota(self, quota: "QuotaInfo | None") -> "None": ...

    def show_loading(self) -> "None": ...

    def show_error(self, message: "str") -> "None": ...

    def apply_config(self, config: "Config") -> "None": ...


class CompositeIndicator:
    """
    fans every call out to a list of indicators.
    """

    def __init__(self, indicators: "Sequence[Indicator]") -> "None":
        self._indicators = list(indicators)

    def update_quota(self, quota: "QuotaInfo | None") -> "None":
        for indicator in self._indicators:
            indicator.update_quota(quota)

    def show_loading(self) -> "None":
        for indicator in self._indicators:
            indicator.show_loading()

    def show_error(self, message: "str") -> "None":
        for indicator in self._indicators:
            indicator.show_error(message)

    def apply_config(self, config: "Config") -> "None":
        for indicator in self._indicators:
            indicator.apply_config(config)
