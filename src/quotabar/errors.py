class QuotaError(Exception):
    """
    base class for every failure of a quota acquisition cycle.
    """


class ConfigurationIncompleteError(QuotaError):
    """
    raised when the session key or organization id is missing.
    """


class RuntimeUnavailableError(QuotaError):
    """
    raised when the browser runtime cannot be launched, usually
    because Chromium has not been installed for Playwright.
    """


class NavigationError(QuotaError):
    """
    raised when the target site cannot be reached or does not
    become ready within the navigation timeout.
    """


class FetchError(QuotaError):
    """
    raised when the usage request fails inside the page or
    returns a non-200 status.
    """

    def __init__(self, message: "str", status: "int | None" = None) -> "None":
        super().__init__(message)
        self.status = status
