"""
Exceptions raised by the eCFR regulatory growth monitor.
"""


class ECFRMonitorError(Exception):
    """Base class for monitor errors."""


class AgencyFeedError(ECFRMonitorError):
    """The agency directory could not be fetched or contained nothing to sync."""


class AgencyNotFoundError(ECFRMonitorError):
    """No agency with the requested slug has been synced."""

    def __init__(self, slug: str):
        super().__init__(f"Unknown agency: {slug}")
        self.slug = slug
