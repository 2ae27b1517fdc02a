"""
Error types raised by the EPG grabber.

Most failures are channel scoped and end up as diagnostics in the run
result; only RegistryLoadError aborts a whole run.
"""


class MalformedEntryError(ValueError):
    """Raised when a scraped listing entry has an unusable time or title"""
    pass


class ChannelFailedError(Exception):
    """Raised when a single channel cannot be processed at all"""

    def __init__(self, channel_id: str, reason: str):
        super().__init__(f"Channel {channel_id} failed: {reason}")
        self.channel_id = channel_id
        self.reason = reason


class RegistryLoadError(RuntimeError):
    """Raised when the channel registry file cannot be read or parsed"""
    pass
