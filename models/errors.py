"""
Error taxonomy for the relay.

FetchError is local to one source, StoreUnavailable is fatal to the current
cycle, DeliveryError is local to one posting. Overlapping scheduler runs are
not errors; they surface as RunOutcome.SKIPPED.
"""


class RelayError(Exception):
    """Base class for all relay errors."""


class ConfigError(RelayError):
    """Configuration file is missing or invalid."""


class FetchError(RelayError):
    """A source could not be fetched or its response could not be parsed."""

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"{source}: {message}")


class StoreUnavailable(RelayError):
    """The dedup store could not be read or written."""


class DeliveryError(RelayError):
    """A single posting could not be sent to the sink."""

    def __init__(self, posting_id: str, message: str):
        self.posting_id = posting_id
        super().__init__(f"{posting_id}: {message}")
