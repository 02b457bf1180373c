"""Domain exceptions."""


class ReviewMonitorError(Exception):
    """Base class for all review monitor failures."""


class ConfigError(ReviewMonitorError):
    """Required configuration is missing or invalid."""


class TransportError(ReviewMonitorError):
    """Remote thread fetch failed or returned a non-success status."""


class DecodeError(ReviewMonitorError):
    """Response did not match the expected callback-call shape."""


class DeliveryError(ReviewMonitorError):
    """Notification could not be rendered or sent."""


class FrontierError(ReviewMonitorError):
    """Persisted frontier state is unreadable."""
