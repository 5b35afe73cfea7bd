class LiberalFeedError(Exception):
    """Base class for errors raised by liberalfeed."""


class FeedAccessError(LiberalFeedError):
    """The feed could not be retrieved."""


class UnknownOptionError(LiberalFeedError, ValueError):
    """An option key is not recognised."""


class SerializationError(LiberalFeedError, ValueError):
    """The feed cannot be rendered in the requested format."""


class MultipleParentFeedsError(LiberalFeedError, RuntimeError):
    """An entry was attached to a second feed."""


class CacheNotConfiguredError(LiberalFeedError):
    """A cache operation was requested without a cache."""


class CacheError(LiberalFeedError):
    """The feed cache could not be read or written."""
