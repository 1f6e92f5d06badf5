"""
Error types raised by the origin scanner.
"""


class OriginHuntError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(OriginHuntError):
    """
    Invalid scan input detected before any network activity.

    The CLI reports it and exits with status 1.
    """


class RangeParseError(OriginHuntError, ValueError):
    """A single address range could not be used; the range is skipped."""


class InvalidRange(RangeParseError):
    def __init__(self, cidr, reason):
        super().__init__(f"invalid IPv4 range '{cidr}': {reason}")
        self.cidr = cidr
        self.reason = reason
