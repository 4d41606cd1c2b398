from __future__ import annotations


class ScalpdeskError(Exception):
    """Base error for the desk."""


class MalformedTickError(ScalpdeskError, ValueError):
    """A tick message whose numeric fields are missing or do not parse."""

    def __init__(self, field: str, value: object):
        super().__init__(f"malformed tick field {field}={value!r}")
        self.field = field
        self.value = value


class FeedError(ScalpdeskError):
    """Transport failure inside a feed adapter."""
