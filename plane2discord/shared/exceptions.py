"""Custom exception hierarchy for plane2discord."""


class Plane2DiscordError(Exception):
    """Base exception for all relay errors."""

    pass


class ConfigError(Plane2DiscordError):
    """Raised when required configuration is missing or invalid."""

    pass


class AuthenticationError(Plane2DiscordError):
    """Raised when a webhook signature is missing, malformed or wrong."""

    pass


class ParseError(Plane2DiscordError):
    """Raised when a webhook body is not a well-formed event."""

    pass


class UpstreamLookupError(Plane2DiscordError):
    """Raised when a Plane API lookup fails."""

    pass


class ImageStoreError(Plane2DiscordError):
    """Base class for image re-hosting failures."""

    pass


class ImageFetchError(ImageStoreError):
    """Raised when a source image cannot be downloaded."""

    pass


class ImageUploadError(ImageStoreError):
    """Raised when the object store rejects an upload."""

    pass


class ForwardError(Plane2DiscordError):
    """Raised when Discord does not accept a forwarded notification."""

    pass


class DatabaseError(Plane2DiscordError):
    """Raised when database operations fail."""

    pass
