"""
Error kinds raised by the course engine.

Routers translate these into HTTP responses; services never
return error dicts.
"""


class CourseGenError(Exception):
    """Base class for all coursegen errors."""


class ConfigurationError(CourseGenError):
    """Required configuration is missing or invalid."""


class ProviderUnavailable(CourseGenError):
    """The content provider could not be reached or timed out."""


class MalformedResponse(CourseGenError):
    """The content provider answered with data that does not match the schema."""


class InvalidTransition(CourseGenError):
    """A progression or quiz operation was called out of order."""


class ContentLoadFailed(CourseGenError):
    """Tutorial or quiz generation failed while opening a sub-topic."""


class CourseNotFound(CourseGenError):
    """No course exists for the session, or an index is out of range."""
